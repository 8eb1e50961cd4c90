"""Security rules grouped by category, with a derived risk level."""

from dataclasses import dataclass, field
from typing import Any

from planauditor.plan.models import Plan, ResourceChange
from planauditor.request import ScanOptions
from planauditor.utils.constants import SECURITY_CATEGORIES, SECURITY_PENALTIES
from planauditor.utils.helpers import dig
from planauditor.utils.logging import logger

from .base import Finding, Rule
from .common import after, is_root_user, policy_has_wildcard
from .engine import RuleEngine, score_from_findings

IAM_POLICY_TYPES = ("aws_iam_policy", "aws_iam_role_policy", "aws_iam_user_policy")
RDS_TYPES = ("aws_db_instance", "aws_rds_cluster")

OPEN_CIDRS = {"cidr_blocks": "0.0.0.0/0", "ipv6_cidr_blocks": "::/0"}
INSECURE_PROTOCOLS = ("HTTP", "TCP")
MIN_BACKUP_RETENTION_DAYS = 7


def _has_open_ingress(change: ResourceChange, plan=None) -> bool:
    for rule in after(change).get("ingress") or []:
        for key, cidr in OPEN_CIDRS.items():
            if cidr in (rule.get(key) or []):
                return True
    return False


def _backup_retention_too_low(change: ResourceChange, plan=None) -> bool:
    return (after(change).get("backup_retention_period") or 0) < MIN_BACKUP_RETENTION_DAYS


SECURITY_RULES: tuple[Rule, ...] = (
    # encryption
    Rule(
        id="s3-unencrypted-bucket",
        title="Unencrypted S3 Bucket",
        description="S3 bucket without encryption exposes data to unauthorized access",
        severity="high",
        category="encryption",
        resource_types=("aws_s3_bucket",),
        check=lambda rc, plan: not after(rc).get("server_side_encryption_configuration"),
        recommendation="Enable server-side encryption on S3 bucket",
    ),
    Rule(
        id="ebs-unencrypted-volume",
        title="Unencrypted EBS Volume",
        description="EBS volume without encryption exposes data to unauthorized access",
        severity="high",
        category="encryption",
        resource_types=("aws_ebs_volume",),
        check=lambda rc, plan: after(rc).get("encrypted") is not True,
        recommendation="Enable encryption on EBS volume",
    ),
    Rule(
        id="rds-unencrypted-instance",
        title="Unencrypted RDS Instance",
        description="RDS instance without encryption exposes sensitive data",
        severity="high",
        category="encryption",
        resource_types=RDS_TYPES,
        check=lambda rc, plan: after(rc).get("storage_encrypted") is not True,
        recommendation="Enable encryption on RDS instance",
    ),
    # access_control
    Rule(
        id="s3-public-bucket",
        title="Public S3 Bucket",
        description="S3 bucket with public access exposes data to unauthorized users",
        severity="critical",
        category="access_control",
        resource_types=("aws_s3_bucket",),
        check=lambda rc, plan: dig(after(rc), "public_access_block", "block_public_acls") is not True,
        recommendation="Enable public access block on S3 bucket",
    ),
    Rule(
        id="iam-wildcard-policy",
        title="IAM Policy with Wildcard Permissions",
        description="IAM policy with wildcard permissions grants excessive access",
        severity="high",
        category="access_control",
        resource_types=IAM_POLICY_TYPES,
        check=policy_has_wildcard,
        recommendation="Remove wildcard permissions from IAM policy",
    ),
    Rule(
        id="rds-public-access",
        title="Publicly Accessible RDS Instance",
        description="RDS instance with public access exposes database to unauthorized users",
        severity="critical",
        category="access_control",
        resource_types=RDS_TYPES,
        check=lambda rc, plan: after(rc).get("publicly_accessible") is True,
        recommendation="Disable public access on RDS instance",
    ),
    # network_security
    Rule(
        id="sg-open-ports",
        title="Security Group with Open Ports",
        description="Security group with open ports exposes services to unauthorized access",
        severity="medium",
        category="network_security",
        resource_types=("aws_security_group",),
        check=_has_open_ingress,
        recommendation="Restrict security group ingress rules",
    ),
    Rule(
        id="ec2-public-ip",
        title="EC2 Instance with Public IP",
        description="EC2 instance with public IP exposes it to the internet",
        severity="medium",
        category="network_security",
        resource_types=("aws_instance",),
        check=lambda rc, plan: after(rc).get("associate_public_ip_address") is True,
        recommendation="Avoid assigning public IPs to EC2 instances",
    ),
    Rule(
        id="elb-insecure-listener",
        title="ELB with Insecure Listener",
        description="ELB listener without SSL/TLS exposes traffic to interception",
        severity="high",
        category="network_security",
        resource_types=("aws_lb_listener", "aws_elb"),
        check=lambda rc, plan: after(rc).get("protocol") in INSECURE_PROTOCOLS,
        recommendation="Use HTTPS/TLS for ELB listeners",
    ),
    # data_protection
    Rule(
        id="lambda-unencrypted-env",
        title="Lambda with Unencrypted Environment Variables",
        description="Lambda environment variables without encryption expose sensitive data",
        severity="medium",
        category="data_protection",
        resource_types=("aws_lambda_function",),
        check=lambda rc, plan: bool(after(rc).get("environment")) and not after(rc).get("kms_key_arn"),
        recommendation="Encrypt Lambda environment variables with KMS",
    ),
    Rule(
        id="cloudtrail-unencrypted",
        title="Unencrypted CloudTrail Logs",
        description="CloudTrail logs without encryption expose audit data",
        severity="high",
        category="data_protection",
        resource_types=("aws_cloudtrail",),
        check=lambda rc, plan: not after(rc).get("kms_key_id"),
        recommendation="Enable encryption on CloudTrail logs",
    ),
    # logging
    Rule(
        id="cloudtrail-log-validation",
        title="CloudTrail without Log Validation",
        description="CloudTrail without log validation cannot detect tampering",
        severity="medium",
        category="logging",
        resource_types=("aws_cloudtrail",),
        check=lambda rc, plan: after(rc).get("enable_log_file_validation") is not True,
        recommendation="Enable log file validation on CloudTrail",
    ),
    Rule(
        id="cloudtrail-multi-region",
        title="CloudTrail not Multi-Region",
        description="CloudTrail should be configured for multi-region logging",
        severity="medium",
        category="logging",
        resource_types=("aws_cloudtrail",),
        check=lambda rc, plan: after(rc).get("is_multi_region_trail") is not True,
        recommendation="Enable multi-region logging for CloudTrail",
    ),
    # access_control
    Rule(
        id="iam-root-user",
        title="Root User Configuration",
        description="Root user should not be used for regular operations",
        severity="critical",
        category="access_control",
        resource_types=("aws_iam_user",),
        check=is_root_user,
        recommendation="Avoid using root user for regular operations",
    ),
    # data_protection
    Rule(
        id="s3-versioning-disabled",
        title="S3 Versioning Disabled",
        description="S3 bucket without versioning cannot recover from accidental deletion",
        severity="medium",
        category="data_protection",
        resource_types=("aws_s3_bucket",),
        check=lambda rc, plan: dig(after(rc), "versioning", 0, "enabled") is not True,
        recommendation="Enable versioning on S3 bucket",
    ),
    Rule(
        id="rds-backup-retention",
        title="RDS Backup Retention Too Low",
        description="RDS backup retention period should be at least 7 days",
        severity="medium",
        category="data_protection",
        resource_types=RDS_TYPES,
        check=_backup_retention_too_low,
        recommendation="Set backup retention period to at least 7 days",
    ),
)


def risk_level(findings: list) -> str:
    """critical > high (3+ high) > medium (any high or 6+ medium) > low."""
    counts = {"critical": 0, "high": 0, "medium": 0}
    for finding in findings:
        severity = finding.get("severity") if isinstance(finding, dict) else finding.severity
        if severity in counts:
            counts[severity] += 1

    if counts["critical"] > 0:
        return "critical"
    if counts["high"] > 2:
        return "high"
    if counts["high"] > 0 or counts["medium"] > 5:
        return "medium"
    return "low"


@dataclass
class SecurityResult:
    score: float = 100.0
    findings: list[Finding] = field(default_factory=list)
    category_scores: dict[str, float] = field(default_factory=dict)
    risk_level: str = "low"

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "findings": [f.to_dict() for f in self.findings],
            "category_scores": dict(self.category_scores),
            "risk_level": self.risk_level,
        }


class SecurityEngine(RuleEngine):
    """Security catalog plus category scoring and risk level."""

    kind = "security"
    default_rules = SECURITY_RULES

    def build_finding(self, rule: Rule, change: ResourceChange) -> Finding:
        return self._base_finding(
            rule,
            change,
            {"category": rule.category},
            category=rule.category,
            cve=rule.cve,
        )

    def analyze(self, plan: Plan, options: ScanOptions | None = None, log=None) -> SecurityResult:
        log = log or logger
        log.info(f"Starting security analysis ({plan.resource_count} resources)")

        findings = self.evaluate(plan, log)
        result = SecurityResult(
            score=score_from_findings(findings, SECURITY_PENALTIES, plan.resource_count),
            findings=findings,
            risk_level=risk_level(findings),
        )

        for category in SECURITY_CATEGORIES:
            result.category_scores[category] = score_from_findings(
                [f for f in findings if f.category == category], SECURITY_PENALTIES
            )

        log.info(
            f"Security analysis completed: {len(findings)} findings, "
            f"score {result.score}, risk {result.risk_level}"
        )
        return result
