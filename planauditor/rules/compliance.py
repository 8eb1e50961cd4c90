"""Compliance rules mapped to SOC2, HIPAA and GDPR controls.

Every finding carries the rule's primary framework and control. The overall
score is spread over the plan's resources; framework and control scores are
raw penalties against 100.
"""

from dataclasses import dataclass, field
from typing import Any

from planauditor.plan.models import Plan, ResourceChange
from planauditor.request import ScanOptions
from planauditor.utils.constants import COMPLIANCE_PENALTIES
from planauditor.utils.helpers import dig
from planauditor.utils.logging import logger

from .base import Finding, Rule
from .common import after, is_root_user, policy_has_wildcard
from .engine import RuleEngine, score_from_findings

ALL_FRAMEWORKS = ("SOC2", "HIPAA", "GDPR")
ALL_CONTROLS = ("CC6.1", "164.312(a)(2)(iv)", "Art. 32")
SOC2_HIPAA = ("SOC2", "HIPAA")
SOC2_HIPAA_CONTROLS = ("CC6.1", "164.312(a)(2)(iv)")
ACCESS_CONTROLS = ("CC6.1", "164.312(a)(2)(i)", "Art. 32")

IAM_POLICY_TYPES = ("aws_iam_policy", "aws_iam_role_policy", "aws_iam_user_policy")
RDS_TYPES = ("aws_db_instance", "aws_rds_cluster")


COMPLIANCE_RULES: tuple[Rule, ...] = (
    # S3
    Rule(
        id="s3-encryption-required",
        title="S3 Bucket Encryption Required",
        description="S3 buckets must have server-side encryption enabled",
        severity="high",
        resource_types=("aws_s3_bucket",),
        check=lambda rc, plan: not after(rc).get("server_side_encryption_configuration"),
        recommendation="Enable server-side encryption on S3 bucket",
        frameworks=ALL_FRAMEWORKS,
        controls=ALL_CONTROLS,
    ),
    Rule(
        id="s3-public-access-block",
        title="S3 Public Access Block Required",
        description="S3 buckets must have public access block enabled",
        severity="high",
        resource_types=("aws_s3_bucket",),
        check=lambda rc, plan: not after(rc).get("public_access_block"),
        recommendation="Enable public access block on S3 bucket",
        frameworks=ALL_FRAMEWORKS,
        controls=ALL_CONTROLS,
    ),
    Rule(
        id="s3-versioning-required",
        title="S3 Versioning Required",
        description="S3 buckets should have versioning enabled for data protection",
        severity="medium",
        resource_types=("aws_s3_bucket",),
        check=lambda rc, plan: dig(after(rc), "versioning", 0, "enabled") is not True,
        recommendation="Enable versioning on S3 bucket",
        frameworks=SOC2_HIPAA,
        controls=SOC2_HIPAA_CONTROLS,
    ),
    # IAM
    Rule(
        id="iam-policy-wildcard",
        title="IAM Policy Wildcard Restriction",
        description="IAM policies should not use wildcard permissions",
        severity="high",
        resource_types=IAM_POLICY_TYPES,
        check=policy_has_wildcard,
        recommendation="Remove wildcard permissions from IAM policy",
        frameworks=ALL_FRAMEWORKS,
        controls=ACCESS_CONTROLS,
    ),
    Rule(
        id="iam-root-access",
        title="Root Access Restriction",
        description="Root user access should be restricted",
        severity="critical",
        resource_types=("aws_iam_user",),
        check=is_root_user,
        recommendation="Avoid using root user for regular operations",
        frameworks=SOC2_HIPAA,
        controls=("CC6.1", "164.312(a)(2)(i)"),
    ),
    # EC2 / EBS
    Rule(
        id="ec2-public-ip",
        title="EC2 Public IP Restriction",
        description="EC2 instances should not have public IPs unless necessary",
        severity="medium",
        resource_types=("aws_instance",),
        check=lambda rc, plan: after(rc).get("associate_public_ip_address") is True,
        recommendation="Avoid assigning public IPs to EC2 instances",
        frameworks=ALL_FRAMEWORKS,
        controls=ALL_CONTROLS,
    ),
    Rule(
        id="ec2-encryption",
        title="EC2 EBS Encryption Required",
        description="EBS volumes must be encrypted",
        severity="high",
        resource_types=("aws_ebs_volume",),
        check=lambda rc, plan: after(rc).get("encrypted") is not True,
        recommendation="Enable encryption on EBS volume",
        frameworks=ALL_FRAMEWORKS,
        controls=ALL_CONTROLS,
    ),
    # RDS
    Rule(
        id="rds-encryption",
        title="RDS Encryption Required",
        description="RDS instances must have encryption enabled",
        severity="high",
        resource_types=RDS_TYPES,
        check=lambda rc, plan: after(rc).get("storage_encrypted") is not True,
        recommendation="Enable encryption on RDS instance",
        frameworks=ALL_FRAMEWORKS,
        controls=ALL_CONTROLS,
    ),
    Rule(
        id="rds-public-access",
        title="RDS Public Access Restriction",
        description="RDS instances should not be publicly accessible",
        severity="high",
        resource_types=RDS_TYPES,
        check=lambda rc, plan: after(rc).get("publicly_accessible") is True,
        recommendation="Disable public access on RDS instance",
        frameworks=ALL_FRAMEWORKS,
        controls=ALL_CONTROLS,
    ),
    # Lambda
    Rule(
        id="lambda-environment-variables",
        title="Lambda Environment Variables Encryption",
        description="Lambda environment variables should be encrypted",
        severity="medium",
        resource_types=("aws_lambda_function",),
        check=lambda rc, plan: bool(after(rc).get("environment")) and not after(rc).get("kms_key_arn"),
        recommendation="Encrypt Lambda environment variables with KMS",
        frameworks=ALL_FRAMEWORKS,
        controls=ALL_CONTROLS,
    ),
    # CloudTrail
    Rule(
        id="cloudtrail-encryption",
        title="CloudTrail Encryption Required",
        description="CloudTrail logs must be encrypted",
        severity="high",
        resource_types=("aws_cloudtrail",),
        check=lambda rc, plan: not after(rc).get("kms_key_id"),
        recommendation="Enable encryption on CloudTrail logs",
        frameworks=ALL_FRAMEWORKS,
        controls=ALL_CONTROLS,
    ),
    Rule(
        id="cloudtrail-log-validation",
        title="CloudTrail Log Validation Required",
        description="CloudTrail must have log file validation enabled",
        severity="medium",
        resource_types=("aws_cloudtrail",),
        check=lambda rc, plan: after(rc).get("enable_log_file_validation") is not True,
        recommendation="Enable log file validation on CloudTrail",
        frameworks=SOC2_HIPAA,
        controls=SOC2_HIPAA_CONTROLS,
    ),
)


@dataclass
class ComplianceResult:
    score: float = 100.0
    findings: list[Finding] = field(default_factory=list)
    framework_scores: dict[str, float] = field(default_factory=dict)
    control_scores: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "findings": [f.to_dict() for f in self.findings],
            "framework_scores": dict(self.framework_scores),
            "control_scores": dict(self.control_scores),
        }


class ComplianceEngine(RuleEngine):
    """Compliance catalog plus framework and control scoring."""

    kind = "compliance"
    default_rules = COMPLIANCE_RULES

    def build_finding(self, rule: Rule, change: ResourceChange) -> Finding:
        return self._base_finding(
            rule,
            change,
            {"frameworks": list(rule.frameworks), "controls": list(rule.controls)},
            framework=rule.frameworks[0] if rule.frameworks else None,
            control=rule.controls[0] if rule.controls else None,
        )

    def analyze(self, plan: Plan, options: ScanOptions | None = None, log=None) -> ComplianceResult:
        options = options or ScanOptions()
        log = log or logger
        log.info(f"Starting compliance analysis ({plan.resource_count} resources)")

        findings = self.evaluate(plan, log)
        result = ComplianceResult(
            score=score_from_findings(findings, COMPLIANCE_PENALTIES, plan.resource_count),
            findings=findings,
        )

        for framework in options.frameworks:
            result.framework_scores[framework] = score_from_findings(
                [f for f in findings if f.framework == framework], COMPLIANCE_PENALTIES
            )

        for control in dict.fromkeys(f.control for f in findings if f.control):
            result.control_scores[control] = score_from_findings(
                [f for f in findings if f.control == control], COMPLIANCE_PENALTIES
            )

        log.bind(framework_scores=result.framework_scores).info(
            f"Compliance analysis completed: {len(findings)} findings, score {result.score}"
        )
        return result
