"""Cost estimation from a static price table plus cost-optimization rules.

Estimates are monthly list prices (a month is 24 * 30 hours) for the
planned configuration only; nothing here talks to a pricing API.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from planauditor.plan.models import Plan, ResourceChange
from planauditor.request import ScanOptions
from planauditor.utils.constants import COST_CATEGORIES
from planauditor.utils.logging import logger

from .base import Finding, Rule
from .common import after
from .engine import RuleEngine

HOURS_PER_MONTH = 24 * 30

PRICING = {
    "ec2": {
        "t3.micro": 0.0104,
        "t3.small": 0.0208,
        "t3.medium": 0.0416,
        "t3.large": 0.0832,
        "m5.large": 0.096,
        "m5.xlarge": 0.192,
        "c5.large": 0.085,
        "c5.xlarge": 0.17,
    },
    "ebs": {
        "gp2": 0.10,
        "gp3": 0.08,
        "io1": 0.125,
        "io2": 0.125,
    },
    "rds": {
        "db.t3.micro": 0.017,
        "db.t3.small": 0.034,
        "db.t3.medium": 0.068,
        "db.m5.large": 0.115,
        "db.m5.xlarge": 0.23,
    },
    "lb": {
        "application": 0.0225,
        "network": 0.0225,
        "classic": 0.025,
    },
}

DEFAULT_EC2_HOURLY = 0.01
DEFAULT_EBS_GB = 0.08
DEFAULT_RDS_HOURLY = 0.017
DEFAULT_LB_HOURLY = 0.0225

S3_ESTIMATED_GB = 100
S3_STANDARD_GB = 0.023
LAMBDA_INVOCATIONS = 1_000_000
LAMBDA_DURATION_MS = 100
LAMBDA_REQUEST_PRICE = 0.0000002
LAMBDA_GB_SECOND_PRICE = 0.0000166667
CLOUDFRONT_ESTIMATED_GB = 1000
CLOUDFRONT_GB = 0.085

# Monthly savings estimates per size.
EC2_DOWNSIZE_SAVINGS = {"m5.xlarge": 50, "c5.xlarge": 45, "r5.xlarge": 55}
EC2_RESERVED_SAVINGS = {"m5.large": 30, "m5.xlarge": 60, "c5.large": 25, "c5.xlarge": 50}
RDS_DOWNSIZE_SAVINGS = {"db.m5.xlarge": 80, "db.r5.xlarge": 90, "db.c5.xlarge": 70}

CATEGORY_EFFORT = {"storage": "low", "compute": "medium", "network": "medium", "database": "high"}


def _ec2_cost(config: dict) -> float:
    hourly = PRICING["ec2"].get(config.get("instance_type") or "t3.micro", DEFAULT_EC2_HOURLY)
    return hourly * HOURS_PER_MONTH


def _s3_cost(config: dict) -> float:
    return S3_ESTIMATED_GB * S3_STANDARD_GB


def _ebs_cost(config: dict) -> float:
    size = config.get("size") or 20
    return size * PRICING["ebs"].get(config.get("type") or "gp3", DEFAULT_EBS_GB)


def _rds_cost(config: dict) -> float:
    hourly = PRICING["rds"].get(config.get("instance_class") or "db.t3.micro", DEFAULT_RDS_HOURLY)
    return hourly * HOURS_PER_MONTH


def _lambda_cost(config: dict) -> float:
    memory = config.get("memory_size") or 128
    invocation_cost = LAMBDA_INVOCATIONS * LAMBDA_REQUEST_PRICE
    duration_cost = (LAMBDA_INVOCATIONS * LAMBDA_DURATION_MS * memory) / 1024 * LAMBDA_GB_SECOND_PRICE
    return invocation_cost + duration_cost


def _lb_cost(config: dict) -> float:
    hourly = PRICING["lb"].get(config.get("load_balancer_type") or "application", DEFAULT_LB_HOURLY)
    return hourly * HOURS_PER_MONTH


def _cloudfront_cost(config: dict) -> float:
    return CLOUDFRONT_ESTIMATED_GB * CLOUDFRONT_GB


ESTIMATORS: dict[str, tuple[Callable[[dict], float], str]] = {
    "aws_instance": (_ec2_cost, "compute"),
    "aws_s3_bucket": (_s3_cost, "storage"),
    "aws_ebs_volume": (_ebs_cost, "storage"),
    "aws_db_instance": (_rds_cost, "database"),
    "aws_rds_cluster": (_rds_cost, "database"),
    "aws_lambda_function": (_lambda_cost, "compute"),
    "aws_lb": (_lb_cost, "network"),
    "aws_elb": (_lb_cost, "network"),
    "aws_cloudfront_distribution": (_cloudfront_cost, "network"),
}


@dataclass(frozen=True)
class ResourceCost:
    estimated_cost: float
    category: str


def estimate_resource_cost(change: ResourceChange) -> ResourceCost:
    """Monthly cost estimate for the planned configuration.

    Unknown types and resources with no planned configuration cost 0.
    """
    estimator, category = ESTIMATORS.get(change.type, (None, "other"))
    if estimator is None:
        return ResourceCost(0.0, "other")
    if change.after is None:
        return ResourceCost(0.0, category)
    return ResourceCost(float(estimator(change.after)), category)


def _memory_over(limit: int) -> Callable[[ResourceChange, Plan], bool]:
    def check(change: ResourceChange, plan=None) -> bool:
        memory = after(change).get("memory_size")
        return bool(memory) and memory > limit

    return check


COST_RULES: tuple[Rule, ...] = (
    Rule(
        id="ec2-oversized-instance",
        title="Oversized EC2 Instance",
        description="EC2 instance may be oversized for its workload",
        severity="medium",
        category="compute",
        resource_types=("aws_instance",),
        check=lambda rc, plan: after(rc).get("instance_type") in EC2_DOWNSIZE_SAVINGS,
        recommendation="Consider downsizing to a smaller instance type",
        savings=lambda rc: EC2_DOWNSIZE_SAVINGS.get(after(rc).get("instance_type"), 0),
    ),
    Rule(
        id="ec2-reserved-instance",
        title="EC2 Reserved Instance Opportunity",
        description="Consider Reserved Instances for cost savings",
        severity="low",
        category="compute",
        resource_types=("aws_instance",),
        check=lambda rc, plan: after(rc).get("instance_type") in EC2_RESERVED_SAVINGS,
        recommendation="Consider Reserved Instances for 1-3 year commitment",
        savings=lambda rc: EC2_RESERVED_SAVINGS.get(after(rc).get("instance_type"), 0),
    ),
    Rule(
        id="s3-storage-class",
        title="S3 Storage Class Optimization",
        description="S3 bucket may benefit from different storage classes",
        severity="low",
        category="storage",
        resource_types=("aws_s3_bucket",),
        check=lambda rc, plan: not after(rc).get("lifecycle_rule"),
        recommendation="Implement lifecycle rules to transition to cheaper storage classes",
        savings=lambda rc: 50,
    ),
    Rule(
        id="ebs-volume-type",
        title="EBS Volume Type Optimization",
        description="EBS volume may benefit from a different volume type",
        severity="medium",
        category="storage",
        resource_types=("aws_ebs_volume",),
        check=lambda rc, plan: after(rc).get("type") == "gp2" and (after(rc).get("size") or 0) > 100,
        recommendation="Consider gp3 for better price-performance ratio",
        savings=lambda rc: (after(rc).get("size") or 100) * 0.02,
    ),
    Rule(
        id="rds-oversized-instance",
        title="Oversized RDS Instance",
        description="RDS instance may be oversized for its workload",
        severity="medium",
        category="database",
        resource_types=("aws_db_instance", "aws_rds_cluster"),
        check=lambda rc, plan: after(rc).get("instance_class") in RDS_DOWNSIZE_SAVINGS,
        recommendation="Consider downsizing to a smaller instance class",
        savings=lambda rc: RDS_DOWNSIZE_SAVINGS.get(after(rc).get("instance_class"), 0),
    ),
    Rule(
        id="lambda-memory-optimization",
        title="Lambda Memory Optimization",
        description="Lambda function memory may be optimized",
        severity="low",
        category="compute",
        resource_types=("aws_lambda_function",),
        check=_memory_over(512),
        recommendation="Consider reducing memory allocation if not needed",
        savings=lambda rc: (
            ((after(rc).get("memory_size") or 512) - 512) * LAMBDA_GB_SECOND_PRICE * 1_000_000
        ),
    ),
)


def build_recommendations(findings: list[Finding]) -> list[dict[str, Any]]:
    """One recommendation per category with positive total savings, largest first."""
    groups: dict[str, list[Finding]] = {}
    for finding in findings:
        groups.setdefault(finding.category or "other", []).append(finding)

    recommendations = []
    for category, members in groups.items():
        total = sum(f.potential_savings or 0 for f in members)
        if total <= 0:
            continue
        label = f"{category} " if category in CATEGORY_EFFORT else ""
        recommendations.append(
            {
                "category": category,
                "description": f"Optimize {len(members)} {label}resources to reduce costs",
                "potential_savings": total,
                "effort": CATEGORY_EFFORT.get(category, "medium"),
            }
        )

    return sorted(recommendations, key=lambda r: r["potential_savings"], reverse=True)


@dataclass
class CostResult:
    total_cost: float = 0.0
    monthly_cost: float = 0.0
    annual_cost: float = 0.0
    cost_breakdown: dict[str, float] = field(default_factory=lambda: dict.fromkeys(COST_CATEGORIES, 0.0))
    resource_costs: dict[str, float] = field(default_factory=dict)
    findings: list[Finding] = field(default_factory=list)
    recommendations: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_cost": self.total_cost,
            "monthly_cost": self.monthly_cost,
            "annual_cost": self.annual_cost,
            "cost_breakdown": dict(self.cost_breakdown),
            "resource_costs": dict(self.resource_costs),
            "findings": [f.to_dict() for f in self.findings],
            "recommendations": [dict(r) for r in self.recommendations],
        }


class CostEngine(RuleEngine):
    """Price table estimates plus the cost-optimization catalog."""

    kind = "cost"
    default_rules = COST_RULES

    def build_finding(self, rule: Rule, change: ResourceChange) -> Finding:
        return self._base_finding(
            rule,
            change,
            {"category": rule.category},
            category=rule.category,
            potential_savings=rule.estimate_savings(change),
        )

    def estimate(self, change: ResourceChange, log=None) -> ResourceCost:
        """Estimate one resource; a failing estimate counts as 0 in other."""
        try:
            return estimate_resource_cost(change)
        except Exception as e:
            (log or logger).bind(resource=change.address, resource_type=change.type).warning(
                f"Failed to calculate resource cost: {e}"
            )
            return ResourceCost(0.0, "other")

    def analyze(self, plan: Plan, options: ScanOptions | None = None, log=None) -> CostResult:
        log = log or logger
        log.info(f"Starting cost analysis ({plan.resource_count} resources)")

        result = CostResult()
        for change in plan.resource_changes:
            cost = self.estimate(change, log)
            result.total_cost += cost.estimated_cost
            result.cost_breakdown[cost.category] += cost.estimated_cost
            result.resource_costs[change.address] = cost.estimated_cost
            result.findings.extend(self.evaluate_resource(change, plan, log))

        result.monthly_cost = result.total_cost
        result.annual_cost = result.total_cost * 12
        result.recommendations = build_recommendations(result.findings)

        log.info(
            f"Cost analysis completed: ${result.monthly_cost:.2f}/month, "
            f"{len(result.findings)} findings, {len(result.recommendations)} recommendations"
        )
        return result
