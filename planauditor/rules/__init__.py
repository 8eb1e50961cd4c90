"""Rule catalogs and engines for compliance, security and cost analysis."""

from .base import WILDCARD, Finding, Rule
from .compliance import COMPLIANCE_RULES, ComplianceEngine, ComplianceResult
from .cost import COST_RULES, CostEngine, CostResult, estimate_resource_cost
from .engine import RuleEngine, score_from_findings
from .security import SECURITY_RULES, SecurityEngine, SecurityResult, risk_level

ENGINES = {
    "compliance": ComplianceEngine,
    "security": SecurityEngine,
    "cost": CostEngine,
}

__all__ = [
    "WILDCARD",
    "Finding",
    "Rule",
    "RuleEngine",
    "score_from_findings",
    "COMPLIANCE_RULES",
    "ComplianceEngine",
    "ComplianceResult",
    "SECURITY_RULES",
    "SecurityEngine",
    "SecurityResult",
    "risk_level",
    "COST_RULES",
    "CostEngine",
    "CostResult",
    "estimate_resource_cost",
    "ENGINES",
]
