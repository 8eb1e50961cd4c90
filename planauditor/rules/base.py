"""Base contracts for plan rules and the findings they produce."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from planauditor.plan.models import Plan, ResourceChange

# Matches every resource type.
WILDCARD = "*"

CheckFunction = Callable[[ResourceChange, Plan], Any]
SavingsFunction = Callable[[ResourceChange], float]


@dataclass(frozen=True)
class Rule:
    """A statically registered predicate over one resource change.

    ``check`` returns a truthy value on violation. ``recommendation`` is
    either fixed text or a callable taking the resource change. The domain
    tags that apply depend on the catalog: frameworks/controls for
    compliance, category/cve for security, category/savings for cost.
    """

    id: str
    title: str
    description: str
    severity: str
    resource_types: tuple[str, ...]
    check: CheckFunction
    recommendation: str | Callable[[ResourceChange], str]

    frameworks: tuple[str, ...] = ()
    controls: tuple[str, ...] = ()
    category: str | None = None
    cve: str | None = None
    savings: SavingsFunction | None = None

    def applies_to(self, resource_type: str) -> bool:
        return WILDCARD in self.resource_types or resource_type in self.resource_types

    def recommend(self, change: ResourceChange) -> str:
        if callable(self.recommendation):
            return self.recommendation(change)
        return self.recommendation

    def estimate_savings(self, change: ResourceChange) -> float:
        return float(self.savings(change)) if self.savings else 0.0


@dataclass
class Finding:
    """One concrete rule violation against one resource."""

    id: str
    kind: str
    severity: str
    title: str
    description: str
    resource: str
    rule: str
    recommendation: str
    evidence: dict[str, Any] = field(default_factory=dict)

    framework: str | None = None
    control: str | None = None
    category: str | None = None
    cve: str | None = None
    potential_savings: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "id": self.id,
            "kind": self.kind,
            "severity": self.severity,
            "title": self.title,
            "description": self.description,
            "resource": self.resource,
            "rule": self.rule,
            "recommendation": self.recommendation,
            "evidence": dict(self.evidence),
        }

        for name in ("framework", "control", "category", "cve", "potential_savings"):
            value = getattr(self, name)
            if value is not None:
                result[name] = value

        return result
