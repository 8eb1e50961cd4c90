"""Shared rule evaluation loop and scoring."""

from collections.abc import Iterable

from planauditor.errors import RuleEvaluationError
from planauditor.plan.models import Plan, ResourceChange
from planauditor.utils.helpers import round1
from planauditor.utils.logging import logger

from .base import Finding, Rule


def score_from_findings(
    findings: Iterable, penalties: dict[str, float], resource_count: int | None = None
) -> float:
    """Health score in 0-100 from severity penalties, one decimal.

    With ``resource_count`` the summed penalty is spread over the resources
    (an empty plan scores 100). Without it the raw penalty is subtracted.
    """
    total = sum(penalties.get(_severity(finding), 0) for finding in findings)

    if resource_count is not None:
        if resource_count == 0:
            return 100.0
        return round1(max(0.0, 100 - total / resource_count))

    return round1(max(0.0, 100 - total))


def _severity(finding) -> str | None:
    if isinstance(finding, dict):
        return finding.get("severity")
    return getattr(finding, "severity", None)


class RuleEngine:
    """Evaluates a read-only rule catalog against every resource change.

    Subclasses set ``kind`` and ``default_rules`` and turn a violated rule
    into a Finding via ``build_finding``. A rule that raises is logged and
    skipped for that resource only.
    """

    kind = ""
    default_rules: tuple[Rule, ...] = ()

    def __init__(self, rules: Iterable[Rule] | None = None):
        catalog = tuple(rules) if rules is not None else tuple(self.default_rules)

        seen: set[str] = set()
        for rule in catalog:
            if rule.id in seen:
                raise ValueError(f"Duplicate rule id in {self.kind or 'rule'} catalog: {rule.id}")
            seen.add(rule.id)

        self.rules = catalog

    def rules_for(self, resource_type: str) -> list[Rule]:
        return [rule for rule in self.rules if rule.applies_to(resource_type)]

    def evaluate(self, plan: Plan, log=None) -> list[Finding]:
        """Run every applicable rule over every resource, in plan order."""
        log = log or logger
        findings: list[Finding] = []
        for change in plan.resource_changes:
            findings.extend(self.evaluate_resource(change, plan, log))
        return findings

    def evaluate_resource(self, change: ResourceChange, plan: Plan, log=None) -> list[Finding]:
        log = log or logger
        findings: list[Finding] = []

        for rule in self.rules_for(change.type):
            try:
                if rule.check(change, plan):
                    findings.append(self.build_finding(rule, change))
            except Exception as e:
                error = RuleEvaluationError(rule.id, change.address, e)
                log.bind(rule_id=rule.id, resource=change.address, resource_type=change.type).warning(
                    f"{self.kind.capitalize()} rule check failed: {error}"
                )

        return findings

    def build_finding(self, rule: Rule, change: ResourceChange) -> Finding:
        raise NotImplementedError

    def _base_finding(self, rule: Rule, change: ResourceChange, evidence: dict, **extra) -> Finding:
        return Finding(
            id=f"{rule.id}-{change.address}",
            kind=self.kind,
            severity=rule.severity,
            title=rule.title,
            description=rule.description,
            resource=change.address,
            rule=rule.id,
            recommendation=rule.recommend(change),
            evidence={
                "resource_type": change.type,
                "resource_address": change.address,
                **evidence,
                "rule": rule.id,
            },
            **extra,
        )
