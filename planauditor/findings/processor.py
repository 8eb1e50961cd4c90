"""Findings processor: normalize, validate, deduplicate and rank.

Raw findings from the three engines arrive in engine order. The processor
stamps tenant and run identifiers, enriches the evidence, rejects malformed
findings, keeps the first finding per (kind, resource, rule) and sorts by
severity then title.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from planauditor.errors import ValidationError
from planauditor.rules.base import Finding
from planauditor.utils.constants import FINDING_KINDS, PROCESSOR_VERSION, SEVERITIES
from planauditor.utils.finding_priority import meets_threshold, severity_weight, sort_findings
from planauditor.utils.logging import logger

REQUIRED_FIELDS = (
    "id",
    "kind",
    "severity",
    "title",
    "description",
    "resource",
    "rule",
    "recommendation",
    "evidence",
)


@dataclass(frozen=True)
class TenantContext:
    """Who asked for the analysis, and which run it belongs to."""

    tenant_id: str = "default-tenant"
    user_id: str = "unknown-user"
    analysis_id: str = ""


@dataclass
class ProcessedFinding:
    id: str
    kind: str
    severity: str
    title: str
    description: str
    resource: str
    rule: str
    recommendation: str
    evidence: dict[str, Any]
    processed_at: str
    tenant_id: str
    user_id: str
    analysis_id: str

    framework: str | None = None
    control: str | None = None
    category: str | None = None
    cve: str | None = None
    potential_savings: float | None = None
    line_number: int | None = None
    file_path: str | None = None

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
        for name in ("framework", "control", "category", "cve", "potential_savings", "line_number", "file_path"):
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        result.update(
            {
                "processed_at": self.processed_at,
                "tenant_id": self.tenant_id,
                "user_id": self.user_id,
                "analysis_id": self.analysis_id,
            }
        )
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProcessedFinding":
        known = cls.__dataclass_fields__
        return cls(**{key: value for key, value in data.items() if key in known})


def _utc_now() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_dict(finding: Finding | dict[str, Any]) -> dict[str, Any]:
    if isinstance(finding, dict):
        return finding
    return finding.to_dict()


def enrich_evidence(raw: dict[str, Any], processed_at: str) -> dict[str, Any]:
    """Copy the evidence and add processing, rule and kind-specific context."""
    source = raw.get("evidence") or {}
    evidence = dict(source)

    evidence["processed_at"] = processed_at
    evidence["processor_version"] = PROCESSOR_VERSION

    if raw.get("resource"):
        evidence["resource_address"] = raw["resource"]
        evidence["resource_type"] = source.get("resource_type")

    if raw.get("rule"):
        evidence["rule_id"] = raw["rule"]
        evidence["rule_name"] = raw.get("title")

    evidence["severity"] = raw.get("severity")
    evidence["severity_score"] = severity_weight(raw.get("severity"))

    kind = raw.get("kind")
    if kind == "compliance":
        evidence["framework"] = raw.get("framework")
        evidence["control"] = raw.get("control")
    elif kind == "security":
        evidence["category"] = raw.get("category")
        evidence["cve"] = raw.get("cve")
    elif kind == "cost":
        evidence["category"] = raw.get("category")
        evidence["potential_savings"] = raw.get("potential_savings")

    return evidence


def validate_finding(finding: dict[str, Any]) -> None:
    """Raise ValidationError naming the first missing or out-of-range field."""
    for name in REQUIRED_FIELDS:
        value = finding.get(name)
        # Evidence may be an empty dict; enrichment fills it in.
        missing = value is None if name == "evidence" else not value
        if missing:
            raise ValidationError(f"Finding {name} is required", field=name)

    if not isinstance(finding["evidence"], dict):
        raise ValidationError("Finding evidence must be an object", field="evidence")

    if finding["severity"] not in SEVERITIES:
        raise ValidationError(f"Invalid severity: {finding['severity']}", field="severity")

    if finding["kind"] not in FINDING_KINDS:
        raise ValidationError(f"Invalid kind: {finding['kind']}", field="kind")


def deduplicate(findings: list[ProcessedFinding], log=None) -> list[ProcessedFinding]:
    """Keep the first finding per (kind, resource, rule)."""
    log = log or logger
    seen: set[tuple[str, str, str]] = set()
    unique: list[ProcessedFinding] = []

    for finding in findings:
        key = (finding.kind, finding.resource, finding.rule)
        if key in seen:
            log.debug(f"Deduplicating finding {finding.id} ({finding.resource}, {finding.rule})")
            continue
        seen.add(key)
        unique.append(finding)

    return unique


class FindingsProcessor:
    """Turns raw engine findings into ranked, tenant-stamped findings."""

    def process(
        self,
        raw_findings: list[Finding | dict[str, Any]],
        tenant_context: TenantContext,
        log=None,
    ) -> list[ProcessedFinding]:
        log = log or logger
        log.info(f"Processing {len(raw_findings)} findings")

        processed_at = _utc_now()
        processed = [self.process_finding(raw, tenant_context, processed_at) for raw in raw_findings]

        unique = deduplicate(processed, log)
        ranked = sort_findings(unique)

        log.info(
            f"Findings processing completed: {len(raw_findings)} in, "
            f"{len(unique)} after deduplication"
        )
        return ranked

    def process_finding(
        self,
        raw: Finding | dict[str, Any],
        tenant_context: TenantContext,
        processed_at: str | None = None,
    ) -> ProcessedFinding:
        data = _as_dict(raw)
        processed_at = processed_at or _utc_now()

        normalized = {
            "id": data.get("id"),
            "kind": data.get("kind"),
            "severity": data.get("severity"),
            "title": data.get("title"),
            "description": data.get("description"),
            "resource": data.get("resource"),
            "rule": data.get("rule"),
            "recommendation": data.get("recommendation"),
            "evidence": data.get("evidence"),
            "framework": data.get("framework"),
            "control": data.get("control"),
            "category": data.get("category"),
            "cve": data.get("cve"),
            "potential_savings": data.get("potential_savings"),
            "line_number": data.get("line_number"),
            "file_path": data.get("file_path"),
        }
        validate_finding(normalized)
        normalized["evidence"] = enrich_evidence(normalized, processed_at)

        return ProcessedFinding(
            **normalized,
            processed_at=processed_at,
            tenant_id=tenant_context.tenant_id,
            user_id=tenant_context.user_id,
            analysis_id=tenant_context.analysis_id,
        )


def group_by_kind(findings: list[ProcessedFinding]) -> dict[str, list[ProcessedFinding]]:
    return _group(findings, "kind")


def group_by_severity(findings: list[ProcessedFinding]) -> dict[str, list[ProcessedFinding]]:
    return _group(findings, "severity")


def group_by_resource(findings: list[ProcessedFinding]) -> dict[str, list[ProcessedFinding]]:
    return _group(findings, "resource")


def _group(findings, attribute: str) -> dict[str, list]:
    grouped: dict[str, list] = {}
    for finding in findings:
        grouped.setdefault(getattr(finding, attribute), []).append(finding)
    return grouped


def summarize(findings: list[ProcessedFinding]) -> dict[str, Any]:
    by_severity = Counter(f.severity for f in findings)
    return {
        "total": len(findings),
        "by_kind": dict(Counter(f.kind for f in findings)),
        "by_severity": dict(by_severity),
        "by_resource": dict(Counter(f.resource for f in findings)),
        "critical_count": by_severity.get("critical", 0),
        "high_count": by_severity.get("high", 0),
        "medium_count": by_severity.get("medium", 0),
        "low_count": by_severity.get("low", 0),
    }


def filter_findings(
    findings: list[ProcessedFinding],
    kind: str | None = None,
    severity: str | None = None,
    resource: str | None = None,
    rule: str | None = None,
    framework: str | None = None,
    category: str | None = None,
) -> list[ProcessedFinding]:
    """Keep findings matching every supplied criterion."""
    criteria = {
        "kind": kind,
        "severity": severity,
        "resource": resource,
        "rule": rule,
        "framework": framework,
        "category": category,
    }
    active = {name: value for name, value in criteria.items() if value}
    return [f for f in findings if all(getattr(f, name) == value for name, value in active.items())]


def filter_by_threshold(findings: list[ProcessedFinding], threshold: str) -> list[ProcessedFinding]:
    """Keep findings at or above the severity threshold."""
    return [f for f in findings if meets_threshold(f.severity, threshold)]

