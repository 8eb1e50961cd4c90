"""Centralized severity ordering for findings."""

SEVERITY_WEIGHTS = {
    "critical": 4,
    "high": 3,
    "medium": 2,
    "low": 1,
}


def severity_weight(severity) -> int:
    """Numeric weight of a severity, 0 for anything unrecognised."""
    return SEVERITY_WEIGHTS.get(str(severity).lower(), 0) if severity is not None else 0


def get_sort_key(finding):
    """Sort key: severity weight descending, then title ascending.

    Titles compare the way a locale collator does: case-insensitively first,
    then lowercase before uppercase ("alpha" < "Alpha" < "beta" < "Zeta").
    """
    title = _field(finding, "title") or ""
    return (-severity_weight(_field(finding, "severity")), title.casefold(), title.swapcase())


def sort_findings(findings):
    """Rank findings by severity, breaking ties on title. Stable."""
    if not findings:
        return list(findings)

    return sorted(findings, key=get_sort_key)


def meets_threshold(severity, threshold) -> bool:
    """True when severity is at or above threshold."""
    return severity_weight(severity) >= severity_weight(threshold)


def _field(finding, name):
    if isinstance(finding, dict):
        return finding.get(name)
    return getattr(finding, name, None)
