"""Findings processing, grouping, filtering and export."""

from .export import CSV_HEADERS, EXPORT_FORMATS, export_findings
from .processor import (
    FindingsProcessor,
    ProcessedFinding,
    TenantContext,
    deduplicate,
    filter_by_threshold,
    filter_findings,
    group_by_kind,
    group_by_resource,
    group_by_severity,
    summarize,
    validate_finding,
)

__all__ = [
    "CSV_HEADERS",
    "EXPORT_FORMATS",
    "export_findings",
    "FindingsProcessor",
    "ProcessedFinding",
    "TenantContext",
    "deduplicate",
    "filter_by_threshold",
    "filter_findings",
    "group_by_kind",
    "group_by_resource",
    "group_by_severity",
    "summarize",
    "validate_finding",
]
