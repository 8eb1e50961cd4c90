"""Findings export to JSON, CSV and Markdown."""

import csv
import io
import json

from .processor import ProcessedFinding, summarize

EXPORT_FORMATS = ("json", "csv", "markdown")

CSV_HEADERS = [
    "ID",
    "Type",
    "Severity",
    "Title",
    "Description",
    "Resource",
    "Rule",
    "Recommendation",
    "Framework",
    "Control",
    "Category",
    "CVE",
    "Potential Savings",
    "Processed At",
    "Tenant ID",
    "User ID",
    "Analysis ID",
]


def export_findings(findings: list[ProcessedFinding], export_format: str) -> str:
    """Render findings in the requested format.

    Raises ValueError for anything other than json, csv or markdown.
    """
    if export_format == "json":
        return export_json(findings)
    if export_format == "csv":
        return export_csv(findings)
    if export_format == "markdown":
        return export_markdown(findings)
    raise ValueError(f"Unsupported export format: {export_format}")


def export_json(findings: list[ProcessedFinding]) -> str:
    return json.dumps([f.to_dict() for f in findings], indent=2, default=str)


def _csv_row(finding: ProcessedFinding) -> list[str]:
    return [
        finding.id,
        finding.kind,
        finding.severity,
        finding.title,
        finding.description,
        finding.resource,
        finding.rule,
        finding.recommendation,
        finding.framework or "",
        finding.control or "",
        finding.category or "",
        finding.cve or "",
        finding.potential_savings or "",
        finding.processed_at,
        finding.tenant_id,
        finding.user_id,
        finding.analysis_id,
    ]


def export_csv(findings: list[ProcessedFinding]) -> str:
    """Header plus one row per finding, every cell quoted, no trailing newline."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for finding in findings:
        writer.writerow(_csv_row(finding))
    return buffer.getvalue().rstrip("\n")


def export_markdown(findings: list[ProcessedFinding]) -> str:
    summary = summarize(findings)

    lines = [
        "# Terraform Plan Analysis Findings",
        "",
        f"**Total Findings:** {len(findings)}",
        "",
        "## Summary",
        "",
        "| Severity | Count |",
        "|----------|-------|",
        f"| Critical | {summary['critical_count']} |",
        f"| High | {summary['high_count']} |",
        f"| Medium | {summary['medium_count']} |",
        f"| Low | {summary['low_count']} |",
        "",
        "## Findings",
        "",
    ]

    for index, finding in enumerate(findings, 1):
        lines += [
            f"### {index}. {finding.title}",
            "",
            f"**Severity:** {finding.severity}",
            "",
            f"**Type:** {finding.kind}",
            "",
            f"**Resource:** {finding.resource}",
            "",
            f"**Description:** {finding.description}",
            "",
            f"**Recommendation:** {finding.recommendation}",
            "",
        ]
        if finding.framework:
            lines += [f"**Framework:** {finding.framework}", ""]
        if finding.control:
            lines += [f"**Control:** {finding.control}", ""]
        if finding.category:
            lines += [f"**Category:** {finding.category}", ""]
        if finding.cve:
            lines += [f"**CVE:** {finding.cve}", ""]
        if finding.potential_savings:
            lines += [f"**Potential Savings:** ${finding.potential_savings}", ""]
        lines += ["---", ""]

    return "\n".join(lines) + "\n"
