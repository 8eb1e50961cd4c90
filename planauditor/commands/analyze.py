"""Analyze a Terraform plan for compliance, security and cost issues.

Usage: planaudit analyze plan.json
"""

import base64
import sys
from pathlib import Path

import click

from planauditor.config_runtime import load_runtime_config
from planauditor.errors import ParseError
from planauditor.findings import EXPORT_FORMATS, TenantContext, export_findings, filter_by_threshold
from planauditor.orchestrator import AnalysisOrchestrator, AnalysisResult
from planauditor.request import AnalysisRequest, ScanOptions
from planauditor.storage import NullAnalysisStore, SqliteAnalysisStore
from planauditor.ui import console, findings_table, print_header, print_status_panel, scores_table
from planauditor.utils.constants import PLAN_FORMATS, SEVERITIES
from planauditor.utils.error_handler import handle_exceptions
from planauditor.utils.exit_codes import ExitCodes

EXPORT_EXTENSIONS = {"json": "json", "csv": "csv", "markdown": "md"}


def read_plan_file(path: Path, plan_format: str) -> str:
    """Plan payload as text. Binary plan files travel base64-encoded."""
    data = path.read_bytes()
    if plan_format == "binary":
        return base64.b64encode(data).decode("ascii")
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"Failed to parse JSON plan: {path} is not UTF-8 text ({e})") from e


@click.command("analyze")
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--format", "plan_format", type=click.Choice(PLAN_FORMATS), default="json", help="Plan file format")
@click.option("--no-compliance", is_flag=True, help="Skip compliance rules")
@click.option("--no-security", is_flag=True, help="Skip security rules")
@click.option("--no-cost", is_flag=True, help="Skip cost estimation and cost rules")
@click.option("--framework", "frameworks", multiple=True, help="Compliance framework to score (repeatable)")
@click.option("--severity", type=click.Choice(SEVERITIES), default=None, help="Minimum severity to report")
@click.option("--export", "export_format", type=click.Choice(EXPORT_FORMATS), default=None, help="Export findings")
@click.option("--output", type=click.Path(dir_okay=False, path_type=Path), help="Export file path")
@click.option("--store/--no-store", default=True, help="Save the result to the local history database")
@click.option("--parallel", is_flag=True, help="Run the engines on a thread pool")
@click.option("--tenant", default=None, help="Tenant id recorded on findings")
@click.option("--root", default=".", help="Project root holding .pf/config.json")
@handle_exceptions
def analyze(
    plan_file,
    plan_format,
    no_compliance,
    no_security,
    no_cost,
    frameworks,
    severity,
    export_format,
    output,
    store,
    parallel,
    tenant,
    root,
):
    """Analyze a Terraform plan before it is applied.

    Parses a JSON plan (``terraform show -json plan.out``, raw or base64),
    runs the compliance, security and cost engines, then prints scores and
    ranked findings. Binary plan files are rejected; convert them first.

    EXIT CODES:
      0  no high or critical findings at or above --severity
      1  high severity findings
      2  critical findings
      3  analysis failed

    EXAMPLES:
      planaudit analyze plan.json
      planaudit analyze plan.json --severity high --export csv --output findings.csv
      planaudit analyze plan.json --no-cost --framework SOC2
    """
    cfg = load_runtime_config(root)
    analysis_cfg = cfg["analysis"]

    threshold = severity or analysis_cfg["severity_threshold"]
    options = ScanOptions(
        include_compliance_checks=analysis_cfg["include_compliance"] and not no_compliance,
        include_security_checks=analysis_cfg["include_security"] and not no_security,
        include_cost_analysis=analysis_cfg["include_cost"] and not no_cost,
        frameworks=tuple(frameworks or analysis_cfg["frameworks"]),
        severity_threshold=threshold,
    )
    request = AnalysisRequest(
        plan_data=read_plan_file(plan_file, plan_format),
        plan_format=plan_format,
        scan_options=options,
    )

    history = SqliteAnalysisStore(Path(root) / cfg["paths"]["store_db"]) if store else NullAnalysisStore()
    orchestrator = AnalysisOrchestrator(
        store=history,
        parallel=parallel or analysis_cfg["parallel"],
    )
    tenant_context = TenantContext(
        tenant_id=tenant or analysis_cfg["tenant_id"],
        user_id=analysis_cfg["user_id"],
    )

    result = orchestrator.analyze(request, tenant_context)
    reported = filter_by_threshold(result.findings, threshold)

    render_result(result, reported, threshold)

    if export_format or output:
        export_format = export_format or cfg["export"]["format"]
        if output is None:
            output = Path(root) / cfg["paths"]["export_dir"] / (
                f"{result.analysis_id}.{EXPORT_EXTENSIONS[export_format]}"
            )
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(export_findings(reported, export_format), encoding="utf-8")
        console.print(f"\nExported {len(reported)} findings to [path]{output}[/path]")

    exit_code = ExitCodes.from_result(result.status, (f.severity for f in reported))
    if exit_code != ExitCodes.SUCCESS:
        console.print(f"[dim]Exit {exit_code}: {ExitCodes.get_description(exit_code)}[/dim]")
        sys.exit(exit_code)


def render_result(result: AnalysisResult, reported, threshold: str) -> None:
    summary = result.summary

    print_header(f"PLAN ANALYSIS {result.analysis_id}")
    console.print(
        f"Resources: {summary.total_resources} "
        f"([success]+{summary.resources_to_create}[/success] "
        f"[warning]~{summary.resources_to_update}[/warning] "
        f"[error]-{summary.resources_to_delete}[/error], "
        f"{summary.resources_to_replace} replaced)"
    )
    console.print(f"Compliance score: [bold]{summary.compliance_score:.1f}[/bold]")
    console.print(
        f"Security score:   [bold]{summary.security_score:.1f}[/bold]"
        + (f"  risk [{summary.security_risk_level}]{summary.security_risk_level}[/{summary.security_risk_level}]"
           if summary.security_risk_level else "")
    )
    console.print(f"Estimated cost:   [bold]${summary.cost_impact:,.2f}[/bold]/month")

    if result.framework_scores:
        console.print(scores_table("Framework Scores", result.framework_scores))
    if result.category_scores:
        console.print(scores_table("Security Categories", result.category_scores))

    if result.cost_recommendations:
        console.print("\n[bold]Cost recommendations:[/bold]")
        for rec in result.cost_recommendations:
            console.print(
                f"  - {rec['description']} "
                f"([success]${rec['potential_savings']:,.2f}[/success]/month, effort {rec['effort']})"
            )

    console.print()
    if reported:
        console.print(findings_table(reported))
    hidden = len(result.findings) - len(reported)
    if hidden:
        console.print(f"[dim]{hidden} findings below '{threshold}' not shown[/dim]")

    counts = {level: sum(1 for f in reported if f.severity == level) for level in SEVERITIES}
    console.print()
    if result.status == "failed":
        failure = result.findings[-1]
        print_status_panel("FAILED", failure.description, failure.recommendation, level="critical")
    elif counts["critical"]:
        print_status_panel(
            "CRITICAL",
            f"Found {counts['critical']} critical issues in this plan.",
            "Do not apply this plan until they are fixed.",
            level="critical",
        )
    elif counts["high"]:
        print_status_panel(
            "HIGH",
            f"Found {counts['high']} high-severity issues in this plan.",
            "Review before applying.",
            level="high",
        )
    elif counts["medium"] or counts["low"]:
        print_status_panel(
            "MODERATE",
            f"Found {counts['medium']} medium and {counts['low']} low issues.",
            "Schedule fixes for upcoming changes.",
            level="medium",
        )
    else:
        print_status_panel(
            "CLEAN",
            "No issues at or above the severity threshold.",
            "Plan meets compliance and security checks.",
            level="success",
        )
