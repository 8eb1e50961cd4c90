"""Browse and prune stored analysis results."""

import json
from pathlib import Path

import click
from rich.table import Table

from planauditor.config_runtime import load_runtime_config
from planauditor.findings import ProcessedFinding
from planauditor.storage import ListCriteria, SqliteAnalysisStore
from planauditor.ui import console, findings_table, print_header, print_success, scores_table
from planauditor.utils.error_handler import handle_exceptions


def open_store(root: str) -> SqliteAnalysisStore | None:
    """Store from the configured path, or None when nothing was stored yet."""
    cfg = load_runtime_config(root)
    db_path = Path(root) / cfg["paths"]["store_db"]
    if not db_path.exists():
        click.echo(f"No analysis history found ({db_path})")
        click.echo("Run 'planaudit analyze <plan.json>' to record one")
        return None
    return SqliteAnalysisStore(db_path)


@click.group("history")
@click.help_option("-h", "--help")
def history():
    """Stored analysis results (.pf/analyses.db).

    SUBCOMMANDS:
      list:   Most recent analyses, newest first
      show:   One stored analysis
      delete: Remove a stored analysis

    EXAMPLES:
      planaudit history list --status failed
      planaudit history show tf-analysis-1700000000000-abc123
    """
    pass


@history.command("list")
@click.option("--limit", type=int, default=None, help="Page size (default from config)")
@click.option("--offset", type=int, default=0, help="Rows to skip")
@click.option("--status", type=click.Choice(["completed", "failed"]), default=None, help="Filter by status")
@click.option("--tenant", default=None, help="Filter by tenant")
@click.option(
    "--format", "output_format", type=click.Choice(["table", "json"]), default="table", help="Output format"
)
@click.option("--root", default=".", help="Project root holding .pf/")
@handle_exceptions
def list_analyses(limit, offset, status, tenant, output_format, root):
    """List stored analyses.

    Example:
        planaudit history list
        planaudit history list --limit 50 --format json
    """
    store = open_store(root)
    if store is None:
        return

    if limit is None:
        limit = load_runtime_config(root)["export"]["history_limit"]
    page = store.list(ListCriteria(tenant_id=tenant, limit=limit, offset=offset, status=status))

    if output_format == "json":
        click.echo(json.dumps(page.to_dict(), indent=2))
        return

    if not page.items:
        click.echo(f"No {status} analyses found" if status else "No analyses found")
        return

    table = Table(title=f"Analyses ({len(page.items)} of {page.total})")
    table.add_column("Analysis", style="cmd", no_wrap=True)
    table.add_column("Status")
    table.add_column("Tenant", style="dim")
    table.add_column("Analyzed at")
    table.add_column("Compliance", justify="right")
    table.add_column("Security", justify="right")
    table.add_column("Findings", justify="right")
    for item in page.items:
        table.add_row(
            item["analysis_id"],
            "[error]failed[/error]" if item["status"] == "failed" else item["status"],
            item["tenant_id"],
            item["analyzed_at"],
            f"{item['compliance_score']:.1f}",
            f"{item['security_score']:.1f}",
            str(item["findings_count"]),
        )
    console.print(table)
    if page.has_more:
        console.print(f"[dim]More results: --offset {offset + len(page.items)}[/dim]")


@history.command("show")
@click.argument("analysis_id")
@click.option("--tenant", default=None, help="Only match this tenant")
@click.option("--json", "as_json", is_flag=True, help="Print the stored result as JSON")
@click.option("--root", default=".", help="Project root holding .pf/")
@handle_exceptions
def show(analysis_id, tenant, as_json, root):
    """Show one stored analysis."""
    store = open_store(root)
    if store is None:
        return

    data = store.get(analysis_id, tenant)
    if data is None:
        raise click.ClickException(f"Analysis not found: {analysis_id}")

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    summary = data["summary"]
    print_header(f"ANALYSIS {data['analysis_id']} ({data['status']})")
    console.print(f"Analyzed at:      {data['metadata']['analyzed_at']}")
    console.print(f"Resources:        {summary['total_resources']}")
    console.print(f"Compliance score: [bold]{summary['compliance_score']:.1f}[/bold]")
    console.print(f"Security score:   [bold]{summary['security_score']:.1f}[/bold]")
    console.print(f"Estimated cost:   [bold]${summary['cost_impact']:,.2f}[/bold]/month")

    scores = data["scores"]
    if scores["frameworks"]:
        console.print(scores_table("Framework Scores", scores["frameworks"]))
    if scores["security_categories"]:
        console.print(scores_table("Security Categories", scores["security_categories"]))

    findings = [ProcessedFinding.from_dict(item) for item in data["findings"]]
    if findings:
        console.print(findings_table(findings))


@history.command("delete")
@click.argument("analysis_id")
@click.option("--tenant", default=None, help="Only match this tenant")
@click.option("--root", default=".", help="Project root holding .pf/")
@handle_exceptions
def delete(analysis_id, tenant, root):
    """Delete one stored analysis."""
    store = open_store(root)
    if store is None:
        return

    if not store.delete(analysis_id, tenant):
        raise click.ClickException(f"Analysis not found: {analysis_id}")
    print_success(f"Deleted {analysis_id}")
