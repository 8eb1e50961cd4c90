"""Inspect a Terraform plan without running any rules."""

import json
from pathlib import Path

import click
from rich.markup import escape
from rich.table import Table

from planauditor.plan import (
    PlanParser,
    extract_sensitive_values,
    get_plan_complexity_score,
    get_plan_summary,
    get_resources_by_action,
)
from planauditor.ui import console, print_header, print_warning
from planauditor.utils.constants import PLAN_FORMATS, VALID_ACTIONS
from planauditor.utils.error_handler import handle_exceptions

from .analyze import read_plan_file


@click.group("plan")
@click.help_option("-h", "--help")
def plan_group():
    """Plan inspection: counts, types, providers and complexity.

    SUBCOMMANDS:
      summary:   Resource counts by action plus plan complexity
      resources: List resource changes, optionally by action

    EXAMPLES:
      planaudit plan summary plan.json
      planaudit plan resources plan.json --action delete
    """
    pass


@plan_group.command("summary")
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--format", "plan_format", type=click.Choice(PLAN_FORMATS), default="json", help="Plan file format")
@click.option("--json", "as_json", is_flag=True, help="Print the summary as JSON")
@handle_exceptions
def summary(plan_file, plan_format, as_json):
    """Summarize a plan: what it creates, changes and destroys."""
    parsed = PlanParser().parse(read_plan_file(plan_file, plan_format), plan_format)

    data = get_plan_summary(parsed)
    data["terraform_version"] = parsed.terraform_version
    data["complexity_score"] = get_plan_complexity_score(parsed)
    data["sensitive_resources"] = sorted(v["address"] for v in extract_sensitive_values(parsed).values())

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    print_header(f"PLAN SUMMARY ({plan_file.name})")
    table = Table(show_header=False, box=None, padding=(0, 2, 0, 0))
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Terraform version", data["terraform_version"])
    table.add_row("Total resources", str(data["total_resources"]))
    table.add_row("To create", f"[success]{data['resources_to_create']}[/success]")
    table.add_row("To update", f"[warning]{data['resources_to_update']}[/warning]")
    table.add_row("To delete", f"[error]{data['resources_to_delete']}[/error]")
    table.add_row("To replace", str(data["resources_to_replace"]))
    table.add_row("Resource types", ", ".join(data["resource_types"]) or "-")
    table.add_row("Providers", ", ".join(data["providers"]) or "-")
    table.add_row("Modules", ", ".join(data["modules"]) or "-")
    table.add_row("Complexity score", f"{data['complexity_score']:.1f}")
    console.print(table)

    if data["sensitive_resources"]:
        console.print()
        print_warning(f"{len(data['sensitive_resources'])} resources carry sensitive values")


@plan_group.command("resources")
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--format", "plan_format", type=click.Choice(PLAN_FORMATS), default="json", help="Plan file format")
@click.option("--action", type=click.Choice(sorted(VALID_ACTIONS)), default=None, help="Only changes with this action")
@handle_exceptions
def resources(plan_file, plan_format, action):
    """List the resource changes in a plan."""
    parsed = PlanParser().parse(read_plan_file(plan_file, plan_format), plan_format)
    changes = get_resources_by_action(parsed, action) if action else list(parsed.resource_changes)

    table = Table(title=f"Resource changes ({len(changes)})")
    table.add_column("Address", style="path")
    table.add_column("Type")
    table.add_column("Actions")
    table.add_column("Provider", style="dim")
    for change in changes:
        table.add_row(escape(change.address), change.type, ", ".join(change.actions), change.provider_name)
    console.print(table)
