"""List the statically registered plan rules."""

import json

import click
from rich.table import Table

from planauditor.rules import ENGINES, Rule
from planauditor.ui import console, severity_markup
from planauditor.utils.error_handler import handle_exceptions
from planauditor.utils.finding_priority import severity_weight


def rule_tags(rule: Rule) -> str:
    """Domain tags of a rule as one display string."""
    tags = [*rule.frameworks, *rule.controls]
    if rule.category:
        tags.append(rule.category)
    if rule.cve:
        tags.append(rule.cve)
    return ", ".join(tags)


@click.command("rules")
@click.option("--engine", type=click.Choice(list(ENGINES)), default=None, help="Only rules of this engine")
@click.option(
    "--format", "output_format", type=click.Choice(["table", "json"]), default="table", help="Output format"
)
@handle_exceptions
def rules_command(engine, output_format):
    """Show the compliance, security and cost rule catalogs.

    Example:
        planaudit rules
        planaudit rules --engine security
        planaudit rules --format json
    """
    selected = [engine] if engine else list(ENGINES)
    catalog = [(name, rule) for name in selected for rule in ENGINES[name]().rules]
    catalog.sort(key=lambda item: (item[0], -severity_weight(item[1].severity), item[1].id))

    if output_format == "json":
        payload = [
            {
                "engine": name,
                "id": rule.id,
                "title": rule.title,
                "severity": rule.severity,
                "resource_types": list(rule.resource_types),
                "frameworks": list(rule.frameworks),
                "controls": list(rule.controls),
                "category": rule.category,
                "cve": rule.cve,
            }
            for name, rule in catalog
        ]
        click.echo(json.dumps(payload, indent=2))
        return

    table = Table(title=f"Rules ({len(catalog)})")
    table.add_column("Engine", style="dim")
    table.add_column("Rule", style="cmd", no_wrap=True)
    table.add_column("Severity", no_wrap=True)
    table.add_column("Resource types")
    table.add_column("Tags", style="dim")
    for name, rule in catalog:
        table.add_row(
            name,
            rule.id,
            severity_markup(rule.severity),
            ", ".join(rule.resource_types),
            rule_tags(rule),
        )
    console.print(table)
