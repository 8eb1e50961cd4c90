"""Central UI handler for planauditor.

Single source of truth for Rich console styling. Import this instead of
instantiating Console() in every command file.

Usage:
    from planauditor.ui import console, print_header, print_warning

    console.print("[success]No findings[/success]")
    print_header("ANALYSIS RESULTS")
"""

import sys

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

PLANAUDITOR_THEME = Theme({
    "info": "bold cyan",
    "warning": "bold yellow",
    "error": "bold red",
    "success": "bold green",
    "critical": "bold red",
    "high": "bold yellow",
    "medium": "bold blue",
    "low": "cyan",
    "cmd": "bold magenta",
    "path": "bold cyan",
    "dim": "dim white",
})

# Single console instance - import this, don't create your own
console = Console(
    theme=PLANAUDITOR_THEME,
    force_terminal=sys.stdout.isatty()
)


def print_header(title: str) -> None:
    """Print a styled section header with horizontal rules."""
    console.rule(f"[bold]{title}[/bold]")


def print_warning(msg: str) -> None:
    console.print(f"[warning]WARNING:[/warning] {msg}")


def print_success(msg: str) -> None:
    console.print(f"[success]OK:[/success] {msg}")


def severity_markup(severity: str) -> str:
    """Wrap a severity label in its theme style."""
    return f"[{severity}]{severity.upper()}[/{severity}]" if severity in ("critical", "high", "medium", "low") else severity


def print_status_panel(status: str, message: str, detail: str, level: str = "info") -> None:
    """Print a status panel with colored border.

    Args:
        status: Status label (e.g., "CRITICAL", "CLEAN", "FAILED")
        message: Main message line
        detail: Additional detail line
        level: One of "critical", "high", "medium", "low", "success", "info"
    """
    style_map = {
        "critical": ("bold red", "red"),
        "high": ("bold yellow", "yellow"),
        "medium": ("bold blue", "blue"),
        "low": ("cyan", "cyan"),
        "success": ("bold green", "green"),
        "info": ("bold cyan", "cyan"),
    }
    text_style, border_style = style_map.get(level, ("white", "white"))

    panel = Panel(
        Text.assemble(
            (f"STATUS: [{status}]\n", text_style),
            (f"{message}\n", border_style),
            (detail, border_style),
        ),
        border_style=border_style,
        expand=False,
    )
    console.print(panel)


def findings_table(findings, limit: int | None = None) -> Table:
    """Table of ranked findings: severity, kind, rule, resource, title."""
    table = Table(title="Findings", show_lines=False)
    table.add_column("Severity", no_wrap=True)
    table.add_column("Type", style="dim")
    table.add_column("Rule", style="cmd")
    table.add_column("Resource", style="path")
    table.add_column("Title")

    shown = findings if limit is None else findings[:limit]
    for finding in shown:
        table.add_row(
            severity_markup(finding.severity),
            finding.kind,
            finding.rule,
            escape(finding.resource),
            escape(finding.title),
        )
    return table


def scores_table(title: str, scores: dict[str, float]) -> Table:
    table = Table(title=title)
    table.add_column("Dimension")
    table.add_column("Score", justify="right")
    for name, score in scores.items():
        style = "success" if score >= 90 else "warning" if score >= 70 else "error"
        table.add_row(name, f"[{style}]{score:.1f}[/{style}]")
    return table
