"""planauditor CLI - Main entry point and command registration hub."""
# ruff: noqa: E402 - Intentional lazy loading: commands imported after cli group definition

import click
from rich.table import Table

from planauditor import __version__
from planauditor.ui import console


class VerboseGroup(click.Group):
    """Help output grouped by category instead of one flat command list."""

    def format_commands(self, ctx, formatter):
        """Suppress the default listing; format_help prints the categories."""
        pass

    COMMAND_CATEGORIES = {
        "ANALYSIS": {
            "title": "PLAN ANALYSIS",
            "description": "Compliance, security and cost checks on a Terraform plan",
            "commands": ["analyze", "plan"],
            "command_meta": {
                "analyze": {"run_when": "Before every terraform apply"},
                "plan": {"use_when": "Need counts and complexity without rules"},
            },
        },
        "CATALOG": {
            "title": "RULE CATALOG",
            "description": "Statically registered rules",
            "commands": ["rules"],
            "command_meta": {
                "rules": {"use_when": "Need rule ids, severities and tags"},
            },
        },
        "HISTORY": {
            "title": "HISTORY",
            "description": "Stored analysis results",
            "commands": ["history"],
            "command_meta": {
                "history": {"use_when": "Compare or prune past analyses"},
            },
        },
    }

    def format_help(self, ctx, formatter):
        super().format_help(ctx, formatter)

        registered = {
            name: cmd
            for name, cmd in self.commands.items()
            if not name.startswith("_") and not getattr(cmd, "hidden", False)
        }

        console.print()
        console.rule("[bold]COMMANDS[/bold]")

        for category in self.COMMAND_CATEGORIES.values():
            console.print(f"\n[bold cyan]{category['title']}[/bold cyan]")
            console.print(f"[dim]{category['description']}[/dim]")

            table = Table(show_header=False, box=None, padding=(0, 2, 0, 0))
            table.add_column("Command", style="cmd", width=12)
            table.add_column("Description", style="white")
            table.add_column("Hint", style="dim", width=40)

            for cmd_name in category["commands"]:
                if cmd_name not in registered:
                    continue
                cmd = registered[cmd_name]

                first_line = (cmd.help or "").split("\n")[0].strip()
                period_idx = first_line.find(".")
                short_help = first_line[:period_idx] if period_idx > 0 else first_line
                if len(short_help) > 45:
                    short_help = short_help[:45].rsplit(" ", 1)[0] + "..."

                meta = category.get("command_meta", {}).get(cmd_name, {})
                hint = ""
                if "use_when" in meta:
                    hint = f"USE: {meta['use_when']}"
                elif "run_when" in meta:
                    hint = f"RUN: {meta['run_when']}"

                table.add_row(cmd_name, short_help, hint)

            console.print(table)

        console.print()
        console.rule()
        console.print("For detailed options: [cmd]planaudit <command> --help[/cmd]")


@click.group(cls=VerboseGroup)
@click.version_option(version=__version__, prog_name="planaudit")
@click.help_option("-h", "--help")
def cli():
    """planauditor - Terraform plan compliance, security and cost analysis

    \b
    QUICK START:
      terraform show -json plan.out > plan.json
      planaudit analyze plan.json          # Score and rank findings
      planaudit plan summary plan.json     # Counts only

    \b
    For detailed options: planaudit <command> --help"""
    pass


from planauditor.commands.analyze import analyze
from planauditor.commands.history import history
from planauditor.commands.plan import plan_group
from planauditor.commands.rules import rules_command

cli.add_command(analyze)
cli.add_command(plan_group)
cli.add_command(rules_command)
cli.add_command(history)


def main():
    """Main entry point for console script."""
    cli()


if __name__ == "__main__":
    main()
