"""alertroute CLI -- typer-based command interface.

Commands:
    alertroute validate <manifest>...                  Admission-check Alert manifests
    alertroute status --alerts <f> [--providers <f>]   Admit rules, show Ready conditions
    alertroute route --alerts <f> --events <f>         Route events, print outcomes
"""

from __future__ import annotations

import typer

from alertroute.cli import commands

app = typer.Typer(
    name="alertroute",
    help="Route cluster events to notification providers through Alert rules.",
    no_args_is_help=True,
)

app.command("validate")(commands.validate)
app.command("status")(commands.status)
app.command("route")(commands.route)


def main() -> None:
    """Entry point for the alertroute CLI."""
    app()
