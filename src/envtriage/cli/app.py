"""envtriage Typer CLI application."""

from __future__ import annotations

import typer
from rich.console import Console

from envtriage.cli.commands import config as config_command
from envtriage.cli.commands import diagnostics as diagnostics_command
from envtriage.domain.environment import package_version

stderr_console = Console(stderr=True)
stdout_console = Console(stderr=False)

app = typer.Typer(
    help="One-shot environment, DNS, proxy and TLS trust probe for support triage",
    rich_markup_mode="rich",
)

diagnostics_command.register(app, stderr_console=stderr_console)
config_command.register(app, stdout_console=stdout_console)


@app.command(help="Show the installed envtriage package version.")
def version() -> None:
    """Print the envtriage version discovered from the package metadata."""
    stdout_console.print(package_version())


__all__ = ["app", "stderr_console", "stdout_console"]
