"""CLI entry point wrapper.

Arguments that do not start with a known subcommand are routed to
``diagnostics`` so that a bare ``envtriage --json`` produces a report.
"""

from __future__ import annotations

import sys

from typer.main import get_command

from envtriage.cli.app import app

DEFAULT_COMMAND = "diagnostics"
_PASSTHROUGH_FLAGS = frozenset({"--help", "-h", "--install-completion", "--show-completion"})


def _route_arguments(argv: list[str]) -> list[str]:
    if not argv:
        return [DEFAULT_COMMAND]
    first = argv[0]
    if first in _PASSTHROUGH_FLAGS:
        return argv
    if first.startswith("-"):
        return [DEFAULT_COMMAND, *argv]
    return argv


def main(argv: list[str] | None = None) -> None:
    """Invoke the envtriage CLI.

    Parameters
    ----------
    argv:
        Optional list of arguments to pass to Typer. When ``None`` the
        process arguments are used.
    """

    args = list(sys.argv[1:] if argv is None else argv)
    command = get_command(app)
    command.main(args=_route_arguments(args), prog_name="envtriage")


__all__ = ["main"]
