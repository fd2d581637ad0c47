"""The ``diagnostics`` command: run every check and print the report."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from envtriage.application.diagnostics import print_diagnostics
from envtriage.cli import options as cli_options
from envtriage.cli.helpers import (
    build_invocation,
    initialize_logging,
    resolve_runtime_and_logging,
)
from envtriage.config.constants import DEFAULT_CONFIG_FILENAME
from envtriage.domain.report import CheckStatus, DiagnosticReport
from envtriage.infrastructure.errors import EnvTriageError


def strict_exit_code(report: DiagnosticReport) -> int:
    worst = report.worst_status()
    if worst in (CheckStatus.FAIL, CheckStatus.FATAL):
        return 1
    if worst is CheckStatus.WARNING:
        return 2
    return 0


def register(app: typer.Typer, *, stderr_console: Console) -> None:
    """Register the diagnostics command with ``app``."""

    @app.command(
        "diagnostics",
        help=(
            "Inspect the local environment and the reachability and TLS trust of "
            "configured endpoints.\n\n"
            "Example: envtriage diagnostics --json --file report.json"
        ),
    )
    def diagnostics(  # NOSONAR python:S107
        config: cli_options.ConfigPathOption = Path(DEFAULT_CONFIG_FILENAME),
        as_json: cli_options.JsonOption = False,
        output_file: cli_options.OutputFileOption = None,
        strict: cli_options.StrictOption = False,
        debug: cli_options.DebugOption = None,
        home: cli_options.HomeOption = None,
        dns_hosts: cli_options.DnsHostsOption = None,
        tls_hosts: cli_options.TlsHostsOption = None,
        canary_url: cli_options.CanaryUrlOption = None,
        timeout: cli_options.TimeoutOption = None,
        ca_bundle: cli_options.CaBundleOption = None,
        log_level: cli_options.LogLevelOption = None,
        log_format: cli_options.LogFormatOption = None,
        log_file: cli_options.LogFileOption = None,
        log_max_bytes: cli_options.LogMaxBytesOption = None,
        log_backup_count: cli_options.LogBackupCountOption = None,
    ) -> None:
        invocation = build_invocation(
            config_path=config,
            debug=debug,
            home=home,
            dns_hosts=dns_hosts,
            tls_hosts=tls_hosts,
            canary_url=canary_url,
            timeout=timeout,
            ca_bundle=ca_bundle,
            log_level=log_level,
            log_format=log_format,
            log_file=log_file,
            log_max_bytes=log_max_bytes,
            log_backup_count=log_backup_count,
        )
        runtime_settings, logging_settings = resolve_runtime_and_logging(invocation)
        logger = initialize_logging(runtime_settings, logging_settings)

        try:
            report = print_diagnostics(
                runtime_settings,
                filename=cli_options.clean_string(output_file),
                as_json=as_json,
                logger=logger,
            )
        except EnvTriageError as error:
            logger.error("diagnostics.report.failed", **error.log_fields())
            stderr_console.print(f"[red]Error:[/red] {escape(error.user_message)}", highlight=False)
            raise typer.Exit(code=1) from error

        if strict:
            raise typer.Exit(code=strict_exit_code(report))


__all__ = ["register", "strict_exit_code"]
