"""Config inspection commands for the envtriage CLI."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from envtriage.cli import options as cli_options
from envtriage.cli.helpers import build_invocation, resolve_runtime_and_logging
from envtriage.cli.models import CliInvocation
from envtriage.config.constants import DEFAULT_CONFIG_FILENAME
from envtriage.config.settings import (
    ENVIRONMENT_MAP,
    LOGGING_BACKUP_COUNT_KEY,
    LOGGING_FILE_KEY,
    LOGGING_FORMAT_KEY,
    LOGGING_LEVEL_KEY,
    LOGGING_MAX_BYTES_KEY,
    PROBES_CANARY_URL_KEY,
    PROBES_DNS_HOSTS_KEY,
    PROBES_TIMEOUT_KEY,
    PROBES_TLS_HOSTS_KEY,
    RUNTIME_CA_BUNDLE_PATH_KEY,
    RUNTIME_DEBUG_KEY,
    RUNTIME_DOCS_BASE_URL_KEY,
    RUNTIME_HOME_KEY,
    LoggingSettings,
    RuntimeSettings,
    resolve_config_file_candidates,
)

_EFFECTIVE_CONFIG_KEY_ORDER: tuple[str, ...] = (
    RUNTIME_DEBUG_KEY,
    RUNTIME_HOME_KEY,
    RUNTIME_CA_BUNDLE_PATH_KEY,
    RUNTIME_DOCS_BASE_URL_KEY,
    PROBES_DNS_HOSTS_KEY,
    PROBES_TLS_HOSTS_KEY,
    PROBES_CANARY_URL_KEY,
    PROBES_TIMEOUT_KEY,
    LOGGING_LEVEL_KEY,
    LOGGING_FORMAT_KEY,
    LOGGING_FILE_KEY,
    LOGGING_MAX_BYTES_KEY,
    LOGGING_BACKUP_COUNT_KEY,
)


def format_config_value(value: Any) -> str:
    if value is None or value == "":
        return "<unset>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


def effective_configuration_values(
    runtime_settings: RuntimeSettings, logging_settings: LoggingSettings
) -> dict[str, Any]:
    """Extract effective configuration values from resolved settings."""

    return {
        RUNTIME_DEBUG_KEY: runtime_settings.debug,
        RUNTIME_HOME_KEY: runtime_settings.home,
        RUNTIME_CA_BUNDLE_PATH_KEY: runtime_settings.ca_bundle_path,
        RUNTIME_DOCS_BASE_URL_KEY: runtime_settings.docs_base_url,
        PROBES_DNS_HOSTS_KEY: runtime_settings.dns_hosts,
        PROBES_TLS_HOSTS_KEY: runtime_settings.tls_hosts,
        PROBES_CANARY_URL_KEY: runtime_settings.canary_url,
        PROBES_TIMEOUT_KEY: runtime_settings.timeout,
        LOGGING_LEVEL_KEY: logging.getLevelName(logging_settings.level),
        LOGGING_FORMAT_KEY: logging_settings.format,
        LOGGING_FILE_KEY: logging_settings.file_path,
        LOGGING_MAX_BYTES_KEY: logging_settings.max_bytes,
        LOGGING_BACKUP_COUNT_KEY: logging_settings.backup_count,
    }


def cli_override_keys(invocation: CliInvocation) -> set[str]:
    candidates = {
        RUNTIME_DEBUG_KEY: invocation.runtime.debug,
        RUNTIME_HOME_KEY: invocation.runtime.home,
        RUNTIME_CA_BUNDLE_PATH_KEY: invocation.tls.ca_bundle_path,
        PROBES_DNS_HOSTS_KEY: invocation.probes.dns_hosts,
        PROBES_TLS_HOSTS_KEY: invocation.probes.tls_hosts,
        PROBES_CANARY_URL_KEY: invocation.probes.canary_url,
        PROBES_TIMEOUT_KEY: invocation.probes.timeout,
        LOGGING_LEVEL_KEY: invocation.logging.level,
        LOGGING_FORMAT_KEY: invocation.logging.format,
        LOGGING_FILE_KEY: invocation.logging.file_path,
        LOGGING_MAX_BYTES_KEY: invocation.logging.max_bytes,
        LOGGING_BACKUP_COUNT_KEY: invocation.logging.backup_count,
    }
    return {key for key, value in candidates.items() if value is not None}


def env_override_labels(environ: Mapping[str, str]) -> dict[str, str]:
    labels: dict[str, str] = {}
    for env_var, key in ENVIRONMENT_MAP.items():
        value = environ.get(env_var)
        if value is not None and value.strip():
            labels[key] = f"Environment ({env_var})"
    return labels


def determine_source_label(
    key: str,
    cli_keys: set[str],
    env_labels: Mapping[str, str],
) -> str:
    """Determine the source label for a config key."""

    # Typer reads the same variables, so environment wins the label.
    if key in env_labels:
        return env_labels[key]
    if key in cli_keys:
        return "CLI"
    return "Config/Default"


def _print_config_table(
    title: str,
    rows: Sequence[tuple[str, str, str]],
    stdout_console: Console,
) -> None:
    table = Table(title=title, box=box.SIMPLE_HEAVY)
    table.add_column("Key", style="cyan")
    table.add_column("Value", overflow="fold")
    table.add_column("Source", style="magenta")
    for key, value, source in rows:
        table.add_row(key, value, source)
    stdout_console.print(table)


def register(app: typer.Typer, *, stdout_console: Console) -> None:
    """Register config commands with the app."""

    config_app = typer.Typer(
        help="Inspect envtriage configuration files and settings.",
        invoke_without_command=True,
        no_args_is_help=True,
    )
    app.add_typer(config_app, name="config")

    @config_app.callback(invoke_without_command=True)
    def config_group_callback(ctx: typer.Context) -> None:
        """Display help when config group is invoked without a subcommand."""
        if ctx.invoked_subcommand is None:
            typer.echo(ctx.get_help())
            raise typer.Exit()

    @config_app.command(
        "show",
        help=(
            "Inspect configuration sources and resolved settings.\n\n"
            "Example: envtriage config show --config custom.toml"
        ),
    )
    def config_show(  # NOSONAR python:S107
        config: cli_options.ConfigPathOption = Path(DEFAULT_CONFIG_FILENAME),
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
    ) -> None:
        """Display configuration files and effective values."""
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
        )
        runtime_settings, logging_settings = resolve_runtime_and_logging(invocation)

        files_table = Table(title="Configuration files", box=box.SIMPLE_HEAVY)
        files_table.add_column("File", style="cyan")
        files_table.add_column("Status")
        for file in resolve_config_file_candidates(invocation.config_path):
            files_table.add_row(str(file), "exists" if file.exists() else "missing")
        stdout_console.print(files_table)

        cli_keys = cli_override_keys(invocation)
        env_labels = env_override_labels(os.environ)
        values = effective_configuration_values(runtime_settings, logging_settings)
        rows = [
            (key, format_config_value(values.get(key)), determine_source_label(key, cli_keys, env_labels))
            for key in _EFFECTIVE_CONFIG_KEY_ORDER
        ]
        stdout_console.print()
        _print_config_table("Effective configuration", rows, stdout_console)

        if runtime_settings.warnings:
            stdout_console.print()
            stdout_console.print("[yellow]Warnings:[/yellow]")
            for warning in runtime_settings.warnings:
                stdout_console.print(f"- {warning}", markup=False)


__all__ = [
    "cli_override_keys",
    "determine_source_label",
    "effective_configuration_values",
    "env_override_labels",
    "format_config_value",
    "register",
]
