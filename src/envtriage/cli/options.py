"""Typer option declarations and normalization helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Final

import typer

from envtriage.config.constants import split_host_list

LOG_FORMAT_CHOICES: Final[set[str]] = {"text", "json"}
LOG_LEVEL_CHOICES: Final[list[str]] = sorted(
    name
    for name, value in logging.getLevelNamesMapping().items()
    if isinstance(name, str) and not name.isdigit()
)
LOG_LEVEL_SET: Final[set[str]] = {choice.upper() for choice in LOG_LEVEL_CHOICES}

ConfigPathOption = Annotated[
    Path,
    typer.Option(
        "--config",
        help="Path to an envtriage configuration TOML file to load",
        envvar="ENVTRIAGE_CONFIG",
        show_envvar=True,
        rich_help_panel="Configuration",
    ),
]

JsonOption = Annotated[
    bool,
    typer.Option(
        "--json/--text",
        "-j",
        help="Emit the report as JSON instead of human readable text",
        rich_help_panel="Output",
    ),
]

OutputFileOption = Annotated[
    str | None,
    typer.Option(
        "--file",
        "-f",
        help="Write the report to this file (created with owner-only permissions)",
        rich_help_panel="Output",
    ),
]

StrictOption = Annotated[
    bool,
    typer.Option(
        "--strict/--no-strict",
        help="Exit non-zero when any check reports warning, fail or fatal",
        rich_help_panel="Output",
    ),
]

DebugOption = Annotated[
    bool | None,
    typer.Option(
        "--debug/--no-debug",
        help="Enable verbose diagnostics, including certificate chain dumps",
        envvar="ENVTRIAGE_DEBUG",
        show_envvar=True,
        rich_help_panel="Diagnostics",
    ),
]

HomeOption = Annotated[
    str | None,
    typer.Option(
        "--home",
        help="Tool home directory to validate",
        envvar="ENVTRIAGE_HOME",
        show_envvar=True,
        rich_help_panel="Diagnostics",
    ),
]

DnsHostsOption = Annotated[
    str | None,
    typer.Option(
        "--dns-hosts",
        help="Comma separated hosts for DNS reachability checks",
        envvar="ENVTRIAGE_DNS_HOSTS",
        show_envvar=True,
        rich_help_panel="Probes",
    ),
]

TlsHostsOption = Annotated[
    str | None,
    typer.Option(
        "--tls-hosts",
        help="Comma separated hosts for TLS version and trust checks",
        envvar="ENVTRIAGE_TLS_HOSTS",
        show_envvar=True,
        rich_help_panel="Probes",
    ),
]

CanaryUrlOption = Annotated[
    str | None,
    typer.Option(
        "--canary-url",
        help="URL of the known-content canary download",
        envvar="ENVTRIAGE_CANARY_URL",
        show_envvar=True,
        rich_help_panel="Probes",
    ),
]

TimeoutOption = Annotated[
    float | None,
    typer.Option(
        "--timeout",
        help="Per-request network timeout in seconds",
        envvar="ENVTRIAGE_TIMEOUT",
        show_envvar=True,
        rich_help_panel="Probes",
    ),
]

CaBundleOption = Annotated[
    str | None,
    typer.Option(
        "--ca-bundle",
        help="Path to a PEM bundle of trusted roots, e.g. a corporate interception CA",
        envvar="ENVTRIAGE_CA_BUNDLE",
        show_envvar=True,
        rich_help_panel="TLS",
    ),
]

LogLevelOption = Annotated[
    str | None,
    typer.Option(
        "--log-level",
        help="Logging level (e.g. INFO, DEBUG)",
        envvar="ENVTRIAGE_LOG_LEVEL",
        show_envvar=True,
        rich_help_panel="Logging",
    ),
]

LogFormatOption = Annotated[
    str | None,
    typer.Option(
        "--log-format",
        help="Logging format (text or json)",
        envvar="ENVTRIAGE_LOG_FORMAT",
        show_envvar=True,
        rich_help_panel="Logging",
    ),
]

LogFileOption = Annotated[
    str | None,
    typer.Option(
        "--log-file",
        help="Path to a log file (use '-', none, stderr to disable)",
        envvar="ENVTRIAGE_LOG_FILE",
        show_envvar=True,
        rich_help_panel="Logging",
    ),
]

LogMaxBytesOption = Annotated[
    int | None,
    typer.Option(
        "--log-max-bytes",
        min=1,
        help="Maximum size in bytes for rotating log files",
        envvar="ENVTRIAGE_LOG_MAX_BYTES",
        show_envvar=True,
        rich_help_panel="Logging",
    ),
]

LogBackupCountOption = Annotated[
    int | None,
    typer.Option(
        "--log-backup-count",
        min=1,
        help="Number of rotating log file backups to retain",
        envvar="ENVTRIAGE_LOG_BACKUP_COUNT",
        show_envvar=True,
        rich_help_panel="Logging",
    ),
]


def clean_string(value: str | None) -> str | None:
    """Normalize optional string input."""

    if value is None:
        return None
    candidate = value.strip()
    return candidate or None


def validate_positive(name: str, value: int | float | None) -> int | float | None:
    """Validate that a numeric option is positive when provided."""

    if value is None:
        return None
    if value <= 0:
        raise typer.BadParameter(
            f"{name} must be a positive number",
            param_hint=f"--{name.replace('_', '-')}",
        )
    return value


def normalize_hosts(value: str | None, *, param_hint: str) -> tuple[str, ...] | None:
    """Split a comma separated host option; an explicitly empty list is rejected."""

    if value is None:
        return None
    hosts = split_host_list(value)
    if not hosts:
        raise typer.BadParameter("At least one host is required", param_hint=param_hint)
    return hosts


def normalize_log_format(value: str | None) -> str | None:
    """Normalize the log format option."""

    if value is None:
        return None
    candidate = value.strip().lower()
    if not candidate:
        return None
    if candidate not in LOG_FORMAT_CHOICES:
        raise typer.BadParameter(
            "Log format must be either 'text' or 'json'",
            param_hint="--log-format",
        )
    return candidate


def normalize_log_level(value: str | None) -> str | None:
    """Normalize the log level option."""

    if value is None:
        return None
    candidate = value.strip().upper()
    if not candidate:
        return None
    if candidate not in LOG_LEVEL_SET:
        raise typer.BadParameter(
            f"Log level must be one of: {', '.join(LOG_LEVEL_CHOICES)}",
            param_hint="--log-level",
        )
    return candidate


__all__ = [
    "CaBundleOption",
    "CanaryUrlOption",
    "ConfigPathOption",
    "DebugOption",
    "DnsHostsOption",
    "HomeOption",
    "JsonOption",
    "LOG_FORMAT_CHOICES",
    "LOG_LEVEL_CHOICES",
    "LogBackupCountOption",
    "LogFileOption",
    "LogFormatOption",
    "LogLevelOption",
    "LogMaxBytesOption",
    "OutputFileOption",
    "StrictOption",
    "TimeoutOption",
    "TlsHostsOption",
    "clean_string",
    "normalize_hosts",
    "normalize_log_format",
    "normalize_log_level",
    "validate_positive",
]
