"""Reusable helper utilities for the envtriage CLI."""

from __future__ import annotations

from pathlib import Path

from envtriage.cli import options as cli_options
from envtriage.cli.models import (
    CliInvocation,
    LoggingOverrides,
    ProbeOverrides,
    RuntimeOverrides,
    TlsOverrides,
)
from envtriage.config.settings import (
    LoggingInputs,
    LoggingSettings,
    ProbeInputs,
    RuntimeInputs,
    RuntimeSettings,
    TlsInputs,
    is_logfile_disabled_value,
    resolve_application_settings,
)
from envtriage.infrastructure.logging import BoundLogger, configure_logging, get_logger


def build_invocation(
    *,
    config_path: Path | str | None,
    debug: bool | None = None,
    home: str | None = None,
    dns_hosts: str | None = None,
    tls_hosts: str | None = None,
    canary_url: str | None = None,
    timeout: float | None = None,
    ca_bundle: str | None = None,
    log_level: str | None = None,
    log_format: str | None = None,
    log_file: str | None = None,
    log_max_bytes: int | None = None,
    log_backup_count: int | None = None,
) -> CliInvocation:
    """Construct a :class:`CliInvocation` with normalized CLI parameters."""

    return CliInvocation(
        config_path=str(config_path) if config_path is not None else None,
        runtime=RuntimeOverrides(debug=debug, home=cli_options.clean_string(home)),
        probes=ProbeOverrides(
            dns_hosts=cli_options.normalize_hosts(dns_hosts, param_hint="--dns-hosts"),
            tls_hosts=cli_options.normalize_hosts(tls_hosts, param_hint="--tls-hosts"),
            canary_url=cli_options.clean_string(canary_url),
            timeout=cli_options.validate_positive("timeout", timeout),
        ),
        tls=TlsOverrides(ca_bundle_path=cli_options.clean_string(ca_bundle)),
        logging=LoggingOverrides(
            level=cli_options.normalize_log_level(log_level),
            format=cli_options.normalize_log_format(log_format),
            file_path=cli_options.clean_string(log_file),
            max_bytes=cli_options.validate_positive("log_max_bytes", log_max_bytes),
            backup_count=cli_options.validate_positive("log_backup_count", log_backup_count),
        ),
    )


def runtime_inputs(overrides: RuntimeOverrides) -> RuntimeInputs | None:
    if overrides.debug is None and overrides.home is None:
        return None
    return RuntimeInputs(debug=overrides.debug, home=overrides.home)


def probe_inputs(overrides: ProbeOverrides) -> ProbeInputs | None:
    if (
        overrides.dns_hosts is None
        and overrides.tls_hosts is None
        and overrides.canary_url is None
        and overrides.timeout is None
    ):
        return None
    return ProbeInputs(
        dns_hosts=overrides.dns_hosts,
        tls_hosts=overrides.tls_hosts,
        canary_url=overrides.canary_url,
        timeout=overrides.timeout,
    )


def tls_inputs(overrides: TlsOverrides) -> TlsInputs | None:
    if overrides.ca_bundle_path is None:
        return None
    return TlsInputs(ca_bundle_path=overrides.ca_bundle_path)


def logging_inputs(overrides: LoggingOverrides) -> LoggingInputs | None:
    if (
        overrides.level is None
        and overrides.format is None
        and overrides.file_path is None
        and overrides.max_bytes is None
        and overrides.backup_count is None
    ):
        return None

    file_override: str | None
    if overrides.file_path is None:
        file_override = None
    elif is_logfile_disabled_value(overrides.file_path):
        file_override = ""
    else:
        file_override = overrides.file_path

    return LoggingInputs(
        level=overrides.level,
        format=overrides.format,
        file_path=file_override,
        max_bytes=overrides.max_bytes,
        backup_count=overrides.backup_count,
    )


def resolve_runtime_and_logging(
    invocation: CliInvocation,
) -> tuple[RuntimeSettings, LoggingSettings]:
    """Resolve runtime and logging settings from a CLI invocation."""

    return resolve_application_settings(
        config_path=invocation.config_path,
        runtime_inputs=runtime_inputs(invocation.runtime),
        probe_inputs=probe_inputs(invocation.probes),
        tls_inputs=tls_inputs(invocation.tls),
        logging_inputs=logging_inputs(invocation.logging),
    )


def emit_runtime_messages(runtime_settings: RuntimeSettings, logger: BoundLogger) -> None:
    """Emit runtime informational and warning messages."""

    for message in runtime_settings.overrides:
        logger.info(message)
    for message in runtime_settings.warnings:
        logger.warning(message)


def initialize_logging(
    runtime_settings: RuntimeSettings, logging_settings: LoggingSettings
) -> BoundLogger:
    """Configure logging and emit runtime messages."""

    configure_logging(logging_settings)
    logger = get_logger("envtriage")
    emit_runtime_messages(runtime_settings, logger)
    return logger


__all__ = [
    "build_invocation",
    "emit_runtime_messages",
    "initialize_logging",
    "logging_inputs",
    "probe_inputs",
    "resolve_runtime_and_logging",
    "runtime_inputs",
    "tls_inputs",
]
