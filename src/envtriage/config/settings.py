"""Dynaconf-backed configuration helpers for envtriage."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from dynaconf import Dynaconf

from envtriage.config.constants import (
    DEFAULT_CANARY_CONTENT,
    DEFAULT_CANARY_URL,
    DEFAULT_CHECKED_HOSTS,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_DOCS_BASE_URL,
    DEFAULT_HOME_DIRNAME,
    DEFAULT_PROBE_TIMEOUT,
    FALSY_STRINGS,
    LOCAL_CONFIG_FILENAME,
    TRUTHY_STRINGS,
    split_host_list,
)

_REPO_ROOT = Path(__file__).resolve().parents[3]

LOG_FORMAT_TEXT = "text"
LOG_FORMAT_JSON = "json"
DEFAULT_LOG_FORMAT = LOG_FORMAT_TEXT
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_MAX_BYTES = 10_000_000
DEFAULT_BACKUP_COUNT = 5

_LOGFILE_DISABLED_VALUES = {"-", "none", "stderr", "off"}

# Dynaconf keys used throughout the module. Using constants helps avoid
# duplication and keeps environment and configuration lookups consistent.
RUNTIME_DEBUG_KEY = "runtime.debug"
RUNTIME_CA_BUNDLE_PATH_KEY = "runtime.ca_bundle_path"
RUNTIME_HOME_KEY = "runtime.home"
RUNTIME_DOCS_BASE_URL_KEY = "runtime.docs_base_url"

PROBES_DNS_HOSTS_KEY = "probes.dns_hosts"
PROBES_TLS_HOSTS_KEY = "probes.tls_hosts"
PROBES_CANARY_URL_KEY = "probes.canary_url"
PROBES_CANARY_CONTENT_KEY = "probes.canary_content"
PROBES_TIMEOUT_KEY = "probes.timeout"

LOGGING_LEVEL_KEY = "logging.level"
LOGGING_FORMAT_KEY = "logging.format"
LOGGING_FILE_KEY = "logging.file"
LOGGING_MAX_BYTES_KEY = "logging.max_bytes"
LOGGING_BACKUP_COUNT_KEY = "logging.backup_count"

ENVIRONMENT_MAP: dict[str, str] = {
    "ENVTRIAGE_DEBUG": RUNTIME_DEBUG_KEY,
    "ENVTRIAGE_CA_BUNDLE": RUNTIME_CA_BUNDLE_PATH_KEY,
    "ENVTRIAGE_HOME": RUNTIME_HOME_KEY,
    "ENVTRIAGE_DOCS_BASE_URL": RUNTIME_DOCS_BASE_URL_KEY,
    "ENVTRIAGE_DNS_HOSTS": PROBES_DNS_HOSTS_KEY,
    "ENVTRIAGE_TLS_HOSTS": PROBES_TLS_HOSTS_KEY,
    "ENVTRIAGE_CANARY_URL": PROBES_CANARY_URL_KEY,
    "ENVTRIAGE_CANARY_CONTENT": PROBES_CANARY_CONTENT_KEY,
    "ENVTRIAGE_TIMEOUT": PROBES_TIMEOUT_KEY,
    "ENVTRIAGE_LOG_LEVEL": LOGGING_LEVEL_KEY,
    "ENVTRIAGE_LOG_FORMAT": LOGGING_FORMAT_KEY,
    "ENVTRIAGE_LOG_FILE": LOGGING_FILE_KEY,
    "ENVTRIAGE_LOG_MAX_BYTES": LOGGING_MAX_BYTES_KEY,
    "ENVTRIAGE_LOG_BACKUP_COUNT": LOGGING_BACKUP_COUNT_KEY,
}


@dataclass(frozen=True)
class RuntimeInputs:
    debug: bool | None = None
    home: str | None = None
    docs_base_url: str | None = None


@dataclass(frozen=True)
class ProbeInputs:
    dns_hosts: Sequence[str] | None = None
    tls_hosts: Sequence[str] | None = None
    canary_url: str | None = None
    timeout: float | None = None


@dataclass(frozen=True)
class TlsInputs:
    ca_bundle_path: str | None = None


@dataclass(frozen=True)
class LoggingInputs:
    level: str | None = None
    format: str | None = None
    file_path: str | None = None
    max_bytes: int | None = None
    backup_count: int | None = None


@dataclass(frozen=True)
class RuntimeSettings:
    """Resolved settings for one diagnostics run."""

    debug: bool = False
    ca_bundle_path: str | None = None
    home: str = str(Path.home() / DEFAULT_HOME_DIRNAME)
    docs_base_url: str = DEFAULT_DOCS_BASE_URL
    dns_hosts: tuple[str, ...] = DEFAULT_CHECKED_HOSTS
    tls_hosts: tuple[str, ...] = DEFAULT_CHECKED_HOSTS
    canary_url: str = DEFAULT_CANARY_URL
    canary_content: str = DEFAULT_CANARY_CONTENT
    timeout: float = DEFAULT_PROBE_TIMEOUT
    warnings: tuple[str, ...] = field(default_factory=tuple)
    overrides: tuple[str, ...] = field(default_factory=tuple)

    def docs_link(self, path: str) -> str:
        """Join ``path`` onto the configured documentation base URL."""

        base = self.docs_base_url
        if not base.endswith("/"):
            base = f"{base}/"
        return f"{base}{path.lstrip('/')}"


@dataclass(frozen=True)
class LoggingSettings:
    level: int
    format: str
    file_path: str | None
    max_bytes: int
    backup_count: int

    @property
    def level_name(self) -> str:
        return logging.getLevelName(self.level)


def is_logfile_disabled_value(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in _LOGFILE_DISABLED_VALUES


def resolve_config_file_candidates(config_path: str | None) -> list[Path]:
    """Return the configuration files that would be consulted for ``config_path``."""

    if config_path:
        config_file = Path(config_path)
        local_file = config_file.with_name(f"{config_file.stem}.local{config_file.suffix}")
        return [config_file, local_file]
    return [_REPO_ROOT / DEFAULT_CONFIG_FILENAME, _REPO_ROOT / LOCAL_CONFIG_FILENAME]


def _default_settings_files(config_path: str | None) -> tuple[Sequence[str], str | None]:
    if config_path:
        candidates = resolve_config_file_candidates(config_path)
        files = [str(path) for path in candidates if path.exists()]
        return files or [str(candidates[0])], None
    return [DEFAULT_CONFIG_FILENAME, LOCAL_CONFIG_FILENAME], str(_REPO_ROOT)


def _coerce_str(value: Any | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        candidate = value.strip()
        return candidate or None
    return str(value)


def _coerce_bool(value: Any | None) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if not normalized:
            return None
        if normalized in TRUTHY_STRINGS:
            return True
        if normalized in FALSY_STRINGS:
            return False
        return None
    if isinstance(value, (int, float)):
        return bool(value)
    return None


def _coerce_int(value: Any | None) -> int | None:
    if value is None:
        return None
    try:
        coerced = int(value)
    except (TypeError, ValueError):
        return None
    return coerced


def _coerce_float(value: Any | None) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        coerced = float(value)
    except (TypeError, ValueError):
        return None
    return coerced


def _apply_environment_overrides(settings: Dynaconf) -> None:
    for env_var, key in ENVIRONMENT_MAP.items():
        raw = os.getenv(env_var)
        if raw is None:
            continue
        if isinstance(raw, str) and not raw.strip():
            continue
        settings.set(key, raw)
    debug_fallback = os.getenv("DEBUG")
    if debug_fallback and debug_fallback.strip() and not os.getenv("ENVTRIAGE_DEBUG"):
        settings.set(RUNTIME_DEBUG_KEY, debug_fallback)


def _apply_runtime_inputs(settings: Dynaconf, runtime_inputs: RuntimeInputs | None) -> None:
    if runtime_inputs is None:
        return

    if runtime_inputs.debug is not None:
        settings.set(RUNTIME_DEBUG_KEY, runtime_inputs.debug)
    if runtime_inputs.home is not None:
        settings.set(RUNTIME_HOME_KEY, runtime_inputs.home.strip())
    if runtime_inputs.docs_base_url is not None:
        settings.set(RUNTIME_DOCS_BASE_URL_KEY, runtime_inputs.docs_base_url.strip())


def _apply_probe_inputs(settings: Dynaconf, probe_inputs: ProbeInputs | None) -> None:
    if probe_inputs is None:
        return

    if probe_inputs.dns_hosts is not None:
        settings.set(PROBES_DNS_HOSTS_KEY, list(probe_inputs.dns_hosts))
    if probe_inputs.tls_hosts is not None:
        settings.set(PROBES_TLS_HOSTS_KEY, list(probe_inputs.tls_hosts))
    if probe_inputs.canary_url is not None:
        settings.set(PROBES_CANARY_URL_KEY, probe_inputs.canary_url.strip())
    if probe_inputs.timeout is not None:
        settings.set(PROBES_TIMEOUT_KEY, probe_inputs.timeout)


def _apply_tls_inputs(settings: Dynaconf, tls_inputs: TlsInputs | None) -> None:
    if tls_inputs is None:
        return

    if tls_inputs.ca_bundle_path is not None:
        settings.set(RUNTIME_CA_BUNDLE_PATH_KEY, tls_inputs.ca_bundle_path.strip())


def _apply_logging_inputs(settings: Dynaconf, logging_inputs: LoggingInputs | None) -> None:
    if logging_inputs is None:
        return

    if logging_inputs.level is not None:
        settings.set(LOGGING_LEVEL_KEY, logging_inputs.level.strip())
    if logging_inputs.format is not None:
        settings.set(LOGGING_FORMAT_KEY, logging_inputs.format.strip())
    if logging_inputs.file_path is not None:
        settings.set(LOGGING_FILE_KEY, logging_inputs.file_path.strip())
    if logging_inputs.max_bytes is not None:
        settings.set(LOGGING_MAX_BYTES_KEY, logging_inputs.max_bytes)
    if logging_inputs.backup_count is not None:
        settings.set(LOGGING_BACKUP_COUNT_KEY, logging_inputs.backup_count)


def _build_dynaconf(config_path: str | None) -> Dynaconf:
    files, root_path = _default_settings_files(config_path)
    settings = Dynaconf(
        settings_files=list(files),
        envvar_prefix="ENVTRIAGE",
        environments=False,
        load_dotenv=True,
        merge_enabled=True,
        root_path=root_path,
    )
    _apply_environment_overrides(settings)
    return settings


def load_settings(config_path: str | None = None) -> Dynaconf:
    """Create a Dynaconf instance configured for the supplied path."""

    return _build_dynaconf(config_path)


def apply_cli_overrides(
    settings: Dynaconf,
    *,
    runtime_inputs: RuntimeInputs | None = None,
    probe_inputs: ProbeInputs | None = None,
    tls_inputs: TlsInputs | None = None,
    logging_inputs: LoggingInputs | None = None,
) -> None:
    """Apply CLI overrides to the provided settings instance."""

    _apply_runtime_inputs(settings, runtime_inputs)
    _apply_probe_inputs(settings, probe_inputs)
    _apply_tls_inputs(settings, tls_inputs)
    _apply_logging_inputs(settings, logging_inputs)


def _resolve_bool(settings: Dynaconf, key: str, *, default: bool = False) -> bool:
    coerced = _coerce_bool(settings.get(key))
    if coerced is None:
        return default
    return coerced


def _resolve_hosts(settings: Dynaconf, key: str, warnings: list[str]) -> tuple[str, ...]:
    raw = settings.get(key)
    if raw is None:
        return DEFAULT_CHECKED_HOSTS
    if isinstance(raw, (list, tuple)) and not raw:
        # An explicit empty list disables the check.
        return ()
    hosts = split_host_list(raw)
    if not hosts:
        warnings.append(f"Empty {key} override; falling back to default host list")
        return DEFAULT_CHECKED_HOSTS
    return hosts


def _resolve_timeout(settings: Dynaconf, warnings: list[str]) -> float:
    raw = settings.get(PROBES_TIMEOUT_KEY)
    if raw is None:
        return DEFAULT_PROBE_TIMEOUT
    value = _coerce_float(raw)
    if value is None or value <= 0:
        warnings.append(f"Invalid probes.timeout value {raw!r}; using {DEFAULT_PROBE_TIMEOUT}")
        return DEFAULT_PROBE_TIMEOUT
    return value


def _resolve_home(settings: Dynaconf) -> str:
    configured = _coerce_str(settings.get(RUNTIME_HOME_KEY))
    if configured is None:
        return str(Path.home() / DEFAULT_HOME_DIRNAME)
    return os.path.expanduser(configured)


def runtime_from_settings(settings: Dynaconf) -> RuntimeSettings:
    """Extract runtime settings and validation messages from Dynaconf."""

    warnings: list[str] = []
    overrides: list[str] = []

    debug = _resolve_bool(settings, RUNTIME_DEBUG_KEY, default=False)
    if debug:
        overrides.append("Debug mode enabled; failing certificate chains will be reported")

    ca_bundle_path = _coerce_str(settings.get(RUNTIME_CA_BUNDLE_PATH_KEY))
    if ca_bundle_path:
        if Path(ca_bundle_path).expanduser().exists():
            overrides.append(f"Using trusted roots from {ca_bundle_path}")
        else:
            warnings.append(f"CA bundle {ca_bundle_path} does not exist; trusted roots will be empty")

    return RuntimeSettings(
        debug=debug,
        ca_bundle_path=ca_bundle_path,
        home=_resolve_home(settings),
        docs_base_url=_coerce_str(settings.get(RUNTIME_DOCS_BASE_URL_KEY)) or DEFAULT_DOCS_BASE_URL,
        dns_hosts=_resolve_hosts(settings, PROBES_DNS_HOSTS_KEY, warnings),
        tls_hosts=_resolve_hosts(settings, PROBES_TLS_HOSTS_KEY, warnings),
        canary_url=_coerce_str(settings.get(PROBES_CANARY_URL_KEY)) or DEFAULT_CANARY_URL,
        # Canary content is compared verbatim, so it is not stripped.
        canary_content=settings.get(PROBES_CANARY_CONTENT_KEY) or DEFAULT_CANARY_CONTENT,
        timeout=_resolve_timeout(settings, warnings),
        warnings=tuple(warnings),
        overrides=tuple(overrides),
    )


def logging_from_settings(settings: Dynaconf) -> LoggingSettings:
    """Extract logging configuration from Dynaconf."""

    level_value = _coerce_str(settings.get(LOGGING_LEVEL_KEY)) or DEFAULT_LOG_LEVEL
    format_value = (_coerce_str(settings.get(LOGGING_FORMAT_KEY)) or DEFAULT_LOG_FORMAT).lower()
    if format_value not in {LOG_FORMAT_TEXT, LOG_FORMAT_JSON}:
        raise ValueError(f"Unsupported log format: {format_value}")

    file_path = _coerce_str(settings.get(LOGGING_FILE_KEY))
    if is_logfile_disabled_value(file_path):
        file_path = None

    max_bytes_value = _coerce_int(settings.get(LOGGING_MAX_BYTES_KEY))
    if max_bytes_value is None or max_bytes_value <= 0:
        max_bytes_value = DEFAULT_MAX_BYTES

    backup_count_value = _coerce_int(settings.get(LOGGING_BACKUP_COUNT_KEY))
    if backup_count_value is None or backup_count_value <= 0:
        backup_count_value = DEFAULT_BACKUP_COUNT

    mapping = logging.getLevelNamesMapping()
    level_upper = level_value.upper()
    if level_upper.isdigit():
        resolved_level = int(level_upper)
    else:
        resolved_level = mapping.get(level_upper, logging.INFO)

    return LoggingSettings(
        level=resolved_level,
        format=format_value,
        file_path=file_path,
        max_bytes=max_bytes_value,
        backup_count=backup_count_value,
    )


def resolve_application_settings(
    *,
    config_path: str | None = None,
    runtime_inputs: RuntimeInputs | None = None,
    probe_inputs: ProbeInputs | None = None,
    tls_inputs: TlsInputs | None = None,
    logging_inputs: LoggingInputs | None = None,
) -> tuple[RuntimeSettings, LoggingSettings]:
    settings = load_settings(config_path)
    apply_cli_overrides(
        settings,
        runtime_inputs=runtime_inputs,
        probe_inputs=probe_inputs,
        tls_inputs=tls_inputs,
        logging_inputs=logging_inputs,
    )
    runtime_settings = runtime_from_settings(settings)
    logging_settings = logging_from_settings(settings)

    if runtime_settings.debug and logging_settings.level > logging.DEBUG:
        logging_settings = replace(logging_settings, level=logging.DEBUG)

    return runtime_settings, logging_settings


__all__ = [
    "DEFAULT_LOG_FORMAT",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_MAX_BYTES",
    "DEFAULT_BACKUP_COUNT",
    "ENVIRONMENT_MAP",
    "LOG_FORMAT_TEXT",
    "LOG_FORMAT_JSON",
    "LoggingInputs",
    "LoggingSettings",
    "ProbeInputs",
    "RuntimeInputs",
    "RuntimeSettings",
    "TlsInputs",
    "apply_cli_overrides",
    "is_logfile_disabled_value",
    "load_settings",
    "logging_from_settings",
    "resolve_application_settings",
    "resolve_config_file_candidates",
    "runtime_from_settings",
]
