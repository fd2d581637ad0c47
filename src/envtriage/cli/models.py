"""Normalized CLI override containers."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RuntimeOverrides:
    debug: bool | None = None
    home: str | None = None


@dataclass(frozen=True)
class ProbeOverrides:
    dns_hosts: tuple[str, ...] | None = None
    tls_hosts: tuple[str, ...] | None = None
    canary_url: str | None = None
    timeout: float | None = None


@dataclass(frozen=True)
class TlsOverrides:
    ca_bundle_path: str | None = None


@dataclass(frozen=True)
class LoggingOverrides:
    level: str | None = None
    format: str | None = None
    file_path: str | None = None
    max_bytes: int | None = None
    backup_count: int | None = None


@dataclass(frozen=True)
class CliInvocation:
    config_path: str | None
    runtime: RuntimeOverrides = field(default_factory=RuntimeOverrides)
    probes: ProbeOverrides = field(default_factory=ProbeOverrides)
    tls: TlsOverrides = field(default_factory=TlsOverrides)
    logging: LoggingOverrides = field(default_factory=LoggingOverrides)


__all__ = [
    "CliInvocation",
    "LoggingOverrides",
    "ProbeOverrides",
    "RuntimeOverrides",
    "TlsOverrides",
]
