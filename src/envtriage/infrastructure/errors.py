"""Domain errors raised along the probe and reporting paths."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    PROBE_TRANSPORT = "ENVTRIAGE_PROBE_TRANSPORT"
    ROOT_POOL_UNAVAILABLE = "ENVTRIAGE_ROOT_POOL_UNAVAILABLE"
    REPORT_SERIALIZATION = "ENVTRIAGE_REPORT_SERIALIZATION"
    OUTPUT_SINK_UNAVAILABLE = "ENVTRIAGE_OUTPUT_SINK_UNAVAILABLE"


@dataclass(frozen=True)
class ErrorContext:
    code: str
    host: str | None = None
    path: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


class EnvTriageError(Exception):
    """Base class for errors that carry a structured context and a user message."""

    code: ErrorCode = ErrorCode.PROBE_TRANSPORT

    def __init__(
        self,
        user_message: str,
        *,
        host: str | None = None,
        path: str | None = None,
        **extra: Any,
    ) -> None:
        super().__init__(user_message)
        self.user_message = user_message
        self.context = ErrorContext(
            code=self.code.value,
            host=host,
            path=path,
            extra=dict(extra),
        )

    def log_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {"code": self.context.code}
        if self.context.host:
            fields["host"] = self.context.host
        if self.context.path:
            fields["path"] = self.context.path
        fields.update(self.context.extra)
        return fields


class ProbeTransportError(EnvTriageError):
    """The probe failed before any TLS state could be observed."""

    code = ErrorCode.PROBE_TRANSPORT

    def __init__(self, host: str, url: str, reason: BaseException | str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"{url} -> {_describe(reason)}", host=host, url=url)


class RootPoolError(EnvTriageError):
    code = ErrorCode.ROOT_POOL_UNAVAILABLE

    def __init__(self, path: str, reason: BaseException | str) -> None:
        super().__init__(
            f"trusted root pool {path} could not be loaded: {_describe(reason)}",
            path=path,
        )


class ReportSerializationError(EnvTriageError):
    code = ErrorCode.REPORT_SERIALIZATION


class OutputSinkError(EnvTriageError):
    code = ErrorCode.OUTPUT_SINK_UNAVAILABLE

    def __init__(self, path: str, reason: BaseException | str) -> None:
        super().__init__(f"cannot write report to {path}: {_describe(reason)}", path=path)


def _describe(reason: BaseException | str) -> str:
    if isinstance(reason, str):
        return reason
    text = str(reason)
    return text or type(reason).__name__


__all__ = [
    "EnvTriageError",
    "ErrorCode",
    "ErrorContext",
    "OutputSinkError",
    "ProbeTransportError",
    "ReportSerializationError",
    "RootPoolError",
]
