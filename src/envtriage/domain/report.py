"""Report model shared by every check producer.

A :class:`DiagnosticReport` is a flat bag of environment ``details`` plus an
append-only list of :class:`DiagnosticCheck` findings.  Each producer decides
the status of its own checks; nothing in this module escalates or reorders.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Iterable, Iterator
from enum import Enum
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from envtriage.infrastructure.errors import ReportSerializationError

JSON_INDENT: Final = 2


class CheckType(str, Enum):
    NETWORK = "network"
    OS = "OS"
    RPA = "RPA"


class CheckCategory(str, Enum):
    NETWORK_LINK = "network-link"
    NETWORK_TLS_VERSION = "network-tls-version"
    NETWORK_TLS_VERIFY = "network-tls-verify"
    NETWORK_TLS_CHAIN = "network-tls-chain"
    NETWORK_DNS = "network-dns"
    NETWORK_CANARY = "network-canary"
    OS_LONG_PATH = "os-long-path"
    RPA_HOME = "rpa-home"


class CheckStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    FAIL = "fail"
    FATAL = "fatal"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY: Final[dict[CheckStatus, int]] = {
    CheckStatus.OK: 0,
    CheckStatus.WARNING: 1,
    CheckStatus.FAIL: 2,
    CheckStatus.FATAL: 3,
}


class DiagnosticCheck(BaseModel):
    """One reported finding."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, use_enum_values=False)

    type: CheckType
    category: CheckCategory
    status: CheckStatus
    message: str = Field(min_length=1)
    link: str = Field(default="", alias="url")


class DiagnosticReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    details: dict[str, str] = Field(default_factory=dict)
    checks: list[DiagnosticCheck] = Field(default_factory=list)

    def add(self, check: DiagnosticCheck) -> None:
        self.checks.append(check)

    def extend(self, checks: Iterable[DiagnosticCheck]) -> None:
        for check in checks:
            self.add(check)

    def worst_status(self) -> CheckStatus:
        worst = CheckStatus.OK
        for check in self.checks:
            if check.status.severity > worst.severity:
                worst = check.status
        return worst

    def as_json(self) -> str:
        """Render the report as 2-space indented JSON, ``details`` first."""

        try:
            payload = self.model_dump(mode="json", by_alias=True)
            return json.dumps(payload, indent=JSON_INDENT, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise ReportSerializationError(f"cannot serialize diagnostics report: {exc}") from exc

    @classmethod
    def from_json(cls, text: str) -> DiagnosticReport:
        try:
            return cls.model_validate_json(text)
        except ValidationError as exc:
            raise ReportSerializationError(f"cannot parse diagnostics report: {exc}") from exc


class TrustTable:
    """Issuer distinguished name -> last observed trust outcome for one run.

    Entries are last-write-wins: a later host with the same issuer overwrites
    the earlier outcome even when the two disagree.
    """

    def __init__(self) -> None:
        self._entries: dict[str, bool] = {}
        self._lock = threading.Lock()

    def record(self, issuer: str, trusted: bool) -> bool | None:
        """Store ``trusted`` for ``issuer`` and return the value it replaced."""

        with self._lock:
            previous = self._entries.get(issuer)
            self._entries[issuer] = trusted
            return previous

    def get(self, issuer: str) -> bool | None:
        with self._lock:
            return self._entries.get(issuer)

    def as_dict(self) -> dict[str, bool]:
        with self._lock:
            return dict(self._entries)

    def __getitem__(self, issuer: str) -> bool:
        with self._lock:
            return self._entries[issuer]

    def __contains__(self, issuer: object) -> bool:
        with self._lock:
            return issuer in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.as_dict())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        return f"TrustTable({self.as_dict()!r})"


__all__ = [
    "CheckCategory",
    "CheckStatus",
    "CheckType",
    "DiagnosticCheck",
    "DiagnosticReport",
    "JSON_INDENT",
    "TrustTable",
]
