"""Negotiated TLS protocol version labels."""

from __future__ import annotations

import ssl
from collections.abc import Mapping
from types import MappingProxyType
from typing import Final

from envtriage.domain.report import CheckStatus

TLS_VERSION_LABELS: Final[Mapping[int, str]] = MappingProxyType(
    {
        ssl.TLSVersion.SSLv3.value: "SSLv3",
        ssl.TLSVersion.TLSv1.value: "TLS 1.0",
        ssl.TLSVersion.TLSv1_1.value: "TLS 1.1",
        ssl.TLSVersion.TLSv1_2.value: "TLS 1.2",
        ssl.TLSVersion.TLSv1_3.value: "TLS 1.3",
    }
)

# ``SSLObject.version()`` names mapped onto wire identifiers.
PROTOCOL_NAME_TO_VERSION: Final[Mapping[str, int]] = MappingProxyType(
    {
        "SSLv3": ssl.TLSVersion.SSLv3.value,
        "TLSv1": ssl.TLSVersion.TLSv1.value,
        "TLSv1.1": ssl.TLSVersion.TLSv1_1.value,
        "TLSv1.2": ssl.TLSVersion.TLSv1_2.value,
        "TLSv1.3": ssl.TLSVersion.TLSv1_3.value,
    }
)

UNKNOWN_VERSION: Final = 0
MINIMUM_OK_VERSION: Final = ssl.TLSVersion.TLSv1_2.value


def classify_version(version: int) -> tuple[str, bool]:
    """Return ``(label, known)`` for a negotiated wire version."""

    label = TLS_VERSION_LABELS.get(version)
    if label is None:
        return f"{version:03x}", False
    return label, True


def version_status(version: int) -> CheckStatus:
    if version not in TLS_VERSION_LABELS or version < MINIMUM_OK_VERSION:
        return CheckStatus.WARNING
    return CheckStatus.OK


def version_from_protocol_name(name: str | None) -> int:
    if not name:
        return UNKNOWN_VERSION
    return PROTOCOL_NAME_TO_VERSION.get(name, UNKNOWN_VERSION)


__all__ = [
    "MINIMUM_OK_VERSION",
    "PROTOCOL_NAME_TO_VERSION",
    "TLS_VERSION_LABELS",
    "UNKNOWN_VERSION",
    "classify_version",
    "version_from_protocol_name",
    "version_status",
]
