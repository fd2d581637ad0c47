"""DNS reachability and canary download checks."""

from __future__ import annotations

import socket
from collections.abc import Callable
from typing import Any

import httpx

from envtriage.domain.report import CheckCategory, CheckStatus, CheckType, DiagnosticCheck

Resolver = Callable[[str], list[str]]
CanaryClientFactory = Callable[[], httpx.Client]


def lookup_host(host: str) -> list[str]:
    """Resolve ``host`` to its unique addresses in resolver order."""

    addresses: list[str] = []
    for _family, _type, _proto, _canon, sockaddr in socket.getaddrinfo(
        host, None, type=socket.SOCK_STREAM
    ):
        address: Any = sockaddr[0]
        if address not in addresses:
            addresses.append(str(address))
    return addresses


def dns_lookup_check(host: str, *, link: str = "", resolver: Resolver = lookup_host) -> DiagnosticCheck:
    try:
        found = resolver(host)
    except (OSError, UnicodeError) as exc:
        return DiagnosticCheck(
            type=CheckType.NETWORK,
            category=CheckCategory.NETWORK_DNS,
            status=CheckStatus.FAIL,
            message=f"DNS lookup {host} failed: {exc}",
            link=link,
        )
    return DiagnosticCheck(
        type=CheckType.NETWORK,
        category=CheckCategory.NETWORK_DNS,
        status=CheckStatus.OK,
        message=f"{host} found: [{' '.join(found)}]",
        link=link,
    )


def canary_download_check(
    url: str,
    expected_content: str,
    *,
    client_factory: CanaryClientFactory,
    link: str = "",
) -> DiagnosticCheck:
    def _fail(message: str) -> DiagnosticCheck:
        return DiagnosticCheck(
            type=CheckType.NETWORK,
            category=CheckCategory.NETWORK_CANARY,
            status=CheckStatus.FAIL,
            message=message,
            link=link,
        )

    try:
        with client_factory() as client:
            response = client.get(url)
    except (httpx.HTTPError, httpx.InvalidURL, OSError) as exc:
        return _fail(f"{url}: {exc}")

    if response.status_code != 200 or response.text != expected_content:
        return _fail(f"Canary download failed: {response.status_code}: {response.text}")
    return DiagnosticCheck(
        type=CheckType.NETWORK,
        category=CheckCategory.NETWORK_CANARY,
        status=CheckStatus.OK,
        message=f"Canary download successful: {url}",
        link=link,
    )


__all__ = [
    "CanaryClientFactory",
    "Resolver",
    "canary_download_check",
    "dns_lookup_check",
    "lookup_host",
]
