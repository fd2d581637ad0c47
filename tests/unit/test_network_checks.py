from __future__ import annotations

import socket

import httpx
import pytest

from envtriage.domain import network
from envtriage.domain.network import canary_download_check, dns_lookup_check, lookup_host
from envtriage.domain.report import CheckCategory, CheckStatus

CANARY_URL = "https://downloads.example/canary.txt"
CANARY_TEXT = "Used to testing connections"


def _client_factory(handler):
    return lambda: httpx.Client(transport=httpx.MockTransport(handler))


def test_dns_lookup_success() -> None:
    check = dns_lookup_check("pypi.org", link="L", resolver=lambda host: ["10.0.0.1", "10.0.0.2"])
    assert check.category is CheckCategory.NETWORK_DNS
    assert check.status is CheckStatus.OK
    assert check.message == "pypi.org found: [10.0.0.1 10.0.0.2]"
    assert check.link == "L"


def test_dns_lookup_failure() -> None:
    def resolver(host: str) -> list[str]:
        raise socket.gaierror(-2, "Name or service not known")

    check = dns_lookup_check("nowhere.test", resolver=resolver)

    assert check.status is CheckStatus.FAIL
    assert check.message == "DNS lookup nowhere.test failed: [Errno -2] Name or service not known"


def test_lookup_host_deduplicates_in_order(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_getaddrinfo(host, port, type=0):
        return [
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.0.0.2", 0)),
            (socket.AF_INET6, socket.SOCK_STREAM, 6, "", ("::1", 0, 0, 0)),
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.0.0.2", 0)),
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.0.0.1", 0)),
        ]

    monkeypatch.setattr(network.socket, "getaddrinfo", fake_getaddrinfo)

    assert lookup_host("service.test") == ["10.0.0.2", "::1", "10.0.0.1"]


def test_canary_success() -> None:
    check = canary_download_check(
        CANARY_URL,
        CANARY_TEXT,
        client_factory=_client_factory(lambda request: httpx.Response(200, text=CANARY_TEXT)),
    )
    assert check.category is CheckCategory.NETWORK_CANARY
    assert check.status is CheckStatus.OK
    assert check.message == f"Canary download successful: {CANARY_URL}"


def test_canary_wrong_content_fails() -> None:
    check = canary_download_check(
        CANARY_URL,
        CANARY_TEXT,
        client_factory=_client_factory(lambda request: httpx.Response(200, text="<html>blocked</html>")),
    )
    assert check.status is CheckStatus.FAIL
    assert check.message == "Canary download failed: 200: <html>blocked</html>"


def test_canary_bad_status_fails() -> None:
    check = canary_download_check(
        CANARY_URL,
        CANARY_TEXT,
        client_factory=_client_factory(lambda request: httpx.Response(407, text="Proxy Authentication Required")),
    )
    assert check.status is CheckStatus.FAIL
    assert check.message == "Canary download failed: 407: Proxy Authentication Required"


def test_canary_transport_error_fails() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    check = canary_download_check(CANARY_URL, CANARY_TEXT, client_factory=_client_factory(handler))

    assert check.status is CheckStatus.FAIL
    assert check.message == f"{CANARY_URL}: connection refused"
