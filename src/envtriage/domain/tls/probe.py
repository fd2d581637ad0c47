"""Observe what a real TLS negotiation with a host yields.

The probe transport deliberately accepts any certificate and any protocol
version the local TLS library still supports.  Nothing is trusted here: the
captured state is handed to :mod:`envtriage.domain.tls.verifier`, which does
the actual policy decisions.  Do not reuse :func:`create_probe_client` for any
call whose response is acted upon.
"""

from __future__ import annotations

import ssl
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Final

import certifi
import httpx
from cryptography import x509

from envtriage.config.constants import DEFAULT_PROBE_TIMEOUT
from envtriage.domain.tls.versions import version_from_protocol_name
from envtriage.infrastructure.errors import ProbeTransportError
from envtriage.infrastructure.logging import BoundLogger, get_logger, log_probe_event

ProbeClientFactory = Callable[[], httpx.Client]

PROBE_USER_AGENT: Final = "envtriage-probe"


@dataclass(frozen=True)
class ConnectionState:
    version: int
    server_name: str
    peer_certificates: tuple[x509.Certificate, ...] = field(default_factory=tuple)
    protocol_name: str = ""


def probe_url(host: str) -> str:
    return f"https://{host}/"


def create_probe_ssl_context() -> ssl.SSLContext:
    """Build the insecure, observation-only SSL context used by the probe."""

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    context.minimum_version = ssl.TLSVersion.MINIMUM_SUPPORTED
    # OpenSSL 3 refuses TLS 1.0/1.1 at the default security level.
    context.set_ciphers("ALL:@SECLEVEL=0")
    return context


def create_probe_client(*, timeout: float = DEFAULT_PROBE_TIMEOUT) -> httpx.Client:
    """HTTP client for TLS observation only; certificates are NOT verified."""

    return httpx.Client(
        verify=create_probe_ssl_context(),
        timeout=timeout,
        follow_redirects=False,
        headers={"User-Agent": PROBE_USER_AGENT},
    )


def create_verified_client(
    *, timeout: float = DEFAULT_PROBE_TIMEOUT, ca_bundle_path: str | None = None
) -> httpx.Client:
    """HTTP client with full certificate verification for authenticated calls."""

    context = ssl.create_default_context(cafile=ca_bundle_path or certifi.where())
    return httpx.Client(verify=context, timeout=timeout, follow_redirects=True)


def _load_certificate(raw: Any) -> x509.Certificate:
    if isinstance(raw, (bytes, bytearray)):
        return x509.load_der_x509_certificate(bytes(raw))
    # ``_ssl.Certificate`` objects render PEM by default.
    pem = raw.public_bytes()
    if isinstance(pem, str):
        pem = pem.encode("ascii")
    return x509.load_pem_x509_certificate(pem)


def extract_peer_chain(ssl_object: Any) -> tuple[x509.Certificate, ...]:
    """Return the chain exactly as presented by the peer, leaf first."""

    get_chain = getattr(ssl_object, "get_unverified_chain", None)
    if get_chain is not None:
        raw_chain: Sequence[Any] | None = get_chain()
        if raw_chain:
            return tuple(_load_certificate(item) for item in raw_chain)
    leaf = ssl_object.getpeercert(True)
    if not leaf:
        return ()
    return (_load_certificate(leaf),)


def connection_state_from_ssl(ssl_object: Any, host: str) -> ConnectionState:
    protocol_name = ssl_object.version() or ""
    server_name = getattr(ssl_object, "server_hostname", None) or host
    return ConnectionState(
        version=version_from_protocol_name(protocol_name),
        server_name=server_name,
        peer_certificates=extract_peer_chain(ssl_object),
        protocol_name=protocol_name,
    )


class NetworkProbe:
    """Perform one header-only HTTPS request per host and capture the TLS state."""

    def __init__(
        self,
        client_factory: ProbeClientFactory | None = None,
        *,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
        logger: BoundLogger | None = None,
    ) -> None:
        self._client_factory = client_factory or (lambda: create_probe_client(timeout=timeout))
        self._logger = logger or get_logger("envtriage.probe")

    def handshake(self, host: str) -> ConnectionState:
        url = probe_url(host)
        log_probe_event(self._logger, "probe.start", host=host, url=url)
        try:
            with self._client_factory() as client:
                with client.stream("HEAD", url) as response:
                    network_stream = response.extensions.get("network_stream")
                    ssl_object = (
                        network_stream.get_extra_info("ssl_object")
                        if network_stream is not None
                        else None
                    )
                    if ssl_object is None:
                        raise ProbeTransportError(host, url, "no TLS session information available")
                    state = connection_state_from_ssl(ssl_object, host)
        except (httpx.HTTPError, httpx.InvalidURL, ssl.SSLError, OSError, ValueError) as exc:
            log_probe_event(self._logger, "probe.failed", host=host, url=url, error=str(exc))
            raise ProbeTransportError(host, url, exc) from exc
        log_probe_event(
            self._logger,
            "probe.completed",
            host=host,
            protocol=state.protocol_name,
            server_name=state.server_name,
            chain_length=len(state.peer_certificates),
        )
        return state


__all__ = [
    "ConnectionState",
    "NetworkProbe",
    "ProbeClientFactory",
    "connection_state_from_ssl",
    "create_probe_client",
    "create_probe_ssl_context",
    "create_verified_client",
    "extract_peer_chain",
    "probe_url",
]
