"""Certificate chain verification against a trusted root pool.

Verification failures are findings, not errors: every outcome ends up as a
:class:`~envtriage.domain.report.DiagnosticCheck` and a
:class:`~envtriage.domain.report.TrustTable` entry.
"""

from __future__ import annotations

import ipaddress
import json
import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path

import certifi
from cryptography import x509
from cryptography.x509.verification import PolicyBuilder, Store, VerificationError

from envtriage.domain.report import (
    CheckCategory,
    CheckStatus,
    CheckType,
    DiagnosticCheck,
    TrustTable,
)
from envtriage.domain.tls.probe import ConnectionState
from envtriage.infrastructure.errors import RootPoolError
from envtriage.infrastructure.logging import BoundLogger, get_logger, log_event

Clock = Callable[[], datetime]

SIGNATURE_PREVIEW_BYTES = 6
CHAIN_DATE_FORMAT = "%Y-%b-%d"


def load_root_pool(ca_bundle_path: str | None = None) -> list[x509.Certificate]:
    """Load trust anchors from ``ca_bundle_path`` or the certifi bundle."""

    path = Path(ca_bundle_path).expanduser() if ca_bundle_path else Path(certifi.where())
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise RootPoolError(str(path), exc) from exc
    try:
        roots = x509.load_pem_x509_certificates(data)
    except ValueError as exc:
        raise RootPoolError(str(path), exc) from exc
    return roots


def quote(value: object) -> str:
    return json.dumps(str(value), ensure_ascii=False)


def _dns_names(certificate: x509.Certificate) -> list[str]:
    try:
        extension = certificate.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return []
    return extension.value.get_values_for_type(x509.DNSName)


def describe_certificate(index: int, certificate: x509.Certificate) -> str:
    preview = " ".join(f"{byte:02X}" for byte in certificate.signature[:SIGNATURE_PREVIEW_BYTES])
    names = ", ".join(_dns_names(certificate))
    before = certificate.not_valid_before_utc.strftime(CHAIN_DATE_FORMAT)
    after = certificate.not_valid_after_utc.strftime(CHAIN_DATE_FORMAT)
    return (
        f"#{index}: [{preview} ...] names [{names}] {before}...{after} "
        f"{quote(certificate.subject.rfc4514_string())} issued by "
        f"{quote(certificate.issuer.rfc4514_string())}"
    )


def describe_chain(certificates: Sequence[x509.Certificate]) -> str:
    return "; ".join(
        describe_certificate(index, certificate) for index, certificate in enumerate(certificates)
    )


def _subject_for(server_name: str) -> x509.GeneralName:
    try:
        return x509.IPAddress(ipaddress.ip_address(server_name))
    except ValueError:
        return x509.DNSName(server_name)


class CertificateChainVerifier:
    """Verify peer chains and keep the run's issuer trust table current."""

    def __init__(
        self,
        roots: Sequence[x509.Certificate],
        trust_table: TrustTable,
        *,
        debug: bool = False,
        link: str = "",
        clock: Clock | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self._roots = list(roots)
        self._trust_table = trust_table
        self._debug = debug
        self._link = link
        self._clock = clock
        self._logger = logger or get_logger("envtriage.verifier")
        self._store: Store | None = Store(self._roots) if self._roots else None

    @property
    def trust_table(self) -> TrustTable:
        return self._trust_table

    def _check(self, category: CheckCategory, status: CheckStatus, message: str) -> DiagnosticCheck:
        return DiagnosticCheck(
            type=CheckType.NETWORK,
            category=category,
            status=status,
            message=message,
            link=self._link,
        )

    def _verify_leaf(
        self,
        server_name: str,
        leaf: x509.Certificate,
        intermediates: list[x509.Certificate],
    ) -> str | None:
        """Return ``None`` when the chain verifies, otherwise the failure reason."""

        if self._store is None:
            return "no trusted root certificates available"
        builder = PolicyBuilder().store(self._store)
        if self._clock is not None:
            builder = builder.time(self._clock())
        try:
            verifier = builder.build_server_verifier(_subject_for(server_name))
            verifier.verify(leaf, intermediates)
        except (VerificationError, ValueError) as exc:
            return str(exc) or type(exc).__name__
        return None

    def verify(self, host: str, state: ConnectionState) -> list[DiagnosticCheck]:
        server = state.server_name
        certificates = list(state.peer_certificates)
        if not certificates:
            return [
                self._check(
                    CheckCategory.NETWORK_TLS_VERIFY,
                    CheckStatus.WARNING,
                    f"no certificates for {server}",
                )
            ]

        leaf, intermediates = certificates[0], certificates[1:]
        last_issuer = certificates[-1].issuer.rfc4514_string()
        reason = self._verify_leaf(server, leaf, intermediates)
        trusted = reason is None

        previous = self._trust_table.record(last_issuer, trusted)
        if previous is not None and previous != trusted:
            log_event(
                self._logger,
                "trust_table.issuer_flipped",
                level=logging.DEBUG,
                issuer=last_issuer,
                previous=previous,
                current=trusted,
                host=host,
            )

        if trusted:
            log_event(self._logger, "tls.verify.passed", level=logging.DEBUG, host=host, issuer=last_issuer)
            return [
                self._check(
                    CheckCategory.NETWORK_TLS_VERIFY,
                    CheckStatus.OK,
                    f"TLS verification of {quote(server)} passed with certificate "
                    f"issued by {quote(last_issuer)}",
                )
            ]

        log_event(
            self._logger,
            "tls.verify.failed",
            level=logging.WARNING,
            host=host,
            issuer=last_issuer,
            reason=reason,
        )
        checks = [
            self._check(
                CheckCategory.NETWORK_TLS_VERIFY,
                CheckStatus.WARNING,
                f"TLS verification of {quote(server)} failed, reason: {reason} "
                f"[last issuer: {quote(last_issuer)}]",
            )
        ]
        if self._debug:
            checks.append(
                self._check(
                    CheckCategory.NETWORK_TLS_CHAIN,
                    CheckStatus.WARNING,
                    f"{quote(host)} certificate chain is {{{describe_chain(certificates)}}}.",
                )
            )
        return checks


__all__ = [
    "CertificateChainVerifier",
    "describe_certificate",
    "describe_chain",
    "load_root_pool",
    "quote",
]
