"""Assemble every check of a diagnostics run into one ordered report.

The run is strictly sequential: environment facts, filesystem and home checks,
DNS per host, the canary download, then one TLS probe and verification per
host.  Check order in the report mirrors that execution order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Final

from cryptography import x509

from envtriage.application.formatter import open_sink, write_report
from envtriage.config.settings import RuntimeSettings
from envtriage.domain.environment import (
    collect_details,
    home_directory_check,
    long_path_support_check,
)
from envtriage.domain.network import (
    CanaryClientFactory,
    Resolver,
    canary_download_check,
    dns_lookup_check,
    lookup_host,
)
from envtriage.domain.report import (
    CheckCategory,
    CheckStatus,
    CheckType,
    DiagnosticCheck,
    DiagnosticReport,
    TrustTable,
)
from envtriage.domain.tls.probe import NetworkProbe, create_verified_client
from envtriage.domain.tls.verifier import CertificateChainVerifier, load_root_pool, quote
from envtriage.domain.tls.versions import classify_version, version_status
from envtriage.infrastructure.errors import OutputSinkError, ProbeTransportError, RootPoolError
from envtriage.infrastructure.logging import BoundLogger, attach_run_context, get_logger, log_event

DOCS_NETWORK: Final = "troubleshooting/firewall-and-proxies"
DOCS_LONG_PATH: Final = "troubleshooting/windows-long-path"
DOCS_GENERAL: Final = "troubleshooting"

DetailsCollector = Callable[[RuntimeSettings], dict[str, str]]
LongPathProbe = Callable[[], bool]


def _default_details(settings: RuntimeSettings) -> dict[str, str]:
    return collect_details(home=settings.home, ca_bundle_path=settings.ca_bundle_path)


def tls_check_host(
    host: str,
    *,
    probe: NetworkProbe,
    verifier: CertificateChainVerifier,
    link: str = "",
) -> list[DiagnosticCheck]:
    """Probe ``host`` and report its negotiated version and chain trust."""

    try:
        state = probe.handshake(host)
    except ProbeTransportError as exc:
        return [
            DiagnosticCheck(
                type=CheckType.NETWORK,
                category=CheckCategory.NETWORK_LINK,
                status=CheckStatus.WARNING,
                message=exc.user_message,
                link=link,
            )
        ]

    checks: list[DiagnosticCheck] = []
    label, known = classify_version(state.version)
    if not known:
        checks.append(
            DiagnosticCheck(
                type=CheckType.NETWORK,
                category=CheckCategory.NETWORK_TLS_VERSION,
                status=CheckStatus.WARNING,
                message=f"unknown TLS version: {quote(host)} -> {label}",
                link=link,
            )
        )
    else:
        checks.append(
            DiagnosticCheck(
                type=CheckType.NETWORK,
                category=CheckCategory.NETWORK_TLS_VERSION,
                status=version_status(state.version),
                message=f"TLS version: {quote(host)} -> {label}",
                link=link,
            )
        )
    checks.extend(verifier.verify(host, state))
    return checks


class DiagnosticsRunner:
    """Run every check once, in order, and return the finished report."""

    def __init__(
        self,
        settings: RuntimeSettings,
        *,
        logger: BoundLogger | None = None,
        probe: NetworkProbe | None = None,
        roots: Sequence[x509.Certificate] | None = None,
        trust_table: TrustTable | None = None,
        resolver: Resolver = lookup_host,
        canary_client_factory: CanaryClientFactory | None = None,
        details_collector: DetailsCollector = _default_details,
        long_path_probe: LongPathProbe | None = None,
    ) -> None:
        self._settings = settings
        self._logger = attach_run_context(logger or get_logger("envtriage.diagnostics"))
        self._probe = probe or NetworkProbe(timeout=settings.timeout, logger=self._logger)
        self._roots = roots
        self.trust_table = trust_table if trust_table is not None else TrustTable()
        self._resolver = resolver
        self._canary_client_factory = canary_client_factory or (
            lambda: create_verified_client(
                timeout=settings.timeout, ca_bundle_path=settings.ca_bundle_path
            )
        )
        self._details_collector = details_collector
        self._long_path_probe = long_path_probe

    def _resolve_roots(self, report: DiagnosticReport, link: str) -> Sequence[x509.Certificate]:
        if self._roots is not None:
            return self._roots
        try:
            return load_root_pool(self._settings.ca_bundle_path)
        except RootPoolError as exc:
            log_event(self._logger, "tls.roots.unavailable", level=logging.WARNING, **exc.log_fields())
            report.add(
                DiagnosticCheck(
                    type=CheckType.NETWORK,
                    category=CheckCategory.NETWORK_TLS_VERIFY,
                    status=CheckStatus.WARNING,
                    message=exc.user_message,
                    link=link,
                )
            )
            return []

    def _long_path_check(self) -> DiagnosticCheck:
        link = self._settings.docs_link(DOCS_LONG_PATH)
        if self._long_path_probe is None:
            return long_path_support_check(link=link)
        return long_path_support_check(link=link, probe=self._long_path_probe)

    def run(self) -> DiagnosticReport:
        settings = self._settings
        network_link = settings.docs_link(DOCS_NETWORK)
        report = DiagnosticReport()
        log_event(
            self._logger,
            "diagnostics.run.start",
            dns_hosts=len(settings.dns_hosts),
            tls_hosts=len(settings.tls_hosts),
            debug=settings.debug,
        )

        report.details.update(self._details_collector(settings))

        report.add(self._long_path_check())
        report.add(home_directory_check(settings.home, link=settings.docs_link(DOCS_GENERAL)))

        for host in settings.dns_hosts:
            report.add(dns_lookup_check(host, link=network_link, resolver=self._resolver))

        report.add(
            canary_download_check(
                settings.canary_url,
                settings.canary_content,
                client_factory=self._canary_client_factory,
                link=network_link,
            )
        )

        if settings.tls_hosts:
            verifier = CertificateChainVerifier(
                self._resolve_roots(report, network_link),
                self.trust_table,
                debug=settings.debug,
                link=network_link,
                logger=self._logger,
            )
            for host in settings.tls_hosts:
                report.extend(
                    tls_check_host(host, probe=self._probe, verifier=verifier, link=network_link)
                )

        log_event(
            self._logger,
            "diagnostics.run.completed",
            checks=len(report.checks),
            worst_status=report.worst_status().value,
            trusted_issuers=sum(1 for trusted in self.trust_table.as_dict().values() if trusted),
            untrusted_issuers=sum(1 for trusted in self.trust_table.as_dict().values() if not trusted),
        )
        return report


def run_diagnostics(settings: RuntimeSettings, **kwargs) -> DiagnosticReport:
    """Convenience wrapper building a :class:`DiagnosticsRunner` and running it."""

    return DiagnosticsRunner(settings, **kwargs).run()


def print_diagnostics(
    settings: RuntimeSettings,
    *,
    filename: str | None = None,
    as_json: bool = False,
    **kwargs,
) -> DiagnosticReport:
    """Open the sink first, run every check, then write the rendered report.

    Only reporting-path failures escape: :class:`OutputSinkError` when the sink
    cannot be opened or written and :class:`ReportSerializationError` when the
    report cannot be rendered.
    """

    with open_sink(filename) as sink:
        report = run_diagnostics(settings, **kwargs)
        try:
            write_report(report, sink, as_json=as_json)
        except OSError as exc:
            raise OutputSinkError(filename or "<stdout>", exc) from exc
    return report


__all__ = [
    "DOCS_GENERAL",
    "DOCS_LONG_PATH",
    "DOCS_NETWORK",
    "DiagnosticsRunner",
    "print_diagnostics",
    "run_diagnostics",
    "tls_check_host",
]
