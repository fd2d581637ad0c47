from __future__ import annotations

import json
import socket
from pathlib import Path

import httpx
import pytest

from envtriage.application.diagnostics import (
    DiagnosticsRunner,
    print_diagnostics,
    run_diagnostics,
    tls_check_host,
)
from envtriage.config.constants import DEFAULT_CANARY_CONTENT
from envtriage.config.settings import RuntimeSettings
from envtriage.domain.report import CheckCategory, CheckStatus, CheckType, DiagnosticReport, TrustTable
from envtriage.domain.tls.probe import ConnectionState
from envtriage.domain.tls.verifier import CertificateChainVerifier
from envtriage.infrastructure.errors import OutputSinkError, ProbeTransportError

NETWORK_LINK = "https://docs.example/troubleshooting/firewall-and-proxies"


class FakeProbe:
    def __init__(self, outcomes: dict[str, ConnectionState | Exception]) -> None:
        self._outcomes = outcomes
        self.calls: list[str] = []

    def handshake(self, host: str) -> ConnectionState:
        self.calls.append(host)
        outcome = self._outcomes[host]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _resolver(host: str) -> list[str]:
    if host.endswith(".invalid"):
        raise socket.gaierror(-2, "Name or service not known")
    return ["192.0.2.10"]


def _canary_factory(status: int = 200, text: str = DEFAULT_CANARY_CONTENT):
    return lambda: httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(status, text=text)))


def _settings(**overrides) -> RuntimeSettings:
    values = {
        "home": "/home/user/.envtriage",
        "docs_base_url": "https://docs.example",
        "dns_hosts": ("good.test",),
        "tls_hosts": ("good.test",),
        "canary_url": "https://downloads.example/canary.txt",
    }
    values.update(overrides)
    return RuntimeSettings(**values)


def _runner(settings: RuntimeSettings, probe: FakeProbe, **kwargs) -> DiagnosticsRunner:
    kwargs.setdefault("roots", None)
    kwargs.setdefault("canary_client_factory", _canary_factory())
    return DiagnosticsRunner(
        settings,
        probe=probe,  # type: ignore[arg-type]
        resolver=_resolver,
        details_collector=lambda s: {"os": "linux x86_64", "ENVTRIAGE_HOME": s.home},
        long_path_probe=lambda: True,
        **kwargs,
    )


def test_checks_follow_execution_order(trusted_ca) -> None:
    leaf = trusted_ca.issue("good.test")
    probe = FakeProbe({"good.test": ConnectionState(0x0304, "good.test", (leaf,))})
    settings = _settings(dns_hosts=("good.test", "gone.invalid"))

    report = _runner(settings, probe, roots=[trusted_ca.certificate]).run()

    assert [check.category for check in report.checks] == [
        CheckCategory.OS_LONG_PATH,
        CheckCategory.RPA_HOME,
        CheckCategory.NETWORK_DNS,
        CheckCategory.NETWORK_DNS,
        CheckCategory.NETWORK_CANARY,
        CheckCategory.NETWORK_TLS_VERSION,
        CheckCategory.NETWORK_TLS_VERIFY,
    ]
    assert report.checks[3].status is CheckStatus.FAIL
    assert report.details == {"os": "linux x86_64", "ENVTRIAGE_HOME": "/home/user/.envtriage"}
    assert probe.calls == ["good.test"]


def test_good_old_and_unreachable_hosts(trusted_ca) -> None:
    leaf = trusted_ca.issue("good.test", "old.test")
    probe = FakeProbe(
        {
            "good.test": ConnectionState(0x0304, "good.test", (leaf,)),
            "old.test": ConnectionState(0x0301, "old.test", (leaf,)),
            "unreachable.test": ProbeTransportError(
                "unreachable.test", "https://unreachable.test/", "connection refused"
            ),
        }
    )
    settings = _settings(tls_hosts=("good.test", "old.test", "unreachable.test"))
    runner = _runner(settings, probe, roots=[trusted_ca.certificate])

    report = runner.run()
    tls_checks = [
        (check.category, check.status, check.message)
        for check in report.checks
        if check.category.value.startswith(("network-tls", "network-link"))
    ]

    issuer = '"CN=EnvTriage Test Root"'
    assert tls_checks == [
        (CheckCategory.NETWORK_TLS_VERSION, CheckStatus.OK, 'TLS version: "good.test" -> TLS 1.3'),
        (
            CheckCategory.NETWORK_TLS_VERIFY,
            CheckStatus.OK,
            f'TLS verification of "good.test" passed with certificate issued by {issuer}',
        ),
        (CheckCategory.NETWORK_TLS_VERSION, CheckStatus.WARNING, 'TLS version: "old.test" -> TLS 1.0'),
        (
            CheckCategory.NETWORK_TLS_VERIFY,
            CheckStatus.OK,
            f'TLS verification of "old.test" passed with certificate issued by {issuer}',
        ),
        (CheckCategory.NETWORK_LINK, CheckStatus.WARNING, "https://unreachable.test/ -> connection refused"),
    ]
    assert all(check.link == NETWORK_LINK for check in report.checks if check.type is CheckType.NETWORK)
    assert runner.trust_table.as_dict() == {trusted_ca.issuer: True}


def test_unknown_tls_version_is_reported(trusted_ca) -> None:
    leaf = trusted_ca.issue("odd.test")
    verifier = CertificateChainVerifier([trusted_ca.certificate], TrustTable())
    probe = FakeProbe({"odd.test": ConnectionState(0, "odd.test", (leaf,))})

    checks = tls_check_host("odd.test", probe=probe, verifier=verifier)  # type: ignore[arg-type]

    assert checks[0].status is CheckStatus.WARNING
    assert checks[0].message == 'unknown TLS version: "odd.test" -> 000'
    assert checks[1].status is CheckStatus.OK


def test_proxy_interception_marks_issuer_untrusted(trusted_ca, proxy_ca) -> None:
    probe = FakeProbe({"good.test": ConnectionState(0x0303, "good.test", (proxy_ca.issue("good.test"),))})
    runner = _runner(_settings(debug=True), probe, roots=[trusted_ca.certificate])

    report = runner.run()

    assert report.checks[-2].category is CheckCategory.NETWORK_TLS_VERIFY
    assert report.checks[-2].status is CheckStatus.WARNING
    assert report.checks[-1].category is CheckCategory.NETWORK_TLS_CHAIN
    assert runner.trust_table[proxy_ca.issuer] is False


def test_unloadable_root_pool_is_a_warning(tmp_path: Path, trusted_ca) -> None:
    leaf = trusted_ca.issue("good.test")
    probe = FakeProbe({"good.test": ConnectionState(0x0304, "good.test", (leaf,))})
    settings = _settings(ca_bundle_path=str(tmp_path / "missing.pem"))

    report = _runner(settings, probe).run()

    pool_check, version_check, verify_check = report.checks[-3:]
    assert pool_check.category is CheckCategory.NETWORK_TLS_VERIFY
    assert pool_check.status is CheckStatus.WARNING
    assert "could not be loaded" in pool_check.message
    assert version_check.status is CheckStatus.OK
    assert "no trusted root certificates available" in verify_check.message


def test_no_tls_hosts_skips_probe() -> None:
    probe = FakeProbe({})
    report = _runner(_settings(tls_hosts=()), probe).run()
    assert probe.calls == []
    assert report.checks[-1].category is CheckCategory.NETWORK_CANARY


def test_canary_failure_does_not_abort_run(trusted_ca) -> None:
    leaf = trusted_ca.issue("good.test")
    probe = FakeProbe({"good.test": ConnectionState(0x0304, "good.test", (leaf,))})

    report = run_diagnostics(
        _settings(),
        probe=probe,
        roots=[trusted_ca.certificate],
        resolver=_resolver,
        canary_client_factory=_canary_factory(503, "unavailable"),
        details_collector=lambda s: {},
        long_path_probe=lambda: False,
    )

    assert report.worst_status() is CheckStatus.FAIL
    canary = next(check for check in report.checks if check.category is CheckCategory.NETWORK_CANARY)
    assert canary.message == "Canary download failed: 503: unavailable"
    assert report.checks[-1].status is CheckStatus.OK


def test_print_diagnostics_writes_json_file(tmp_path: Path, trusted_ca) -> None:
    leaf = trusted_ca.issue("good.test")
    probe = FakeProbe({"good.test": ConnectionState(0x0304, "good.test", (leaf,))})
    target = tmp_path / "report.json"

    report = print_diagnostics(
        _settings(),
        filename=str(target),
        as_json=True,
        probe=probe,
        roots=[trusted_ca.certificate],
        resolver=_resolver,
        canary_client_factory=_canary_factory(),
        details_collector=lambda s: {"os": "linux"},
        long_path_probe=lambda: True,
    )

    payload = json.loads(target.read_text(encoding="utf-8"))
    assert list(payload) == ["details", "checks"]
    assert DiagnosticReport.model_validate(payload) == report


def test_print_diagnostics_to_stdout(capsys: pytest.CaptureFixture[str], trusted_ca) -> None:
    leaf = trusted_ca.issue("good.test")
    probe = FakeProbe({"good.test": ConnectionState(0x0304, "good.test", (leaf,))})

    print_diagnostics(
        _settings(),
        probe=probe,
        roots=[trusted_ca.certificate],
        resolver=_resolver,
        canary_client_factory=_canary_factory(),
        details_collector=lambda s: {"os": "linux"},
        long_path_probe=lambda: True,
    )

    out = capsys.readouterr().out
    assert out.startswith('Diagnostics:\n - os                ...  "linux"\n\nChecks:\n')
    assert " - network  ok       Canary download successful: https://downloads.example/canary.txt" in out


def test_print_diagnostics_opens_sink_before_running(tmp_path: Path) -> None:
    collected: list[RuntimeSettings] = []

    def collector(settings: RuntimeSettings) -> dict[str, str]:
        collected.append(settings)
        return {}

    with pytest.raises(OutputSinkError):
        print_diagnostics(
            _settings(),
            filename=str(tmp_path / "no-such-dir" / "report.json"),
            probe=FakeProbe({}),
            details_collector=collector,
        )

    assert collected == []
