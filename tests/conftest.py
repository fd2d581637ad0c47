from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Iterator

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from envtriage.config.settings import ENVIRONMENT_MAP, LoggingSettings
from envtriage.infrastructure.logging import configure_logging


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("envtriage")
    group.addoption(
        "--offline",
        action="store_true",
        dest="envtriage_offline",
        help="Run offline tests only (deselect tests marked 'online').",
    )
    group.addoption(
        "--online-only",
        action="store_true",
        dest="envtriage_online_only",
        help="Run only tests marked 'online' (deselect offline).",
    )


def _is_integration_path(s: str) -> bool:
    s = s.replace("\\", "/")
    return s.startswith("tests/integration/") or "/tests/integration/" in s


def _mark_by_path(items: list[pytest.Item]) -> None:
    for item in items:
        node_str = str(getattr(item, "fspath", item.nodeid))
        marker = pytest.mark.online if _is_integration_path(node_str) else pytest.mark.offline
        item.add_marker(marker)


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    _mark_by_path(items)

    offline_only = bool(config.getoption("envtriage_offline"))
    online_only = bool(config.getoption("envtriage_online_only"))

    if offline_only and online_only:
        raise pytest.UsageError("--offline and --online-only are mutually exclusive")

    deselect: list[pytest.Item] = []
    if online_only:
        deselect = [i for i in items if "online" not in i.keywords]
    elif offline_only:
        deselect = [i for i in items if "online" in i.keywords]

    if not deselect:
        return

    config.hook.pytest_deselected(items=deselect)
    items[:] = [i for i in items if i not in deselect]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[pytest.MonkeyPatch]:
    """Remove every ENVTRIAGE_* variable the settings layer reads."""

    for env_var in (*ENVIRONMENT_MAP, "ENVTRIAGE_CONFIG", "DEBUG"):
        monkeypatch.delenv(env_var, raising=False)
    yield monkeypatch


@pytest.fixture(autouse=True)
def _quiet_logging() -> Iterator[None]:
    """Route structlog through stderr at WARNING so stdout stays report-only."""

    configure_logging(
        LoggingSettings(
            level=logging.WARNING,
            format="text",
            file_path=None,
            max_bytes=1_000_000,
            backup_count=1,
        )
    )
    yield


# Test PKI -------------------------------------------------------------------


def _name(common_name: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])


class CertificateAuthority:
    """Root, or intermediate when ``parent`` is given, able to issue server certificates."""

    def __init__(self, common_name: str, parent: CertificateAuthority | None = None) -> None:
        self.key = ec.generate_private_key(ec.SECP256R1())
        self.name = _name(common_name)
        now = dt.datetime.now(dt.timezone.utc)
        public_key = self.key.public_key()
        signer = parent or self
        self.certificate = (
            x509.CertificateBuilder()
            .subject_name(self.name)
            .issuer_name(signer.name)
            .public_key(public_key)
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - dt.timedelta(days=1))
            .not_valid_after(now + dt.timedelta(days=365))
            .add_extension(
                x509.BasicConstraints(ca=True, path_length=None if parent is None else 0), critical=True
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(x509.SubjectKeyIdentifier.from_public_key(public_key), critical=False)
            .add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_public_key(signer.key.public_key()), critical=False
            )
            .sign(signer.key, hashes.SHA256())
        )

    @property
    def issuer(self) -> str:
        return self.name.rfc4514_string()

    def intermediate(self, common_name: str) -> CertificateAuthority:
        return CertificateAuthority(common_name, parent=self)

    def issue(self, *hostnames: str) -> x509.Certificate:
        key = ec.generate_private_key(ec.SECP256R1())
        now = dt.datetime.now(dt.timezone.utc)
        return (
            x509.CertificateBuilder()
            .subject_name(_name(hostnames[0]))
            .issuer_name(self.name)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - dt.timedelta(days=1))
            .not_valid_after(now + dt.timedelta(days=30))
            .add_extension(
                x509.SubjectAlternativeName([x509.DNSName(name) for name in hostnames]),
                critical=False,
            )
            .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=False,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)
            .add_extension(
                x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False
            )
            .add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_public_key(self.key.public_key()),
                critical=False,
            )
            .sign(self.key, hashes.SHA256())
        )


@pytest.fixture(scope="session")
def trusted_ca() -> CertificateAuthority:
    return CertificateAuthority("EnvTriage Test Root")


@pytest.fixture(scope="session")
def proxy_ca() -> CertificateAuthority:
    """Stands in for a TLS-intercepting corporate proxy that is not trusted."""

    return CertificateAuthority("Corp Proxy CA")


@pytest.fixture(scope="session")
def issuing_ca(trusted_ca: CertificateAuthority) -> CertificateAuthority:
    """Intermediate signed by ``trusted_ca``; only the root sits in the pool."""

    return trusted_ca.intermediate("EnvTriage Issuing CA")
