"""Defaults and small normalization helpers shared by config and CLI."""

from __future__ import annotations

from typing import Final

TRUTHY_STRINGS = {"1", "true", "yes", "on"}
FALSY_STRINGS = {"0", "false", "no", "off"}


CONFIG_BASENAME = "config"
DEFAULT_CONFIG_FILENAME = f"{CONFIG_BASENAME}.toml"
LOCAL_CONFIG_FILENAME = f"{CONFIG_BASENAME}.local.toml"

DEFAULT_CHECKED_HOSTS: Final[tuple[str, ...]] = (
    "pypi.org",
    "files.pythonhosted.org",
    "github.com",
    "conda.anaconda.org",
    "downloads.robocorp.com",
)
DEFAULT_CANARY_URL: Final = "https://downloads.robocorp.com/canary.txt"
DEFAULT_CANARY_CONTENT: Final = "Used to testing connections"
DEFAULT_DOCS_BASE_URL: Final = "https://robocorp.com/docs/"
DEFAULT_PROBE_TIMEOUT: Final = 10.0
DEFAULT_HOME_DIRNAME: Final = ".envtriage"


def split_host_list(value: object | None) -> tuple[str, ...]:
    """Normalize a comma separated string or a sequence into a host tuple."""

    if value is None:
        return ()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = [str(item) for item in value]
    else:
        return ()
    hosts: list[str] = []
    for item in items:
        candidate = item.strip().lower()
        if candidate:
            hosts.append(candidate)
    return tuple(hosts)


__all__ = [
    "split_host_list",
    "TRUTHY_STRINGS",
    "FALSY_STRINGS",
    "CONFIG_BASENAME",
    "DEFAULT_CONFIG_FILENAME",
    "LOCAL_CONFIG_FILENAME",
    "DEFAULT_CHECKED_HOSTS",
    "DEFAULT_CANARY_URL",
    "DEFAULT_CANARY_CONTENT",
    "DEFAULT_DOCS_BASE_URL",
    "DEFAULT_PROBE_TIMEOUT",
    "DEFAULT_HOME_DIRNAME",
]
