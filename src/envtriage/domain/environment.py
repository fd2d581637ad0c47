"""Local environment facts and filesystem capability checks."""

from __future__ import annotations

import os
import platform
import re
import shutil
import sys
import tempfile
import uuid
from collections.abc import Callable
from importlib import metadata
from pathlib import Path
from typing import Final

import certifi

from envtriage.domain.report import CheckCategory, CheckStatus, CheckType, DiagnosticCheck

HOME_ENV_VAR: Final = "ENVTRIAGE_HOME"
LONG_PATH_TARGET_LENGTH: Final = 260
_VALID_LOCATION = re.compile(r"^[A-Za-z0-9._:/\\~-]+$")


def _text(source: Callable[[], object]) -> str:
    try:
        return str(source())
    except (OSError, RuntimeError, KeyError):
        return ""


def package_version() -> str:
    try:
        return metadata.version("envtriage")
    except metadata.PackageNotFoundError:
        return "unknown"


def user_cache_dir() -> str:
    if sys.platform == "win32":
        return os.environ.get("LOCALAPPDATA", "")
    if sys.platform == "darwin":
        return str(Path.home() / "Library" / "Caches")
    return os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")


def user_config_dir() -> str:
    if sys.platform == "win32":
        return os.environ.get("APPDATA", "")
    if sys.platform == "darwin":
        return str(Path.home() / "Library" / "Application Support")
    return os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")


def collect_details(*, home: str, ca_bundle_path: str | None = None) -> dict[str, str]:
    """Snapshot static environment facts; unreadable facts become empty strings."""

    return {
        "executable": sys.executable,
        "envtriage": package_version(),
        "python": platform.python_version(),
        HOME_ENV_VAR: home,
        "user-cache-dir": _text(user_cache_dir),
        "user-config-dir": _text(user_config_dir),
        "user-home-dir": _text(Path.home),
        "working-dir": _text(os.getcwd),
        "tempdir": tempfile.gettempdir(),
        "os": f"{platform.system().lower()} {platform.machine().lower()}",
        "cpus": str(os.cpu_count() or 0),
        "ca-bundle": ca_bundle_path or certifi.where(),
    }


def is_valid_location(path: str) -> bool:
    return bool(_VALID_LOCATION.match(path))


def home_directory_check(home: str, *, link: str = "") -> DiagnosticCheck:
    if not is_valid_location(home):
        return DiagnosticCheck(
            type=CheckType.RPA,
            category=CheckCategory.RPA_HOME,
            status=CheckStatus.FATAL,
            message=f"{HOME_ENV_VAR} ({home}) contains characters that makes automation fail.",
            link=link,
        )
    return DiagnosticCheck(
        type=CheckType.RPA,
        category=CheckCategory.RPA_HOME,
        status=CheckStatus.OK,
        message=f"{HOME_ENV_VAR} ({home}) is good enough.",
        link=link,
    )


def has_long_path_support(base_dir: str | None = None) -> bool:
    """Create and remove a directory tree deeper than the legacy 260 character limit."""

    base = Path(base_dir or tempfile.gettempdir()) / f"envtriage-longpath-{uuid.uuid4().hex[:8]}"
    target = base
    segment = "x" * 32
    while len(str(target)) <= LONG_PATH_TARGET_LENGTH:
        target = target / segment
    try:
        target.mkdir(parents=True)
        (target / "probe.txt").write_text("ok", encoding="utf-8")
        return True
    except OSError:
        return False
    finally:
        shutil.rmtree(base, ignore_errors=True)


def long_path_support_check(
    *, link: str = "", probe: Callable[[], bool] = has_long_path_support
) -> DiagnosticCheck:
    if probe():
        return DiagnosticCheck(
            type=CheckType.OS,
            category=CheckCategory.OS_LONG_PATH,
            status=CheckStatus.OK,
            message="Supports long enough paths.",
            link=link,
        )
    return DiagnosticCheck(
        type=CheckType.OS,
        category=CheckCategory.OS_LONG_PATH,
        status=CheckStatus.FAIL,
        message="Does not support long path names!",
        link=link,
    )


__all__ = [
    "HOME_ENV_VAR",
    "collect_details",
    "has_long_path_support",
    "home_directory_check",
    "is_valid_location",
    "long_path_support_check",
    "package_version",
    "user_cache_dir",
    "user_config_dir",
]
