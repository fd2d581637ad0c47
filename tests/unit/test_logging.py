from __future__ import annotations

import json
import logging
from pathlib import Path

from envtriage.config.settings import LoggingSettings
from envtriage.infrastructure.logging import (
    attach_run_context,
    configure_logging,
    get_logger,
    log_event,
    log_probe_event,
)


def _settings(tmp_path: Path, *, level: int = logging.DEBUG, fmt: str = "json") -> LoggingSettings:
    return LoggingSettings(
        level=level,
        format=fmt,
        file_path=str(tmp_path / "envtriage.log"),
        max_bytes=1_000_000,
        backup_count=1,
    )


def _records(tmp_path: Path) -> list[dict]:
    lines = (tmp_path / "envtriage.log").read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines if line.strip()]


def test_json_logs_carry_event_and_fields(tmp_path: Path) -> None:
    configure_logging(_settings(tmp_path))
    logger = get_logger("envtriage.test")

    log_event(logger, "diagnostics.run.start", message="starting", tls_hosts=3, ignored=None)

    record = _records(tmp_path)[-1]
    assert record["event"] == "diagnostics.run.start"
    assert record["summary"] == "starting"
    assert record["tls_hosts"] == 3
    assert record["level"] == "info"
    assert record["logger"] == "envtriage.test"
    assert "ignored" not in record
    assert "timestamp" in record


def test_probe_events_are_namespaced(tmp_path: Path) -> None:
    configure_logging(_settings(tmp_path))
    logger = get_logger("envtriage.probe")

    log_probe_event(logger, "probe.failed", host="pypi.org", error="timed out")

    record = _records(tmp_path)[-1]
    assert record["event"] == "tls.probe.failed"
    assert record["host"] == "pypi.org"
    assert record["level"] == "debug"


def test_level_filters_debug_events(tmp_path: Path) -> None:
    configure_logging(_settings(tmp_path, level=logging.INFO))
    logger = get_logger("envtriage.probe")

    log_probe_event(logger, "probe.start", host="pypi.org")
    log_event(logger, "diagnostics.run.completed", checks=4)

    assert [record["event"] for record in _records(tmp_path)] == ["diagnostics.run.completed"]


def test_run_context_is_bound(tmp_path: Path) -> None:
    configure_logging(_settings(tmp_path))
    logger = attach_run_context(get_logger("envtriage.test"), host=None, mode="json")

    log_event(logger, "diagnostics.run.start")
    log_event(logger, "diagnostics.run.completed")

    first, second = _records(tmp_path)[-2:]
    assert len(first["run_id"]) == 32
    assert first["run_id"] == second["run_id"]
    assert first["mode"] == "json"
    assert "host" not in first


def test_explicit_run_id(tmp_path: Path) -> None:
    configure_logging(_settings(tmp_path))
    logger = attach_run_context(get_logger("envtriage.test"), run_id="run-1")

    log_event(logger, "diagnostics.run.start")

    assert _records(tmp_path)[-1]["run_id"] == "run-1"


def test_text_format_writes_plain_lines(tmp_path: Path) -> None:
    configure_logging(_settings(tmp_path, fmt="text"))

    log_event(get_logger("envtriage.test"), "diagnostics.run.start", tls_hosts=2)

    text = (tmp_path / "envtriage.log").read_text(encoding="utf-8")
    assert "diagnostics.run.start" in text
    assert "tls_hosts=2" in text


def test_reconfigure_replaces_handlers(tmp_path: Path) -> None:
    configure_logging(_settings(tmp_path))
    configure_logging(_settings(tmp_path))

    root = logging.getLogger()
    assert len(root.handlers) == 2
