"""Render a :class:`DiagnosticReport` as JSON or human text to a sink."""

from __future__ import annotations

import json
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TextIO

from envtriage.domain.report import DiagnosticReport
from envtriage.infrastructure.errors import OutputSinkError

SINK_FILE_MODE = 0o600


def render_json(report: DiagnosticReport) -> str:
    return report.as_json()


def render_human(report: DiagnosticReport) -> str:
    lines = ["Diagnostics:"]
    for key in sorted(report.details):
        value = json.dumps(report.details[key], ensure_ascii=False)
        lines.append(f" - {key:<18}...  {value}")
    lines.append("")
    lines.append("Checks:")
    for check in report.checks:
        lines.append(f" - {check.type.value:<8} {check.status.value:<8} {check.message}")
    return "\n".join(lines)


def render(report: DiagnosticReport, *, as_json: bool) -> str:
    return render_json(report) if as_json else render_human(report)


@contextmanager
def open_sink(filename: str | None) -> Iterator[TextIO]:
    """Yield stdout, or ``filename`` created/truncated with owner-only permissions."""

    if not filename:
        yield sys.stdout
        return
    try:
        descriptor = os.open(filename, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, SINK_FILE_MODE)
    except OSError as exc:
        raise OutputSinkError(filename, exc) from exc
    with os.fdopen(descriptor, "w", encoding="utf-8") as handle:
        yield handle


def write_report(report: DiagnosticReport, sink: TextIO, *, as_json: bool) -> None:
    sink.write(render(report, as_json=as_json))
    sink.write("\n")
    sink.flush()


__all__ = [
    "SINK_FILE_MODE",
    "open_sink",
    "render",
    "render_human",
    "render_json",
    "write_report",
]
