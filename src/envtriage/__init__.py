"""Top-level envtriage package API."""

from envtriage.application.diagnostics import print_diagnostics, run_diagnostics
from envtriage.domain.report import (
    CheckStatus,
    CheckType,
    DiagnosticCheck,
    DiagnosticReport,
    TrustTable,
)

__all__ = [
    "CheckStatus",
    "CheckType",
    "DiagnosticCheck",
    "DiagnosticReport",
    "TrustTable",
    "print_diagnostics",
    "run_diagnostics",
]
