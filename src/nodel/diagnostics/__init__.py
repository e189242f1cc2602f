"""Diagnostic collection for recovered graph operation failures."""

from .error_collector import (
    Diagnostic,
    DiagnosticSummary,
    ErrorCollector,
    ErrorContext,
    ErrorSeverity,
    create_error_collector,
)

__all__ = [
    "Diagnostic",
    "DiagnosticSummary",
    "ErrorCollector",
    "ErrorContext",
    "ErrorSeverity",
    "create_error_collector",
]
