"""Data layer with strongly-typed models for genplay."""

from . import diagnostic_ids
from .result import ErrorKind, RunResult, Stage
from .source import Diagnostic, DiagnosticSeverity, Location, SourceUnit

__all__ = [
    # Source types
    "SourceUnit",
    "Diagnostic",
    "DiagnosticSeverity",
    "Location",
    "diagnostic_ids",
    # Result types
    "RunResult",
    "ErrorKind",
    "Stage",
]
