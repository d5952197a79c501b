"""genplay: compile a source generator, apply it to a program, then compile and run it."""

from .cancellation import CancellationToken, OperationCancelled
from .config import PlaygroundConfig
from .data import Diagnostic, DiagnosticSeverity, ErrorKind, Location, RunResult, SourceUnit, Stage
from .errors import PlaygroundError
from .generators import (
    GeneratorExecutionContext,
    InitializationContext,
    SourceGenerator,
    SyntaxReceiver,
)
from .runner import Runner
from .scheduler import RunScheduler

__version__ = "0.1.0"

__all__ = [
    "Runner",
    "RunScheduler",
    "PlaygroundConfig",
    "RunResult",
    "ErrorKind",
    "Stage",
    "SourceUnit",
    "Diagnostic",
    "DiagnosticSeverity",
    "Location",
    "PlaygroundError",
    "SourceGenerator",
    "SyntaxReceiver",
    "InitializationContext",
    "GeneratorExecutionContext",
    "CancellationToken",
    "OperationCancelled",
]
