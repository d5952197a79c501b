"""Stage-scoped errors raised inside the pipeline and turned into error text by the runner."""

from __future__ import annotations

from typing import ClassVar, Iterable, Optional, Sequence

from genplay.data import Diagnostic, ErrorKind, Stage

EXECUTION_HEADER = "Error executing program:"


def format_error_text(header: str, entries: Iterable[str] = ()) -> str:
    """Format an error report: a header line, a blank line, then one entry per line.

    A report without entries is the header alone.
    """
    entries = [str(entry) for entry in entries]
    if not entries:
        return header
    return header + "\n\n" + "\n".join(entries)


class PlaygroundError(RuntimeError):
    """Base class of every failure reported to the user.

    Attributes
    ----------
    kind : ErrorKind
        The failure family.
    stage : Optional[Stage]
        The stage that failed, None for infrastructure failures.
    text : str
        The complete, human-readable error report.
    """

    kind: ClassVar[ErrorKind]

    def __init__(self, stage: Optional[Stage], text: str) -> None:
        super().__init__(text)
        self.stage = stage
        self.text = text


class InputMissingError(PlaygroundError):
    kind = ErrorKind.INPUT_MISSING


class CompileDiagnosticsError(PlaygroundError):
    """Raised when a stage produced error diagnostics."""

    kind = ErrorKind.COMPILE_DIAGNOSTICS

    def __init__(self, stage: Stage, header: str, diagnostics: Sequence[Diagnostic]) -> None:
        super().__init__(stage, format_error_text(header, diagnostics))
        self.diagnostics = list(diagnostics)


class EmitFailureError(PlaygroundError):
    kind = ErrorKind.EMIT_FAILURE

    def __init__(
        self, stage: Stage, header: str, diagnostics: Sequence[Diagnostic] = ()
    ) -> None:
        super().__init__(stage, format_error_text(header, diagnostics))
        self.diagnostics = list(diagnostics)


class PluginInstantiationError(PlaygroundError):
    kind = ErrorKind.PLUGIN_INSTANTIATION_FAILURE

    def __init__(self, header: str, entries: Iterable[str] = ()) -> None:
        super().__init__(Stage.PLUGIN_COMPILE, format_error_text(header, entries))


class ExecutionShapeError(PlaygroundError):
    """Raised when the program has no usable entry point."""

    kind = ErrorKind.EXECUTION_SHAPE_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(Stage.EXECUTION, format_error_text(EXECUTION_HEADER, [message]))
        self.message = message


class ExecutionRuntimeError(PlaygroundError):
    """Raised when the program failed while running.

    The error text carries the output captured before the failure, so partial output is
    never lost.
    """

    kind = ErrorKind.EXECUTION_RUNTIME_FAILURE

    def __init__(self, partial_output: str, description: str) -> None:
        text = format_error_text(EXECUTION_HEADER, [description])
        if partial_output:
            text = partial_output + "\n\n" + text
        super().__init__(Stage.EXECUTION, text)
        self.partial_output = partial_output
        self.description = description


class ReferenceResolutionError(PlaygroundError):
    """Raised when the reference set cannot be resolved. Never a user-code error."""

    kind = ErrorKind.INFRASTRUCTURE_FAILURE

    def __init__(self, description: str) -> None:
        super().__init__(None, format_error_text("Could not resolve references:", [description]))
        self.description = description
