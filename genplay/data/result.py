"""Outcome of one playground run."""

from enum import Enum
from typing import Optional

from pydantic import Field

from .utils import FrozenModelWithDocstrings


class Stage(str, Enum):
    """Pipeline stages. Each stage has its own error namespace."""

    PLUGIN_COMPILE = "plugin_compile"
    """Compiling and instantiating the source generator plugin."""
    TRANSFORMATION = "transformation"
    """Running the generators over the parsed program."""
    PROGRAM_COMPILE = "program_compile"
    """Compiling the program together with the generated sources."""
    EXECUTION = "execution"
    """Loading and running the compiled program."""


class ErrorKind(str, Enum):
    """Taxonomy of run failures."""

    INPUT_MISSING = "INPUT_MISSING"
    """The program or the plugin source is empty or whitespace."""
    COMPILE_DIAGNOSTICS = "COMPILE_DIAGNOSTICS"
    """One or more error diagnostics from parsing, compiling or transforming."""
    EMIT_FAILURE = "EMIT_FAILURE"
    """Compilation succeeded but emission failed or produced nothing."""
    PLUGIN_INSTANTIATION_FAILURE = "PLUGIN_INSTANTIATION_FAILURE"
    """The plugin compiled but no generator could be activated."""
    EXECUTION_SHAPE_ERROR = "EXECUTION_SHAPE_ERROR"
    """Entry point missing, wrong arity or unsupported return shape."""
    EXECUTION_RUNTIME_FAILURE = "EXECUTION_RUNTIME_FAILURE"
    """An exception escaped the program while it ran."""
    INFRASTRUCTURE_FAILURE = "INFRASTRUCTURE_FAILURE"
    """The reference set could not be resolved."""


class RunResult(FrozenModelWithDocstrings):
    """The three text panes produced by a run, plus what failed (if anything).

    ``error_text`` is non-empty if and only if some stage failed.
    """

    generated_source_text: str = ""
    """Report of the sources contributed by the generators."""
    program_output_text: str = ""
    """Captured standard output of the program."""
    error_text: str = ""
    """Stage-scoped error report."""
    error_kind: Optional[ErrorKind] = Field(default=None)
    """Kind of the failure, None on success."""
    stage: Optional[Stage] = Field(default=None)
    """Stage that failed, None on success or for infrastructure failures."""

    @property
    def succeeded(self) -> bool:
        return not self.error_text
