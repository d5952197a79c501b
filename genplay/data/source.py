"""Strong-typed data definitions for compilable source units and their diagnostics."""

from enum import Enum
from pathlib import PurePosixPath
from typing import Optional

from pydantic import Field, model_validator

from .utils import FrozenModelWithDocstrings, NonEmptyString

SOURCE_SUFFIX = ".py"
"""Suffix of every logical source file name."""


class SourceUnit(FrozenModelWithDocstrings):
    """One compilable source file.

    A source unit is an immutable pair of source text and logical file name. The logical
    file name doubles as the module name under which the unit can be imported by the other
    units of the same compilation, so it must be a flat ``<identifier>.py`` name.
    """

    text: str
    """The complete text of the source file."""
    path: NonEmptyString
    """The logical file name, e.g. ``Program.py``. Used for diagnostics and tracebacks."""

    @model_validator(mode="after")
    def _validate_path(self) -> "SourceUnit":
        """Validate the logical file name.

        Raises
        ------
        ValueError
            If the name is nested, lacks the ``.py`` suffix, or its stem is not a valid
            Python identifier.
        """
        pure = PurePosixPath(self.path)
        if len(pure.parts) != 1 or "\\" in self.path:
            raise ValueError(f"Invalid source path (nested paths not allowed): {self.path}")
        if pure.suffix != SOURCE_SUFFIX:
            raise ValueError(
                f"Invalid source path (expected '{SOURCE_SUFFIX}' suffix): {self.path}"
            )
        if not pure.stem.isidentifier():
            raise ValueError(f"Invalid source path (stem is not an identifier): {self.path}")
        return self

    @property
    def module_name(self) -> str:
        """The module name this unit is importable as."""
        return PurePosixPath(self.path).stem

    @classmethod
    def from_hint_name(cls, hint_name: str, text: str) -> "SourceUnit":
        """Create a unit from a generator hint name, appending ``.py`` when missing."""
        path = hint_name if hint_name.endswith(SOURCE_SUFFIX) else hint_name + SOURCE_SUFFIX
        return cls(text=text, path=path)


class DiagnosticSeverity(str, Enum):
    """Severity of a diagnostic. Only errors fail a stage."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Location(FrozenModelWithDocstrings):
    """Position of a diagnostic inside a source unit."""

    path: Optional[str] = None
    """Logical file name, or None when the diagnostic is not tied to a file."""
    line: Optional[int] = Field(default=None, ge=1)
    """1-based line number."""
    column: Optional[int] = Field(default=None, ge=1)
    """1-based column number."""

    def __str__(self) -> str:
        if self.path is None:
            return ""
        if self.line is None:
            return self.path
        return f"{self.path}({self.line},{self.column or 1})"


class Diagnostic(FrozenModelWithDocstrings):
    """A message reported by the compiler, the generator driver or a generator."""

    id: NonEmptyString
    """Stable identifier, e.g. ``GP0001``."""
    severity: DiagnosticSeverity
    """Severity of the diagnostic."""
    message: str
    """Human-readable message."""
    location: Location = Field(default_factory=Location)
    """Where the diagnostic applies."""

    @property
    def is_error(self) -> bool:
        return self.severity == DiagnosticSeverity.ERROR

    @classmethod
    def error(cls, id: str, message: str, location: Optional[Location] = None) -> "Diagnostic":
        return cls(
            id=id,
            severity=DiagnosticSeverity.ERROR,
            message=message,
            location=location or Location(),
        )

    @classmethod
    def warning(cls, id: str, message: str, location: Optional[Location] = None) -> "Diagnostic":
        return cls(
            id=id,
            severity=DiagnosticSeverity.WARNING,
            message=message,
            location=location or Location(),
        )

    def __str__(self) -> str:
        prefix = str(self.location)
        body = f"{self.severity.value} {self.id}: {self.message}"
        return f"{prefix}: {body}" if prefix else body
