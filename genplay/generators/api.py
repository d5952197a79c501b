"""Public API implemented by source generator plugins."""

from __future__ import annotations

import ast
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from genplay.cancellation import CancellationToken
from genplay.data import Diagnostic, SourceUnit

if TYPE_CHECKING:
    from genplay.compile.compilation import Compilation


class SyntaxReceiver(ABC):
    """Receives every syntax node of the program before the generator executes."""

    @abstractmethod
    def on_visit_syntax_node(self, node: ast.AST) -> None: ...


class InitializationContext:
    """Context passed to :meth:`SourceGenerator.initialize`."""

    def __init__(self, cancellation_token: CancellationToken) -> None:
        self.cancellation_token = cancellation_token
        self.syntax_receiver_factory: Optional[Callable[[], SyntaxReceiver]] = None

    def register_for_syntax_notifications(self, factory: Callable[[], SyntaxReceiver]) -> None:
        """Register a factory creating the receiver to feed the program's syntax nodes to.

        Parameters
        ----------
        factory : Callable[[], SyntaxReceiver]
            Called once per run; the receiver is then available as
            :attr:`GeneratorExecutionContext.syntax_receiver`.
        """
        self.syntax_receiver_factory = factory


class GeneratorExecutionContext:
    """Context passed to :meth:`SourceGenerator.execute`.

    Gives read access to the original program compilation and collects the sources and
    diagnostics the generator contributes.
    """

    def __init__(
        self,
        compilation: "Compilation",
        cancellation_token: CancellationToken,
        syntax_receiver: Optional[SyntaxReceiver] = None,
        reserved_paths: Optional[List[str]] = None,
    ) -> None:
        self.compilation = compilation
        self.cancellation_token = cancellation_token
        self.syntax_receiver = syntax_receiver
        self._reserved = set(reserved_paths or [])
        self._sources: Dict[str, SourceUnit] = {}
        self._diagnostics: List[Diagnostic] = []

    def add_source(self, hint_name: str, source_text: str) -> None:
        """Add a generated source unit.

        Parameters
        ----------
        hint_name : str
            Logical file name of the unit; ``.py`` is appended when missing.
        source_text : str
            The generated source.

        Raises
        ------
        ValueError
            If the hint name is not a valid module file name, or is already used by the
            program or by another source of this generator.
        """
        unit = SourceUnit.from_hint_name(hint_name, source_text)
        if unit.path in self._sources or unit.path in self._reserved:
            raise ValueError(f"A source named '{unit.path}' has already been added")
        self._sources[unit.path] = unit

    def report_diagnostic(self, diagnostic: Diagnostic) -> None:
        """Report a diagnostic. Error diagnostics fail the transformation stage.

        Raises
        ------
        TypeError
            If ``diagnostic`` is not a :class:`Diagnostic`.
        """
        if not isinstance(diagnostic, Diagnostic):
            raise TypeError(
                f"Expected a Diagnostic, got an object of type '{type(diagnostic).__name__}'"
            )
        self._diagnostics.append(diagnostic)

    @property
    def sources(self) -> List[SourceUnit]:
        return list(self._sources.values())

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self._diagnostics)


class SourceGenerator(ABC):
    """Base class of source generators.

    A plugin declares one or more concrete subclasses with a constructor callable without
    arguments. Each one is instantiated once and may be reused across runs, so generators
    should not keep per-run state on ``self``.
    """

    def initialize(self, context: InitializationContext) -> None:
        """Called before :meth:`execute` on every run. Does nothing by default."""

    @abstractmethod
    def execute(self, context: GeneratorExecutionContext) -> None:
        """Inspect ``context.compilation`` and contribute sources with
        ``context.add_source``."""
