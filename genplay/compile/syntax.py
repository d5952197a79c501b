"""Syntax trees: parsed source units with their parse diagnostics."""

from __future__ import annotations

import ast
import threading
import warnings
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from genplay.cancellation import CancellationToken
from genplay.data import Diagnostic, Location, SourceUnit, diagnostic_ids

CANCELLATION_CHECK_INTERVAL = 256
"""Number of nodes visited between two cancellation checks."""

# warnings.catch_warnings mutates interpreter-wide state
compiler_warnings_lock = threading.Lock()


def location_of(path: str, node: Optional[ast.AST]) -> Location:
    """Location of an AST node inside the unit ``path``."""
    line = getattr(node, "lineno", None)
    col = getattr(node, "col_offset", None)
    return Location(path=path, line=line, column=(col + 1) if col is not None else None)


def location_of_syntax_error(path: str, error: SyntaxError) -> Location:
    line = error.lineno if error.lineno and error.lineno > 0 else None
    column = error.offset if error.offset and error.offset > 0 else None
    return Location(path=path, line=line, column=column)


@dataclass(frozen=True)
class SyntaxTree:
    """A parsed source unit.

    ``root`` is None when the unit does not parse; ``diagnostics`` then holds the syntax
    error. Compiler warnings raised while parsing are reported as warnings.
    """

    unit: SourceUnit
    root: Optional[ast.Module]
    diagnostics: Tuple[Diagnostic, ...] = field(default=())

    @classmethod
    def parse(cls, unit: SourceUnit) -> "SyntaxTree":
        diagnostics: List[Diagnostic] = []
        root: Optional[ast.Module] = None
        with compiler_warnings_lock, warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                root = ast.parse(unit.text, filename=unit.path)
            except SyntaxError as e:
                diagnostics.append(
                    Diagnostic.error(
                        diagnostic_ids.SYNTAX_ERROR,
                        e.msg or "invalid syntax",
                        location_of_syntax_error(unit.path, e),
                    )
                )
            except ValueError as e:
                # source contains null bytes
                diagnostics.append(
                    Diagnostic.error(
                        diagnostic_ids.SYNTAX_ERROR, str(e), Location(path=unit.path)
                    )
                )
        for w in caught:
            diagnostics.append(
                Diagnostic.warning(
                    diagnostic_ids.COMPILER_WARNING,
                    f"{w.category.__name__}: {w.message}",
                    Location(path=unit.path, line=w.lineno or None),
                )
            )
        return cls(unit=unit, root=root, diagnostics=tuple(diagnostics))

    @classmethod
    def parse_text(cls, text: str, path: str) -> "SyntaxTree":
        return cls.parse(SourceUnit(text=text, path=path))

    @property
    def path(self) -> str:
        return self.unit.path

    @property
    def module_name(self) -> str:
        return self.unit.module_name

    @property
    def text(self) -> str:
        return self.unit.text

    def walk(self, cancellation_token: Optional[CancellationToken] = None) -> Iterator[ast.AST]:
        """Yield every node of the tree in pre-order, polling the cancellation token."""
        if self.root is None:
            return
        stack: List[ast.AST] = [self.root]
        visited = 0
        while stack:
            node = stack.pop()
            visited += 1
            if cancellation_token is not None and visited % CANCELLATION_CHECK_INTERVAL == 0:
                cancellation_token.raise_if_cancelled()
            yield node
            stack.extend(reversed(list(ast.iter_child_nodes(node))))
