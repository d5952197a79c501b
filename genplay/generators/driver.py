"""Apply source generators to a program compilation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from genplay.cancellation import CancellationToken, OperationCancelled
from genplay.compile.compilation import Compilation
from genplay.compile.syntax import SyntaxTree
from genplay.data import Diagnostic, SourceUnit, diagnostic_ids
from genplay.logging import get_logger

from .api import GeneratorExecutionContext, InitializationContext, SourceGenerator

logger = get_logger("GeneratorDriver")


@dataclass(frozen=True)
class GeneratorDriverResult:
    compilation: Compilation
    """The original compilation with the generated syntax trees appended."""
    diagnostics: Tuple[Diagnostic, ...] = field(default=())
    """Driver and generator diagnostics, in generator order."""
    generated_sources: Tuple[SourceUnit, ...] = field(default=())
    """Sources contributed by the generators that ran to completion."""

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)


def _describe(generator: SourceGenerator) -> str:
    return type(generator).__qualname__


def _exception_summary(exc: BaseException) -> str:
    return f"Exception was of type '{type(exc).__name__}' with message '{exc}'"


class GeneratorDriver:
    """Runs every generator against the original program compilation.

    Generators are independent: each one observes the original compilation, never the
    sources added by the generators before it. A generator that raises contributes
    nothing, and the failure is reported as an error diagnostic.

    Parameters
    ----------
    generators : Iterable[SourceGenerator]
        Generators in the order they run.
    """

    def __init__(self, generators: Iterable[SourceGenerator]) -> None:
        self._generators: List[SourceGenerator] = list(generators)

    @property
    def generators(self) -> List[SourceGenerator]:
        return list(self._generators)

    def run(
        self,
        compilation: Compilation,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> GeneratorDriverResult:
        """Run the generators and build the augmented compilation.

        Raises
        ------
        OperationCancelled
            If the token is cancelled while generators run.
        """
        token = cancellation_token if cancellation_token is not None else CancellationToken.none()
        diagnostics: List[Diagnostic] = []
        added: List[SourceUnit] = []
        program_paths = [tree.path for tree in compilation.syntax_trees]

        for generator in self._generators:
            token.raise_if_cancelled()
            name = _describe(generator)

            init_context = InitializationContext(token)
            try:
                generator.initialize(init_context)
            except OperationCancelled:
                raise
            except (Exception, SystemExit) as e:
                logger.warning("Generator '%s' failed to initialize: %s", name, e)
                diagnostics.append(
                    Diagnostic.error(
                        diagnostic_ids.GENERATOR_INITIALIZATION_FAILED,
                        f"Generator '{name}' failed to initialize. It will not contribute "
                        f"to the output and compilation errors may occur as a result. "
                        f"{_exception_summary(e)}",
                    )
                )
                continue

            receiver = None
            if init_context.syntax_receiver_factory is not None:
                try:
                    receiver = init_context.syntax_receiver_factory()
                    for tree in compilation.syntax_trees:
                        for node in tree.walk(token):
                            receiver.on_visit_syntax_node(node)
                except OperationCancelled:
                    raise
                except (Exception, SystemExit) as e:
                    logger.warning("Syntax receiver of '%s' failed: %s", name, e)
                    diagnostics.append(
                        Diagnostic.error(
                            diagnostic_ids.SYNTAX_RECEIVER_FAILED,
                            f"Syntax receiver of generator '{name}' failed. "
                            f"{_exception_summary(e)}",
                        )
                    )
                    continue

            context = GeneratorExecutionContext(
                compilation,
                token,
                syntax_receiver=receiver,
                reserved_paths=program_paths + [unit.path for unit in added],
            )
            try:
                generator.execute(context)
            except OperationCancelled:
                raise
            except (Exception, SystemExit) as e:
                logger.warning("Generator '%s' failed to generate source: %s", name, e)
                diagnostics.append(
                    Diagnostic.error(
                        diagnostic_ids.GENERATOR_EXECUTION_FAILED,
                        f"Generator '{name}' failed to generate source. It will not "
                        f"contribute to the output and compilation errors may occur as a "
                        f"result. {_exception_summary(e)}",
                    )
                )
                continue

            diagnostics.extend(context.diagnostics)
            added.extend(context.sources)

        trees = []
        for unit in added:
            token.raise_if_cancelled()
            trees.append(SyntaxTree.parse(unit))
        return GeneratorDriverResult(
            compilation=compilation.add_syntax_trees(trees),
            diagnostics=tuple(diagnostics),
            generated_sources=tuple(added),
        )
