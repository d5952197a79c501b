"""Compile plugin source into activated source generators."""

from __future__ import annotations

import inspect
import threading
from typing import List, Optional

from genplay.cancellation import CancellationToken
from genplay.data import SourceUnit, Stage
from genplay.errors import (
    CompileDiagnosticsError,
    EmitFailureError,
    InputMissingError,
    PluginInstantiationError,
)
from genplay.generators.api import SourceGenerator
from genplay.logging import get_logger
from genplay.references import ReferenceSet

from .compilation import Compilation, OutputKind
from .load_context import LoadContext
from .plugin_cache import PluginCache, PluginCacheEntry, normalize_source
from .syntax import SyntaxTree

logger = get_logger("PluginCompiler")

GENERATOR_FILE_NAME = "Generator.py"
NO_TYPES_DECLARED = "< No types declared >"


class PluginCompiler:
    """Turns plugin source text into :class:`SourceGenerator` instances.

    Identical plugin sources (up to whitespace) are compiled once: the activated generators
    are kept in a :class:`PluginCache` keyed by the normalized source.

    Parameters
    ----------
    cache : Optional[PluginCache]
        Cache of activated generators. A private cache of default capacity when None.
    file_name : str
        Logical file name the plugin is compiled as.
    """

    def __init__(
        self, cache: Optional[PluginCache] = None, file_name: str = GENERATOR_FILE_NAME
    ) -> None:
        self._cache = cache if cache is not None else PluginCache()
        self._file_name = file_name
        self._count_lock = threading.Lock()
        self._compile_count = 0

    @property
    def cache(self) -> PluginCache:
        return self._cache

    @property
    def file_name(self) -> str:
        return self._file_name

    @property
    def compile_count(self) -> int:
        """Number of plugin sources that missed the cache and reached the compiler."""
        return self._compile_count

    def compile(
        self,
        source: str,
        references: ReferenceSet,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> List[SourceGenerator]:
        """Compile ``source`` and activate every concrete generator it declares.

        Parameters
        ----------
        source : str
            Plugin source text.
        references : ReferenceSet
            Libraries the plugin may import.
        cancellation_token : Optional[CancellationToken]
            Polled while compiling.

        Returns
        -------
        List[SourceGenerator]
            The generators in declaration order. Never empty.

        Raises
        ------
        InputMissingError
            If the source is empty or whitespace.
        CompileDiagnosticsError
            If the plugin does not compile.
        EmitFailureError
            If the compiled plugin could not be emitted.
        PluginInstantiationError
            If loading the plugin raised, or no generator could be instantiated.
        """
        if not source.strip():
            raise InputMissingError(
                Stage.PLUGIN_COMPILE, "Need more input for the generator code!"
            )

        key = normalize_source(source)
        entry = self._cache.get(key)
        if entry is not None:
            return list(entry.generators)

        with self._count_lock:
            self._compile_count += 1

        tree = SyntaxTree.parse(SourceUnit(text=source, path=self._file_name))
        compilation = Compilation.create(
            tree.module_name, [tree], references, OutputKind.LIBRARY
        )
        errors = [d for d in compilation.get_diagnostics(cancellation_token) if d.is_error]
        if errors:
            logger.info("Plugin failed to compile with %d error(s)", len(errors))
            raise CompileDiagnosticsError(
                Stage.PLUGIN_COMPILE, "Error(s) compiling generator:", errors
            )

        result = compilation.emit(cancellation_token)
        if not result.success or result.image is None or len(result.image) == 0:
            emit_errors = [d for d in result.diagnostics if d.is_error]
            logger.info("Plugin failed to emit")
            if emit_errors:
                raise EmitFailureError(
                    Stage.PLUGIN_COMPILE, "Error emitting generator:", emit_errors
                )
            raise EmitFailureError(Stage.PLUGIN_COMPILE, "Unknown error emitting generator.")

        if cancellation_token is not None:
            cancellation_token.raise_if_cancelled()
        context = LoadContext(result.image)
        try:
            context.load_all()
        except (Exception, SystemExit) as e:
            text = context.format_exception(e)
            context.unload()
            raise PluginInstantiationError("Error loading generator:", [text]) from e

        generators = self._activate(context)
        if not generators:
            names = [f"{t.__module__}.{t.__qualname__}" for t in context.declared_types()]
            context.unload()
            raise PluginInstantiationError(
                "Could not instantiate source generator. Types in module:",
                names or [NO_TYPES_DECLARED],
            )

        self._cache.put(PluginCacheEntry(key=key, generators=tuple(generators), context=context))
        logger.debug("Activated %d generator(s)", len(generators))
        return generators

    @staticmethod
    def _activate(context: LoadContext) -> List[SourceGenerator]:
        generators: List[SourceGenerator] = []
        for candidate in context.declared_types():
            if not issubclass(candidate, SourceGenerator):
                continue
            if inspect.isabstract(candidate) or getattr(candidate, "_is_protocol", False):
                continue
            if getattr(candidate, "__parameters__", ()):
                continue
            try:
                generators.append(candidate())
            except (Exception, SystemExit) as e:
                logger.info("Skipping generator '%s': %s", candidate.__qualname__, e)
        return generators
