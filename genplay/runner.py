"""The playground runner: compile the plugin, transform, compile and run the program."""

from __future__ import annotations

import threading
from typing import Iterable, Optional

from genplay.cancellation import CancellationToken
from genplay.compile.plugin_cache import PluginCache
from genplay.compile.plugin_compiler import PluginCompiler
from genplay.compile.program_compiler import ProgramCompiler
from genplay.config import PlaygroundConfig
from genplay.data import RunResult, SourceUnit, Stage
from genplay.errors import CompileDiagnosticsError, PlaygroundError
from genplay.execution.host import ExecutionHost, InProcessExecutionHost
from genplay.execution.subprocess_host import SubprocessExecutionHost
from genplay.generators.driver import GeneratorDriver
from genplay.logging import get_logger
from genplay.references import (
    HttpLibrarySource,
    LibrarySource,
    LocalLibrarySource,
    ReferenceSetProvider,
)

logger = get_logger("Runner")

NO_SOURCE_GENERATED = "< No source generated >"
UNIT_SEPARATOR = "-" * 50


def format_generated_sources(units: Iterable[SourceUnit]) -> str:
    """Render generated sources as one report, ordered by logical name.

    With more than one unit, each is preceded by its name and a dashed line. An empty
    report is ``< No source generated >``.
    """
    ordered = sorted(units, key=lambda unit: unit.path)
    if not ordered:
        return NO_SOURCE_GENERATED
    blocks = []
    for unit in ordered:
        text = unit.text.rstrip() + "\n"
        if len(ordered) > 1:
            text = f"{unit.path}\n{UNIT_SEPARATOR}\n{text}"
        blocks.append(text)
    return "\n".join(blocks)


class Runner:
    """Sequences the stages of a playground run and exposes its three outputs.

    Stages run in order: reference resolution, plugin compilation, transformation,
    program compilation and execution. The first failing stage ends the run; whatever was
    produced before it (the generated sources in particular) is still reported.

    Parameters
    ----------
    reference_provider : ReferenceSetProvider
        Supplies the libraries compiled code may import.
    plugin_compiler : Optional[PluginCompiler]
        Compiles and caches plugins.
    program_compiler : Optional[ProgramCompiler]
        Compiles the program before and after transformation.
    execution_host : Optional[ExecutionHost]
        Runs the compiled program.
    """

    def __init__(
        self,
        reference_provider: ReferenceSetProvider,
        plugin_compiler: Optional[PluginCompiler] = None,
        program_compiler: Optional[ProgramCompiler] = None,
        execution_host: Optional[ExecutionHost] = None,
    ) -> None:
        self.reference_provider = reference_provider
        self.plugin_compiler = plugin_compiler or PluginCompiler()
        self.program_compiler = program_compiler or ProgramCompiler()
        self.execution_host = execution_host or InProcessExecutionHost()
        self._outputs_lock = threading.Lock()
        self._error_text = ""
        self._generator_output = ""
        self._program_output = ""

    @classmethod
    def from_config(cls, config: Optional[PlaygroundConfig] = None) -> "Runner":
        """Build a runner and its collaborators from a configuration.

        Parameters
        ----------
        config : Optional[PlaygroundConfig]
            The configuration. Read from the environment when None.
        """
        config = config or PlaygroundConfig.from_env()
        source: LibrarySource
        if config.reference_manifest_url:
            source = HttpLibrarySource(config.reference_manifest_url)
        else:
            source = LocalLibrarySource(config.libraries)

        host: ExecutionHost
        if config.execution_mode == "subprocess":
            host = SubprocessExecutionHost(
                config.execution_timeout, config.entry_type_name, config.entry_method_name
            )
        else:
            host = InProcessExecutionHost(config.entry_type_name, config.entry_method_name)

        return cls(
            ReferenceSetProvider(source),
            PluginCompiler(
                PluginCache(config.plugin_cache_capacity), config.generator_file_name
            ),
            ProgramCompiler(config.program_file_name),
            host,
        )

    @property
    def error_text(self) -> str:
        return self._error_text

    @property
    def generator_output(self) -> str:
        return self._generator_output

    @property
    def program_output(self) -> str:
        return self._program_output

    def run(
        self,
        program: str,
        plugin: str,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> RunResult:
        """Run the pipeline and publish the result to the three output properties.

        The outputs are cleared first, so a rerun never shows text of a previous run.

        Raises
        ------
        OperationCancelled
            If the token was cancelled. The outputs stay cleared.
        """
        self._publish(RunResult())
        result = self.evaluate(program, plugin, cancellation_token)
        self._publish(result)
        return result

    def evaluate(
        self,
        program: str,
        plugin: str,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> RunResult:
        """Run the pipeline without touching the output properties.

        Parameters
        ----------
        program : str
            Program source text.
        plugin : str
            Plugin source text.
        cancellation_token : Optional[CancellationToken]
            Polled between and inside the compilation stages.

        Returns
        -------
        RunResult
            The outputs of the run. ``error_text`` is empty if and only if every stage
            succeeded.

        Raises
        ------
        OperationCancelled
            If the token was cancelled.
        """
        token = cancellation_token if cancellation_token is not None else CancellationToken.none()
        generated_text = ""
        try:
            references = self.reference_provider.resolve()
            generators = self.plugin_compiler.compile(plugin, references, token)

            token.raise_if_cancelled()
            compilation = self.program_compiler.parse(program, references, token)
            transformed = GeneratorDriver(generators).run(compilation, token)
            generated_text = format_generated_sources(transformed.generated_sources)
            errors = [d for d in transformed.diagnostics if d.is_error]
            if errors:
                raise CompileDiagnosticsError(
                    Stage.TRANSFORMATION, "Error(s) running generator:", errors
                )

            image = self.program_compiler.compile(transformed.compilation, token)
            token.raise_if_cancelled()
            output = self.execution_host.execute(image, token)
        except PlaygroundError as e:
            logger.info("Run failed (%s): %s", e.kind.value, e.text.splitlines()[0])
            return RunResult(
                generated_source_text=generated_text,
                error_text=e.text,
                error_kind=e.kind,
                stage=e.stage,
            )
        return RunResult(generated_source_text=generated_text, program_output_text=output)

    def _publish(self, result: RunResult) -> None:
        with self._outputs_lock:
            self._error_text = result.error_text
            self._generator_output = result.generated_source_text
            self._program_output = result.program_output_text
