"""Compile the user program before and after transformation."""

from __future__ import annotations

from typing import Optional

from genplay.cancellation import CancellationToken
from genplay.data import SourceUnit, Stage
from genplay.errors import CompileDiagnosticsError, EmitFailureError, InputMissingError
from genplay.logging import get_logger
from genplay.references import ReferenceSet

from .compilation import Compilation, OutputKind
from .image import ModuleImage
from .syntax import SyntaxTree

logger = get_logger("ProgramCompiler")

PROGRAM_FILE_NAME = "Program.py"


class ProgramCompiler:
    """Parses the program for the generators and compiles the augmented result.

    Parameters
    ----------
    file_name : str
        Logical file name the program is compiled as.
    """

    def __init__(self, file_name: str = PROGRAM_FILE_NAME) -> None:
        self._file_name = file_name

    @property
    def file_name(self) -> str:
        return self._file_name

    def parse(
        self,
        source: str,
        references: ReferenceSet,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> Compilation:
        """Build the library-shaped compilation the generators inspect.

        Its diagnostics are not checked here: errors in the program surface when the
        augmented compilation is compiled.

        Raises
        ------
        InputMissingError
            If the program is empty or whitespace.
        """
        if not source.strip():
            raise InputMissingError(Stage.PROGRAM_COMPILE, "Need more input for the user code!")
        if cancellation_token is not None:
            cancellation_token.raise_if_cancelled()
        tree = SyntaxTree.parse(SourceUnit(text=source, path=self._file_name))
        return Compilation.create(tree.module_name, [tree], references, OutputKind.LIBRARY)

    def compile(
        self,
        augmented: Compilation,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> ModuleImage:
        """Compile the program together with the generated sources into an executable image.

        Raises
        ------
        CompileDiagnosticsError
            If the augmented compilation has error diagnostics.
        EmitFailureError
            If emission failed or produced an empty image.
        """
        executable = augmented.with_output_kind(OutputKind.EXECUTABLE)
        errors = [d for d in executable.get_diagnostics(cancellation_token) if d.is_error]
        if errors:
            logger.info("Program failed to compile with %d error(s)", len(errors))
            raise CompileDiagnosticsError(
                Stage.PROGRAM_COMPILE, "Error(s) compiling program:", errors
            )
        result = executable.emit(cancellation_token)
        if not result.success or result.image is None or len(result.image) == 0:
            emit_errors = [d for d in result.diagnostics if d.is_error]
            logger.info("Program failed to emit")
            if emit_errors:
                raise EmitFailureError(
                    Stage.PROGRAM_COMPILE, "Error emitting program:", emit_errors
                )
            raise EmitFailureError(Stage.PROGRAM_COMPILE, "Unknown error emitting program.")
        return result.image
