"""Execution hosts: run a compiled program and capture its output."""

from __future__ import annotations

import asyncio
import inspect
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from genplay.cancellation import CancellationToken
from genplay.compile.image import ModuleImage
from genplay.compile.load_context import LoadContext
from genplay.errors import ExecutionRuntimeError
from genplay.logging import get_logger

from .capture import captured_stdout
from .entry_point import ENTRY_METHOD_NAME, ENTRY_TYPE_NAME, find_entry_point

logger = get_logger("ExecutionHost")

NO_PROGRAM_OUTPUT = "< No program output >"


class ExecutionHost(ABC):
    """Loads an executable module image, invokes its entry point and returns its output."""

    def __init__(
        self, type_name: str = ENTRY_TYPE_NAME, method_name: str = ENTRY_METHOD_NAME
    ) -> None:
        self.type_name = type_name
        self.method_name = method_name

    @abstractmethod
    def execute(
        self, image: ModuleImage, cancellation_token: Optional[CancellationToken] = None
    ) -> str:
        """Run the program of ``image``.

        Returns
        -------
        str
            The captured standard output, or ``< No program output >`` when it is empty.

        Raises
        ------
        ExecutionShapeError
            If the program has no valid entry point.
        ExecutionRuntimeError
            If the program raised. The error carries the output captured so far.
        """
        ...


_EXITED = object()
"""Returned by user code that called ``sys.exit(0)``."""


async def _await(awaitable: Awaitable[object]) -> object:
    return await awaitable


def _call_user_code(
    call: Callable[[], object], context: LoadContext, output: Callable[[], str]
) -> object:
    try:
        return call()
    except SystemExit as e:
        if e.code is None or e.code == 0:
            return _EXITED
        raise ExecutionRuntimeError(output(), f"SystemExit: {e.code}") from e
    except KeyboardInterrupt:
        raise
    except BaseException as e:
        raise ExecutionRuntimeError(output(), context.format_exception(e)) from e


class InProcessExecutionHost(ExecutionHost):
    """Runs the program in the current process, inside a fresh :class:`LoadContext`.

    Module top-level code and the entry point both run while standard output is captured.
    The load context is unloaded when the run ends, whatever the outcome, so no state of
    the program survives into the next run.
    """

    def execute(
        self, image: ModuleImage, cancellation_token: Optional[CancellationToken] = None
    ) -> str:
        if cancellation_token is not None:
            cancellation_token.raise_if_cancelled()
        context = LoadContext(image)
        logger.debug("Executing '%s' in generation %d", image.name, context.generation)
        try:
            with captured_stdout() as buffer:
                if _call_user_code(context.load_all, context, buffer.getvalue) is _EXITED:
                    return buffer.getvalue() or NO_PROGRAM_OUTPUT
                entry = find_entry_point(
                    context.declared_types(),
                    context.entry_module,
                    self.type_name,
                    self.method_name,
                )

                def invoke() -> object:
                    result = entry.invoke()
                    if inspect.isawaitable(result):
                        return asyncio.run(_await(result))
                    return result

                _call_user_code(invoke, context, buffer.getvalue)
                output = buffer.getvalue()
        finally:
            context.unload()
            logger.debug("Finished '%s' generation %d", image.name, context.generation)
        return output or NO_PROGRAM_OUTPUT
