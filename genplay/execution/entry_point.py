"""Locate and validate the entry point of a loaded program."""

from __future__ import annotations

import inspect
import typing
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from genplay.errors import ExecutionShapeError

ENTRY_TYPE_NAME = "Program"
ENTRY_METHOD_NAME = "Main"

_AWAITABLE_RETURNS = {
    "Awaitable",
    "Coroutine",
    "Future",
    "Task",
    "typing.Awaitable",
    "typing.Coroutine",
    "collections.abc.Awaitable",
    "collections.abc.Coroutine",
    "asyncio.Future",
    "asyncio.Task",
}
_VOID_RETURNS = {"None", "NoneType"}


@dataclass(frozen=True)
class EntryPoint:
    """The validated ``Main`` of a ``Program`` type.

    ``function`` is bound to the type for classmethods, so it is always invoked with
    ``arity`` positional arguments.
    """

    type: type
    name: str
    function: Callable[..., object]
    arity: int
    is_async: bool

    def invoke(self) -> object:
        """Call the entry point, passing None for its single parameter if it has one."""
        if self.arity == 1:
            return self.function(None)
        return self.function()


def _annotation_text(annotation: object) -> Optional[str]:
    if annotation is inspect.Signature.empty:
        return None
    if annotation is None or annotation is type(None):
        return "None"
    if isinstance(annotation, str):
        return annotation.strip()
    origin = typing.get_origin(annotation) or annotation
    module = getattr(origin, "__module__", "")
    name = getattr(origin, "__qualname__", None) or getattr(origin, "_name", None) or repr(origin)
    return f"{module}.{name}" if module and module != "builtins" else name


def _is_valid_return(annotation: object) -> bool:
    text = _annotation_text(annotation)
    if text is None or text in _VOID_RETURNS:
        return True
    base = text.split("[", 1)[0].strip()
    return base in _AWAITABLE_RETURNS or base.rsplit(".", 1)[-1] in _AWAITABLE_RETURNS


def find_entry_point(
    types: Sequence[type],
    entry_module: Optional[str] = None,
    type_name: str = ENTRY_TYPE_NAME,
    method_name: str = ENTRY_METHOD_NAME,
) -> EntryPoint:
    """Find the entry point among the declared types of a program.

    Parameters
    ----------
    types : Sequence[type]
        Declared types of the loaded program.
    entry_module : Optional[str]
        Module of the program itself. When several types named ``type_name`` exist, the
        one declared at the top level of this module wins.
    type_name : str
        Simple, case-sensitive name of the entry type.
    method_name : str
        Name of the static entry method.

    Returns
    -------
    EntryPoint
        The validated entry point.

    Raises
    ------
    ExecutionShapeError
        If the type or method is missing, the method takes more than one parameter, or its
        return annotation is neither ``None`` nor awaitable.
    """
    candidates: List[type] = [t for t in types if t.__name__ == type_name]
    if len(candidates) > 1 and entry_module is not None:
        preferred = [
            t for t in candidates if t.__module__ == entry_module and t.__qualname__ == type_name
        ]
        if len(preferred) == 1:
            candidates = preferred
    if not candidates:
        raise ExecutionShapeError(f'Could not find type "{type_name}" in program.')
    if len(candidates) > 1:
        raise ExecutionShapeError(
            f'Found {len(candidates)} types named "{type_name}" in program.'
        )
    program_type = candidates[0]

    raw = inspect.getattr_static(program_type, method_name, None)
    if isinstance(raw, staticmethod):
        function = raw.__func__
        bound = getattr(program_type, method_name)
    elif isinstance(raw, classmethod):
        function = raw.__func__
        bound = getattr(program_type, method_name)
    else:
        raise ExecutionShapeError(f'Could not find static method "{method_name}" in program.')

    signature = inspect.signature(bound)
    parameters = list(signature.parameters.values())
    if any(
        p.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
        for p in parameters
    ) or len(parameters) > 1:
        raise ExecutionShapeError(f'Method "{method_name}" must have 0 or 1 parameters.')
    if parameters and parameters[0].kind == inspect.Parameter.KEYWORD_ONLY:
        raise ExecutionShapeError(f'Method "{method_name}" must have 0 or 1 parameters.')

    is_async = inspect.iscoroutinefunction(function)
    if not is_async and not _is_valid_return(signature.return_annotation):
        raise ExecutionShapeError(
            f'Method "{method_name}" must have void or awaitable return type.'
        )

    return EntryPoint(
        type=program_type,
        name=method_name,
        function=bound,
        arity=len(parameters),
        is_async=is_async,
    )
