"""Source generator API and the driver applying generators to a program."""

from .api import (
    GeneratorExecutionContext,
    InitializationContext,
    SourceGenerator,
    SyntaxReceiver,
)
from .driver import GeneratorDriver, GeneratorDriverResult

__all__ = [
    "SourceGenerator",
    "SyntaxReceiver",
    "InitializationContext",
    "GeneratorExecutionContext",
    "GeneratorDriver",
    "GeneratorDriverResult",
]
