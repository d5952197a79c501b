"""Reference set acquisition.

The reference set lists the libraries compiled code may import, each with its exported
symbol table. It is resolved once per process through a :class:`LibrarySource`:

- LocalLibrarySource: modules importable in the current interpreter
- HttpLibrarySource: a manifest served by a hosted deployment
- StaticLibrarySource: ready-made handles
"""

from .handle import ReferenceHandle, ReferenceSet
from .provider import ReferenceSetProvider
from .sources import (
    DEFAULT_LIBRARIES,
    HttpLibrarySource,
    LibrarySource,
    LocalLibrarySource,
    StaticLibrarySource,
    describe_module,
)

__all__ = [
    "ReferenceHandle",
    "ReferenceSet",
    "ReferenceSetProvider",
    "LibrarySource",
    "LocalLibrarySource",
    "HttpLibrarySource",
    "StaticLibrarySource",
    "DEFAULT_LIBRARIES",
    "describe_module",
]
