"""Library sources: how the hosting environment discovers and serves library metadata."""

from __future__ import annotations

import importlib
import importlib.util
from typing import Iterable, List, Optional, Protocol, Sequence, runtime_checkable

import requests

from genplay.logging import get_logger

from .handle import ReferenceHandle

logger = get_logger("LibrarySource")

DEFAULT_LIBRARIES: Sequence[str] = (
    "genplay",
    "__future__",
    "abc",
    "asyncio",
    "collections",
    "contextlib",
    "dataclasses",
    "datetime",
    "enum",
    "functools",
    "inspect",
    "io",
    "itertools",
    "json",
    "math",
    "operator",
    "random",
    "re",
    "string",
    "sys",
    "textwrap",
    "time",
    "types",
    "typing",
    "ast",
)
"""Libraries available to compiled code when no explicit list is configured."""


@runtime_checkable
class LibrarySource(Protocol):
    """Discovers libraries and serves their metadata bytes."""

    def enumerate_available_libraries(self) -> List[str]:
        """Return the names of the libraries that can be referenced."""
        ...

    def fetch_library(self, name: str) -> bytes:
        """Return the serialized :class:`ReferenceHandle` of ``name``."""
        ...


def describe_module(name: str) -> ReferenceHandle:
    """Import ``name`` and build its reference handle from the module namespace."""
    module = importlib.import_module(name)
    return ReferenceHandle(
        name=name,
        symbols=frozenset(dir(module)),
        is_package=hasattr(module, "__path__"),
    )


class LocalLibrarySource:
    """Library source backed by the modules importable in the current interpreter."""

    def __init__(self, libraries: Optional[Iterable[str]] = None) -> None:
        self._libraries = list(libraries) if libraries is not None else list(DEFAULT_LIBRARIES)

    def enumerate_available_libraries(self) -> List[str]:
        available = []
        for name in self._libraries:
            if importlib.util.find_spec(name) is None:
                logger.warning("Library %s is not importable and will not be referenced", name)
                continue
            available.append(name)
        return available

    def fetch_library(self, name: str) -> bytes:
        return describe_module(name).to_bytes()


class HttpLibrarySource:
    """Library source served over HTTP by a hosted deployment.

    The server exposes ``<base_url>/manifest.json`` (a JSON list of library names, or an
    object with a ``libraries`` list) and ``<base_url>/libraries/<name>.json`` (a serialized
    :class:`ReferenceHandle`).
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout

    def enumerate_available_libraries(self) -> List[str]:
        response = self._session.get(f"{self._base_url}/manifest.json", timeout=self._timeout)
        response.raise_for_status()
        manifest = response.json()
        if isinstance(manifest, dict):
            manifest = manifest.get("libraries", [])
        if not isinstance(manifest, list) or not all(isinstance(n, str) for n in manifest):
            raise ValueError("Reference manifest must be a list of library names")
        return list(manifest)

    def fetch_library(self, name: str) -> bytes:
        response = self._session.get(
            f"{self._base_url}/libraries/{name}.json", timeout=self._timeout
        )
        response.raise_for_status()
        return response.content


class StaticLibrarySource:
    """In-memory library source holding ready-made handles."""

    def __init__(self, handles: Iterable[ReferenceHandle]) -> None:
        self._handles = {handle.name: handle for handle in handles}

    def enumerate_available_libraries(self) -> List[str]:
        return list(self._handles)

    def fetch_library(self, name: str) -> bytes:
        return self._handles[name].to_bytes()
