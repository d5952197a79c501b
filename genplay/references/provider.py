"""Process-wide provider of the reference set used to compile plugins and programs."""

from __future__ import annotations

import threading
from typing import List, Optional

from pydantic import ValidationError

from genplay.errors import ReferenceResolutionError
from genplay.logging import get_logger

from .handle import ReferenceHandle, ReferenceSet
from .sources import LibrarySource

logger = get_logger("ReferenceSetProvider")


class ReferenceSetProvider:
    """Resolves the reference set once and caches it for the lifetime of the process.

    Reads of an already resolved set take no lock. Resolution itself is serialized and
    commits all-or-nothing: a failure leaves the previous set in place and the next call
    retries. Entries are added at most once and never removed.
    """

    def __init__(self, source: LibrarySource) -> None:
        self._source = source
        self._references: Optional[ReferenceSet] = None
        self._lock = threading.Lock()

    @property
    def source(self) -> LibrarySource:
        return self._source

    def resolve(self, refresh: bool = False) -> ReferenceSet:
        """Return the reference set, resolving it on first use.

        Parameters
        ----------
        refresh : bool
            Enumerate the source again and add libraries not seen before.

        Returns
        -------
        ReferenceSet
            The cached reference set.

        Raises
        ------
        ReferenceResolutionError
            If the libraries cannot be enumerated, fetched or decoded.
        """
        references = self._references
        if references is not None and not refresh:
            return references

        with self._lock:
            references = self._references
            if references is not None and not refresh:
                return references
            current = references if references is not None else ReferenceSet()

            try:
                names = self._source.enumerate_available_libraries()
            except Exception as e:
                logger.error("Failed to enumerate libraries: %s", e)
                raise ReferenceResolutionError(
                    f"Failed to enumerate libraries: {type(e).__name__}: {e}"
                ) from e

            added: List[ReferenceHandle] = []
            for name in names:
                if name in current or any(h.name == name for h in added):
                    continue
                added.append(self._fetch(name))

            self._references = current.union(added)
            logger.info(
                "Resolved %d references (%d new)", len(self._references), len(added)
            )
            return self._references

    def _fetch(self, name: str) -> ReferenceHandle:
        try:
            data = self._source.fetch_library(name)
        except Exception as e:
            logger.error("Failed to fetch library %s: %s", name, e)
            raise ReferenceResolutionError(
                f"Failed to fetch library '{name}': {type(e).__name__}: {e}"
            ) from e
        try:
            handle = ReferenceHandle.from_bytes(data)
        except ValidationError as e:
            raise ReferenceResolutionError(
                f"Invalid metadata for library '{name}': {e}"
            ) from e
        if handle.name != name:
            raise ReferenceResolutionError(
                f"Metadata for library '{name}' describes '{handle.name}'"
            )
        return handle
