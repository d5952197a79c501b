"""Bounded least-recently-used cache of instantiated source generators."""

from __future__ import annotations

import io
import threading
import tokenize
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from genplay.logging import get_logger

from .load_context import LoadContext

logger = get_logger("PluginCache")

DEFAULT_CAPACITY = 10
"""Number of plugin sources kept by default."""

_SKIPPED_TOKENS = {tokenize.NL, tokenize.ENCODING, tokenize.ENDMARKER}


def normalize_source(source: str) -> str:
    """Reduce plugin source to a whitespace-insensitive key.

    The key is the token stream of the source: token strings separated by single spaces,
    with indentation replaced by ``INDENT``/``DEDENT`` markers and blank lines dropped.
    Comments are kept. Two sources that only differ in spacing, blank lines or indentation
    width map to the same key.

    Sources that cannot be tokenized fall back to their whitespace-collapsed text.

    Parameters
    ----------
    source : str
        Plugin source text.

    Returns
    -------
    str
        The normalized cache key.
    """
    parts: List[str] = []
    try:
        for token in tokenize.generate_tokens(io.StringIO(source).readline):
            if token.type in _SKIPPED_TOKENS:
                continue
            if token.type == tokenize.INDENT:
                parts.append("<INDENT>")
            elif token.type == tokenize.DEDENT:
                parts.append("<DEDENT>")
            elif token.type == tokenize.NEWLINE:
                parts.append("<NEWLINE>")
            else:
                parts.append(token.string)
    except (tokenize.TokenError, IndentationError, SyntaxError):
        return " ".join(source.split())
    return " ".join(parts)


@dataclass
class PluginCacheEntry:
    """Instances activated from one plugin source, and the context that defines them."""

    key: str
    generators: Tuple[object, ...]
    context: Optional[LoadContext] = field(default=None, repr=False)


class PluginCache:
    """Fixed-capacity map from normalized plugin source to activated generators.

    Reads and writes are serialized by a lock so that the access order stays consistent
    under concurrent misses. Evicted entries are only dropped from the cache: a run that
    obtained them earlier may still be using the generators.

    Parameters
    ----------
    capacity : int
        Maximum number of entries. Must be at least 1.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"Plugin cache capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._entries: "OrderedDict[str, PluginCacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: str) -> Optional[PluginCacheEntry]:
        """Look up ``key`` and mark it as most recently used."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
        logger.debug("Plugin cache hit")
        return entry

    def put(self, entry: PluginCacheEntry) -> List[PluginCacheEntry]:
        """Insert ``entry`` as most recently used and evict beyond capacity.

        When the key is already present (two concurrent misses on the same source), the
        newer entry replaces it.

        Returns
        -------
        List[PluginCacheEntry]
            The evicted entries, least recently used first.
        """
        evicted: List[PluginCacheEntry] = []
        with self._lock:
            self._entries[entry.key] = entry
            self._entries.move_to_end(entry.key)
            while len(self._entries) > self._capacity:
                _, old = self._entries.popitem(last=False)
                evicted.append(old)
            self.evictions += len(evicted)
        for old in evicted:
            logger.debug("Evicted plugin cache entry (%d generators)", len(old.generators))
        return evicted

    def keys(self) -> List[str]:
        """Keys from least to most recently used."""
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "size": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
            }

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
