"""Reference handles and immutable reference sets."""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Iterator, Mapping, Optional

from pydantic import Field

from genplay.data.utils import FrozenModelWithDocstrings, NonEmptyString


class ReferenceHandle(FrozenModelWithDocstrings):
    """Exported symbol table of a library the compiled code may import.

    Handles are decoded from the bytes a library source serves for a library.
    """

    name: NonEmptyString
    """Top-level module name, e.g. ``json``."""
    symbols: FrozenSet[str] = Field(default_factory=frozenset)
    """Names bound in the module namespace."""
    is_package: bool = False
    """Packages may expose submodules that are not in ``symbols`` until imported."""

    def exports(self, symbol: str) -> Optional[bool]:
        """Whether ``symbol`` can be imported from this library.

        Returns None when the answer is unknown (packages, or an empty symbol table).
        """
        if symbol in self.symbols:
            return True
        if self.is_package or not self.symbols:
            return None
        return False

    @classmethod
    def from_bytes(cls, data: bytes) -> "ReferenceHandle":
        return cls.model_validate_json(data)

    def to_bytes(self) -> bytes:
        return self.model_dump_json().encode("utf-8")


class ReferenceSet(Mapping[str, ReferenceHandle]):
    """Immutable mapping from library name to :class:`ReferenceHandle`.

    Reference sets only grow: :meth:`union` returns a new set with the entries of both,
    keeping the existing handle when a name is present in both.
    """

    def __init__(self, handles: Iterable[ReferenceHandle] = ()) -> None:
        entries: Dict[str, ReferenceHandle] = {}
        for handle in handles:
            entries.setdefault(handle.name, handle)
        self._entries = MappingProxyType(entries)

    def __getitem__(self, name: str) -> ReferenceHandle:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ReferenceSet({sorted(self._entries)})"

    def union(self, handles: Iterable[ReferenceHandle]) -> "ReferenceSet":
        return ReferenceSet([*self._entries.values(), *handles])
