"""In-memory module images produced by emission."""

from __future__ import annotations

import marshal
from dataclasses import dataclass
from types import CodeType
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class ImageUnit:
    module_name: str
    path: str
    text: str
    code: CodeType


@dataclass(frozen=True)
class ModuleImage:
    """The byte buffer an emitted compilation is serialized to.

    The payload is a ``marshal`` dump of the byte-compiled units together with their
    source text, so it can be sent to a worker process and loaded there unchanged.
    """

    name: str
    data: bytes

    def __len__(self) -> int:
        return len(self.data)

    def read(self) -> Tuple[Optional[str], List[ImageUnit]]:
        """Decode the image into its entry module name and units.

        Raises
        ------
        ValueError
            If the payload is not a valid module image.
        """
        try:
            payload = marshal.loads(self.data)
        except (EOFError, TypeError, ValueError) as e:
            raise ValueError(f"Corrupt module image '{self.name}': {e}") from e
        if not isinstance(payload, dict) or "units" not in payload:
            raise ValueError(f"Corrupt module image '{self.name}'")
        units = [ImageUnit(*unit) for unit in payload["units"]]
        return payload.get("entry"), units

    @property
    def entry_module(self) -> Optional[str]:
        return self.read()[0]

    @property
    def module_names(self) -> List[str]:
        return [unit.module_name for unit in self.read()[1]]
