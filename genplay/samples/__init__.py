"""Sample program/plugin pairs shipped with the package."""

from __future__ import annotations

from importlib import resources
from typing import List, Tuple

PROGRAM_FILE = "program.py"
GENERATOR_FILE = "generator.py"


class PackagedSampleCatalog:
    """Reads the samples under ``genplay/samples/data/<name>/``.

    Each sample directory holds a ``program.py`` and a ``generator.py``.
    """

    def __init__(self, package: str = "genplay.samples") -> None:
        self._root = resources.files(package) / "data"

    def list_sample_names(self) -> List[str]:
        return sorted(
            entry.name
            for entry in self._root.iterdir()
            if entry.is_dir() and (entry / GENERATOR_FILE).is_file()
        )

    def load_sample(self, name: str) -> Tuple[str, str]:
        """Return the ``(program, plugin)`` sources of sample ``name``.

        Raises
        ------
        KeyError
            If there is no such sample.
        """
        if name not in self.list_sample_names():
            raise KeyError(f"Unknown sample: {name}")
        sample = self._root / name
        return (
            (sample / PROGRAM_FILE).read_text(encoding="utf-8"),
            (sample / GENERATOR_FILE).read_text(encoding="utf-8"),
        )
