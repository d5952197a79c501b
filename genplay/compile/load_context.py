"""Isolated, unloadable load contexts for module images."""

from __future__ import annotations

import builtins
import itertools
import linecache
import threading
import traceback
import types
from typing import Dict, List, Optional

from genplay.logging import get_logger

from .image import ImageUnit, ModuleImage

logger = get_logger("LoadContext")

_generations = itertools.count(1)
_generations_lock = threading.Lock()


def _next_generation() -> int:
    with _generations_lock:
        return next(_generations)


class LoadContext:
    """One generation of modules created from a :class:`ModuleImage`.

    The modules of a context never enter ``sys.modules``. Each one is a fresh module object
    whose builtins resolve imports of the image's own modules inside the context, and
    everything else through the interpreter's regular import system. Two contexts loaded
    from the same image therefore share no module state.

    Once :meth:`unload` has been called the namespaces of all modules are cleared and the
    context refuses further loads.

    Parameters
    ----------
    image : ModuleImage
        The emitted image to load from.
    """

    def __init__(self, image: ModuleImage) -> None:
        entry, units = image.read()
        self._name = image.name
        self._entry_module = entry
        self._units: Dict[str, ImageUnit] = {unit.module_name: unit for unit in units}
        self._modules: Dict[str, types.ModuleType] = {}
        self._lock = threading.RLock()
        self._unloaded = False
        self.generation = _next_generation()

        self._builtins = dict(vars(builtins))
        self._builtins["__import__"] = self._import

        self._linecache_entries: Dict[str, tuple] = {}
        for unit in units:
            lines = unit.text.splitlines(keepends=True)
            if lines and not lines[-1].endswith("\n"):
                lines[-1] += "\n"
            entry_ = (len(unit.text), None, lines, unit.path)
            linecache.cache[unit.path] = entry_
            self._linecache_entries[unit.path] = entry_
        logger.debug("Created load context '%s' generation %d", self._name, self.generation)

    @property
    def name(self) -> str:
        return self._name

    @property
    def entry_module(self) -> Optional[str]:
        return self._entry_module

    @property
    def module_names(self) -> List[str]:
        """Names of the image's modules, entry module first."""
        names = list(self._units)
        if self._entry_module in self._units:
            names.remove(self._entry_module)
            names.insert(0, self._entry_module)
        return names

    @property
    def is_unloaded(self) -> bool:
        return self._unloaded

    def load_module(self, name: str) -> types.ModuleType:
        """Return the module ``name`` of the image, executing it on first load.

        A module that is still executing is returned partially initialised, as with
        circular imports in regular Python.

        Raises
        ------
        RuntimeError
            If the context has been unloaded.
        ImportError
            If the image has no such module.
        """
        with self._lock:
            if self._unloaded:
                raise RuntimeError(f"Load context '{self._name}' has been unloaded")
            module = self._modules.get(name)
            if module is not None:
                return module
            unit = self._units.get(name)
            if unit is None:
                raise ImportError(f"No module named '{name}' in '{self._name}'", name=name)

            module = types.ModuleType(name)
            module.__file__ = unit.path
            module.__builtins__ = self._builtins  # type: ignore[attr-defined]
            self._modules[name] = module
            try:
                exec(unit.code, module.__dict__)
            except BaseException:
                del self._modules[name]
                raise
            return module

    def load_all(self) -> List[types.ModuleType]:
        """Load every module of the image, entry module first."""
        return [self.load_module(name) for name in self.module_names]

    def declared_types(self) -> List[type]:
        """Classes declared by the loaded modules, nested ones included, in declaration
        order."""
        found: List[type] = []
        seen = set()

        def visit(namespace: Dict[str, object], module_name: str, prefix: str) -> None:
            for value in list(namespace.values()):
                if not isinstance(value, type) or id(value) in seen:
                    continue
                if value.__module__ != module_name:
                    continue
                if value.__qualname__ != prefix + value.__name__:
                    continue
                seen.add(id(value))
                found.append(value)
                visit(dict(vars(value)), module_name, value.__qualname__ + ".")

        for name in self.module_names:
            module = self._modules.get(name)
            if module is not None:
                visit(module.__dict__, name, "")
        return found

    def _import(self, name, globals=None, locals=None, fromlist=(), level=0):
        if level == 0 and name in self._units:
            return self.load_module(name)
        return builtins.__import__(name, globals, locals, fromlist, level)

    def format_exception(self, exc: BaseException) -> str:
        """Format ``exc`` with its traceback starting at the first frame of the image."""
        paths = {unit.path for unit in self._units.values()}
        tb = exc.__traceback__
        while tb is not None and tb.tb_frame.f_code.co_filename not in paths:
            tb = tb.tb_next
        if tb is None:
            tb = exc.__traceback__
        return "".join(traceback.format_exception(type(exc), exc, tb)).rstrip()

    def unload(self) -> None:
        """Drop every module of the context. Idempotent."""
        with self._lock:
            if self._unloaded:
                return
            self._unloaded = True
            for module in self._modules.values():
                module.__dict__.clear()
            self._modules.clear()
            self._units.clear()
            for path, entry in self._linecache_entries.items():
                if linecache.cache.get(path) is entry:
                    del linecache.cache[path]
            self._linecache_entries.clear()
        logger.debug("Unloaded load context '%s' generation %d", self._name, self.generation)

    def __enter__(self) -> "LoadContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unload()
