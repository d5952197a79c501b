"""Compilation pipeline: syntax trees, semantic models, module images and load contexts."""

from .compilation import Compilation, EmitResult, OutputKind
from .image import ModuleImage
from .load_context import LoadContext
from .plugin_cache import PluginCache, PluginCacheEntry, normalize_source
from .plugin_compiler import PluginCompiler
from .program_compiler import ProgramCompiler
from .semantic import CallSite, FunctionSymbol, ImportSymbol, SemanticModel, TypeSymbol
from .syntax import SyntaxTree

__all__ = [
    "Compilation",
    "EmitResult",
    "OutputKind",
    "SyntaxTree",
    "SemanticModel",
    "TypeSymbol",
    "FunctionSymbol",
    "ImportSymbol",
    "CallSite",
    "ModuleImage",
    "LoadContext",
    "PluginCache",
    "PluginCacheEntry",
    "normalize_source",
    "PluginCompiler",
    "ProgramCompiler",
]
