"""Compilations: syntax trees compiled together against a reference set."""

from __future__ import annotations

import ast
import marshal
import warnings
from dataclasses import dataclass, field
from enum import Enum
from types import CodeType
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from genplay.cancellation import CancellationToken
from genplay.data import Diagnostic, Location, diagnostic_ids
from genplay.references import ReferenceSet

from .image import ModuleImage
from .semantic import SemanticModel, TypeSymbol
from .syntax import SyntaxTree, compiler_warnings_lock, location_of, location_of_syntax_error

ALWAYS_AVAILABLE_MODULES = frozenset({"__future__"})
"""Modules that resolve without being part of the reference set."""


class OutputKind(str, Enum):
    """Shape of the emitted module image."""

    LIBRARY = "library"
    """No entry module; loaded for its types."""
    EXECUTABLE = "executable"
    """The first syntax tree is the entry module."""


@dataclass(frozen=True)
class EmitResult:
    success: bool
    diagnostics: Tuple[Diagnostic, ...] = field(default=())
    image: Optional[ModuleImage] = None


class Compilation:
    """An immutable set of syntax trees compiled against a reference set.

    Diagnostics and byte-compiled code are computed lazily and memoized; methods that
    "modify" a compilation return a new one.
    """

    def __init__(
        self,
        assembly_name: str,
        syntax_trees: Sequence[SyntaxTree],
        references: ReferenceSet,
        output_kind: OutputKind,
    ) -> None:
        self._assembly_name = assembly_name
        self._syntax_trees: Tuple[SyntaxTree, ...] = tuple(syntax_trees)
        self._references = references
        self._output_kind = output_kind
        self._semantic_models: Dict[int, SemanticModel] = {}
        self._code: Dict[str, CodeType] = {}
        self._diagnostics: Optional[Tuple[Diagnostic, ...]] = None

    @classmethod
    def create(
        cls,
        assembly_name: str,
        syntax_trees: Iterable[SyntaxTree],
        references: ReferenceSet,
        output_kind: OutputKind = OutputKind.LIBRARY,
    ) -> "Compilation":
        return cls(assembly_name, list(syntax_trees), references, output_kind)

    @property
    def assembly_name(self) -> str:
        return self._assembly_name

    @property
    def syntax_trees(self) -> Tuple[SyntaxTree, ...]:
        return self._syntax_trees

    @property
    def references(self) -> ReferenceSet:
        return self._references

    @property
    def output_kind(self) -> OutputKind:
        return self._output_kind

    @property
    def module_names(self) -> List[str]:
        return [tree.module_name for tree in self._syntax_trees]

    def add_syntax_trees(self, trees: Iterable[SyntaxTree]) -> "Compilation":
        return Compilation(
            self._assembly_name,
            [*self._syntax_trees, *trees],
            self._references,
            self._output_kind,
        )

    def with_output_kind(self, output_kind: OutputKind) -> "Compilation":
        return Compilation(
            self._assembly_name, self._syntax_trees, self._references, output_kind
        )

    def get_semantic_model(self, tree: SyntaxTree) -> SemanticModel:
        """The semantic model of ``tree``, which must belong to this compilation."""
        if not any(t is tree for t in self._syntax_trees):
            raise ValueError(f"Syntax tree '{tree.path}' is not part of the compilation")
        model = self._semantic_models.get(id(tree))
        if model is None:
            model = SemanticModel(self, tree)
            self._semantic_models[id(tree)] = model
        return model

    def get_tree(self, module_name: str) -> Optional[SyntaxTree]:
        for tree in self._syntax_trees:
            if tree.module_name == module_name:
                return tree
        return None

    def get_type_by_name(self, qualified_name: str) -> Optional[TypeSymbol]:
        """Find a type declared in the compilation by ``<module>.<Type>`` name."""
        module, _, name = qualified_name.rpartition(".")
        tree = self.get_tree(module)
        if tree is None:
            return None
        for symbol in self.get_semantic_model(tree).declared_types:
            if symbol.name == name:
                return symbol
        return None

    def get_declared_types(self) -> List[TypeSymbol]:
        types: List[TypeSymbol] = []
        for tree in self._syntax_trees:
            types.extend(self.get_semantic_model(tree).declared_types)
        return types

    def find_implementations(self, base: TypeSymbol) -> List[TypeSymbol]:
        """Non-abstract types deriving, directly or not, from ``base``."""
        declared = self.get_declared_types()
        derived = {base.qualified_name}
        changed = True
        while changed:
            changed = False
            for symbol in declared:
                if symbol.qualified_name not in derived and derived.intersection(symbol.bases):
                    derived.add(symbol.qualified_name)
                    changed = True
        return [
            s
            for s in declared
            if s.qualified_name in derived
            and s.qualified_name != base.qualified_name
            and not s.is_abstract
        ]

    def get_diagnostics(
        self, cancellation_token: Optional[CancellationToken] = None
    ) -> List[Diagnostic]:
        """All diagnostics of the compilation: parse, duplicate modules, compile, imports."""
        if self._diagnostics is not None:
            return list(self._diagnostics)

        diagnostics: List[Diagnostic] = []
        for tree in self._syntax_trees:
            diagnostics.extend(tree.diagnostics)

        seen: Dict[str, SyntaxTree] = {}
        for tree in self._syntax_trees:
            if tree.module_name in seen:
                diagnostics.append(
                    Diagnostic.error(
                        diagnostic_ids.DUPLICATE_MODULE,
                        f"Module '{tree.module_name}' is defined by both "
                        f"'{seen[tree.module_name].path}' and '{tree.path}'",
                        Location(path=tree.path),
                    )
                )
            else:
                seen[tree.module_name] = tree

        for tree in self._syntax_trees:
            if cancellation_token is not None:
                cancellation_token.raise_if_cancelled()
            if tree.root is None:
                continue
            diagnostics.extend(self._byte_compile(tree))
            diagnostics.extend(self._check_imports(tree))

        self._diagnostics = tuple(diagnostics)
        return diagnostics

    def emit(self, cancellation_token: Optional[CancellationToken] = None) -> EmitResult:
        """Serialize the byte-compiled trees into an in-memory module image."""
        diagnostics = self.get_diagnostics(cancellation_token)
        if any(d.is_error for d in diagnostics):
            return EmitResult(success=False, diagnostics=tuple(diagnostics))

        units = []
        for tree in self._syntax_trees:
            if cancellation_token is not None:
                cancellation_token.raise_if_cancelled()
            units.append((tree.module_name, tree.path, tree.text, self._code[tree.module_name]))
        entry = (
            self._syntax_trees[0].module_name
            if self._output_kind == OutputKind.EXECUTABLE and self._syntax_trees
            else None
        )
        try:
            data = marshal.dumps(
                {
                    "name": self._assembly_name,
                    "kind": self._output_kind.value,
                    "entry": entry,
                    "units": units,
                }
            )
        except (ValueError, RecursionError) as e:
            failure = Diagnostic.error(
                diagnostic_ids.EMIT_FAILED, f"Failed to emit '{self._assembly_name}': {e}"
            )
            return EmitResult(success=False, diagnostics=(*diagnostics, failure))
        image = ModuleImage(name=self._assembly_name, data=data)
        return EmitResult(success=True, diagnostics=tuple(diagnostics), image=image)

    def _byte_compile(self, tree: SyntaxTree) -> List[Diagnostic]:
        try:
            with compiler_warnings_lock, warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always")
                code = compile(tree.root, tree.path, "exec", dont_inherit=True)
        except SyntaxError as e:
            return [
                Diagnostic.error(
                    diagnostic_ids.COMPILE_ERROR,
                    e.msg or "invalid syntax",
                    location_of_syntax_error(tree.path, e),
                )
            ]
        except (ValueError, RecursionError) as e:
            return [
                Diagnostic.error(
                    diagnostic_ids.COMPILE_ERROR,
                    str(e) or type(e).__name__,
                    Location(path=tree.path),
                )
            ]
        self._code.setdefault(tree.module_name, code)
        return [
            Diagnostic.warning(
                diagnostic_ids.COMPILER_WARNING,
                f"{w.category.__name__}: {w.message}",
                Location(path=tree.path, line=w.lineno or None),
            )
            for w in caught
        ]

    def _check_imports(self, tree: SyntaxTree) -> List[Diagnostic]:
        diagnostics: List[Diagnostic] = []
        local_modules = set(self.module_names)
        for node in tree.walk():
            if isinstance(node, ast.Import):
                for alias in node.names:
                    head = alias.name.split(".")[0]
                    if not self._module_exists(head, local_modules):
                        diagnostics.append(self._unresolved_module(tree, node, alias.name))
            elif isinstance(node, ast.ImportFrom):
                if node.level:
                    diagnostics.append(
                        Diagnostic.error(
                            diagnostic_ids.RELATIVE_IMPORT,
                            "Relative imports are not supported; import units by module name",
                            location_of(tree.path, node),
                        )
                    )
                    continue
                module = node.module or ""
                head = module.split(".")[0]
                if not self._module_exists(head, local_modules):
                    diagnostics.append(self._unresolved_module(tree, node, module))
                    continue
                if module != head:
                    continue
                for alias in node.names:
                    if alias.name == "*":
                        continue
                    if not self._name_exists(module, alias.name, local_modules):
                        diagnostics.append(
                            Diagnostic.error(
                                diagnostic_ids.UNRESOLVED_NAME,
                                f"Cannot import name '{alias.name}' from '{module}'",
                                location_of(tree.path, node),
                            )
                        )
        return diagnostics

    def _module_exists(self, name: str, local_modules: Iterable[str]) -> bool:
        return (
            name in local_modules
            or name in self._references
            or name in ALWAYS_AVAILABLE_MODULES
        )

    def _name_exists(self, module: str, name: str, local_modules: Iterable[str]) -> bool:
        if module in local_modules:
            tree = self.get_tree(module)
            if tree is None or tree.root is None:
                return True
            model = self.get_semantic_model(tree)
            return model.has_dynamic_exports or model.lookup(name) is not None
        handle = self._references.get(module)
        if handle is None:
            return True
        return handle.exports(name) is not False

    @staticmethod
    def _unresolved_module(tree: SyntaxTree, node: ast.AST, module: str) -> Diagnostic:
        return Diagnostic.error(
            diagnostic_ids.UNRESOLVED_MODULE,
            f"The module '{module}' could not be found (are you missing a reference?)",
            location_of(tree.path, node),
        )
