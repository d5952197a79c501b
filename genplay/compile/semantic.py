"""Semantic model: module-scope bindings, declared types and resolved call sites.

Python has no static types, so the model resolves names the way an import-time reader
would: through the module-scope bindings of a unit (imports, classes, functions and
assignments), then the builtins. Anything that depends on runtime values is left
unresolved (None).
"""

from __future__ import annotations

import ast
import builtins
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple

from genplay.cancellation import CancellationToken
from genplay.data import Location

from .syntax import SyntaxTree, location_of

if TYPE_CHECKING:
    from .compilation import Compilation

_STATIC_DECORATORS = {"staticmethod", "builtins.staticmethod"}
_CLASS_DECORATORS = {"classmethod", "builtins.classmethod"}
_PROPERTY_DECORATORS = {"property", "builtins.property", "functools.cached_property"}
_ABSTRACT_DECORATORS = {"abc.abstractmethod"}
_ABSTRACT_BASES = {"abc.ABC", "typing.Protocol", "typing_extensions.Protocol"}
_ABSTRACT_METACLASSES = {"abc.ABCMeta"}


@dataclass(frozen=True)
class ImportSymbol:
    """A name bound by an import statement."""

    alias: str
    """The name bound in the importing module."""
    module: str
    """The absolute module imported from."""
    name: Optional[str]
    """The imported attribute for ``from`` imports, None for plain imports."""
    location: Location

    @property
    def qualified_name(self) -> str:
        return f"{self.module}.{self.name}" if self.name else self.module


@dataclass(frozen=True)
class ParameterSymbol:
    name: str
    annotation: Optional[str]
    """The annotation as written, or None."""
    annotation_type: Optional[str]
    """Qualified name the annotation resolves to; for ``list[X]`` this is ``builtins.list``."""
    type_arguments: Tuple[Optional[str], ...]
    """Qualified names of subscript arguments, e.g. ``(Program.IFoo,)`` for ``list[IFoo]``."""
    has_default: bool
    kind: str
    """One of ``positional``, ``keyword``, ``var_positional``, ``var_keyword``."""


@dataclass(frozen=True)
class FunctionSymbol:
    name: str
    qualified_name: str
    kind: str
    """``function``, ``method``, ``staticmethod``, ``classmethod`` or ``property``."""
    parameters: Tuple[ParameterSymbol, ...]
    returns: Optional[str]
    is_async: bool
    is_abstract: bool
    decorators: Tuple[str, ...]
    node: ast.AST = field(compare=False, repr=False)
    location: Location = field(compare=False)


@dataclass(frozen=True)
class TypeSymbol:
    name: str
    module: str
    bases: Tuple[str, ...]
    """Qualified base names; unresolvable bases keep their source text."""
    methods: Tuple[FunctionSymbol, ...]
    decorators: Tuple[str, ...]
    is_abstract: bool
    node: ast.ClassDef = field(compare=False, repr=False)
    location: Location = field(compare=False)

    @property
    def qualified_name(self) -> str:
        return f"{self.module}.{self.name}"

    def get_method(self, name: str) -> Optional[FunctionSymbol]:
        for method in self.methods:
            if method.name == name:
                return method
        return None

    @property
    def constructor_parameters(self) -> Tuple[ParameterSymbol, ...]:
        """Parameters of ``__init__`` without ``self``; empty when not declared."""
        init = self.get_method("__init__")
        if init is None:
            return ()
        return init.parameters[1:]


@dataclass(frozen=True)
class CallSite:
    callee: Optional[str]
    """Qualified name of the called object, e.g. ``di.ServiceLocator.get_service``."""
    expression: str
    """The called expression as written."""
    arguments: Tuple[ast.expr, ...] = field(compare=False, repr=False)
    node: ast.Call = field(compare=False, repr=False)
    location: Location = field(compare=False)


class SemanticModel:
    """Semantic view of one syntax tree of a compilation."""

    def __init__(self, compilation: "Compilation", tree: SyntaxTree) -> None:
        self._compilation = compilation
        self._tree = tree
        self._bindings: Dict[str, object] = {}
        self._imports: List[ImportSymbol] = []
        self._types: List[TypeSymbol] = []
        self._functions: List[FunctionSymbol] = []
        self._has_dynamic_exports = False
        if tree.root is not None:
            self._declare(tree.root.body)
            self._bind(tree.root.body)

    @property
    def tree(self) -> SyntaxTree:
        return self._tree

    @property
    def compilation(self) -> "Compilation":
        return self._compilation

    @property
    def module_name(self) -> str:
        return self._tree.module_name

    @property
    def imports(self) -> List[ImportSymbol]:
        return list(self._imports)

    @property
    def declared_types(self) -> List[TypeSymbol]:
        return list(self._types)

    @property
    def declared_functions(self) -> List[FunctionSymbol]:
        return list(self._functions)

    @property
    def module_scope_names(self) -> List[str]:
        return list(self._bindings)

    @property
    def has_dynamic_exports(self) -> bool:
        """True when the module binds names that cannot be known statically."""
        return self._has_dynamic_exports

    def lookup(self, name: str) -> Optional[object]:
        """The module-scope symbol bound to ``name``: an import, type, function, or the
        assigning statement. None when unbound."""
        return self._bindings.get(name)

    def resolve(self, expr: ast.AST) -> Optional[str]:
        """Resolve a name or attribute chain to a qualified name."""
        if isinstance(expr, ast.Name):
            symbol = self._bindings.get(expr.id)
            if isinstance(symbol, ImportSymbol):
                return symbol.qualified_name
            if isinstance(symbol, (TypeSymbol, FunctionSymbol)):
                return symbol.qualified_name
            if symbol is not None:
                return f"{self.module_name}.{expr.id}"
            if hasattr(builtins, expr.id):
                return f"builtins.{expr.id}"
            return None
        if isinstance(expr, ast.Attribute):
            owner = self.resolve(expr.value)
            return f"{owner}.{expr.attr}" if owner else None
        if isinstance(expr, ast.Constant) and isinstance(expr.value, str):
            # string annotation
            try:
                parsed = ast.parse(expr.value, mode="eval").body
            except SyntaxError:
                return None
            return self.resolve(parsed)
        return None

    def get_call_sites(
        self, cancellation_token: Optional[CancellationToken] = None
    ) -> List[CallSite]:
        """Every call expression of the tree, in source order."""
        sites = []
        for node in self._tree.walk(cancellation_token):
            if isinstance(node, ast.Call):
                sites.append(
                    CallSite(
                        callee=self.resolve(node.func),
                        expression=ast.unparse(node.func),
                        arguments=tuple(node.args),
                        node=node,
                        location=location_of(self._tree.path, node),
                    )
                )
        return sites

    def _declare(self, body: Iterable[ast.stmt]) -> None:
        # forward references: classes and functions declared further down
        for stmt in body:
            if isinstance(stmt, (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)):
                self._bindings.setdefault(stmt.name, stmt)
            for nested in _nested_bodies(stmt):
                self._declare(nested)

    def _bind(self, body: Iterable[ast.stmt]) -> None:
        for stmt in body:
            if isinstance(stmt, ast.ClassDef):
                symbol = self._type_symbol(stmt)
                self._types.append(symbol)
                self._bindings[stmt.name] = symbol
            elif isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
                symbol = self._function_symbol(stmt, owner=None)
                self._functions.append(symbol)
                self._bindings[stmt.name] = symbol
                if stmt.name == "__getattr__":
                    self._has_dynamic_exports = True
            elif isinstance(stmt, ast.Import):
                for alias in stmt.names:
                    if alias.asname:
                        symbol = ImportSymbol(
                            alias.asname, alias.name, None, location_of(self._tree.path, stmt)
                        )
                    else:
                        head = alias.name.split(".")[0]
                        symbol = ImportSymbol(head, head, None, location_of(self._tree.path, stmt))
                    self._imports.append(symbol)
                    self._bindings[symbol.alias] = symbol
            elif isinstance(stmt, ast.ImportFrom):
                module = stmt.module or ""
                for alias in stmt.names:
                    if alias.name == "*":
                        self._has_dynamic_exports = True
                        self._imports.append(
                            ImportSymbol("*", module, "*", location_of(self._tree.path, stmt))
                        )
                        continue
                    symbol = ImportSymbol(
                        alias.asname or alias.name,
                        module,
                        alias.name,
                        location_of(self._tree.path, stmt),
                    )
                    self._imports.append(symbol)
                    self._bindings[symbol.alias] = symbol
            else:
                for target in _assigned_names(stmt):
                    self._bindings.setdefault(target, stmt)
                for nested in _nested_bodies(stmt):
                    self._bind(nested)

    def _type_symbol(self, node: ast.ClassDef) -> TypeSymbol:
        bases = tuple(self.resolve(base) or ast.unparse(base) for base in node.bases)
        metaclass = next((kw.value for kw in node.keywords if kw.arg == "metaclass"), None)
        methods = tuple(
            self._function_symbol(stmt, owner=node.name)
            for stmt in node.body
            if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef))
        )
        decorators = tuple(self.resolve(d) or ast.unparse(d) for d in node.decorator_list)
        is_abstract = (
            any(m.is_abstract for m in methods)
            or any(base in _ABSTRACT_BASES for base in bases)
            or (metaclass is not None and self.resolve(metaclass) in _ABSTRACT_METACLASSES)
        )
        return TypeSymbol(
            name=node.name,
            module=self.module_name,
            bases=bases,
            methods=methods,
            decorators=decorators,
            is_abstract=is_abstract,
            node=node,
            location=location_of(self._tree.path, node),
        )

    def _function_symbol(self, node: ast.AST, owner: Optional[str]) -> FunctionSymbol:
        assert isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef))
        decorators = tuple(self.resolve(d) or ast.unparse(d) for d in node.decorator_list)
        if owner is None:
            kind = "function"
        elif _STATIC_DECORATORS.intersection(decorators):
            kind = "staticmethod"
        elif _CLASS_DECORATORS.intersection(decorators):
            kind = "classmethod"
        elif _PROPERTY_DECORATORS.intersection(decorators):
            kind = "property"
        else:
            kind = "method"
        qualified = f"{self.module_name}.{owner}.{node.name}" if owner else (
            f"{self.module_name}.{node.name}"
        )
        return FunctionSymbol(
            name=node.name,
            qualified_name=qualified,
            kind=kind,
            parameters=self._parameters(node.args),
            returns=ast.unparse(node.returns) if node.returns is not None else None,
            is_async=isinstance(node, ast.AsyncFunctionDef),
            is_abstract=bool(_ABSTRACT_DECORATORS.intersection(decorators)),
            decorators=decorators,
            node=node,
            location=location_of(self._tree.path, node),
        )

    def _parameters(self, args: ast.arguments) -> Tuple[ParameterSymbol, ...]:
        positional = [*args.posonlyargs, *args.args]
        first_default = len(positional) - len(args.defaults)
        params = [
            self._parameter(arg, "positional", index >= first_default)
            for index, arg in enumerate(positional)
        ]
        if args.vararg is not None:
            params.append(self._parameter(args.vararg, "var_positional", False))
        for arg, default in zip(args.kwonlyargs, args.kw_defaults):
            params.append(self._parameter(arg, "keyword", default is not None))
        if args.kwarg is not None:
            params.append(self._parameter(args.kwarg, "var_keyword", False))
        return tuple(params)

    def _parameter(self, arg: ast.arg, kind: str, has_default: bool) -> ParameterSymbol:
        annotation = arg.annotation
        if isinstance(annotation, ast.Constant) and isinstance(annotation.value, str):
            try:
                annotation = ast.parse(annotation.value, mode="eval").body
            except SyntaxError:
                annotation = None
        annotation_type: Optional[str] = None
        type_arguments: Tuple[Optional[str], ...] = ()
        if isinstance(annotation, ast.Subscript):
            annotation_type = self.resolve(annotation.value)
            items = (
                annotation.slice.elts
                if isinstance(annotation.slice, ast.Tuple)
                else [annotation.slice]
            )
            type_arguments = tuple(self.resolve(item) for item in items)
        elif annotation is not None:
            annotation_type = self.resolve(annotation)
        return ParameterSymbol(
            name=arg.arg,
            annotation=ast.unparse(arg.annotation) if arg.annotation is not None else None,
            annotation_type=annotation_type,
            type_arguments=type_arguments,
            has_default=has_default,
            kind=kind,
        )


def _assigned_names(stmt: ast.stmt) -> List[str]:
    targets: List[ast.AST] = []
    if isinstance(stmt, ast.Assign):
        targets = list(stmt.targets)
    elif isinstance(stmt, (ast.AnnAssign, ast.AugAssign)):
        targets = [stmt.target]
    elif isinstance(stmt, (ast.For, ast.AsyncFor)):
        targets = [stmt.target]
    elif isinstance(stmt, (ast.With, ast.AsyncWith)):
        targets = [item.optional_vars for item in stmt.items if item.optional_vars is not None]
    elif isinstance(stmt, ast.Try):
        return [h.name for h in stmt.handlers if h.name]
    names = []
    for target in targets:
        for node in ast.walk(target):
            if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Store):
                names.append(node.id)
    return names


def _nested_bodies(stmt: ast.stmt) -> List[List[ast.stmt]]:
    """Statement lists executed at module scope inside a compound statement."""
    if isinstance(stmt, (ast.If, ast.For, ast.AsyncFor, ast.While)):
        return [stmt.body, stmt.orelse]
    if isinstance(stmt, (ast.With, ast.AsyncWith)):
        return [stmt.body]
    if isinstance(stmt, ast.Try):
        return [stmt.body, *(h.body for h in stmt.handlers), stmt.orelse, stmt.finalbody]
    return []
