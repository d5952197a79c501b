"""Generates ``di.py``, a service locator for the services the program asks for.

Request a service with ``di.ServiceLocator.get_service(IFoo)``. Abstract types resolve
to their first implementation, ``list[IFoo]`` to all of them, and constructor parameters
annotated with a service type are injected. Services are singletons unless their type is
decorated with ``@di.transient``.
"""

import ast

from genplay.data import Diagnostic
from genplay.generators import SourceGenerator

LOCATOR = "di.ServiceLocator.get_service"
TRANSIENT = "di.transient"
COLLECTIONS = {
    "builtins.list",
    "typing.List",
    "typing.Sequence",
    "typing.Iterable",
    "collections.abc.Sequence",
    "collections.abc.Iterable",
}

HEADER = '''
def transient(service_type):
    """Marks a service type as transient: every request creates a new instance."""
    return service_type


class ServiceLocator:
    _instances = {}

    @classmethod
    def _singleton(cls, key, factory):
        if key not in cls._instances:
            cls._instances[key] = factory()
        return cls._instances[key]

    @classmethod
    def get_service(cls, service_type):
'''


class Service:
    def __init__(self, key, expression, implementation=None, transient=False, names=()):
        self.key = key
        self.names = names
        self.expression = expression
        self.implementation = implementation
        self.transient = transient
        self.arguments = []

    @property
    def is_collection(self):
        return self.implementation is None


class DependencyInjectionGenerator(SourceGenerator):
    def execute(self, context):
        compilation = context.compilation
        services = []
        for tree in compilation.syntax_trees:
            model = compilation.get_semantic_model(tree)
            for call in model.get_call_sites(context.cancellation_token):
                if call.callee != LOCATOR or len(call.arguments) != 1:
                    continue
                requested, item = self.requested_type(model, call.arguments[0])
                if requested is not None:
                    self.collect(context, requested, item, services, set())

        context.add_source("di", self.generate(services))

    @staticmethod
    def requested_type(model, node):
        if isinstance(node, ast.Subscript):
            return model.resolve(node.value), model.resolve(node.slice)
        return model.resolve(node), None

    def collect(self, context, requested, item, services, pending):
        compilation = context.compilation
        key = f"{requested}[{item}]" if item else requested
        if any(s.key == key for s in services):
            return
        if key in pending:
            self.report(context, f"Circular dependency on '{key}'.")
            return

        if item is not None and requested in COLLECTIONS:
            base = compilation.get_type_by_name(item)
            service = Service(key, f"list[{item}]", names=(item,))
            services.append(service)
            for implementation in compilation.find_implementations(base) if base else []:
                self.collect(
                    context, implementation.qualified_name, None, service.arguments, pending | {key}
                )
            return

        symbol = compilation.get_type_by_name(requested)
        implementation = symbol
        if symbol is not None and symbol.is_abstract:
            implementation = next(iter(compilation.find_implementations(symbol)), None)
        if implementation is None:
            self.report(context, f"Could not find an implementation of '{requested}'.")
            return

        service = Service(
            key,
            requested,
            implementation=implementation.qualified_name,
            transient=TRANSIENT in symbol.decorators,
            names=(requested, implementation.qualified_name),
        )
        services.append(service)
        for parameter in implementation.constructor_parameters:
            if parameter.annotation_type is None:
                continue
            argument = parameter.type_arguments[0] if parameter.type_arguments else None
            self.collect(
                context, parameter.annotation_type, argument, service.arguments, pending | {key}
            )

    @staticmethod
    def report(context, message):
        context.report_diagnostic(Diagnostic.error("DI0001", message))

    def generate(self, services):
        modules = sorted(
            {name.split(".")[0] for s in self.flatten(services) for name in s.names}
        )
        lines = [HEADER.lstrip("\n").rstrip("\n")]
        lines.extend(f"        import {module}" for module in modules)
        if modules:
            lines.append("")
        for service in services:
            lines.append(f"        if service_type == {service.expression}:")
            lines.append(f"            return {self.construct(service)}")
        lines.append('        raise LookupError(f"No service registered for {service_type!r}")')
        return "\n".join(lines) + "\n"

    def construct(self, service):
        arguments = ", ".join(self.construct(argument) for argument in service.arguments)
        if service.is_collection:
            return f"[{arguments}]"
        creation = f"{service.implementation}({arguments})"
        if service.transient:
            return creation
        return f'cls._singleton("{service.implementation}", lambda: {creation})'

    def flatten(self, services):
        for service in services:
            yield service
            yield from self.flatten(service.arguments)
