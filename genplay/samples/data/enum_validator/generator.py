"""Generates ``enum_validation.py``, with a range check for every enum the program validates.

Call ``enum_validation.EnumValidator.validate(MyEnum, value)``. The members of ``MyEnum``
must have integer literal values; they are folded into ranges so that the generated check
is a couple of comparisons.
"""

import ast

from genplay.data import Diagnostic
from genplay.generators import SourceGenerator

VALIDATE = "enum_validation.EnumValidator.validate"
ENUM_BASES = {"enum.Enum", "enum.IntEnum", "enum.IntFlag", "enum.Flag"}

HEADER = '''
class EnumValidator:
    @staticmethod
    def validate(enum_type, value):
        check = _CHECKS.get(f"{enum_type.__module__}.{enum_type.__qualname__}")
        if check is None:
            raise LookupError(f"No validator generated for {enum_type.__qualname__}")
        check(value)
'''


class EnumValidatorGenerator(SourceGenerator):
    def execute(self, context):
        compilation = context.compilation
        enums = {}
        for tree in compilation.syntax_trees:
            model = compilation.get_semantic_model(tree)
            for call in model.get_call_sites(context.cancellation_token):
                if call.callee != VALIDATE or len(call.arguments) != 2:
                    continue
                name = model.resolve(call.arguments[0])
                symbol = compilation.get_type_by_name(name) if name else None
                if symbol is None or not ENUM_BASES.intersection(symbol.bases):
                    argument = ast.unparse(call.arguments[0])
                    self.report(context, call, f"'{argument}' is not an enum of the program.")
                    continue
                values = self.member_values(symbol.node)
                if values is None:
                    self.report(context, call, f"Members of '{name}' must have integer values.")
                    continue
                enums[name] = values

        context.add_source("enum_validation", self.generate(enums))

    @staticmethod
    def member_values(node):
        values = []
        for stmt in node.body:
            if not isinstance(stmt, ast.Assign) or not isinstance(stmt.targets[0], ast.Name):
                continue
            if stmt.targets[0].id.startswith("_"):
                continue
            value = stmt.value
            if not isinstance(value, ast.Constant) or type(value.value) is not int:
                return None
            values.append(value.value)
        return values

    @staticmethod
    def ranges(values):
        runs = []
        for value in sorted(set(values)):
            if runs and value == runs[-1][1] + 1:
                runs[-1][1] = value
            else:
                runs.append([value, value])
        return runs

    @staticmethod
    def report(context, call, message):
        context.report_diagnostic(Diagnostic.error("EV0001", message, call.location))

    def generate(self, enums):
        lines = [HEADER.strip("\n"), ""]
        for index, (name, values) in enumerate(sorted(enums.items())):
            conditions = " or ".join(
                f"value == {low}" if low == high else f"{low} <= value <= {high}"
                for low, high in self.ranges(values)
            )
            lines.append("")
            lines.append(f"def _check_{index}(value):")
            lines.append(f"    # {name}")
            lines.append(f"    if not ({conditions or 'False'}):")
            lines.append(
                f'        raise ValueError(f"{{value!r}} is not a valid {name.rpartition(".")[2]}")'
            )
        lines.append("")
        lines.append("")
        lines.append("_CHECKS = {")
        for index, name in enumerate(sorted(enums)):
            lines.append(f'    "{name}": _check_{index},')
        lines.append("}")
        return "\n".join(lines) + "\n"
