import ast
import sys
from typing import List

import pytest

from genplay.cancellation import CancellationToken, OperationCancelled
from genplay.compile import Compilation, SyntaxTree
from genplay.data import Diagnostic, diagnostic_ids
from genplay.generators import (
    GeneratorDriver,
    GeneratorExecutionContext,
    InitializationContext,
    SourceGenerator,
    SyntaxReceiver,
)

PROGRAM = """
import generated


class Program:
    @staticmethod
    def Main():
        print(generated.VALUE)
"""


@pytest.fixture
def compilation(references) -> Compilation:
    tree = SyntaxTree.parse_text(PROGRAM, "Program.py")
    return Compilation.create("Program", [tree], references)


class AddsSource(SourceGenerator):
    def __init__(self, name: str = "generated", text: str = "VALUE = 1\n") -> None:
        self.name = name
        self.text = text
        self.seen_modules: List[List[str]] = []

    def execute(self, context: GeneratorExecutionContext) -> None:
        self.seen_modules.append(context.compilation.module_names)
        context.add_source(self.name, self.text)


class Raises(SourceGenerator):
    def execute(self, context: GeneratorExecutionContext) -> None:
        context.add_source("discarded", "X = 1\n")
        raise KeyError("boom")


class Reports(SourceGenerator):
    def execute(self, context: GeneratorExecutionContext) -> None:
        context.report_diagnostic(Diagnostic.warning("GEN001", "just saying"))


class FailsToInitialize(SourceGenerator):
    def initialize(self, context: InitializationContext) -> None:
        raise RuntimeError("no init")

    def execute(self, context: GeneratorExecutionContext) -> None:
        context.add_source("never", "X = 1\n")


class CallCounter(SyntaxReceiver):
    def __init__(self) -> None:
        self.calls = 0

    def on_visit_syntax_node(self, node: ast.AST) -> None:
        if isinstance(node, ast.Call):
            self.calls += 1


class UsesReceiver(SourceGenerator):
    def initialize(self, context: InitializationContext) -> None:
        context.register_for_syntax_notifications(CallCounter)

    def execute(self, context: GeneratorExecutionContext) -> None:
        context.add_source("calls", f"COUNT = {context.syntax_receiver.calls}\n")


class BrokenReceiver(SyntaxReceiver):
    def on_visit_syntax_node(self, node: ast.AST) -> None:
        raise ValueError("receiver broke")


class UsesBrokenReceiver(SourceGenerator):
    def initialize(self, context: InitializationContext) -> None:
        context.register_for_syntax_notifications(BrokenReceiver)

    def execute(self, context: GeneratorExecutionContext) -> None:
        context.add_source("never", "X = 1\n")


class ExitsDuringInitialize(SourceGenerator):
    def initialize(self, context: InitializationContext) -> None:
        sys.exit(2)

    def execute(self, context: GeneratorExecutionContext) -> None:
        context.add_source("never", "X = 1\n")


class ExitsDuringExecute(SourceGenerator):
    def execute(self, context: GeneratorExecutionContext) -> None:
        context.add_source("discarded", "X = 1\n")
        sys.exit(3)


class ExitingReceiver(SyntaxReceiver):
    def on_visit_syntax_node(self, node: ast.AST) -> None:
        sys.exit(4)


class UsesExitingReceiver(SourceGenerator):
    def initialize(self, context: InitializationContext) -> None:
        context.register_for_syntax_notifications(ExitingReceiver)

    def execute(self, context: GeneratorExecutionContext) -> None:
        context.add_source("never", "X = 1\n")


class ReportsNonDiagnostic(SourceGenerator):
    def execute(self, context: GeneratorExecutionContext) -> None:
        context.report_diagnostic("not a diagnostic")


def test_no_generators(compilation):
    result = GeneratorDriver([]).run(compilation)
    assert result.generated_sources == ()
    assert result.diagnostics == ()
    assert result.compilation.module_names == ["Program"]


def test_generated_sources_are_appended(compilation):
    result = GeneratorDriver([AddsSource()]).run(compilation)
    assert [u.path for u in result.generated_sources] == ["generated.py"]
    assert result.compilation.module_names == ["Program", "generated"]
    assert result.compilation.get_diagnostics() == []
    # the original compilation is untouched
    assert compilation.module_names == ["Program"]


def test_generators_observe_the_original_compilation(compilation):
    first = AddsSource("first")
    second = AddsSource("second")
    result = GeneratorDriver([first, second]).run(compilation)
    assert first.seen_modules == [["Program"]]
    assert second.seen_modules == [["Program"]]
    assert result.compilation.module_names == ["Program", "first", "second"]


def test_failing_generator_contributes_nothing(compilation):
    result = GeneratorDriver([Raises(), AddsSource()]).run(compilation)
    assert [u.path for u in result.generated_sources] == ["generated.py"]
    assert [d.id for d in result.diagnostics] == [diagnostic_ids.GENERATOR_EXECUTION_FAILED]
    message = result.diagnostics[0].message
    assert "Generator 'Raises' failed to generate source" in message
    assert "'KeyError'" in message
    assert result.has_errors


def test_initialization_failure(compilation):
    result = GeneratorDriver([FailsToInitialize()]).run(compilation)
    assert result.generated_sources == ()
    assert [d.id for d in result.diagnostics] == [diagnostic_ids.GENERATOR_INITIALIZATION_FAILED]


def test_reported_diagnostics_pass_through(compilation):
    result = GeneratorDriver([Reports()]).run(compilation)
    assert [(d.id, d.message) for d in result.diagnostics] == [("GEN001", "just saying")]
    assert not result.has_errors


def test_syntax_receiver(compilation):
    result = GeneratorDriver([UsesReceiver()]).run(compilation)
    assert result.generated_sources[0].text == "COUNT = 1\n"


def test_syntax_receiver_failure(compilation):
    result = GeneratorDriver([UsesBrokenReceiver()]).run(compilation)
    assert result.generated_sources == ()
    assert [d.id for d in result.diagnostics] == [diagnostic_ids.SYNTAX_RECEIVER_FAILED]


@pytest.mark.parametrize("hint", ["Program", "Program.py", "not-valid", "nested/name"])
def test_invalid_or_colliding_hint_names(compilation, hint):
    result = GeneratorDriver([AddsSource(hint)]).run(compilation)
    assert result.generated_sources == ()
    assert [d.id for d in result.diagnostics] == [diagnostic_ids.GENERATOR_EXECUTION_FAILED]


def test_hint_collision_between_generators(compilation):
    result = GeneratorDriver([AddsSource("shared"), AddsSource("shared")]).run(compilation)
    assert [u.path for u in result.generated_sources] == ["shared.py"]
    assert [d.id for d in result.diagnostics] == [diagnostic_ids.GENERATOR_EXECUTION_FAILED]


def test_cancellation_propagates(compilation):
    token = CancellationToken()
    token.cancel()
    with pytest.raises(OperationCancelled):
        GeneratorDriver([AddsSource()]).run(compilation, token)


@pytest.mark.parametrize(
    "generator, expected_id",
    [
        (ExitsDuringInitialize(), diagnostic_ids.GENERATOR_INITIALIZATION_FAILED),
        (ExitsDuringExecute(), diagnostic_ids.GENERATOR_EXECUTION_FAILED),
        (UsesExitingReceiver(), diagnostic_ids.SYNTAX_RECEIVER_FAILED),
    ],
)
def test_sys_exit_is_a_generator_failure(compilation, generator, expected_id):
    result = GeneratorDriver([generator, AddsSource()]).run(compilation)
    assert [u.path for u in result.generated_sources] == ["generated.py"]
    assert [d.id for d in result.diagnostics] == [expected_id]
    assert "'SystemExit'" in result.diagnostics[0].message


def test_report_rejects_non_diagnostic(compilation):
    result = GeneratorDriver([ReportsNonDiagnostic()]).run(compilation)
    assert [d.id for d in result.diagnostics] == [diagnostic_ids.GENERATOR_EXECUTION_FAILED]
    message = result.diagnostics[0].message
    assert "'TypeError'" in message
    assert "Expected a Diagnostic, got an object of type 'str'" in message


if __name__ == "__main__":
    pytest.main(sys.argv)
