import sys

import pytest

from genplay.compile import OutputKind, ProgramCompiler, SyntaxTree
from genplay.data import Stage
from genplay.errors import CompileDiagnosticsError, EmitFailureError, InputMissingError


@pytest.mark.parametrize("source", ["", " \n "])
def test_empty_program(references, source):
    with pytest.raises(InputMissingError) as info:
        ProgramCompiler().parse(source, references)
    assert info.value.text == "Need more input for the user code!"


def test_parse_is_library_shaped_and_tolerates_errors(references):
    compilation = ProgramCompiler().parse("import generated_later\n", references)
    assert compilation.output_kind == OutputKind.LIBRARY
    assert compilation.module_names == ["Program"]


def test_compile_augmented_program(references):
    compiler = ProgramCompiler()
    compilation = compiler.parse("import extra\nVALUE = extra.X\n", references)
    augmented = compilation.add_syntax_trees([SyntaxTree.parse_text("X = 1\n", "extra.py")])
    image = compiler.compile(augmented)
    assert image.entry_module == "Program"
    assert image.module_names == ["Program", "extra"]


def test_compile_errors(references):
    compiler = ProgramCompiler()
    compilation = compiler.parse("class Program:\n    def Main(:\n", references)
    with pytest.raises(CompileDiagnosticsError) as info:
        compiler.compile(compilation)
    assert info.value.stage == Stage.PROGRAM_COMPILE
    assert info.value.text.startswith("Error(s) compiling program:\n\nProgram.py(2,")
    assert all(d.is_error for d in info.value.diagnostics)


def test_custom_file_name(references):
    compiler = ProgramCompiler("Main.py")
    compilation = compiler.parse("x = 1\n", references)
    assert compiler.compile(compilation).entry_module == "Main"


def test_emit_failure_with_diagnostics(references, monkeypatch):
    from genplay.compile.compilation import Compilation, EmitResult
    from genplay.data import Diagnostic

    failure = Diagnostic.error("GP2001", "cannot marshal")
    monkeypatch.setattr(
        Compilation,
        "emit",
        lambda self, token=None: EmitResult(success=False, diagnostics=(failure,)),
    )
    compiler = ProgramCompiler()
    with pytest.raises(EmitFailureError) as info:
        compiler.compile(compiler.parse("x = 1\n", references))
    assert info.value.text == "Error emitting program:\n\nerror GP2001: cannot marshal"


if __name__ == "__main__":
    pytest.main(sys.argv)
