import sys

import pytest

from genplay.compile import Compilation, OutputKind, SyntaxTree
from genplay.data import DiagnosticSeverity, diagnostic_ids
from genplay.references import ReferenceHandle, ReferenceSet


def _compile(references, *units, kind=OutputKind.LIBRARY) -> Compilation:
    trees = [SyntaxTree.parse_text(text, path) for path, text in units]
    return Compilation.create("Test", trees, references, kind)


def _ids(compilation: Compilation):
    return [d.id for d in compilation.get_diagnostics()]


def test_clean_compilation_has_no_diagnostics(references):
    compilation = _compile(
        references,
        (
            "Program.py",
            "import json\nfrom typing import List\n\nx: List[int] = json.loads('[1]')\n",
        ),
    )
    assert compilation.get_diagnostics() == []


def test_syntax_error_has_location(references):
    compilation = _compile(references, ("Program.py", "def f(:\n    pass\n"))
    diagnostics = compilation.get_diagnostics()
    assert [d.id for d in diagnostics] == [diagnostic_ids.SYNTAX_ERROR]
    assert diagnostics[0].severity == DiagnosticSeverity.ERROR
    assert diagnostics[0].location.path == "Program.py"
    assert diagnostics[0].location.line == 1
    assert str(diagnostics[0]).startswith("Program.py(1,")


def test_compile_error_outside_parser(references):
    compilation = _compile(references, ("Program.py", "return 1\n"))
    assert _ids(compilation) == [diagnostic_ids.COMPILE_ERROR]


def test_unresolved_module(references):
    compilation = _compile(references, ("Program.py", "import not_a_real_module_xyz\n"))
    assert _ids(compilation) == [diagnostic_ids.UNRESOLVED_MODULE]


def test_module_of_compilation_resolves(references):
    compilation = _compile(
        references,
        ("Program.py", "import helpers\nfrom helpers import VALUE\n"),
        ("helpers.py", "VALUE = 1\n"),
    )
    assert compilation.get_diagnostics() == []


def test_unresolved_name_in_unit(references):
    compilation = _compile(
        references,
        ("Program.py", "from helpers import MISSING\n"),
        ("helpers.py", "VALUE = 1\n"),
    )
    assert _ids(compilation) == [diagnostic_ids.UNRESOLVED_NAME]


def test_dynamic_exports_skip_name_check(references):
    compilation = _compile(
        references,
        ("Program.py", "from helpers import anything\n"),
        ("helpers.py", "def __getattr__(name):\n    return name\n"),
    )
    assert compilation.get_diagnostics() == []


def test_unresolved_name_in_reference():
    references = ReferenceSet([ReferenceHandle(name="lib", symbols=frozenset({"a"}))])
    compilation = _compile(references, ("Program.py", "from lib import a, b\n"))
    assert _ids(compilation) == [diagnostic_ids.UNRESOLVED_NAME]


def test_package_reference_skips_name_check():
    references = ReferenceSet([ReferenceHandle(name="pkg", symbols=frozenset(), is_package=True)])
    compilation = _compile(references, ("Program.py", "from pkg import sub\n"))
    assert compilation.get_diagnostics() == []


def test_future_import_always_available():
    compilation = _compile(ReferenceSet(), ("Program.py", "from __future__ import annotations\n"))
    assert compilation.get_diagnostics() == []


def test_relative_import(references):
    compilation = _compile(references, ("Program.py", "from . import helpers\n"))
    assert _ids(compilation) == [diagnostic_ids.RELATIVE_IMPORT]


def test_duplicate_module(references):
    compilation = _compile(references, ("Program.py", "x = 1\n"), ("Program.py", "y = 2\n"))
    assert diagnostic_ids.DUPLICATE_MODULE in _ids(compilation)


def test_compiler_warning_is_not_an_error(references):
    compilation = _compile(references, ("Program.py", "x = 1 is 1\n"))
    diagnostics = compilation.get_diagnostics()
    assert [d.id for d in diagnostics] == [diagnostic_ids.COMPILER_WARNING]
    assert not diagnostics[0].is_error


def test_diagnostics_are_ordered(references):
    compilation = _compile(
        references,
        ("Program.py", "import missing_one\n"),
        ("Other.py", "def f(:\n"),
    )
    assert _ids(compilation) == [diagnostic_ids.SYNTAX_ERROR, diagnostic_ids.UNRESOLVED_MODULE]


def test_emit_executable_records_entry_module(references):
    compilation = _compile(
        references, ("Program.py", "x = 1\n"), ("helpers.py", "y = 2\n"), kind=OutputKind.EXECUTABLE
    )
    result = compilation.emit()
    assert result.success
    assert result.image is not None
    assert len(result.image) > 0
    assert result.image.entry_module == "Program"
    assert result.image.module_names == ["Program", "helpers"]


def test_emit_library_has_no_entry_module(references):
    result = _compile(references, ("Generator.py", "x = 1\n")).emit()
    assert result.success
    assert result.image.entry_module is None


def test_emit_fails_on_errors(references):
    result = _compile(references, ("Program.py", "def f(:\n")).emit()
    assert not result.success
    assert result.image is None
    assert [d.id for d in result.diagnostics] == [diagnostic_ids.SYNTAX_ERROR]


def test_add_syntax_trees_returns_new_compilation(references):
    original = _compile(references, ("Program.py", "import extra\n"))
    augmented = original.add_syntax_trees([SyntaxTree.parse_text("VALUE = 1\n", "extra.py")])
    assert original.module_names == ["Program"]
    assert augmented.module_names == ["Program", "extra"]
    assert _ids(original) == [diagnostic_ids.UNRESOLVED_MODULE]
    assert augmented.get_diagnostics() == []


def test_with_output_kind(references):
    library = _compile(references, ("Program.py", "x = 1\n"))
    executable = library.with_output_kind(OutputKind.EXECUTABLE)
    assert library.output_kind == OutputKind.LIBRARY
    assert executable.output_kind == OutputKind.EXECUTABLE
    assert executable.syntax_trees == library.syntax_trees


def test_type_lookup_and_implementations(references):
    source = (
        "from abc import ABC, abstractmethod\n"
        "class IFoo(ABC):\n"
        "    @abstractmethod\n"
        "    def run(self): ...\n"
        "class Foo(IFoo):\n"
        "    def run(self): return 1\n"
        "class SpecialFoo(Foo):\n"
        "    pass\n"
        "class Other:\n"
        "    pass\n"
    )
    compilation = _compile(references, ("Program.py", source))
    ifoo = compilation.get_type_by_name("Program.IFoo")
    assert ifoo is not None and ifoo.is_abstract
    assert compilation.get_type_by_name("Program.Missing") is None
    assert compilation.get_type_by_name("nowhere.IFoo") is None
    names = [t.name for t in compilation.find_implementations(ifoo)]
    assert names == ["Foo", "SpecialFoo"]


def test_semantic_model_requires_member_tree(references):
    compilation = _compile(references, ("Program.py", "x = 1\n"))
    foreign = SyntaxTree.parse_text("y = 1\n", "Other.py")
    with pytest.raises(ValueError):
        compilation.get_semantic_model(foreign)


if __name__ == "__main__":
    pytest.main(sys.argv)
