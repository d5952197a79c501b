import sys

import pytest

from genplay.samples import PackagedSampleCatalog

IBAZ_REQUEST = "baz = di.ServiceLocator.get_service(IBaz)"


@pytest.fixture
def catalog() -> PackagedSampleCatalog:
    return PackagedSampleCatalog()


def test_list_samples(catalog):
    assert catalog.list_sample_names() == ["dependency_injection", "enum_validator", "hello_world"]


def test_unknown_sample(catalog):
    with pytest.raises(KeyError):
        catalog.load_sample("nope")


def test_hello_world_sample(catalog, runner):
    program, plugin = catalog.load_sample("hello_world")
    result = runner.run(program, plugin)
    assert result.error_text == ""
    assert "class Greeter:" in result.generated_source_text
    assert result.program_output_text == "Hello World\n"


def test_dependency_injection_sample(catalog, runner):
    program, plugin = catalog.load_sample("dependency_injection")
    result = runner.run(program, plugin)
    assert result.error_text == ""
    assert "class ServiceLocator" in result.generated_source_text
    assert result.program_output_text == "Hello World\nSame IFoo instance: True\n"


def test_dependency_injection_transient(catalog, runner):
    program, plugin = catalog.load_sample("dependency_injection")
    program = program.replace("# @di.transient", "@di.transient")
    result = runner.run(program, plugin)
    assert result.error_text == ""
    assert result.program_output_text == "Hello World\nSame IFoo instance: False\n"


def test_dependency_injection_reports_missing_implementation(catalog, runner):
    program, plugin = catalog.load_sample("dependency_injection")
    program = program.replace("# " + IBAZ_REQUEST, IBAZ_REQUEST)
    result = runner.run(program, plugin)
    assert result.error_text.startswith("Error(s) running generator:")
    assert "DI0001" in result.error_text
    assert "IBaz" in result.error_text
    assert result.program_output_text == ""


def test_enum_validator_sample(catalog, runner):
    program, plugin = catalog.load_sample("enum_validator")
    result = runner.run(program, plugin)
    assert "Program.Complex" in result.generated_source_text
    assert "3 <= value <= 4 or 7 <= value <= 9" in result.generated_source_text
    assert "0 <= value <= 1" in result.generated_source_text
    assert result.error_text.startswith(
        "Doing something simple with SECOND\n"
        "Doing something complex with FOURTH\n"
        "\n\nError executing program:"
    )
    assert result.error_text.endswith("ValueError: 5 is not a valid Complex")
    assert result.program_output_text == ""


def test_enum_validator_passes_valid_values(catalog, runner):
    program, plugin = catalog.load_sample("enum_validator")
    program = program.replace("Program.do_something_complex(5)", "Program.do_something_complex(9)")
    result = runner.run(program, plugin)
    assert result.error_text == ""
    assert result.program_output_text.endswith("Doing something complex with FIFTH\n")


def test_enum_validator_rejects_non_enum(catalog, runner):
    program, plugin = catalog.load_sample("enum_validator")
    program = program.replace("validate(Simple, value)", "validate(Program, value)")
    result = runner.run(program, plugin)
    assert result.error_text.startswith("Error(s) running generator:")
    assert "error EV0001: 'Program' is not an enum of the program." in result.error_text


if __name__ == "__main__":
    pytest.main(sys.argv)
