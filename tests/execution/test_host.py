import sys
import threading

import pytest

from genplay.compile import ProgramCompiler
from genplay.data import ErrorKind
from genplay.errors import ExecutionRuntimeError, ExecutionShapeError
from genplay.execution import NO_PROGRAM_OUTPUT, InProcessExecutionHost, captured_stdout


def _image(references, source: str):
    compiler = ProgramCompiler()
    return compiler.compile(compiler.parse(source, references))


def _run(references, source: str) -> str:
    return InProcessExecutionHost().execute(_image(references, source))


def test_captures_output(references):
    source = "class Program:\n    @staticmethod\n    def Main():\n        print('hello')\n"
    assert _run(references, source) == "hello\n"


def test_empty_output_placeholder(references):
    source = "class Program:\n    @staticmethod\n    def Main():\n        pass\n"
    assert _run(references, source) == NO_PROGRAM_OUTPUT


def test_module_level_output_is_captured(references):
    source = (
        "print('loading')\n\n"
        "class Program:\n"
        "    @staticmethod\n"
        "    def Main(args):\n"
        "        print(args)\n"
    )
    assert _run(references, source) == "loading\nNone\n"


def test_async_main_is_awaited(references):
    source = (
        "import asyncio\n\n"
        "class Program:\n"
        "    @staticmethod\n"
        "    async def Main():\n"
        "        await asyncio.sleep(0)\n"
        "        print('async done')\n"
    )
    assert _run(references, source) == "async done\n"


def test_runtime_failure_keeps_partial_output(references):
    source = (
        "class Program:\n"
        "    @staticmethod\n"
        "    def Main():\n"
        "        print('partial-line')\n"
        "        raise ValueError('bad value')\n"
    )
    with pytest.raises(ExecutionRuntimeError) as info:
        _run(references, source)
    error = info.value
    assert error.kind == ErrorKind.EXECUTION_RUNTIME_FAILURE
    assert error.partial_output == "partial-line\n"
    assert error.text.startswith("partial-line\n\n\nError executing program:\n\nTraceback")
    assert 'File "Program.py", line 5, in Main' in error.text
    assert error.text.endswith("ValueError: bad value")


def test_base_exception_keeps_partial_output(references):
    source = (
        "class Stop(BaseException):\n"
        "    pass\n\n"
        "class Program:\n"
        "    @staticmethod\n"
        "    def Main():\n"
        "        print('partial-line')\n"
        "        raise Stop('halt')\n"
    )
    with pytest.raises(ExecutionRuntimeError) as info:
        _run(references, source)
    assert info.value.partial_output == "partial-line\n"
    assert info.value.description.endswith("Program.Stop: halt")


def test_failure_during_module_load(references):
    source = "raise RuntimeError('top level')\n\nclass Program:\n    pass\n"
    with pytest.raises(ExecutionRuntimeError) as info:
        _run(references, source)
    assert "RuntimeError: top level" in info.value.text


def test_shape_error(references):
    with pytest.raises(ExecutionShapeError) as info:
        _run(references, "class NotProgram:\n    pass\n")
    assert info.value.text == (
        'Error executing program:\n\nCould not find type "Program" in program.'
    )


@pytest.mark.parametrize("code", ["0", "None", ""])
def test_successful_exit(references, code):
    source = (
        "import sys\n\n"
        "class Program:\n"
        "    @staticmethod\n"
        "    def Main():\n"
        "        print('before exit')\n"
        f"        sys.exit({code})\n"
        "        print('after exit')\n"
    )
    assert _run(references, source) == "before exit\n"


def test_failing_exit(references):
    source = (
        "import sys\n\n"
        "class Program:\n"
        "    @staticmethod\n"
        "    def Main():\n"
        "        sys.exit(3)\n"
    )
    with pytest.raises(ExecutionRuntimeError) as info:
        _run(references, source)
    assert info.value.description == "SystemExit: 3"


def test_static_state_does_not_leak_between_runs(references):
    source = (
        "class Program:\n"
        "    count = 0\n\n"
        "    @staticmethod\n"
        "    def Main():\n"
        "        Program.count += 1\n"
        "        print(Program.count)\n"
    )
    image = _image(references, source)
    host = InProcessExecutionHost()
    assert host.execute(image) == "1\n"
    assert host.execute(image) == "1\n"


def test_stdout_is_restored_after_failure(references):
    original = sys.stdout
    with pytest.raises(ExecutionRuntimeError):
        _run(references, "class Program:\n    @staticmethod\n    def Main():\n        1 / 0\n")
    assert sys.stdout is original


def test_capture_is_serialized():
    order = []
    inside = threading.Event()
    release = threading.Event()

    def first() -> None:
        with captured_stdout() as buffer:
            inside.set()
            release.wait(5)
            print("first")
            order.append(("first", buffer.getvalue()))

    def second() -> None:
        inside.wait(5)
        with captured_stdout() as buffer:
            print("second")
            order.append(("second", buffer.getvalue()))

    original = sys.stdout
    threads = [threading.Thread(target=first), threading.Thread(target=second)]
    for t in threads:
        t.start()
    inside.wait(5)
    release.set()
    for t in threads:
        t.join()
    assert order == [("first", "first\n"), ("second", "second\n")]
    assert sys.stdout is original


if __name__ == "__main__":
    pytest.main(sys.argv)
