import sys
import threading

import pytest

from genplay.cancellation import OperationCancelled
from genplay.data import RunResult
from genplay.scheduler import RunScheduler


class BlockingRunner:
    """Runner stand-in whose first evaluation waits until released."""

    def __init__(self) -> None:
        self.started = threading.Event()
        self.release = threading.Event()
        self.calls = 0
        self._lock = threading.Lock()

    def evaluate(self, program, plugin, cancellation_token=None):
        with self._lock:
            self.calls += 1
            first = self.calls == 1
        if first:
            self.started.set()
            self.release.wait(5)
        return RunResult(program_output_text=program)


class CancellationAwareRunner:
    def __init__(self) -> None:
        self.started = threading.Event()

    def evaluate(self, program, plugin, cancellation_token=None):
        self.started.set()
        while not cancellation_token.is_cancelled:
            cancellation_token._event.wait(0.01)
        raise OperationCancelled()


def test_single_run_publishes():
    published = []
    with RunScheduler(BlockingRunner(), on_result=published.append) as scheduler:
        scheduler._runner.release.set()
        result = scheduler.submit("first", "plugin").result(timeout=5)
    assert result.program_output_text == "first"
    assert scheduler.latest == result
    assert published == [result]
    assert scheduler.generation == 1


def test_newer_submission_supersedes_older():
    runner = BlockingRunner()
    published = []
    with RunScheduler(runner, on_result=published.append) as scheduler:
        old = scheduler.submit("old", "plugin")
        assert runner.started.wait(5)
        new = scheduler.submit("new", "plugin")
        assert new.result(timeout=5).program_output_text == "new"
        runner.release.set()
        assert old.result(timeout=5) is None
    assert scheduler.latest.program_output_text == "new"
    assert [r.program_output_text for r in published] == ["new"]
    assert scheduler.generation == 2


def test_cancelled_run_resolves_to_none():
    runner = CancellationAwareRunner()
    with RunScheduler(runner) as scheduler:
        future = scheduler.submit("program", "plugin")
        assert runner.started.wait(5)
        scheduler.cancel()
        assert future.result(timeout=5) is None
    assert scheduler.latest is None


def test_real_runner(runner, service_locator_plugin, service_locator_program):
    with RunScheduler(runner) as scheduler:
        result = scheduler.submit(service_locator_program, service_locator_plugin).result(10)
    assert result.program_output_text == "Hello from the locator\n"


if __name__ == "__main__":
    pytest.main(sys.argv)
