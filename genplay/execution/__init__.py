"""Execution of compiled programs."""

from .capture import captured_stdout
from .entry_point import EntryPoint, find_entry_point
from .host import NO_PROGRAM_OUTPUT, ExecutionHost, InProcessExecutionHost
from .subprocess_host import SubprocessExecutionHost

__all__ = [
    "captured_stdout",
    "EntryPoint",
    "find_entry_point",
    "ExecutionHost",
    "InProcessExecutionHost",
    "SubprocessExecutionHost",
    "NO_PROGRAM_OUTPUT",
]
