"""Scoped capture of the process-wide standard output."""

from __future__ import annotations

import contextlib
import io
import threading
from typing import Iterator

_stdout_lock = threading.RLock()
"""Serializes executions: ``sys.stdout`` is shared by every thread of the process."""


@contextlib.contextmanager
def captured_stdout() -> Iterator[io.StringIO]:
    """Redirect ``sys.stdout`` into a buffer for the duration of the block.

    Only one thread can hold the capture at a time; others wait until the previous block
    has exited, including exception unwinding. The previous stream is always restored.

    Yields
    ------
    io.StringIO
        The buffer receiving everything written to ``sys.stdout``.
    """
    buffer = io.StringIO()
    with _stdout_lock, contextlib.redirect_stdout(buffer):
        yield buffer
