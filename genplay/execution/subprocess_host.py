"""Execution host running every program in a disposable worker process."""

from __future__ import annotations

import multiprocessing as mp
import time
from multiprocessing.connection import Connection
from typing import Any, Dict, Optional

from genplay.cancellation import CancellationToken, OperationCancelled
from genplay.compile.image import ModuleImage
from genplay.errors import ExecutionRuntimeError, ExecutionShapeError
from genplay.logging import get_logger

from .entry_point import ENTRY_METHOD_NAME, ENTRY_TYPE_NAME
from .host import ExecutionHost, InProcessExecutionHost

logger = get_logger("SubprocessExecutionHost")

_POLL_INTERVAL = 0.05
"""Seconds between two cancellation checks while waiting for the worker."""


class SubprocessExecutionHost(ExecutionHost):
    """Runs each program in a fresh ``spawn`` worker process.

    The worker runs an :class:`InProcessExecutionHost` and sends back either the output or
    the failure. A worker that dies, or outlives the timeout, is terminated and reported as
    a runtime failure of the program.

    Parameters
    ----------
    timeout : Optional[float]
        Seconds the program may run. None waits forever.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        type_name: str = ENTRY_TYPE_NAME,
        method_name: str = ENTRY_METHOD_NAME,
    ) -> None:
        super().__init__(type_name, method_name)
        if timeout is not None and timeout <= 0:
            raise ValueError(f"Execution timeout must be positive, got {timeout}")
        self.timeout = timeout

    def execute(
        self, image: ModuleImage, cancellation_token: Optional[CancellationToken] = None
    ) -> str:
        if cancellation_token is not None:
            cancellation_token.raise_if_cancelled()

        ctx = mp.get_context("spawn")
        parent_conn, child_conn = ctx.Pipe(duplex=True)
        proc = ctx.Process(
            target=_execution_worker_main,
            args=(child_conn, self.type_name, self.method_name),
            daemon=True,
        )
        proc.start()
        child_conn.close()

        msg: Optional[Dict[str, Any]] = None
        try:
            msg = parent_conn.recv()
            if msg.get("cmd") != "READY":
                raise RuntimeError(f"Execution worker failed to start, got: {msg}")
            parent_conn.send({"ok": True, "image": image})
            msg = self._wait_for_result(parent_conn, cancellation_token)
        except EOFError:
            logger.error("Execution worker for '%s' crashed", image.name, exc_info=True)
            msg = None
        finally:
            parent_conn.close()
            if msg is not None and msg.get("cmd") != "READY":
                proc.join(timeout=2)
            if proc.is_alive():
                proc.terminate()
                proc.join(timeout=2)

        if msg is None:
            raise ExecutionRuntimeError("", "Execution worker exited unexpectedly.")
        cmd = msg.get("cmd")
        if cmd == "RESULT":
            return msg["output"]
        if cmd == "SHAPE_ERROR":
            raise ExecutionShapeError(msg["message"])
        if cmd == "RUNTIME_ERROR":
            raise ExecutionRuntimeError(msg["partial_output"], msg["description"])
        raise RuntimeError(f"Unknown execution worker message: {cmd}")

    def _wait_for_result(
        self, conn: Connection, cancellation_token: Optional[CancellationToken]
    ) -> Dict[str, Any]:
        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        while not conn.poll(_POLL_INTERVAL):
            if cancellation_token is not None and cancellation_token.is_cancelled:
                raise OperationCancelled()
            if deadline is not None and time.monotonic() >= deadline:
                logger.info("Execution worker timed out after %g seconds", self.timeout)
                raise ExecutionRuntimeError(
                    "", f"Program did not finish within {self.timeout:g} seconds."
                )
        return conn.recv()


def _execution_worker_main(conn: Connection, type_name: str, method_name: str) -> None:
    """Worker process: run one program and report its outcome through ``conn``.

    Parameters
    ----------
    conn : Connection
        Pipe end shared with the parent process.
    type_name : str
        Name of the entry type.
    method_name : str
        Name of the entry method.
    """
    try:
        conn.send({"cmd": "READY"})
        init = conn.recv()
        if not init.get("ok", False):
            return
        host = InProcessExecutionHost(type_name, method_name)
        try:
            output = host.execute(init["image"])
        except ExecutionShapeError as e:
            conn.send({"cmd": "SHAPE_ERROR", "message": e.message})
            return
        except ExecutionRuntimeError as e:
            conn.send(
                {
                    "cmd": "RUNTIME_ERROR",
                    "partial_output": e.partial_output,
                    "description": e.description,
                }
            )
            return
        conn.send({"cmd": "RESULT", "output": output})
    finally:
        conn.close()
