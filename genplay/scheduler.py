"""Superseding, cancellable scheduling of runs."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from genplay.cancellation import CancellationToken, OperationCancelled
from genplay.data import RunResult
from genplay.logging import get_logger
from genplay.runner import Runner

logger = get_logger("RunScheduler")


class RunScheduler:
    """Runs submissions on worker threads; only the newest submission may publish.

    Every :meth:`submit` cancels the token of the previous run and bumps the generation.
    A run whose generation is no longer the newest when it finishes, or that observed its
    cancellation, resolves to None and leaves :attr:`latest` untouched.

    Parameters
    ----------
    runner : Runner
        Runner evaluating the submissions.
    on_result : Optional[Callable[[RunResult], None]]
        Called with every published result, on the worker thread.
    max_workers : int
        Threads running submissions. Superseded runs keep a thread until they notice.
    """

    def __init__(
        self,
        runner: Runner,
        on_result: Optional[Callable[[RunResult], None]] = None,
        max_workers: int = 2,
    ) -> None:
        self._runner = runner
        self._on_result = on_result
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="genplay")
        self._lock = threading.Lock()
        self._generation = 0
        self._token: Optional[CancellationToken] = None
        self._latest: Optional[RunResult] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def latest(self) -> Optional[RunResult]:
        """The result of the newest run that completed, if any."""
        return self._latest

    def submit(self, program: str, plugin: str) -> "Future[Optional[RunResult]]":
        """Schedule a run, superseding the one in flight."""
        token = CancellationToken()
        with self._lock:
            if self._token is not None:
                self._token.cancel()
            self._generation += 1
            generation = self._generation
            self._token = token
        logger.debug("Submitted run generation %d", generation)
        return self._executor.submit(self._run, generation, token, program, plugin)

    def cancel(self) -> None:
        """Cancel the run in flight, if any."""
        with self._lock:
            if self._token is not None:
                self._token.cancel()

    def shutdown(self, wait: bool = True) -> None:
        self.cancel()
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "RunScheduler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def _run(
        self, generation: int, token: CancellationToken, program: str, plugin: str
    ) -> Optional[RunResult]:
        try:
            result = self._runner.evaluate(program, plugin, token)
        except OperationCancelled:
            logger.debug("Run generation %d cancelled", generation)
            return None
        with self._lock:
            if generation != self._generation or token.is_cancelled:
                logger.debug("Run generation %d superseded", generation)
                return None
            self._latest = result
        if self._on_result is not None:
            self._on_result(result)
        return result
