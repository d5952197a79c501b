"""Cooperative cancellation for superseded runs."""

from __future__ import annotations

import threading


class OperationCancelled(Exception):
    """Raised when work observes that its cancellation token has been cancelled."""


class CancellationToken:
    """A thread-safe, one-way cancellation flag.

    Compilation loops poll the token with :meth:`raise_if_cancelled`. Once cancelled, a
    token stays cancelled.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise :class:`OperationCancelled` if the token has been cancelled."""
        if self._event.is_set():
            raise OperationCancelled()

    @classmethod
    def none(cls) -> "CancellationToken":
        """A token nobody holds a reference to, hence never cancelled."""
        return cls()
