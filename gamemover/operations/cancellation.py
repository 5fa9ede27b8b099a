"""Cooperative cancellation handle shared between a caller and a transfer."""

import threading


class CancelToken:
    """Thread-safe, one-way cancellation flag.

    The caller sets it from any thread; the transfer polls it between files
    and directories. Once cancelled it stays cancelled.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Block up to timeout seconds; return True if cancelled meanwhile."""
        return self._event.wait(timeout)
