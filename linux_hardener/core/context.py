"""
Run context carrying cancellation state through every module call.
"""

import threading
import time
from typing import Optional

from .exceptions import OperationCancelledError


class RunContext:
    """
    Caller-owned cancellation handle.

    Modules and the command runner poll ``cancelled``; any thread may call
    ``cancel()``. An optional timeout turns into cancellation once the
    deadline passes.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self.reason: Optional[str] = None

    @classmethod
    def background(cls) -> "RunContext":
        """Context that is never cancelled unless asked to be."""
        return cls()

    def cancel(self, reason: str = "cancelled") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel("deadline exceeded")
            return True
        return False

    def check(self) -> None:
        """Raise OperationCancelledError if the context is done."""
        if self.cancelled:
            raise OperationCancelledError(self.reason or "cancelled")
