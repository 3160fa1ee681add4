"""
Caller-supplied cancellation for blocking remote queries.

A CancelContext is shared between the caller and every remote call issued
on its behalf. Cancelling it (or letting its deadline pass) makes the next
transport call fail with OperationCancelledError, and bounds the timeout of
the request currently being prepared to the remaining time.
"""

import threading
import time

from ghcache.exceptions import OperationCancelledError


class CancelContext:
    """Cancellation flag with an optional deadline."""

    def __init__(self, timeout: float | None = None) -> None:
        """
        Initialize the context.

        Args:
            timeout: Seconds until the context expires (None = no deadline)
        """
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        """Cancel every operation using this context."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.expired

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when there is none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self) -> None:
        """
        Raise if the context is no longer usable.

        Raises:
            OperationCancelledError: If cancelled or past the deadline
        """
        if self._event.is_set():
            raise OperationCancelledError()
        if self.expired:
            raise OperationCancelledError("operation deadline exceeded")

    def wait(self, seconds: float) -> None:
        """Sleep up to ``seconds``, waking early (and raising) on cancellation."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        if self._event.wait(seconds):
            raise OperationCancelledError()
        self.check()


def check_context(ctx: CancelContext | None) -> None:
    """Raise OperationCancelledError if ``ctx`` is cancelled; no-op for None."""
    if ctx is not None:
        ctx.check()
