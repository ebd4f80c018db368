"""Cancellation signal passed into repository operations."""

import threading
import time

from .errors import OperationCancelledError


class OperationContext:
    """Cancellation flag with an optional deadline.

    The context is only consulted before an operation starts its I/O.
    Once a filesystem call is in flight it runs to completion, so a
    cancel() that arrives late cannot revoke the write.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._cancelled = threading.Event()
        self.deadline: float | None = None
        if timeout is not None:
            self.deadline = time.monotonic() + timeout

    def cancel(self) -> None:
        """Request cancellation of every operation using this context."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def check(self, operation: str) -> None:
        """Raise if the operation must not start.

        Raises:
            OperationCancelledError: If cancelled or past the deadline.
        """
        if self.cancelled:
            raise OperationCancelledError(operation)
        if self.expired:
            raise OperationCancelledError(operation, reason="deadline exceeded")


def check_context(ctx: OperationContext | None, operation: str) -> None:
    """Check an optional context; a missing context never cancels."""
    if ctx is not None:
        ctx.check(operation)
