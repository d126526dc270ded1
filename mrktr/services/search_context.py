# mrktr/services/search_context.py

"""Cancellation context passed to every provider call."""

import threading
import time

from mrktr.providers.errors import ContextCanceledError, DeadlineExceededError


class SearchContext:
    """Thread-safe cancel signal with an optional deadline.

    One context is created per orchestration call. The owner may
    ``cancel()`` it from any thread; providers check it before doing
    network I/O and size their request timeouts from ``remaining()``.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._cancelled = threading.Event()
        self._deadline: float | None = (
            time.monotonic() + timeout if timeout is not None else None
        )

    @classmethod
    def with_timeout(cls, seconds: float) -> "SearchContext":
        """Create a context that expires *seconds* from now."""
        return cls(timeout=seconds)

    def cancel(self) -> None:
        """Signal cancellation to every holder of this context."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return (
            self._deadline is not None
            and time.monotonic() >= self._deadline
        )

    def done(self) -> bool:
        """True once cancelled or past the deadline."""
        return self.cancelled or self.expired

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or ``None`` without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def error(self) -> Exception | None:
        """The error describing why the context is done, if it is."""
        if self.cancelled:
            return ContextCanceledError()
        if self.expired:
            return DeadlineExceededError()
        return None

    def raise_if_done(self) -> None:
        """Raise the context's error when it is already done."""
        err = self.error()
        if err is not None:
            raise err
