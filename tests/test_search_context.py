# tests/test_search_context.py

"""Tests for SearchContext cancellation and deadlines."""

import threading
import time
import unittest

from mrktr.providers.errors import ContextCanceledError, DeadlineExceededError
from mrktr.services.search_context import SearchContext


class TestSearchContext(unittest.TestCase):
    """SearchContext state transitions."""

    def test_fresh_context_not_done(self) -> None:
        """A new context without timeout is open indefinitely."""
        ctx = SearchContext()
        self.assertFalse(ctx.done())
        self.assertIsNone(ctx.remaining())
        self.assertIsNone(ctx.error())
        ctx.raise_if_done()

    def test_cancel(self) -> None:
        """cancel() marks the context done with a canceled error."""
        ctx = SearchContext()
        ctx.cancel()
        self.assertTrue(ctx.cancelled)
        self.assertTrue(ctx.done())
        self.assertIsInstance(ctx.error(), ContextCanceledError)
        with self.assertRaises(ContextCanceledError):
            ctx.raise_if_done()

    def test_cancel_from_other_thread(self) -> None:
        """Cancellation is visible across threads."""
        ctx = SearchContext()
        worker = threading.Thread(target=ctx.cancel)
        worker.start()
        worker.join()
        self.assertTrue(ctx.done())

    def test_deadline(self) -> None:
        """An elapsed timeout yields DeadlineExceededError."""
        ctx = SearchContext.with_timeout(0.01)
        time.sleep(0.05)
        self.assertTrue(ctx.expired)
        self.assertEqual(ctx.remaining(), 0.0)
        self.assertIsInstance(ctx.error(), DeadlineExceededError)

    def test_cancel_outranks_deadline(self) -> None:
        """A cancelled and expired context reports cancellation."""
        ctx = SearchContext(timeout=0.0)
        ctx.cancel()
        self.assertIsInstance(ctx.error(), ContextCanceledError)

    def test_remaining_counts_down(self) -> None:
        """remaining() stays within the requested budget."""
        ctx = SearchContext(timeout=10.0)
        remaining = ctx.remaining()
        self.assertIsNotNone(remaining)
        self.assertLessEqual(remaining, 10.0)
        self.assertGreater(remaining, 9.0)


if __name__ == "__main__":
    unittest.main()
