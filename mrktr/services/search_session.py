# mrktr/services/search_session.py

"""Consumer-side guard against stale search responses."""

import logging
import threading

from mrktr.services.search_context import SearchContext
from mrktr.services.search_orchestrator import (
    SearchOrchestrator,
    SearchResponse,
)

logger = logging.getLogger("mrktr.session")


class SearchSession:
    """Tracks the one search a consumer currently cares about.

    Starting a new search cancels the previous context and bumps a
    generation number; a response is only delivered if its generation
    is still the latest when it arrives.
    """

    def __init__(
        self,
        orchestrator: SearchOrchestrator,
        timeout: float | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.timeout = timeout
        self._lock = threading.Lock()
        self._generation = 0
        self._ctx: SearchContext | None = None

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def start(self) -> tuple[int, SearchContext]:
        """Supersede any in-flight search and open a new context."""
        ctx = SearchContext(timeout=self.timeout)
        with self._lock:
            previous = self._ctx
            self._generation += 1
            self._ctx = ctx
            generation = self._generation
        if previous is not None:
            previous.cancel()
        return generation, ctx

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def cancel(self) -> None:
        """Cancel the in-flight search without starting another."""
        with self._lock:
            ctx = self._ctx
            self._ctx = None
        if ctx is not None:
            ctx.cancel()

    async def run(self, query: str) -> SearchResponse | None:
        """Search for *query*; ``None`` if a newer search superseded it."""
        generation, ctx = self.start()
        response = await self.orchestrator.search(query, ctx)
        if not self.is_current(generation):
            logger.debug(
                "Discarding stale response for '%s' (generation %d)",
                query,
                generation,
            )
            return None
        return response
