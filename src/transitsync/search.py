"""Autocomplete coordination.

Every non-empty query bumps a generation counter and starts a request tagged
with that generation. When a response arrives it is published only if its
generation is still the current one; responses of superseded queries are
dropped, so the visible results always belong to the latest query no matter
in which order the network completes.

Superseded tasks are also cancelled, but only as an optimization: the
generation comparison is what guarantees ordering.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from enum import StrEnum

from transitsync.models.location import Coordinates
from transitsync.models.search import BiasRegion, SearchResult, SearchResultKind
from transitsync.providers import AutocompleteProvider

_logger = logging.getLogger(__name__)


class SearchPhase(StrEnum):
    IDLE = "idle"
    SEARCHING = "searching"


def _as_address(result: SearchResult) -> SearchResult:
    # Place suggestions are shown as address rows; stop/route/category kinds are kept.
    if result.kind == SearchResultKind.PLACE:
        return result.model_copy(update={"kind": SearchResultKind.ADDRESS})
    return result


def destination_categories() -> list[SearchResult]:
    """Suggestions shown before the user types anything."""
    return [
        SearchResult(title="Ospedali", subtitle="Strutture sanitarie", kind=SearchResultKind.CATEGORY),
        SearchResult(title="Università", subtitle="Campus e istituti di istruzione", kind=SearchResultKind.CATEGORY),
        SearchResult(title="Musei", subtitle="Luoghi culturali", kind=SearchResultKind.CATEGORY),
        SearchResult(title="Centri Commerciali", subtitle="Shopping e servizi", kind=SearchResultKind.CATEGORY),
        SearchResult(
            title="Aeroporto",
            subtitle="Torino Caselle",
            kind=SearchResultKind.PLACE,
            coordinates=Coordinates(lat=45.2008, lng=7.6497),
        ),
        SearchResult(
            title="Porta Nuova",
            subtitle="Stazione centrale",
            kind=SearchResultKind.STOP,
            coordinates=Coordinates(lat=45.0617, lng=7.6781),
        ),
        SearchResult(
            title="Porta Susa",
            subtitle="Stazione ferroviaria",
            kind=SearchResultKind.STOP,
            coordinates=Coordinates(lat=45.0708, lng=7.6664),
        ),
    ]


class SearchCoordinator:
    """Turns text updates into autocomplete requests.

    Parameters
    ----------
    provider : AutocompleteProvider
        Suggestion source.
    bias_region : BiasRegion, optional
        Region results are biased towards.
    on_results : callable, optional
        Called with the published result list.
    on_searching : callable, optional
        Called with the new ``is_searching`` flag whenever it changes.
    cancel_superseded : bool
        Cancel the in-flight request when a newer query starts. Stale
        responses are discarded either way.
    """

    def __init__(
        self,
        provider: AutocompleteProvider,
        *,
        bias_region: BiasRegion | None = None,
        on_results: Callable[[list[SearchResult]], None] | None = None,
        on_searching: Callable[[bool], None] | None = None,
        cancel_superseded: bool = True,
    ) -> None:
        self._provider = provider
        self._bias_region = bias_region
        self._on_results = on_results
        self._on_searching = on_searching
        self._cancel_superseded = cancel_superseded
        self._generation = 0
        self._phase = SearchPhase.IDLE
        self._results: list[SearchResult] = []
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def phase(self) -> SearchPhase:
        return self._phase

    @property
    def is_searching(self) -> bool:
        return self._phase == SearchPhase.SEARCHING

    @property
    def results(self) -> list[SearchResult]:
        return list(self._results)

    def set_listeners(
        self,
        *,
        on_results: Callable[[list[SearchResult]], None] | None = None,
        on_searching: Callable[[bool], None] | None = None,
    ) -> None:
        """Replace the result and searching callbacks."""
        self._on_results = on_results
        self._on_searching = on_searching

    def _set_phase(self, phase: SearchPhase) -> None:
        if phase == self._phase:
            return
        self._phase = phase
        if self._on_searching is not None:
            self._on_searching(phase == SearchPhase.SEARCHING)

    def _publish(self, results: list[SearchResult]) -> None:
        self._results = list(results)
        if self._on_results is not None:
            self._on_results(list(results))

    def update_query(self, text: str) -> asyncio.Task[None] | None:
        """Start a search for *text*, superseding any earlier one.

        Returns the request task, or ``None`` when the query is empty.
        Must be called from a running event loop.
        """
        query = text.strip()
        if not query:
            self._generation += 1
            self._cancel_pending()
            self._publish([])
            self._set_phase(SearchPhase.IDLE)
            return None

        self._generation += 1
        generation = self._generation
        self._cancel_pending()
        self._set_phase(SearchPhase.SEARCHING)
        _logger.debug("Autocomplete query=%r generation=%d", query, generation)
        task = asyncio.get_running_loop().create_task(self._run(query, generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, query: str, generation: int) -> None:
        try:
            suggestions = await self._provider.find_suggestions(query, self._bias_region)
        except asyncio.CancelledError:
            raise
        except Exception:
            _logger.warning("Autocomplete failed for query=%r", query, exc_info=True)
            suggestions = []

        if generation != self._generation:
            _logger.debug("Discarding stale autocomplete generation=%d (current=%d)", generation, self._generation)
            return

        self._publish([_as_address(result) for result in suggestions])
        self._set_phase(SearchPhase.IDLE)

    def _cancel_pending(self, *, force: bool = False) -> None:
        if not (force or self._cancel_superseded):
            return
        for task in list(self._tasks):
            if not task.done():
                task.cancel()

    def stop(self) -> None:
        """Abandon the current query and clear results."""
        self._generation += 1
        self._cancel_pending(force=True)
        self._publish([])
        self._set_phase(SearchPhase.IDLE)

    async def aclose(self) -> None:
        tasks = list(self._tasks)
        self.stop()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
