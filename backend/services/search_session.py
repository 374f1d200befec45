"""
Search box state machine.

Owns the query text, the candidate list, the results-panel visibility and the
loading flag. Keystrokes go through the debounce timer; a fired timer issues a
geocode call tagged with a monotonic sequence number, and only the response
carrying the latest sequence number is applied. Selecting a candidate emits a
selection event; map state is owned elsewhere.

Everything runs on one asyncio event loop, so no locking is needed.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Protocol, Set

from domain.models import CandidateLocation, SearchPhase, SearchState
from services.debounce import DebounceController
from services.geocoding import EmptyQuery, SearchFailure
from settings import settings

logger = logging.getLogger(__name__)


class AsyncGeocoder(Protocol):
    async def asearch(self, query: str) -> List[CandidateLocation]:
        ...


class SearchSession:
    """One search box session, from mount to teardown."""

    def __init__(
        self,
        client: AsyncGeocoder,
        on_select: Optional[Callable[[CandidateLocation], None]] = None,
        on_change: Optional[Callable[[SearchState], None]] = None,
        debounce_seconds: Optional[float] = None,
    ):
        self._client = client
        self._on_select = on_select
        self._on_change = on_change
        delay = settings.search_debounce_seconds if debounce_seconds is None else debounce_seconds
        self._debounce = DebounceController(delay, self._on_timer_fired)
        self._state = SearchState()
        self._seq = 0
        self._in_flight: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def sequence(self) -> int:
        """Sequence number of the most recently issued geocode call."""
        return self._seq

    # ------------------------------------------------------------------
    # User events
    # ------------------------------------------------------------------

    def input(self, text: str) -> None:
        """Handle a change of the query text (one keystroke, paste, etc.)."""
        if self._closed:
            return
        self._state.query = text
        if not text.strip():
            # Blank input never reaches the network.
            self._reset_results()
            self._emit()
            return
        self._state.phase = SearchPhase.TYPING
        self._debounce.arm(text)
        self._emit()

    def focus(self) -> None:
        """Re-open the results panel when there is something to show."""
        if self._closed or not self._state.candidates:
            return
        if not self._state.results_visible:
            self._state.results_visible = True
            self._state.phase = SearchPhase.SHOWING
            self._emit()

    def dismiss(self) -> None:
        """Hide the results panel but keep the candidates for a later focus()."""
        if self._closed or not self._state.results_visible:
            return
        self._state.results_visible = False
        self._state.phase = SearchPhase.HIDDEN
        self._emit()

    def select(self, candidate: CandidateLocation) -> None:
        """Pick a candidate: show its label in the box, hide the panel, notify the map."""
        if self._closed:
            return
        # Pending keystrokes and outstanding calls must not reopen the panel.
        self._debounce.cancel()
        self._seq += 1
        self._state.loading = False
        self._state.query = candidate.label
        self._state.results_visible = False
        self._state.phase = SearchPhase.HIDDEN if self._state.candidates else SearchPhase.IDLE
        self._emit()
        if self._on_select is not None:
            self._on_select(candidate)

    def select_by_id(self, place_id: str) -> Optional[CandidateLocation]:
        """Select the current candidate with `place_id`; None if it is not listed."""
        for candidate in self._state.candidates:
            if candidate.place_id == str(place_id):
                self.select(candidate)
                return candidate
        logger.debug("select_by_id: no candidate with place_id=%s", place_id)
        return None

    def clear(self) -> None:
        """Explicit reset of the search box."""
        if self._closed:
            return
        self._state.query = ""
        self._reset_results()
        self._emit()

    def close(self) -> None:
        """Tear the session down; nothing may touch state afterwards."""
        if self._closed:
            return
        self._closed = True
        self._debounce.cancel()
        for task in list(self._in_flight):
            task.cancel()
        self._in_flight.clear()
        logger.debug("Search session closed at seq=%d", self._seq)

    async def wait_idle(self) -> None:
        """Wait until no timer is pending and no geocode call is in flight."""
        while True:
            await self._debounce.wait()
            tasks = [t for t in self._in_flight if not t.done()]
            if not tasks:
                if not self._debounce.pending:
                    return
                continue
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reset_results(self) -> None:
        self._debounce.cancel()
        self._seq += 1  # voids any in-flight response
        self._state.candidates = []
        self._state.results_visible = False
        self._state.loading = False
        self._state.phase = SearchPhase.IDLE

    def _on_timer_fired(self, text: str) -> None:
        if self._closed:
            return
        self._seq += 1
        seq = self._seq
        self._state.loading = True
        self._state.phase = SearchPhase.LOADING
        self._emit()
        task = asyncio.get_running_loop().create_task(self._fetch(seq, text))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _fetch(self, seq: int, text: str) -> None:
        try:
            candidates = await self._client.asearch(text)
        except EmptyQuery:
            candidates = []
        except SearchFailure as exc:
            logger.warning("Geocode search failed for %r: %s", text, exc)
            candidates = []
        except Exception:
            logger.exception("Unexpected error geocoding %r", text)
            candidates = []
        self._apply_results(seq, text, candidates)

    def _apply_results(self, seq: int, text: str, candidates: List[CandidateLocation]) -> None:
        if self._closed:
            logger.debug("Dropping response for %r: session closed", text)
            return
        if seq != self._seq:
            logger.debug("Dropping stale response for %r (seq %d, latest %d)", text, seq, self._seq)
            return
        self._state.loading = False
        self._state.candidates = list(candidates)
        self._state.results_visible = bool(candidates)
        self._state.phase = SearchPhase.SHOWING if candidates else SearchPhase.IDLE
        self._emit()

    def _emit(self) -> None:
        if self._on_change is not None:
            self._on_change(self._state)
