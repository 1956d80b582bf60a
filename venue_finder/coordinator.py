"""Search orchestration with "latest request wins" semantics.

Every user-triggered search takes the next sequence number. Results (and
progress) are published only while that number is still the newest one; an
older search is left to finish and its output is dropped without any
listener call. Nothing is aborted mid-request.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional, Protocol, Tuple

from . import config
from .aggregator import aggregate_by_categories, dedup_by_id
from .filters import with_min_rating, within_radius
from .models import GeoPoint, PlaceResult, SearchRequest, SearchSnapshot

logger = logging.getLogger(__name__)

Listener = Callable[[SearchSnapshot], None]


class PlaceSearcher(Protocol):
    def search_nearby(
        self, origin: GeoPoint, category_code: Optional[str], radius_meters: float
    ) -> Iterable[PlaceResult]:
        ...

    def search_by_text(self, query: str, origin: GeoPoint, radius_meters: float) -> Iterable[PlaceResult]:
        ...


class SearchStatus(str, Enum):
    SKIPPED = "skipped"
    GATED = "gated"
    COMMITTED = "committed"
    SUPERSEDED = "superseded"
    FAILED = "failed"


@dataclass(frozen=True)
class SearchOutcome:
    sequence: int
    status: SearchStatus
    results: Tuple[PlaceResult, ...] = ()
    advisory_message: Optional[str] = None


def progress_percent(ratio: float) -> int:
    return max(0, min(100, int(ratio * 100 + 0.5)))


class RequestCoordinator:
    def __init__(
        self,
        client: PlaceSearcher,
        max_radius_km: Optional[float] = None,
        min_zoom_level: Optional[int] = None,
        text_search_radius_meters: Optional[float] = None,
        parallel: bool = False,
        max_workers: int = 4,
    ) -> None:
        self.client = client
        self.max_radius_km = config.MAX_RADIUS_KM if max_radius_km is None else max_radius_km
        self.min_zoom_level = config.MIN_ZOOM_LEVEL if min_zoom_level is None else min_zoom_level
        self.text_search_radius_meters = (
            config.TEXT_SEARCH_RADIUS_METERS if text_search_radius_meters is None else text_search_radius_meters
        )
        self.parallel = parallel
        self.max_workers = max_workers
        # Listeners run under this lock so snapshots reach them in commit order.
        self._lock = threading.RLock()
        self._sequence = 0
        self._snapshot = SearchSnapshot()
        self._listeners: List[Listener] = []
        self._executor: Optional[ThreadPoolExecutor] = None

    def __enter__(self) -> "RequestCoordinator":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    @property
    def current_sequence(self) -> int:
        with self._lock:
            return self._sequence

    @property
    def snapshot(self) -> SearchSnapshot:
        with self._lock:
            return self._snapshot

    def is_current(self, sequence: int) -> bool:
        with self._lock:
            return sequence == self._sequence

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def start_search(self, request: SearchRequest, zoom_level: Optional[float] = None) -> SearchOutcome:
        """Run one search to completion on the calling thread."""
        if not self._has_origin(request):
            return SearchOutcome(sequence=self.current_sequence, status=SearchStatus.SKIPPED)
        return self._execute(self._next_sequence(), request, zoom_level)

    def submit(self, request: SearchRequest, zoom_level: Optional[float] = None) -> "Future[SearchOutcome]":
        """Queue a search on the coordinator's worker pool.

        The sequence number is taken here, so submission order decides which
        search is the newest regardless of which worker finishes first.
        """
        if not self._has_origin(request):
            skipped: "Future[SearchOutcome]" = Future()
            skipped.set_result(SearchOutcome(sequence=self.current_sequence, status=SearchStatus.SKIPPED))
            return skipped
        sequence = self._next_sequence()
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="search")
            executor = self._executor
        return executor.submit(self._execute, sequence, request, zoom_level)

    def close(self) -> None:
        with self._lock:
            executor = self._executor
            self._executor = None
        if executor is not None:
            executor.shutdown(wait=True)

    def gate_message(self, request: SearchRequest, zoom_level: Optional[float]) -> Optional[str]:
        """Advisory text when a nearby search is not allowed, else None."""
        if request.radius_km > self.max_radius_km:
            return config.ADVISORY_RADIUS_TOO_LARGE.format(max_km=self.max_radius_km)
        if zoom_level is not None and zoom_level < self.min_zoom_level:
            return config.ADVISORY_ZOOM_TOO_LOW.format(min_zoom=self.min_zoom_level)
        return None

    @staticmethod
    def _has_origin(request: SearchRequest) -> bool:
        if request.origin is None or not request.origin.is_valid():
            logger.info("Search skipped: no valid origin")
            return False
        return True

    def _next_sequence(self) -> int:
        with self._lock:
            self._sequence += 1
            return self._sequence

    def _publish(self, sequence: int, **changes: Any) -> bool:
        with self._lock:
            if sequence != self._sequence:
                return False
            self._snapshot = replace(self._snapshot, sequence=sequence, **changes)
            snapshot = self._snapshot
            for listener in list(self._listeners):
                try:
                    listener(snapshot)
                except Exception:
                    logger.exception("Search listener failed for search %s", sequence)
            return True

    def _execute(self, sequence: int, request: SearchRequest, zoom_level: Optional[float]) -> SearchOutcome:
        if request.is_text_search:
            return self._run_text_search(sequence, request)

        advisory = self.gate_message(request, zoom_level)
        if advisory is not None:
            logger.info("Search %s gated: %s", sequence, advisory)
            self._publish(sequence, advisory_message=advisory, searching=False)
            return SearchOutcome(sequence=sequence, status=SearchStatus.GATED, advisory_message=advisory)

        self._publish(sequence, advisory_message=None, searching=True, progress_percent=0)

        def on_progress(ratio: float) -> None:
            self._publish(sequence, progress_percent=progress_percent(ratio))

        try:
            merged = aggregate_by_categories(
                self.client,
                request.origin,
                request.categories,
                request.radius_meters,
                on_progress=on_progress,
                parallel=self.parallel,
                max_workers=self.max_workers,
            )
            in_radius = within_radius(merged, request.origin, request.radius_meters)
            results = with_min_rating(in_radius, request.min_rating)
        except Exception:
            logger.exception("Search %s failed", sequence)
            return self._finish_failed(sequence)
        return self._commit(sequence, results)

    def _run_text_search(self, sequence: int, request: SearchRequest) -> SearchOutcome:
        # Text search ignores category filters, the radius circle and min rating.
        query = (request.free_text_query or "").strip()
        self._publish(sequence, advisory_message=None, searching=True, progress_percent=0)
        try:
            results = dedup_by_id(
                self.client.search_by_text(query, request.origin, self.text_search_radius_meters)
            )
        except Exception:
            logger.exception("Text search %s failed", sequence)
            return self._finish_failed(sequence)
        return self._commit(sequence, results)

    def _commit(self, sequence: int, results: List[PlaceResult]) -> SearchOutcome:
        committed = self._publish(
            sequence,
            results=tuple(results),
            progress_percent=100,
            searching=False,
        )
        if not committed:
            logger.debug("Discarding stale search %s (current=%s)", sequence, self.current_sequence)
            return SearchOutcome(sequence=sequence, status=SearchStatus.SUPERSEDED)
        logger.info("Search %s committed %s results", sequence, len(results))
        return SearchOutcome(sequence=sequence, status=SearchStatus.COMMITTED, results=tuple(results))

    def _finish_failed(self, sequence: int) -> SearchOutcome:
        if not self._publish(sequence, progress_percent=100, searching=False):
            return SearchOutcome(sequence=sequence, status=SearchStatus.SUPERSEDED)
        return SearchOutcome(sequence=sequence, status=SearchStatus.FAILED)
