"""Search orchestration: strategy fallback, post-filtering, pagination.

Stages:
1. walk the strategy chain until one call completes (zero rows is success),
2. map rows, build the per-search address cache, run the post-filter pipeline,
3. sort by start date and slice the requested page.

Callers always get a ``SearchResponse`` carrying a well-formed page; failures
are reported through ``error``.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import requests

from . import config
from .filters import PostFilter, apply_post_filters, sort_key
from .geo import is_degenerate_center, looks_swapped
from .geometry import Coordinate, is_finite_number
from .http import RequestMetrics, StoreError
from .models import (
    SearchFilter,
    SearchResponse,
    SearchState,
    ShowRecord,
    coerce_date,
    parse_show_rows,
    row_to_show,
    status_value,
)
from .pagination import empty_page, paginate
from .resolver import AddressCoordinateCache, resolve
from .store import RowStore
from .strategies import Strategy, StrategyContext, build_strategy_chain

logger = logging.getLogger(__name__)

# Store failures reported to callers of single-record lookups.
LOOKUP_ERRORS = (requests.RequestException, StoreError, NotImplementedError)


class InvalidFilterError(ValueError):
    pass


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_center(center: Any) -> Optional[Coordinate]:
    if center is None:
        return None
    if isinstance(center, Coordinate):
        lat, lng = center.latitude, center.longitude
    else:
        try:
            lat, lng = center
        except (TypeError, ValueError):
            raise InvalidFilterError("center must be a Coordinate or a (latitude, longitude) pair")
    if not is_finite_number(lat) or not is_finite_number(lng):
        raise InvalidFilterError(f"center must be finite numbers, got ({lat!r}, {lng!r})")
    if looks_swapped(lat, lng):
        logger.warning(
            "Suspicious center (%s, %s): latitude/longitude might be swapped", lat, lng
        )
        raise InvalidFilterError(f"center out of range: ({lat}, {lng})")
    return Coordinate(float(lat), float(lng))


def _as_tuple(values: Any, name: str) -> Tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        return (values,) if values else ()
    try:
        return tuple(str(v) for v in values)
    except TypeError:
        raise InvalidFilterError(f"{name} must be a list of strings, got {values!r}")


class ResolvedFilter:
    """A validated SearchFilter with defaults applied for one call."""

    def __init__(self, flt: SearchFilter, now: datetime) -> None:
        today = now.date()
        self.center = _coerce_center(flt.center)

        radius = config.DEFAULT_RADIUS_MILES if flt.radius is None else flt.radius
        if not is_finite_number(radius) or radius <= 0:
            raise InvalidFilterError(f"radius must be a positive number, got {radius!r}")
        self.radius = float(radius)

        try:
            start = coerce_date(flt.start_date)
            end = coerce_date(flt.end_date)
        except ValueError as exc:
            raise InvalidFilterError(str(exc)) from exc
        self.window_start = start or today
        self.window_end = end or (self.window_start + timedelta(days=config.DEFAULT_WINDOW_DAYS))
        if self.window_end <= self.window_start:
            raise InvalidFilterError(
                f"end_date {self.window_end} must be after start_date {self.window_start}"
            )

        fee = flt.max_entry_fee
        if fee is not None and (not is_finite_number(fee) or fee < 0):
            raise InvalidFilterError(f"max_entry_fee must be a non-negative number, got {fee!r}")
        self.max_entry_fee = None if fee is None else float(fee)

        self.categories = _as_tuple(flt.categories, "categories")
        self.features = _as_tuple(flt.features, "features")
        self.status = status_value(flt.status) or config.DEFAULT_STATUS

        page = flt.page
        page_size = config.DEFAULT_PAGE_SIZE if flt.page_size is None else flt.page_size
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise InvalidFilterError(f"page must be an integer >= 1, got {page!r}")
        if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
            raise InvalidFilterError(f"page_size must be an integer >= 1, got {page_size!r}")
        self.page = page
        self.page_size = page_size
        self.now = now

    def strategy_context(self) -> StrategyContext:
        return StrategyContext(
            center=self.center,
            radius=self.radius,
            window_start=self.window_start,
            window_end=self.window_end,
            status=self.status,
            max_entry_fee=self.max_entry_fee,
            categories=self.categories,
            features=self.features,
        )

    def post_filter(self) -> PostFilter:
        return PostFilter(
            now=self.now,
            window_start=self.window_start,
            window_end=self.window_end,
            status=self.status,
            max_entry_fee=self.max_entry_fee,
            categories=self.categories,
            features=self.features,
            center=self.center,
            radius=self.radius,
        )


def _requested_page(flt: SearchFilter) -> Tuple[int, int]:
    """Page shape for error responses, tolerant of invalid input."""
    page, size = flt.page, flt.page_size
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        page = 1
    if isinstance(size, bool) or not isinstance(size, int) or size < 1:
        size = config.DEFAULT_PAGE_SIZE
    return page, size


class SearchOrchestrator:
    def __init__(
        self,
        store: RowStore,
        strategies: Optional[Sequence[Strategy]] = None,
        metrics: Optional[RequestMetrics] = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.strategies = tuple(strategies) if strategies is not None else None
        self.metrics = metrics
        self.clock = clock

    def search(
        self,
        search_filter: SearchFilter,
        cancel_event: Optional[threading.Event] = None,
    ) -> SearchResponse:
        """Run one search. Never raises; failures come back in ``error``.

        ``cancel_event`` is checked before each strategy and again when a
        strategy call returns. A call already in flight is not interrupted:
        it is bounded by the HTTP timeout and its rows are discarded once
        the event is set.
        """
        page, page_size = _requested_page(search_filter)
        try:
            return self._search(search_filter, cancel_event)
        except InvalidFilterError as exc:
            logger.warning("Rejected search filter: %s", exc)
            return _failed(page, page_size, f"Invalid search filter: {exc}")
        except Exception as exc:
            logger.exception("Unexpected error during show search")
            return _failed(page, page_size, f"Failed to fetch shows: {exc}")

    def _search(
        self,
        search_filter: SearchFilter,
        cancel_event: Optional[threading.Event],
    ) -> SearchResponse:
        now = self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        resolved = ResolvedFilter(search_filter, now)
        ctx = resolved.strategy_context()
        chain = self.strategies if self.strategies is not None else build_strategy_chain(ctx)

        if resolved.center is not None and is_degenerate_center(resolved.center):
            logger.info("Placeholder center supplied; using non-spatial search")

        state = SearchState.TRY_STRATEGY
        rows: Optional[List[Dict[str, Any]]] = None
        used: Optional[Strategy] = None
        failures: List[str] = []
        for index, strategy in enumerate(chain, start=1):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Search cancelled before strategy %s", strategy.name)
                return _failed(resolved.page, resolved.page_size, "Search cancelled")
            logger.info("Stage 1: strategy %s (%s/%s)", strategy.name, index, len(chain))
            try:
                rows = strategy.fetch(self.store, ctx)
                if not isinstance(rows, list):
                    raise StoreError(f"malformed response: {type(rows).__name__}")
            except Exception as exc:
                # Any failure of a remote call moves on to the next strategy.
                logger.warning("Strategy %s failed: %s: %s", strategy.name, type(exc).__name__, exc)
                failures.append(f"{strategy.name}: {exc}")
                if self.metrics is not None:
                    self.metrics.record_strategy_failure(strategy.name)
                continue
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Search cancelled during strategy %s; discarding %s row(s)", strategy.name, len(rows))
                return _failed(resolved.page, resolved.page_size, "Search cancelled")
            used = strategy
            state = SearchState.POST_FILTER
            logger.info("Strategy %s returned %s row(s)", strategy.name, len(rows))
            break

        if used is None or rows is None:
            detail = "; ".join(failures) if failures else "no strategies configured"
            logger.error("All search strategies failed: %s", detail)
            return _failed(resolved.page, resolved.page_size, f"All search strategies failed: {detail}")

        logger.info("Stage 2: post-filter (%s rows from %s, state %s)", len(rows), used.name, state.value)
        shows = parse_show_rows(rows)
        address_cache = AddressCoordinateCache.build(shows)
        coordinates: Dict[str, Optional[Coordinate]] = {}

        def locate(show: ShowRecord) -> Optional[Coordinate]:
            if show.id not in coordinates:
                coordinates[show.id] = resolve(show, address_cache)
            return coordinates[show.id]

        filtered = apply_post_filters(shows, resolved.post_filter(), locate)
        filtered.sort(key=sort_key)

        logger.info("Stage 3: paginate (%s rows after filters)", len(filtered))
        result = paginate(filtered, resolved.page, resolved.page_size)
        page_coordinates: Dict[str, Coordinate] = {}
        for show in result.data:
            coordinate = locate(show)
            if coordinate is not None:
                page_coordinates[show.id] = coordinate

        return SearchResponse(
            data=result,
            error=None,
            state=SearchState.DONE,
            strategy=used.name,
            coordinates=page_coordinates,
        )


def _failed(page: int, page_size: int, error: str) -> SearchResponse:
    return SearchResponse(data=empty_page(page, page_size), error=error, state=SearchState.FAILED)


def search(
    search_filter: SearchFilter,
    store: RowStore,
    metrics: Optional[RequestMetrics] = None,
    cancel_event: Optional[threading.Event] = None,
    clock: Callable[[], datetime] = _utc_now,
) -> SearchResponse:
    orchestrator = SearchOrchestrator(store, metrics=metrics, clock=clock)
    return orchestrator.search(search_filter, cancel_event=cancel_event)


def get_show_by_id(show_id: str, store: RowStore) -> Tuple[Optional[ShowRecord], Optional[str]]:
    if not show_id:
        return None, "Invalid show id"
    try:
        row = store.get_show(show_id)
    except LOOKUP_ERRORS as exc:
        logger.warning("Error fetching show %s: %s", show_id, exc)
        return None, str(exc)
    if row is None:
        return None, "Show not found"
    try:
        return row_to_show(row), None
    except ValueError as exc:
        logger.warning("Show %s is unusable: %s", show_id, exc)
        return None, str(exc)
