"""Ordered query strategies against the row store.

Each strategy has the same signature, ``fetch(store, context) -> rows``, and
raises on transport or schema errors. The orchestrator walks the chain in
order and stops at the first strategy that completes.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from . import config
from .geometry import Coordinate
from .geo import is_degenerate_center
from .store import RowStore, StrategyUnavailable


@dataclass(frozen=True)
class StrategyContext:
    center: Optional[Coordinate]
    radius: float
    window_start: date
    window_end: date
    status: str
    max_entry_fee: Optional[float] = None
    categories: Tuple[str, ...] = ()
    features: Tuple[str, ...] = ()

    @property
    def spatial(self) -> bool:
        return self.center is not None and not is_degenerate_center(self.center)


FetchFn = Callable[[RowStore, StrategyContext], List[Dict[str, Any]]]


@dataclass(frozen=True)
class Strategy:
    name: str
    fetch: FetchFn
    spatial: bool = False


def _require_center(ctx: StrategyContext) -> Coordinate:
    if ctx.center is None:
        raise StrategyUnavailable("spatial strategy requires a center")
    return ctx.center


def fetch_nearby_shows(store: RowStore, ctx: StrategyContext) -> List[Dict[str, Any]]:
    center = _require_center(ctx)
    return store.call_rpc(
        config.RPC_NEARBY_SHOWS,
        {
            "lat": center.latitude,
            "long": center.longitude,
            "radius_miles": ctx.radius,
            "filter_start_date": ctx.window_start.isoformat(),
            "filter_end_date": ctx.window_end.isoformat(),
        },
    )


def fetch_filtered_shows(store: RowStore, ctx: StrategyContext) -> List[Dict[str, Any]]:
    center = _require_center(ctx)
    return store.call_rpc(
        config.RPC_FIND_FILTERED_SHOWS,
        {
            "center_lat": center.latitude,
            "center_lng": center.longitude,
            "radius_miles": ctx.radius,
            "start_date": ctx.window_start.isoformat(),
            "end_date": ctx.window_end.isoformat(),
            "max_entry_fee": ctx.max_entry_fee,
            "show_categories": list(ctx.categories) or None,
            "show_features": list(ctx.features) or None,
        },
    )


def fetch_shows_within_radius(store: RowStore, ctx: StrategyContext) -> List[Dict[str, Any]]:
    center = _require_center(ctx)
    return store.call_rpc(
        config.RPC_FIND_SHOWS_WITHIN_RADIUS,
        {
            "center_lat": center.latitude,
            "center_lng": center.longitude,
            "radius_miles": ctx.radius,
        },
    )


def fetch_basic_query(store: RowStore, ctx: StrategyContext) -> List[Dict[str, Any]]:
    return store.query_shows(ctx.status, (ctx.window_start, ctx.window_end), config.SHOWS_ORDER_BY)


NEARBY_SHOWS = Strategy("nearby_shows", fetch_nearby_shows, spatial=True)
FILTERED_SHOWS = Strategy("find_filtered_shows", fetch_filtered_shows, spatial=True)
SHOWS_WITHIN_RADIUS = Strategy("find_shows_within_radius", fetch_shows_within_radius, spatial=True)
BASIC_QUERY = Strategy("basic_query", fetch_basic_query)

SPATIAL_CHAIN: Tuple[Strategy, ...] = (NEARBY_SHOWS, FILTERED_SHOWS, SHOWS_WITHIN_RADIUS, BASIC_QUERY)
NON_SPATIAL_CHAIN: Tuple[Strategy, ...] = (BASIC_QUERY,)


def build_strategy_chain(ctx: StrategyContext) -> Sequence[Strategy]:
    if ctx.spatial:
        return SPATIAL_CHAIN
    return NON_SPATIAL_CHAIN
