"""Row store access: a Supabase/PostgREST client for the shows table and its functions."""
from __future__ import annotations

import os
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from . import config
from .http import HttpClient, RequestMetrics, StoreError


class StrategyUnavailable(StoreError):
    """The store does not implement the requested remote function."""


class RowStore(Protocol):
    def query_shows(
        self,
        status: str,
        date_range: Tuple[date, date],
        order_by: str = config.SHOWS_ORDER_BY,
    ) -> List[Dict[str, Any]]:
        """Shows with the given status whose [start, end] overlaps the half-open date range."""
        ...

    def call_rpc(self, name: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        ...

    def get_show(self, show_id: str) -> Optional[Dict[str, Any]]:
        ...


def expect_rows(payload: Any, source: str) -> List[Dict[str, Any]]:
    """Validate a PostgREST response body as a list of row objects."""
    if isinstance(payload, Mapping):
        if "code" in payload or "message" in payload:
            raise StoreError(f"{source}: {payload.get('code')} {payload.get('message')}".strip())
        raise StoreError(f"{source}: expected a list of rows, got an object")
    if not isinstance(payload, list):
        raise StoreError(f"{source}: expected a list of rows, got {type(payload).__name__}")
    for row in payload:
        if not isinstance(row, Mapping):
            raise StoreError(f"{source}: row is not an object: {row!r}")
    return [dict(row) for row in payload]


class SupabaseStore:
    def __init__(
        self,
        http_client: HttpClient,
        metrics: Optional[RequestMetrics] = None,
        table: Optional[str] = None,
    ) -> None:
        self.http = http_client
        self.metrics = metrics
        self.table = table or config.SHOWS_TABLE

    @classmethod
    def from_env(cls, metrics: Optional[RequestMetrics] = None) -> "SupabaseStore":
        url = (os.environ.get(config.SUPABASE_URL_ENV) or "").strip()
        key = (os.environ.get(config.SUPABASE_KEY_ENV) or "").strip()
        if not url or not key:
            raise StoreError(
                f"Missing {config.SUPABASE_URL_ENV} or {config.SUPABASE_KEY_ENV} in environment"
            )
        return cls(HttpClient(url, key), metrics=metrics)

    def _count(self, kind: str) -> None:
        if self.metrics is not None:
            self.metrics.inc_network(kind)

    def query_shows(
        self,
        status: str,
        date_range: Tuple[date, date],
        order_by: str = config.SHOWS_ORDER_BY,
    ) -> List[Dict[str, Any]]:
        window_start, window_end = date_range
        params = build_overlap_query_params(status, window_start, window_end, order_by)
        self._count("query")
        payload = self.http.get_json(f"{config.REST_PREFIX}/{self.table}", params=params)
        return expect_rows(payload, f"query {self.table}")

    def call_rpc(self, name: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        self._count("rpc")
        payload = self.http.post_json(f"{config.REST_PREFIX}/rpc/{name}", params)
        return expect_rows(payload, f"rpc {name}")

    def get_show(self, show_id: str) -> Optional[Dict[str, Any]]:
        params = {"select": "*", "id": f"eq.{show_id}", "limit": 1}
        self._count("query")
        payload = self.http.get_json(f"{config.REST_PREFIX}/{self.table}", params=params)
        rows = expect_rows(payload, f"get {self.table}")
        return rows[0] if rows else None


def build_overlap_query_params(
    status: str,
    window_start: date,
    window_end: date,
    order_by: str = config.SHOWS_ORDER_BY,
) -> Dict[str, Any]:
    # Overlap with [window_start, window_end): starts before the window ends,
    # ends on or after the day it opens.
    return {
        "select": "*",
        "status": f"eq.{status}",
        "start_date": f"lt.{window_end.isoformat()}",
        "end_date": f"gte.{window_start.isoformat()}",
        "order": f"{order_by}.asc",
    }
