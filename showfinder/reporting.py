"""Output reporting helpers."""
from __future__ import annotations

import json
import os
import tempfile
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, TextIO

from .http import RequestMetrics
from .models import SearchResponse


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _fsync_dir(path: str) -> None:
    try:
        dir_fd = os.open(path, os.O_DIRECTORY)
    except OSError:
        return
    try:
        os.fsync(dir_fd)
    except OSError:
        pass
    finally:
        os.close(dir_fd)


@contextmanager
def atomic_writer(
    path: str,
    mode: str = "w",
    encoding: str = "utf-8",
    newline: Optional[str] = None,
) -> Iterator[TextIO]:
    dir_path = os.path.dirname(path) or "."
    base = os.path.basename(path)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{base}.", suffix=".tmp", dir=dir_path)
    try:
        with os.fdopen(fd, mode, encoding=encoding, newline=newline) as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
        _fsync_dir(dir_path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def write_json_object(path: str, payload: Dict[str, Any]) -> None:
    with atomic_writer(path, mode="w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)


def response_to_dict(response: SearchResponse) -> Dict[str, Any]:
    page = response.data
    return {
        "data": [show.to_dict(response.coordinates.get(show.id)) for show in page.data],
        "pagination": {
            "total_count": page.total_count,
            "page_size": page.page_size,
            "current_page": page.current_page,
            "total_pages": page.total_pages,
            "has_more": page.has_more,
        },
        "error": response.error,
        "strategy": response.strategy,
        "generated_at": utc_now_iso(),
    }


def render_summary(response: SearchResponse, metrics: Optional[RequestMetrics] = None) -> List[str]:
    page = response.data
    lines = [
        "Search summary:",
        f"- state: {response.state.value}",
        f"- strategy: {response.strategy or '-'}",
        f"- total_count: {page.total_count}",
        f"- page: {page.current_page}/{page.total_pages}",
        f"- page_size: {page.page_size}",
        f"- returned: {len(page.data)}",
    ]
    if metrics is not None:
        lines.append(f"- rpc_requests: {metrics.network_rpc}")
        lines.append(f"- query_requests: {metrics.network_query}")
        if metrics.failed_strategies:
            lines.append(f"- failed_strategies: {', '.join(metrics.failed_strategies)}")
    if response.error:
        lines.append(f"- error: {response.error}")
    for show in page.data:
        coordinate = response.coordinates.get(show.id)
        where = f"{coordinate.latitude:.6f},{coordinate.longitude:.6f}" if coordinate else "?"
        lines.append(f"  {show.start_date.date().isoformat()}  {show.title or show.id}  ({where})")
    return lines
