"""Show records, search filters and result pages.

Raw store rows are mapped here into ``ShowRecord`` objects. Mapping is
lenient: unknown statuses are kept as strings and a missing end date falls
back to the start date. A row is dropped only when it has no id or no
parseable start date.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .geometry import ABSENT, Coordinate, GeometryField, geometry_fields, is_finite_number

logger = logging.getLogger(__name__)


class ShowStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    CANCELLED = "CANCELLED"
    UPCOMING = "UPCOMING"
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"


def parse_status(value: Any) -> Union[ShowStatus, str, None]:
    if value is None:
        return None
    if isinstance(value, ShowStatus):
        return value
    text = str(value).strip()
    try:
        return ShowStatus(text.upper())
    except ValueError:
        return text


def status_value(status: Union[ShowStatus, str, None]) -> Optional[str]:
    if status is None:
        return None
    if isinstance(status, ShowStatus):
        return status.value
    return str(status).upper()


@dataclass(frozen=True)
class ShowRecord:
    id: str
    title: Optional[str]
    start_date: datetime
    end_date: datetime
    location: Optional[str] = None
    address: Optional[str] = None
    entry_fee: Optional[float] = None
    status: Union[ShowStatus, str, None] = None
    categories: Tuple[str, ...] = ()
    features: Mapping[str, Any] = field(default_factory=dict)
    organizer_id: Optional[str] = None
    geometry: Tuple[GeometryField, ...] = (ABSENT,)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    website_url: Optional[str] = None
    series_id: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    end_is_date: bool = False

    def to_dict(self, coordinate: Optional[Coordinate] = None) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "location": self.location,
            "address": self.address,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "entry_fee": self.entry_fee,
            "status": status_value(self.status),
            "categories": list(self.categories),
            "features": dict(self.features),
            "organizer_id": self.organizer_id,
            "description": self.description,
            "image_url": self.image_url,
            "website_url": self.website_url,
            "series_id": self.series_id,
            "latitude": coordinate.latitude if coordinate else None,
            "longitude": coordinate.longitude if coordinate else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class SearchFilter:
    """Caller-supplied search parameters.

    ``None`` means "use the configured default" for radius, dates, status and
    page size, resolved at search time.
    """

    center: Optional[Union[Coordinate, Tuple[float, float]]] = None
    radius: Optional[float] = None
    start_date: Optional[Union[date, datetime, str]] = None
    end_date: Optional[Union[date, datetime, str]] = None
    max_entry_fee: Optional[float] = None
    categories: Optional[Iterable[str]] = None
    features: Optional[Iterable[str]] = None
    status: Union[ShowStatus, str, None] = None
    page: int = 1
    page_size: Optional[int] = None


@dataclass
class PageResult:
    data: List[ShowRecord]
    total_count: int
    page_size: int
    current_page: int
    total_pages: int

    @property
    def has_more(self) -> bool:
        return self.current_page < self.total_pages


class SearchState(str, Enum):
    TRY_STRATEGY = "TRY_STRATEGY"
    POST_FILTER = "POST_FILTER"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class SearchResponse:
    data: PageResult
    error: Optional[str] = None
    state: SearchState = SearchState.DONE
    strategy: Optional[str] = None
    coordinates: Dict[str, Coordinate] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp or date into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def coerce_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValueError(f"Invalid date: {value!r}")
    return parsed.date()


def _parse_fee(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if is_finite_number(value):
        return float(value)
    try:
        fee = float(value)
    except (TypeError, ValueError):
        return None
    return fee if math.isfinite(fee) else None


def _parse_categories(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(c) for c in value if c is not None)


def _parse_features(value: Any) -> Dict[str, Any]:
    if not value:
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (list, tuple)):
        return {str(name): True for name in value}
    return {}


def _opt_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _is_date_only(value: Any) -> bool:
    """True for calendar dates without a time of day, e.g. ``"2026-10-19"``."""
    if isinstance(value, datetime):
        return False
    if isinstance(value, date):
        return True
    return isinstance(value, str) and len(value.strip()) == 10


def row_to_show(row: Mapping[str, Any]) -> ShowRecord:
    """Map a raw store row to a ShowRecord. Raises ValueError for unusable rows."""
    show_id = row.get("id")
    if show_id is None or show_id == "":
        raise ValueError("row has no id")
    start = parse_timestamp(row.get("start_date"))
    if start is None:
        raise ValueError(f"row {show_id} has no valid start_date")
    end = parse_timestamp(row.get("end_date"))
    end_is_date = _is_date_only(row.get("end_date"))
    if end is None:
        end = start
        end_is_date = _is_date_only(row.get("start_date"))
    elif end < start:
        logger.warning("Show %s ends before it starts; clamping end_date to start_date", show_id)
        end = start
        end_is_date = _is_date_only(row.get("start_date"))

    return ShowRecord(
        id=str(show_id),
        title=row.get("title"),
        start_date=start,
        end_date=end,
        location=row.get("location"),
        address=row.get("address"),
        entry_fee=_parse_fee(row.get("entry_fee")),
        status=parse_status(row.get("status")),
        categories=_parse_categories(row.get("categories")),
        features=_parse_features(row.get("features")),
        organizer_id=_opt_str(row.get("organizer_id")),
        geometry=geometry_fields(row),
        created_at=parse_timestamp(row.get("created_at")),
        updated_at=parse_timestamp(row.get("updated_at")),
        description=row.get("description"),
        image_url=row.get("image_url"),
        website_url=row.get("website_url"),
        series_id=_opt_str(row.get("series_id")),
        start_time=_opt_str(row.get("start_time")),
        end_time=_opt_str(row.get("end_time")),
        end_is_date=end_is_date,
    )


# Adapter/mapper for store rows

def parse_show_rows(rows: Iterable[Any]) -> List[ShowRecord]:
    parsed: List[ShowRecord] = []
    seen: set[str] = set()
    for row in rows:
        if not isinstance(row, Mapping):
            logger.warning("Skipping non-object row: %r", row)
            continue
        try:
            show = row_to_show(row)
        except ValueError as exc:
            logger.warning("Skipping unusable row: %s", exc)
            continue
        if show.id in seen:
            continue
        seen.add(show.id)
        parsed.append(show)
    return parsed
