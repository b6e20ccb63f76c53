"""Post-filter pipeline applied to every strategy's rows.

Strategies pre-apply different subsets of the filters (some none at all), so
the full pipeline always runs on whatever rows came back.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Iterable, List, Mapping, Optional, Tuple

from .geo import is_degenerate_center, within_radius
from .geometry import Coordinate
from .models import ShowRecord, status_value

logger = logging.getLogger(__name__)

Locator = Callable[[ShowRecord], Optional[Coordinate]]


@dataclass(frozen=True)
class PostFilter:
    now: datetime
    window_start: date
    window_end: date
    status: Optional[str] = None
    max_entry_fee: Optional[float] = None
    categories: Tuple[str, ...] = ()
    features: Tuple[str, ...] = ()
    center: Optional[Coordinate] = None
    radius: Optional[float] = None

    @property
    def radius_active(self) -> bool:
        return (
            self.center is not None
            and self.radius is not None
            and not is_degenerate_center(self.center)
        )


def matches_status(show: ShowRecord, status: Optional[str]) -> bool:
    if status is None:
        return True
    return status_value(show.status) == status_value(status)


def is_past(show: ShowRecord, now: datetime) -> bool:
    # Date-only shows run through the whole of their last day.
    if show.end_is_date:
        return show.end_date.date() < now.date()
    return show.end_date < now


def overlaps_window(show: ShowRecord, window_start: date, window_end: date) -> bool:
    return show.start_date.date() < window_end and show.end_date.date() >= window_start


def matches_fee(show: ShowRecord, max_entry_fee: Optional[float]) -> bool:
    if max_entry_fee is None or show.entry_fee is None:
        return True
    return show.entry_fee <= max_entry_fee


def matches_categories(show: ShowRecord, categories: Iterable[str]) -> bool:
    wanted = set(categories)
    if not wanted:
        return True
    return bool(wanted.intersection(show.categories))


def matches_features(show: ShowRecord, features: Iterable[str]) -> bool:
    features_map: Mapping[str, object] = show.features or {}
    return all(features_map.get(name) is True for name in features)


def apply_post_filters(
    shows: Iterable[ShowRecord],
    flt: PostFilter,
    locate: Locator,
) -> List[ShowRecord]:
    out = list(shows)
    counts = {"input": len(out)}

    out = [s for s in out if matches_status(s, flt.status)]
    counts["status"] = len(out)

    out = [s for s in out if not is_past(s, flt.now)]
    out = [s for s in out if overlaps_window(s, flt.window_start, flt.window_end)]
    counts["temporal"] = len(out)

    out = [s for s in out if matches_fee(s, flt.max_entry_fee)]
    counts["fee"] = len(out)

    out = [s for s in out if matches_categories(s, flt.categories)]
    counts["categories"] = len(out)

    out = [s for s in out if matches_features(s, flt.features)]
    counts["features"] = len(out)

    if flt.radius_active:
        center = flt.center
        radius = flt.radius
        out = [s for s in out if within_radius(center, locate(s), radius)]
        counts["radius"] = len(out)
    elif flt.center is not None:
        logger.info(
            "Skipping distance filtering: placeholder center (%s, %s)",
            flt.center.latitude,
            flt.center.longitude,
        )

    logger.debug("Post-filter counts: %s", counts)
    return out


def sort_key(show: ShowRecord) -> Tuple[object, str]:
    return (show.start_date, show.id)
