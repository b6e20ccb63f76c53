from datetime import date, datetime, timezone

from showfinder.filters import PostFilter, apply_post_filters, is_past, overlaps_window
from showfinder.geometry import Coordinate
from showfinder.models import row_to_show

NOW = datetime(2026, 10, 19, 12, tzinfo=timezone.utc)
TODAY = NOW.date()


def show(show_id, start, end=None, **extra):
    row = {"id": show_id, "start_date": start, "end_date": end or start, "status": "ACTIVE"}
    row.update(extra)
    return row_to_show(row)


def no_location(_show):
    return None


def base_filter(**overrides):
    values = {
        "now": NOW,
        "window_start": TODAY,
        "window_end": date(2026, 11, 18),
        "status": "ACTIVE",
    }
    values.update(overrides)
    return PostFilter(**values)


def test_past_shows_are_excluded_even_if_window_starts_earlier():
    shows = [
        show("past", "2026-10-10", "2026-10-18"),
        show("ongoing", "2026-10-15", "2026-10-21"),
        show("today", "2026-10-19"),
        show("later", "2026-11-01"),
    ]
    flt = base_filter(window_start=date(2026, 10, 1))
    assert [s.id for s in apply_post_filters(shows, flt, no_location)] == ["ongoing", "today", "later"]
    assert is_past(shows[0], NOW)


def test_window_overlap_is_half_open():
    window_start, window_end = date(2026, 10, 20), date(2026, 10, 25)
    assert overlaps_window(show("a", "2026-10-24", "2026-10-30"), window_start, window_end)
    assert overlaps_window(show("b", "2026-10-10", "2026-10-20"), window_start, window_end)
    assert not overlaps_window(show("c", "2026-10-25"), window_start, window_end)
    assert not overlaps_window(show("d", "2026-10-10", "2026-10-19"), window_start, window_end)


def test_status_fee_categories_features():
    shows = [
        show("cheap", "2026-10-25", entry_fee=5, categories=["cards", "coins"], features={"parking": True}),
        show("pricey", "2026-10-25", entry_fee=50, categories=["cards"], features={"parking": True}),
        show("free", "2026-10-25", categories=["toys"], features={"parking": True, "food": True}),
        show("truthy", "2026-10-25", categories=["cards"], features={"parking": "yes"}),
        show("cancelled", "2026-10-25", status="CANCELLED", categories=["cards"], features={"parking": True}),
    ]
    flt = base_filter(max_entry_fee=10.0, categories=("cards", "toys"), features=("parking",))
    assert [s.id for s in apply_post_filters(shows, flt, no_location)] == ["cheap", "free"]

    flt = base_filter(features=("parking", "food"))
    assert [s.id for s in apply_post_filters(shows, flt, no_location)] == ["free"]


def test_radius_filter_drops_unlocated_records():
    center = Coordinate(40.0, -86.0)
    located = {"near": Coordinate(40.01, -86.0), "far": Coordinate(42.0, -86.0)}
    shows = [show("near", "2026-10-25"), show("far", "2026-10-25"), show("nowhere", "2026-10-25")]

    flt = base_filter(center=center, radius=25.0)
    result = apply_post_filters(shows, flt, lambda s: located.get(s.id))
    assert [s.id for s in result] == ["near"]


def test_placeholder_center_skips_radius(caplog):
    shows = [show("a", "2026-10-25"), show("b", "2026-10-26")]
    flt = base_filter(center=Coordinate(0.0, 0.0), radius=25.0)
    with caplog.at_level("INFO"):
        result = apply_post_filters(shows, flt, no_location)
    assert [s.id for s in result] == ["a", "b"]
    assert "Skipping distance filtering" in caplog.text


def test_timed_show_that_ended_this_morning_is_past():
    shows = [
        show("done", "2026-10-19T06:00:00Z", "2026-10-19T08:00:00Z"),
        show("evening", "2026-10-19T17:00:00Z", "2026-10-19T21:00:00Z"),
        show("all_day", "2026-10-19"),
    ]
    assert is_past(shows[0], NOW)
    assert not is_past(shows[1], NOW)
    assert not is_past(shows[2], NOW)
    assert [s.id for s in apply_post_filters(shows, base_filter(), no_location)] == ["evening", "all_day"]
