from datetime import datetime, timezone

import pytest

from showfinder.geometry import ABSENT, BinaryPoint
from showfinder.models import ShowStatus, parse_show_rows, row_to_show


def test_row_to_show_missing_fields():
    show = row_to_show({"id": 7, "start_date": "2026-10-25"})
    assert show.id == "7"
    assert show.title is None
    assert show.end_date == show.start_date
    assert show.start_date == datetime(2026, 10, 25, tzinfo=timezone.utc)
    assert show.entry_fee is None
    assert show.status is None
    assert show.categories == ()
    assert show.features == {}
    assert show.geometry == (ABSENT,)


def test_row_to_show_variants():
    show = row_to_show(
        {
            "id": "s1",
            "start_date": "2026-10-25T10:00:00Z",
            "end_date": "2026-10-24T10:00:00Z",
            "entry_fee": "5.50",
            "status": "active",
            "categories": "cards",
            "features": ["parking", "food"],
            "coordinates": "0101000000000000000000F03F0000000000000040",
        }
    )
    assert show.end_date == show.start_date
    assert show.entry_fee == 5.5
    assert show.status is ShowStatus.ACTIVE
    assert show.categories == ("cards",)
    assert show.features == {"parking": True, "food": True}
    assert show.geometry == (BinaryPoint("0101000000000000000000F03F0000000000000040"),)


def test_unknown_status_is_kept():
    assert row_to_show({"id": "s1", "start_date": "2026-10-25", "status": "Draft"}).status == "Draft"


@pytest.mark.parametrize(
    "row",
    [
        {"start_date": "2026-10-25"},
        {"id": "", "start_date": "2026-10-25"},
        {"id": "s1"},
        {"id": "s1", "start_date": "soon"},
    ],
)
def test_unusable_rows_raise(row):
    with pytest.raises(ValueError):
        row_to_show(row)


def test_parse_show_rows_skips_bad_rows_and_duplicates():
    rows = [
        {"id": "s1", "start_date": "2026-10-25", "title": "first"},
        "garbage",
        {"id": "s2"},
        {"id": "s1", "start_date": "2026-10-26", "title": "second"},
        {"id": "s3", "start_date": "2026-10-27"},
    ]
    shows = parse_show_rows(rows)
    assert [s.id for s in shows] == ["s1", "s3"]
    assert shows[0].title == "first"


def test_end_date_precision_is_recorded():
    assert row_to_show({"id": "a", "start_date": "2026-10-19"}).end_is_date
    assert row_to_show({"id": "b", "start_date": "2026-10-19", "end_date": "2026-10-20"}).end_is_date
    timed = row_to_show({"id": "c", "start_date": "2026-10-19T09:00:00Z", "end_date": "2026-10-19T17:00:00Z"})
    assert not timed.end_is_date
