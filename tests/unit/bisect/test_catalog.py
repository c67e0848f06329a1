"""Tests for the release catalog."""

from datetime import datetime

import pytest

from releasebisect.bisect.catalog import (
    Catalog,
    ReleaseTag,
    estimate_steps_remaining,
    parse_tag_timestamp,
)
from releasebisect.core.errors import PreconditionViolation, TagNotFound

FORMATS = [
    "cdda-experimental-%Y-%m-%d-%H%M",
    "cdda-experimental-%Y-%m-%d-%H-%M",
]


def test_parse_both_tag_formats():
    assert parse_tag_timestamp(
        "cdda-experimental-2024-03-01-0612", FORMATS
    ) == datetime(2024, 3, 1, 6, 12)
    assert parse_tag_timestamp(
        "cdda-experimental-2021-11-30-23-05", FORMATS
    ) == datetime(2021, 11, 30, 23, 5)


def test_unparseable_names_are_excluded():
    catalog = Catalog.from_names(
        [
            "cdda-experimental-2024-03-01-0612",
            "0.G",
            "cdda-experimental-latest",
            "cdda-experimental-2024-03-02-0100",
        ],
        FORMATS,
    )

    assert [t.name for t in catalog] == [
        "cdda-experimental-2024-03-02-0100",
        "cdda-experimental-2024-03-01-0612",
    ]


def test_catalog_sorted_newest_first_and_deduplicated():
    catalog = Catalog.from_names(
        [
            "cdda-experimental-2024-01-05-0000",
            "cdda-experimental-2024-03-01-0612",
            "cdda-experimental-2024-01-05-0000",
            "cdda-experimental-2024-02-10-1200",
        ],
        FORMATS,
    )

    assert len(catalog) == 3
    assert catalog.tip.name == "cdda-experimental-2024-03-01-0612"
    assert catalog[-1].name == "cdda-experimental-2024-01-05-0000"


def test_blacklisted_names_are_excluded(ten_tags):
    catalog = Catalog(ten_tags, blacklist=["t07"])

    assert len(catalog) == 9
    assert "t07" not in catalog
    with pytest.raises(TagNotFound):
        catalog.position_of("t07")


def test_tags_equal_by_name_only():
    a = ReleaseTag("x", datetime(2024, 1, 1))
    b = ReleaseTag("x", datetime(2025, 1, 1))

    assert a == b
    assert a != ReleaseTag("y", datetime(2024, 1, 1))


def test_position_of(ten_catalog):
    assert ten_catalog.position_of("t00") == 0
    assert ten_catalog.position_of("t05") == 5
    with pytest.raises(TagNotFound) as exc:
        ten_catalog.position_of("t42")
    assert exc.value.tag == "t42"


def test_tip_of_empty_catalog():
    with pytest.raises(PreconditionViolation):
        Catalog().tip


def test_find_prefers_suffix_then_oldest_substring():
    catalog = Catalog.from_names(
        [
            "cdda-experimental-2024-03-02-0100",
            "cdda-experimental-2024-03-01-0612",
            "cdda-experimental-2024-02-29-1200",
        ],
        FORMATS,
    )

    assert catalog.find("03-01-0612").name == (
        "cdda-experimental-2024-03-01-0612"
    )
    # Both March tags contain it; the older one wins
    assert catalog.find("2024-03").name == (
        "cdda-experimental-2024-03-01-0612"
    )
    with pytest.raises(TagNotFound):
        catalog.find("2023")


def test_on_date(ten_catalog):
    assert [t.name for t in ten_catalog.on_date(datetime(2024, 3, 15).date())] == [
        "t05"
    ]
    assert ten_catalog.on_date(datetime(2024, 1, 1).date()) == []


@pytest.mark.parametrize(
    "a, b, expected",
    [
        ("t02", "t02", 0),
        ("t02", "t03", 0),
        ("t02", "t04", 1),
        ("t04", "t02", 1),
        ("t00", "t04", 2),
        ("t00", "t05", 3),
        ("t00", "t08", 3),
        ("t00", "t09", 4),
    ],
)
def test_estimate_steps_remaining(ten_catalog, a, b, expected):
    assert estimate_steps_remaining(ten_catalog, a, b) == expected


def test_estimate_steps_non_increasing_as_window_narrows(ten_catalog):
    steps = [
        estimate_steps_remaining(ten_catalog, f"t{good:02d}", "t00")
        for good in range(9, -1, -1)
    ]

    assert steps == sorted(steps, reverse=True)
    assert steps[-1] == 0


def test_estimate_steps_unknown_tag(ten_catalog):
    with pytest.raises(TagNotFound):
        estimate_steps_remaining(ten_catalog, "t00", "gone")
