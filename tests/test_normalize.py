import pytest

from awardfare.core.models import CabinClass
from awardfare.core.normalize import (
    coerce_points,
    coerce_seats,
    distinct_in_order,
    map_cabin_by_keyword,
    map_cabin_by_prefix,
    normalize_label,
    parse_duration_minutes,
    parse_timestamp,
    sum_durations,
)
from awardfare.providers.alaska_provider import map_as_cabin
from awardfare.providers.american_provider import map_aa_cabin
from awardfare.providers.virgin_provider import map_vs_cabin


def test_normalize_label():
    assert normalize_label("Premium economy") == "PREMIUM_ECONOMY"
    assert normalize_label(None) == ""


@pytest.mark.parametrize(
    "label, cabin",
    [
        ("COACH", CabinClass.ECONOMY),
        ("MAIN", CabinClass.ECONOMY),
        ("PREMIUM_COACH", CabinClass.PREMIUM_ECONOMY),
        ("premium economy", CabinClass.PREMIUM_ECONOMY),
        ("BUSINESS", CabinClass.BUSINESS),
        ("FIRST", CabinClass.FIRST),
        ("BASIC_ECONOMY", CabinClass.ECONOMY),
        ("SOMETHING_NEW", CabinClass.UNKNOWN),
        ("", CabinClass.UNKNOWN),
        (None, CabinClass.UNKNOWN),
    ],
)
def test_aa_cabin_mapping(label, cabin):
    assert map_aa_cabin(label) is cabin


def test_alaska_cabin_falls_back_to_listed_cabin():
    assert map_as_cabin("SAVER_MAIN") is CabinClass.ECONOMY
    assert map_as_cabin("PARTNER_BUSINESS") is CabinClass.BUSINESS
    assert map_as_cabin("REFUNDABLE", ["FIRST"]) is CabinClass.FIRST
    assert map_as_cabin("REFUNDABLE") is CabinClass.UNKNOWN


@pytest.mark.parametrize(
    "fare_id, cabin_name, cabin",
    [
        ("XCLASSIC", None, CabinClass.ECONOMY),
        ("KLIGHT", None, CabinClass.ECONOMY),
        ("NPREMIUM", None, CabinClass.PREMIUM_ECONOMY),
        ("YPREMIUM", None, CabinClass.PREMIUM_ECONOMY),
        ("BDELTAONE", None, CabinClass.BUSINESS),
        ("CUPPER", None, CabinClass.BUSINESS),
        ("WUPPER", None, CabinClass.BUSINESS),
        ("", "Upper Class", CabinClass.BUSINESS),
        (None, "Economy Delight", CabinClass.ECONOMY),
        ("QQQ", "Retreat Suite", CabinClass.UNKNOWN),
    ],
)
def test_virgin_cabin_mapping(fare_id, cabin_name, cabin):
    assert map_vs_cabin(fare_id, cabin_name) is cabin


def test_keyword_rules_are_ordered():
    rules = (("COACH", CabinClass.ECONOMY), ("PREMIUM_COACH", CabinClass.PREMIUM_ECONOMY))
    # First match wins, so the general keyword shadows the specific one here
    assert map_cabin_by_keyword("PREMIUM_COACH", rules) is CabinClass.ECONOMY


def test_prefix_prefers_longest():
    prefixes = {"P": CabinClass.FIRST, "PZ": CabinClass.PREMIUM_ECONOMY}
    assert map_cabin_by_prefix("PZ1", prefixes) is CabinClass.PREMIUM_ECONOMY
    assert map_cabin_by_prefix("P1", prefixes) is CabinClass.FIRST
    assert map_cabin_by_prefix("Z", prefixes) is CabinClass.UNKNOWN


@pytest.mark.parametrize(
    "raw, points",
    [(12500, 12500), ("12,500", 12500), ("57500.0", 57500), (None, 0), ("", 0), ("n/a", 0), (-5, 0), (True, 0)],
)
def test_coerce_points(raw, points):
    assert coerce_points(raw) == points


def test_coerce_seats():
    assert coerce_seats(3) == 3
    assert coerce_seats("0") == 0
    assert coerce_seats("AVAILABLE") is None
    assert coerce_seats(-1) is None
    assert coerce_seats(None) is None


@pytest.mark.parametrize(
    "raw, minutes",
    [
        (415, 415),
        ("415", 415),
        ("PT6H55M", 415),
        ("PT45M", 45),
        ("P1DT2H", 1560),
        ("PT", None),
        ("six hours", None),
        (None, None),
    ],
)
def test_parse_duration_minutes(raw, minutes):
    assert parse_duration_minutes(raw) == minutes


def test_sum_durations_mixes_formats():
    assert sum_durations(["PT1H", 30, None, "15"]) == 105


def test_parse_timestamp_keeps_offset():
    ts = parse_timestamp("2026-03-01T18:30:00.000-05:00")
    assert ts.hour == 18
    assert ts.utcoffset().total_seconds() == -5 * 3600

    utc = parse_timestamp("2026-03-02T06:25:00Z")
    assert utc.utcoffset().total_seconds() == 0

    assert parse_timestamp("tomorrow") is None
    assert parse_timestamp(None) is None


def test_distinct_in_order():
    assert distinct_in_order(["American Airlines", None, "British Airways", "American Airlines", " "]) == (
        "American Airlines",
        "British Airways",
    )
