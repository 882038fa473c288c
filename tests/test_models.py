from datetime import date, datetime

import pytest

from awardfare.core.errors import ValidationError
from awardfare.core.models import (
    AggregationResult,
    CabinClass,
    CanonicalOffer,
    Outcome,
    ProviderDiagnostic,
    SearchCriteria,
)

from conftest import make_offer


def test_from_raw_normalizes_codes_and_dates():
    c = SearchCriteria.from_raw(" jfk", "lhr ", "2026-03-01", "2026-03-10", "2")

    assert c.origin == "JFK"
    assert c.destination == "LHR"
    assert c.departure_date == date(2026, 3, 1)
    assert c.return_date == date(2026, 3, 10)
    assert c.passenger_count == 2
    assert c.is_round_trip


def test_from_raw_treats_blank_return_as_one_way():
    c = SearchCriteria.from_raw("JFK", "LHR", "2026-03-01", "")
    assert c.return_date is None
    assert not c.is_round_trip


@pytest.mark.parametrize(
    "kwargs, field",
    [
        (dict(origin="JF", destination="LHR", departure_date="2026-03-01"), "origin"),
        (dict(origin="JFK", destination="L1R", departure_date="2026-03-01"), "destination"),
        (dict(origin="JFK", destination="jfk", departure_date="2026-03-01"), "destination"),
        (dict(origin="JFK", destination="LHR", departure_date="2026-02-30"), "departure_date"),
        (dict(origin="JFK", destination="LHR", departure_date="03/01/2026"), "departure_date"),
        (
            dict(origin="JFK", destination="LHR", departure_date="2026-03-10", return_date="2026-03-01"),
            "return_date",
        ),
        (dict(origin="JFK", destination="LHR", departure_date="2026-03-01", passenger_count=0), "passenger_count"),
        (dict(origin="JFK", destination="LHR", departure_date="2026-03-01", passenger_count=True), "passenger_count"),
        (dict(origin="JFK", destination="LHR", departure_date="2026-03-01", passenger_count="two"), "passenger_count"),
    ],
)
def test_from_raw_rejects_invalid_criteria(kwargs, field):
    with pytest.raises(ValidationError) as err:
        SearchCriteria.from_raw(**kwargs)
    assert err.value.field == field


def test_same_day_return_is_allowed():
    c = SearchCriteria.from_raw("JFK", "LHR", "2026-03-01", "2026-03-01")
    c.validate()


@pytest.mark.parametrize(
    "departure, returning, field",
    [
        (datetime(2026, 3, 1, 10, 0), date(2026, 3, 10), "departure_date"),
        (date(2026, 3, 1), datetime(2026, 3, 10, 18, 30), "return_date"),
        (datetime(2026, 3, 1, 10, 0), None, "departure_date"),
    ],
)
def test_validate_rejects_datetimes(departure, returning, field):
    with pytest.raises(ValidationError) as err:
        SearchCriteria("JFK", "LHR", departure, returning).validate()
    assert err.value.field == field


def test_from_raw_truncates_datetimes_to_dates():
    c = SearchCriteria.from_raw("JFK", "LHR", datetime(2026, 3, 1, 10, 0), date(2026, 3, 10))
    assert c.departure_date == date(2026, 3, 1)
    assert type(c.departure_date) is date



def test_fingerprint_is_deterministic_and_case_insensitive():
    a = SearchCriteria("JFK", "LHR", date(2026, 3, 1))
    b = SearchCriteria("jfk", "lhr", date(2026, 3, 1))
    c = SearchCriteria("JFK", "LHR", date(2026, 3, 2))

    assert a.fingerprint() == b.fingerprint()
    assert a.fingerprint() != c.fingerprint()
    assert len(a.fingerprint()) == 64


def test_offer_dict_round_trip_keeps_offsets():
    offer = make_offer(operating_airlines=("American Airlines",), flight_numbers=("AA100",))
    restored = CanonicalOffer.from_dict(offer.to_dict())

    assert restored == offer
    assert restored.departure_time.utcoffset().total_seconds() == -5 * 3600


def test_offer_is_frozen():
    offer = make_offer()
    with pytest.raises(Exception):
        offer.points_cost = 1


def test_unknown_cabin_round_trips():
    offer = make_offer(cabin_class=CabinClass.UNKNOWN)
    assert CanonicalOffer.from_dict(offer.to_dict()).cabin_class is CabinClass.UNKNOWN


def test_all_providers_failed():
    failed = ProviderDiagnostic("AA", Outcome.FAILED)
    degraded = ProviderDiagnostic("VS", Outcome.DEGRADED)

    assert AggregationResult([], [failed]).all_providers_failed
    assert not AggregationResult([], [failed, degraded]).all_providers_failed
    assert not AggregationResult([], []).all_providers_failed


def test_result_to_dict_shape():
    result = AggregationResult([make_offer()], [ProviderDiagnostic("AA", Outcome.SUCCESS, offer_count=1)])
    payload = result.to_dict()

    assert set(payload) == {"offers", "diagnostics"}
    assert payload["offers"][0]["cabin_class"] == "Economy"
    assert payload["diagnostics"][0]["outcome"] == "Success"
    assert payload["diagnostics"][0]["reason"] is None
