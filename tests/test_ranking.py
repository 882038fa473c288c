import logging

from awardfare.core.models import CabinClass
from awardfare.core.ranking import dedup_offers, drop_unpriced, merge_offers, rank_offers

from conftest import make_offer


def test_rank_by_points_then_duration_then_provider():
    offers = [
        make_offer("VS", 30000, duration_minutes=400),
        make_offer("AA", 30000, duration_minutes=400, departure_hour=9),
        make_offer("AS", 30000, duration_minutes=380),
        make_offer("AF", 12000, duration_minutes=900),
    ]
    ranked = rank_offers(offers)

    assert [(o.provider_code, o.points_cost, o.duration_minutes) for o in ranked] == [
        ("AF", 12000, 900),
        ("AS", 30000, 380),
        ("AA", 30000, 400),
        ("VS", 30000, 400),
    ]


def test_rank_is_stable_for_full_ties():
    first = make_offer("AA", 30000, departure_hour=7)
    second = make_offer("AA", 30000, departure_hour=9)
    assert rank_offers([first, second]) == [first, second]
    assert rank_offers([second, first]) == [second, first]


def test_merged_list_is_non_decreasing_in_points():
    offers = [make_offer(code, pts) for code, pts in [("AA", 50000), ("VS", 20000), ("AS", 35000), ("AA", 20000)]]
    merged = merge_offers(offers)
    points = [o.points_cost for o in merged]
    assert points == sorted(points)


def test_dedup_collapses_identical_offers_keeping_seat_count():
    no_seats = make_offer("AA", 30000, seats_remaining=None)
    with_seats = make_offer("AA", 30000, seats_remaining=3)

    unique = dedup_offers([no_seats, with_seats])

    assert len(unique) == 1
    assert unique[0].seats_remaining == 3


def test_dedup_keeps_first_when_both_report_seats():
    a = make_offer("AA", 30000, seats_remaining=5)
    b = make_offer("AA", 30000, seats_remaining=2)
    assert dedup_offers([a, b]) == [a]


def test_same_flight_different_points_or_cabin_are_not_duplicates():
    offers = [
        make_offer("AA", 30000),
        make_offer("AA", 45000),
        make_offer("AA", 30000, cabin_class=CabinClass.BUSINESS),
        make_offer("VS", 30000),
    ]
    assert len(dedup_offers(offers)) == 4


def test_merged_output_has_no_duplicate_keys():
    offers = [make_offer("AA", 30000)] * 3 + [make_offer("VS", 30000)] * 2
    merged = merge_offers(offers)
    keys = [o.dedup_key() for o in merged]
    assert len(keys) == len(set(keys)) == 2


def test_drop_unpriced_logs(caplog):
    offers = [make_offer("AA", 0), make_offer("VS", 10000)]
    with caplog.at_level(logging.WARNING, logger="awardfare.core.ranking"):
        kept = drop_unpriced(offers)

    assert [o.provider_code for o in kept] == ["VS"]
    assert "Dropping unpriced offer from AA" in caplog.text


def test_merge_assigns_unique_ids_in_rank_order():
    offers = [make_offer("VS", 40000), make_offer("AA", 20000), make_offer("AA", 30000)]
    merged = merge_offers(offers)

    assert [o.id for o in merged] == ["AA-1", "AA-2", "VS-3"]
    assert len({o.id for o in merged}) == len(merged)
