# src/awardfare/core/ranking.py

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, List

from awardfare.core.models import CanonicalOffer


logger = logging.getLogger(__name__)


def rank_key(offer: CanonicalOffer):
    """
    Lower is better.
    Rank by (points cost, duration, provider code).
    """
    return (offer.points_cost, offer.duration_minutes, offer.provider_code)


def drop_unpriced(offers: Iterable[CanonicalOffer]) -> List[CanonicalOffer]:
    """Adapters already filter these; anything that slips through is dropped here."""
    kept: List[CanonicalOffer] = []
    for o in offers:
        if o.points_cost is None or o.points_cost <= 0:
            logger.warning(
                "Dropping unpriced offer from %s (points_cost=%r)",
                o.provider_code,
                o.points_cost,
            )
            continue
        kept.append(o)
    return kept


def dedup_offers(offers: Iterable[CanonicalOffer]) -> List[CanonicalOffer]:
    """
    Collapse true duplicates: same route, provider, cabin, departure, arrival
    AND points cost. Same flight at two price points is two offers.

    When duplicates disagree on seat availability, the one that reports a seat
    count wins. Otherwise the first one seen is kept.
    """
    best_by_key: Dict[tuple, CanonicalOffer] = {}
    for o in offers:
        key = o.dedup_key()
        existing = best_by_key.get(key)
        if existing is None:
            best_by_key[key] = o
        elif existing.seats_remaining is None and o.seats_remaining is not None:
            best_by_key[key] = o
    return list(best_by_key.values())


def rank_offers(offers: Iterable[CanonicalOffer]) -> List[CanonicalOffer]:
    return sorted(offers, key=rank_key)


def assign_ids(offers: Iterable[CanonicalOffer]) -> List[CanonicalOffer]:
    """Response-unique ids in ranked order. Offers are frozen, so copies are made."""
    return [
        replace(o, id=f"{o.provider_code}-{position}")
        for position, o in enumerate(offers, start=1)
    ]


def merge_offers(offers: Iterable[CanonicalOffer]) -> List[CanonicalOffer]:
    """Concatenated provider output -> final flat ranked list."""
    priced = drop_unpriced(offers)
    unique = dedup_offers(priced)
    if len(unique) != len(priced):
        logger.debug("Collapsed %d duplicate offers", len(priced) - len(unique))
    return assign_ids(rank_offers(unique))
