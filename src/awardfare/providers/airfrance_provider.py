# src/awardfare/providers/airfrance_provider.py

from __future__ import annotations

import hashlib
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, List

from awardfare.core.models import CabinClass, CanonicalOffer, SearchCriteria
from awardfare.core.normalize import coerce_points, map_cabin_by_keyword
from awardfare.providers.base import AwardSearchProvider


AF_CABIN_RULES = (
    ("PREMIUM", CabinClass.PREMIUM_ECONOMY),
    ("BUSINESS", CabinClass.BUSINESS),
    ("LA_PREMIERE", CabinClass.FIRST),
    ("ECONOMY", CabinClass.ECONOMY),
)

# (label, base miles, tax EUR)
AF_SAMPLE_FARES = (
    ("ECONOMY", 25000, 110.0),
    ("PREMIUM", 42000, 140.0),
    ("BUSINESS", 72000, 190.0),
)

# (departure hour, duration minutes, via)
AF_SAMPLE_SCHEDULE = (
    (10, 480, None),
    (17, 615, "CDG"),
)


def _seed(criteria: SearchCriteria) -> int:
    # Route and day only, so party size never moves the per-passenger price
    key = f"{criteria.origin.upper()}-{criteria.destination.upper()}-{criteria.departure_date.isoformat()}"
    return int(hashlib.sha256(key.encode("utf-8")).hexdigest()[:8], 16)


def generate_sample_fares(criteria: SearchCriteria) -> List[Dict[str, Any]]:
    """
    Flying Blue sample fares for a route/date, priced per passenger like
    every other award backend.

    The same criteria always produce the same fares; different dates shift
    the prices a little so the merger has something to rank.
    """
    seed = _seed(criteria)
    utc = timezone.utc
    fares: List[Dict[str, Any]] = []

    for flight_idx, (hour, duration, via) in enumerate(AF_SAMPLE_SCHEDULE):
        departure = datetime.combine(criteria.departure_date, time(hour, 0), tzinfo=utc)
        arrival = departure + timedelta(minutes=duration)
        for label, miles, tax in AF_SAMPLE_FARES:
            bump = ((seed >> (flight_idx * 4)) % 8) * 500
            fares.append(
                {
                    "id": f"{flight_idx}-{label}",
                    "origin": criteria.origin,
                    "destination": criteria.destination,
                    "departure": departure.isoformat(),
                    "arrival": arrival.isoformat(),
                    "duration": duration,
                    "via": via,
                    "cabin": label,
                    "miles": miles + bump,
                    "tax": tax,
                    "currency": "EUR",
                    "seats": (seed + flight_idx) % 9 + 1,
                    "flightNumbers": [f"AF{100 + flight_idx * 10}"]
                    + ([f"AF{1200 + flight_idx}"] if via else []),
                }
            )
    return fares


class AirFranceProvider(AwardSearchProvider):
    """
    Air France / KLM Flying Blue.

    No live endpoint is wired up yet; results come from a deterministic sample
    schedule so the rest of the pipeline treats AF like any other backend.
    """

    code = "AF"
    name = "Air France"

    def __init__(self, credentials=None, client=None, timeout_seconds: float = 20):
        # Accepted for registry symmetry; the sample schedule needs none of them
        self.credentials = credentials

    def fetch(self, criteria: SearchCriteria) -> Any:
        return {"fares": generate_sample_fares(criteria)}

    def parse(self, payload: Any, criteria: SearchCriteria) -> List[CanonicalOffer]:
        offers: List[CanonicalOffer] = []
        for fare in payload["fares"]:
            points = coerce_points(fare.get("miles"))
            if points <= 0:
                continue
            offers.append(
                self.make_offer(
                    fare["id"],
                    route=(fare["origin"], fare["destination"]),
                    cabin_class=map_cabin_by_keyword(fare.get("cabin"), AF_CABIN_RULES),
                    points_cost=points,
                    departure_time=datetime.fromisoformat(fare["departure"]),
                    arrival_time=datetime.fromisoformat(fare["arrival"]),
                    duration_minutes=int(fare["duration"]),
                    cash_tax_amount=float(fare["tax"]),
                    cash_tax_currency=fare["currency"],
                    seats_remaining=int(fare["seats"]),
                    operating_airlines=("Air France",),
                    fare_code=fare.get("cabin"),
                    flight_numbers=tuple(fare.get("flightNumbers") or ()),
                )
            )
        return offers
