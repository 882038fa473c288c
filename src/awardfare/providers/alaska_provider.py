# src/awardfare/providers/alaska_provider.py

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from awardfare.config import ProviderCredentials
from awardfare.core.models import CabinClass, CanonicalOffer, SearchCriteria
from awardfare.core.normalize import (
    coerce_amount,
    coerce_points,
    coerce_seats,
    distinct_in_order,
    map_cabin_by_keyword,
    parse_duration_minutes,
    parse_timestamp,
    sum_durations,
)
from awardfare.providers.base import AwardSearchProvider
from awardfare.services.award_client import AwardHttpClient


AS_BASE_URL = "https://www.alaskaair.com"
AS_SEARCH_PATH = "/search/api/flightresults"

AS_CABIN_RULES = (
    ("PREMIUM", CabinClass.PREMIUM_ECONOMY),
    ("BUSINESS", CabinClass.BUSINESS),
    ("FIRST", CabinClass.FIRST),
    ("MAIN", CabinClass.ECONOMY),
    ("SAVER", CabinClass.ECONOMY),
    ("COACH", CabinClass.ECONOMY),
    ("ECONOMY", CabinClass.ECONOMY),
)


def map_as_cabin(solution_key: Optional[str], cabins: Optional[List[str]] = None) -> CabinClass:
    """
    Solutions are keyed by fare family ('SAVER_MAIN', 'PARTNER_BUSINESS', ...).
    When the key alone is not recognized, the fare's first listed cabin decides.
    """
    cabin = map_cabin_by_keyword(solution_key, AS_CABIN_RULES)
    if cabin is CabinClass.UNKNOWN and cabins:
        cabin = map_cabin_by_keyword(str(cabins[0]), AS_CABIN_RULES)
    return cabin


def build_as_request(criteria: SearchCriteria) -> Dict[str, Any]:
    origins = [criteria.origin]
    destinations = [criteria.destination]
    dates = [criteria.departure_date.isoformat()]
    if criteria.return_date:
        origins.append(criteria.destination)
        destinations.append(criteria.origin)
        dates.append(criteria.return_date.isoformat())

    return {
        "origins": origins,
        "destinations": destinations,
        "dates": dates,
        "numADTs": criteria.passenger_count,
        "numINFs": 0,
        "numCHDs": 0,
        "fareView": "as_awards",
        "onba": False,
        "dnba": False,
        "isAlaska": False,
        "isMobileApp": False,
        "sliceId": 0,
        "umnrAgeGroup": "",
        "lockFare": False,
        "sessionID": "",
        "solutionIDs": [],
        "solutionSetIDs": [],
        "qpxcVersion": "",
        "trackingTags": [],
    }


class AlaskaProvider(AwardSearchProvider):
    """Alaska Airlines Mileage Plan award search (alaskaair.com flight results API)."""

    code = "AS"
    name = "Alaska Airlines"

    def __init__(
        self,
        credentials: Optional[ProviderCredentials] = None,
        client: Optional[AwardHttpClient] = None,
        timeout_seconds: float = 20,
    ):
        self.client = client or AwardHttpClient(
            AS_BASE_URL,
            credentials=credentials,
            timeout_seconds=timeout_seconds,
            default_headers={
                "accept": "*/*",
                "content-type": "text/plain;charset=UTF-8",
                "origin": AS_BASE_URL,
                "referer": f"{AS_BASE_URL}/search/results",
            },
        )

    def fetch(self, criteria: SearchCriteria) -> Any:
        # The endpoint wants the JSON document as a text/plain body
        return self.client.request_json(
            "POST", AS_SEARCH_PATH, data=json.dumps(build_as_request(criteria))
        )

    def parse(self, payload: Any, criteria: SearchCriteria) -> List[CanonicalOffer]:
        rows = payload["rows"]
        if not isinstance(rows, list):
            raise TypeError("rows is not a list")

        offers: List[CanonicalOffer] = []
        for row_idx, row in enumerate(rows):
            segments = row.get("segments") or []
            solutions = row.get("solutions") or {}
            if not segments or not isinstance(solutions, dict):
                continue

            first, last = segments[0], segments[-1]
            route = (
                str(row.get("origin") or first.get("departureStation") or ""),
                str(row.get("destination") or last.get("arrivalStation") or ""),
            )

            duration = parse_duration_minutes(row.get("duration"))
            if duration is None:
                duration = sum_durations(s.get("duration") for s in segments)

            airlines = distinct_in_order(
                (s.get("displayCarrier") or {}).get("carrierFullName") for s in segments
            )
            flight_numbers = tuple(
                f"{(s.get('displayCarrier') or {}).get('carrierCode', '')}{s['flightNumber']}"
                for s in segments
                if s.get("flightNumber")
            )
            row_id = row.get("id") or row_idx

            for solution_key, fare in solutions.items():
                if not isinstance(fare, dict):
                    continue
                points = coerce_points(fare.get("milesPoints"))
                if points <= 0:
                    continue

                offers.append(
                    self.make_offer(
                        f"{row_id}-{solution_key}",
                        route=route,
                        cabin_class=map_as_cabin(solution_key, fare.get("cabins")),
                        points_cost=points,
                        departure_time=parse_timestamp(first.get("departureTime")),
                        arrival_time=parse_timestamp(
                            last.get("arrivalTime") or last.get("departureTime")
                        ),
                        duration_minutes=duration,
                        cash_tax_amount=coerce_amount(fare.get("grandTotal")),
                        cash_tax_currency=str(fare.get("currency") or "USD"),
                        seats_remaining=coerce_seats(fare.get("seatsRemaining")),
                        refundable=bool(fare.get("refundable")),
                        operating_airlines=airlines,
                        sold_out=bool(fare.get("soldOut")),
                        fare_code=solution_key,
                        flight_numbers=flight_numbers,
                    )
                )

        return offers
