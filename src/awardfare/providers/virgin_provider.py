# src/awardfare/providers/virgin_provider.py

from __future__ import annotations

from typing import Any, Dict, List, Optional

from awardfare.config import ProviderCredentials
from awardfare.core.errors import ProviderCallError
from awardfare.core.models import CabinClass, CanonicalOffer, FailureReason, SearchCriteria
from awardfare.core.normalize import (
    coerce_amount,
    coerce_points,
    coerce_seats,
    distinct_in_order,
    map_cabin_by_keyword,
    map_cabin_by_prefix,
    parse_duration_minutes,
    parse_timestamp,
    sum_durations,
)
from awardfare.providers.base import AwardSearchProvider
from awardfare.services.award_client import AwardHttpClient


VS_BASE_URL = "https://www.virginatlantic.com"
VS_GRAPHQL_PATH = "/flights/search/api/graphql"

# Fare id prefix -> cabin. Upper Class (C/W) is Virgin's business cabin.
VS_FARE_PREFIXES = {
    "X": CabinClass.ECONOMY,
    "K": CabinClass.ECONOMY,
    "N": CabinClass.PREMIUM_ECONOMY,
    "Y": CabinClass.PREMIUM_ECONOMY,
    "B": CabinClass.BUSINESS,
    "S": CabinClass.BUSINESS,
    "C": CabinClass.BUSINESS,
    "W": CabinClass.BUSINESS,
}

VS_CABIN_NAME_RULES = (
    ("PREMIUM", CabinClass.PREMIUM_ECONOMY),
    ("UPPER_CLASS", CabinClass.BUSINESS),
    ("BUSINESS", CabinClass.BUSINESS),
    ("FIRST", CabinClass.FIRST),
    ("ECONOMY", CabinClass.ECONOMY),
)

SEARCH_OFFERS_QUERY = """
query SearchOffers($request: FlightOfferRequestInput!) {
  searchOffers(request: $request) {
    result {
      slice {
        flightsAndFares {
          flight {
            segments {
              airline { code name }
              flightNumber
              origin { code cityName airportName }
              destination { code cityName airportName }
              duration
              departure
              arrival
            }
            duration
            origin { code cityName airportName }
            destination { code cityName airportName }
            departure
            arrival
          }
          fares {
            availability
            id
            fareId
            content { cabinName }
            price { awardPoints tax currency }
          }
        }
      }
    }
  }
}
"""


def map_vs_cabin(fare_id: Optional[str], cabin_name: Optional[str] = None) -> CabinClass:
    cabin = map_cabin_by_prefix((fare_id or "")[:1], VS_FARE_PREFIXES)
    if cabin is CabinClass.UNKNOWN:
        cabin = map_cabin_by_keyword(cabin_name, VS_CABIN_NAME_RULES)
    return cabin


def build_vs_request(criteria: SearchCriteria) -> Dict[str, Any]:
    legs = [
        {
            "origin": criteria.origin,
            "destination": criteria.destination,
            "departureDate": criteria.departure_date.isoformat(),
        }
    ]
    if criteria.return_date:
        legs.append(
            {
                "origin": criteria.destination,
                "destination": criteria.origin,
                "departureDate": criteria.return_date.isoformat(),
            }
        )

    return {
        "query": SEARCH_OFFERS_QUERY,
        "variables": {
            "request": {
                "flightSearchRequest": {
                    "searchOriginDestinations": legs,
                    "bundleOffer": False,
                    "awardSearch": True,
                    "calendarSearch": False,
                    "nonStopOnly": False,
                },
                "customerDetails": [
                    {"custId": f"ADT_{i}", "ptc": "ADT"}
                    for i in range(criteria.passenger_count)
                ],
            }
        },
    }


def _graphql_error(payload: Dict[str, Any]) -> ProviderCallError:
    messages = [str((e or {}).get("message", "")) for e in payload.get("errors") or []]
    joined = "; ".join(m for m in messages if m) or "GraphQL error"
    lowered = joined.lower()
    if "unauth" in lowered or "forbidden" in lowered or "login" in lowered:
        return ProviderCallError(FailureReason.AUTH_EXPIRED, joined, payload)
    return ProviderCallError(FailureReason.MALFORMED_RESPONSE, joined, payload)


def _slices(result: Dict[str, Any]) -> List[Dict[str, Any]]:
    raw = result.get("slice")
    if raw is None:
        return []
    if isinstance(raw, list):
        return raw
    return [raw]


class VirginAtlanticProvider(AwardSearchProvider):
    """
    Virgin Atlantic Flying Club award search (GraphQL).

    The endpoint only answers with a logged-in session; cookies come from the
    external login tooling. No cookies means the session has to be refreshed.
    """

    code = "VS"
    name = "Virgin Atlantic"

    def __init__(
        self,
        credentials: Optional[ProviderCredentials] = None,
        client: Optional[AwardHttpClient] = None,
        timeout_seconds: float = 20,
    ):
        self.credentials = credentials or ProviderCredentials()
        self.client = client or AwardHttpClient(
            VS_BASE_URL,
            credentials=self.credentials,
            timeout_seconds=timeout_seconds,
            default_headers={
                "accept": "*/*",
                "content-type": "application/json",
                "origin": VS_BASE_URL,
            },
        )

    def fetch(self, criteria: SearchCriteria) -> Any:
        if self.client.credentials.is_empty:
            raise ProviderCallError(FailureReason.AUTH_EXPIRED, "no session cookies")
        return self.client.post(VS_GRAPHQL_PATH, build_vs_request(criteria))

    def parse(self, payload: Any, criteria: SearchCriteria) -> List[CanonicalOffer]:
        data = payload.get("data")
        if not data:
            if payload.get("errors"):
                raise _graphql_error(payload)
            raise KeyError("data")

        result = data["searchOffers"]["result"] or {}

        offers: List[CanonicalOffer] = []
        for slice_idx, slice_raw in enumerate(_slices(result)):
            for ff_idx, ff in enumerate(slice_raw.get("flightsAndFares") or []):
                flight = ff.get("flight") or {}
                segments = flight.get("segments") or []
                if not segments:
                    continue

                first, last = segments[0], segments[-1]
                route = (
                    str(first["origin"]["code"]),
                    str(last["destination"]["code"]),
                )

                duration = parse_duration_minutes(flight.get("duration"))
                if duration is None:
                    duration = sum_durations(s.get("duration") for s in segments)

                airlines = distinct_in_order(
                    (s.get("airline") or {}).get("name") for s in segments
                )
                flight_numbers = tuple(
                    f"{(s.get('airline') or {}).get('code', '')}{s['flightNumber']}"
                    for s in segments
                    if s.get("flightNumber")
                )

                for fare_idx, fare in enumerate(ff.get("fares") or []):
                    price = fare.get("price") or {}
                    points = coerce_points(price.get("awardPoints"))
                    if points <= 0:
                        continue

                    availability = fare.get("availability")
                    sold_out = str(availability).upper() == "SOLD_OUT"
                    if sold_out:
                        seats = 0
                    else:
                        seats = coerce_seats(availability)

                    fare_id = fare.get("fareId")
                    cabin_name = (fare.get("content") or {}).get("cabinName")

                    offers.append(
                        self.make_offer(
                            fare.get("id") or f"{slice_idx}-{ff_idx}-{fare_idx}",
                            route=route,
                            cabin_class=map_vs_cabin(fare_id, cabin_name),
                            points_cost=points,
                            departure_time=parse_timestamp(
                                flight.get("departure") or first.get("departure")
                            ),
                            arrival_time=parse_timestamp(
                                flight.get("arrival") or last.get("arrival")
                            ),
                            duration_minutes=duration,
                            cash_tax_amount=coerce_amount(price.get("tax")),
                            cash_tax_currency=str(price.get("currency") or "USD"),
                            seats_remaining=seats,
                            refundable=False,
                            operating_airlines=airlines,
                            sold_out=sold_out,
                            fare_code=fare_id or cabin_name,
                            flight_numbers=flight_numbers,
                        )
                    )

        return offers
