# src/awardfare/providers/american_provider.py

from __future__ import annotations

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


AA_BASE_URL = "https://www.aa.com"
AA_SEARCH_PATH = "/booking/api/search/itinerary"

# productType -> cabin. Specific labels first: PREMIUM_COACH contains COACH.
AA_CABIN_RULES = (
    ("PREMIUM_COACH", CabinClass.PREMIUM_ECONOMY),
    ("PREMIUM_ECONOMY", CabinClass.PREMIUM_ECONOMY),
    ("BUSINESS", CabinClass.BUSINESS),
    ("FIRST", CabinClass.FIRST),
    ("COACH", CabinClass.ECONOMY),
    ("MAIN", CabinClass.ECONOMY),
    ("ECONOMY", CabinClass.ECONOMY),
)


def map_aa_cabin(product_type: Optional[str]) -> CabinClass:
    return map_cabin_by_keyword(product_type, AA_CABIN_RULES)


def _slice_request(origin: str, destination: str, departure_date: str) -> Dict[str, Any]:
    return {
        "allCarriers": True,
        "cabin": "",
        "departureDate": departure_date,
        "destination": destination,
        "destinationNearbyAirports": False,
        "maxStops": None,
        "origin": origin,
        "originNearbyAirports": False,
    }


def build_aa_request(criteria: SearchCriteria) -> Dict[str, Any]:
    slices = [
        _slice_request(
            criteria.origin, criteria.destination, criteria.departure_date.isoformat()
        )
    ]
    if criteria.return_date:
        slices.append(
            _slice_request(
                criteria.destination, criteria.origin, criteria.return_date.isoformat()
            )
        )

    return {
        "metadata": {
            "selectedProducts": [],
            "tripType": "RoundTrip" if criteria.return_date else "OneWay",
            "udo": {},
        },
        "passengers": [{"type": "adult", "count": criteria.passenger_count}],
        "requestHeader": {"clientId": "AAcom"},
        "slices": slices,
        "tripOptions": {
            "corporateBooking": False,
            "fareType": "Lowest",
            "locale": "en_US",
            "pointOfSale": None,
            "searchType": "Award",
        },
        "loyaltyInfo": None,
        "version": "",
        "queryParams": {
            "sliceIndex": 0,
            "sessionId": "",
            "solutionSet": "",
            "solutionId": "",
            "sort": "CARRIER",
        },
    }


def _all_legs(slice_raw: Dict[str, Any]) -> List[Dict[str, Any]]:
    legs: List[Dict[str, Any]] = []
    for seg in slice_raw.get("segments") or []:
        legs.extend(seg.get("legs") or [])
    return legs


def _detail_points(detail: Dict[str, Any]) -> int:
    points = coerce_points(detail.get("perPassengerAwardPoints"))
    if points:
        return points
    slice_pricing = detail.get("slicePricing") or {}
    return coerce_points(slice_pricing.get("perPassengerAwardPoints"))


def _detail_taxes(detail: Dict[str, Any]):
    taxes = detail.get("perPassengerTaxesAndFees")
    if not taxes:
        taxes = (detail.get("slicePricing") or {}).get("allPassengerDisplayTaxTotal")
    taxes = taxes or {}
    return coerce_amount(taxes.get("amount")), str(taxes.get("currency") or "USD")


class AmericanProvider(AwardSearchProvider):
    """
    American Airlines AAdvantage award search (aa.com itinerary API).

    One slice = one itinerary (possibly with connections); every entry in its
    `pricingDetail` list is a separately priced fare on that itinerary.
    """

    code = "AA"
    name = "American Airlines"

    def __init__(
        self,
        credentials: Optional[ProviderCredentials] = None,
        client: Optional[AwardHttpClient] = None,
        timeout_seconds: float = 20,
    ):
        self.client = client or AwardHttpClient(
            AA_BASE_URL,
            credentials=credentials,
            timeout_seconds=timeout_seconds,
            default_headers={
                "content-type": "application/json",
                "origin": AA_BASE_URL,
                "referer": f"{AA_BASE_URL}/booking/choose-flights/1",
            },
        )

    def fetch(self, criteria: SearchCriteria) -> Any:
        return self.client.post(AA_SEARCH_PATH, build_aa_request(criteria))

    def parse(self, payload: Any, criteria: SearchCriteria) -> List[CanonicalOffer]:
        slices = payload["slices"]
        if not isinstance(slices, list):
            raise TypeError("slices is not a list")

        offers: List[CanonicalOffer] = []
        for slice_idx, slice_raw in enumerate(slices):
            legs = _all_legs(slice_raw)
            if not legs:
                continue

            first_leg, last_leg = legs[0], legs[-1]
            route = (
                str(first_leg["origin"]["code"]),
                str(last_leg["destination"]["code"]),
            )

            duration = parse_duration_minutes(slice_raw.get("durationInMinutes"))
            if duration is None:
                duration = sum_durations(leg.get("durationInMinutes") for leg in legs)

            segments = slice_raw.get("segments") or []
            airlines = distinct_in_order(
                (seg.get("flight") or {}).get("carrierName")
                or (seg.get("legs") or [{}])[0].get("operatingCarrierName")
                for seg in segments
            )
            flight_numbers = tuple(
                f"{(seg.get('flight') or {}).get('carrierCode', '')}"
                f"{(seg.get('flight') or {}).get('flightNumber', '')}"
                for seg in segments
                if (seg.get("flight") or {}).get("flightNumber")
            )

            for detail_idx, detail in enumerate(slice_raw.get("pricingDetail") or []):
                points = _detail_points(detail)
                if points <= 0:
                    continue

                tax_amount, tax_currency = _detail_taxes(detail)
                product_type = detail.get("productType")

                offers.append(
                    self.make_offer(
                        f"{slice_idx}-{detail_idx}",
                        route=route,
                        cabin_class=map_aa_cabin(product_type),
                        points_cost=points,
                        departure_time=parse_timestamp(first_leg.get("departureDateTime")),
                        arrival_time=parse_timestamp(last_leg.get("arrivalDateTime")),
                        duration_minutes=duration,
                        cash_tax_amount=tax_amount,
                        cash_tax_currency=tax_currency,
                        seats_remaining=coerce_seats(detail.get("seatsRemaining")),
                        refundable=bool(detail.get("refundableProducts")),
                        operating_airlines=airlines,
                        sold_out=detail.get("productAvailable") is False,
                        fare_code=product_type,
                        flight_numbers=flight_numbers,
                    )
                )

        return offers
