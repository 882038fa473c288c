# src/awardfare/services/offer_bridge.py

from typing import Any, Dict, List

import pandas as pd

from awardfare.core.models import AggregationResult, CanonicalOffer


FRAME_COLUMNS = [
    "id",
    "provider_code",
    "provider_name",
    "origin",
    "destination",
    "cabin_class",
    "points_cost",
    "cash_tax_amount",
    "cash_tax_currency",
    "departure_time",
    "arrival_time",
    "duration_minutes",
    "seats_remaining",
    "refundable",
    "sold_out",
    "operating_airlines",
]


def offers_to_records(offers: List[CanonicalOffer]) -> List[Dict[str, Any]]:
    """JSON-ready dicts, in the order given."""
    return [o.to_dict() for o in offers]


def result_to_payload(result: AggregationResult) -> Dict[str, Any]:
    payload = result.to_dict()
    payload["summary"] = {
        "offer_count": len(result.offers),
        "all_providers_failed": result.all_providers_failed,
        "cheapest_points": result.offers[0].points_cost if result.offers else None,
    }
    return payload


def offers_to_frame(offers: List[CanonicalOffer]) -> pd.DataFrame:
    """
    Flat table of offers for notebooks and reports.
    Timestamps stay as they were reported (mixed offsets), so they are kept
    as ISO strings rather than coerced into one datetime column.
    """
    rows = []
    for o in offers:
        d = o.to_dict()
        d["origin"], d["destination"] = o.route
        d["operating_airlines"] = ", ".join(o.operating_airlines)
        rows.append(d)

    # Route is split; raw route list and traceability fields are left out
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)
