# src/awardfare/providers/snapshot_provider.py

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

import pandas as pd

from awardfare.core.errors import ProviderCallError
from awardfare.core.models import CabinClass, CanonicalOffer, FailureReason, SearchCriteria
from awardfare.core.normalize import (
    coerce_amount,
    coerce_points,
    coerce_seats,
    parse_duration_minutes,
    parse_timestamp,
)
from awardfare.providers.base import AwardSearchProvider


SNAPSHOT_COLUMNS = [
    "origin",
    "destination",
    "departure_time",
    "arrival_time",
    "cabin_class",
    "points_cost",
    "cash_tax_amount",
    "cash_tax_currency",
    "seats_remaining",
    "refundable",
    "duration_minutes",
    "operating_airlines",
    "sold_out",
    "fare_code",
]

_TRUTHY = {"1", "true", "yes", "y"}


def snapshot_path(snapshot_dir: str, code: str) -> str:
    return os.path.join(snapshot_dir, f"{code.lower()}_fares.csv")


def load_snapshot_fares(path: str, criteria: SearchCriteria) -> pd.DataFrame:
    """
    Load a CSV export of already formatted fares and keep the rows matching
    the criteria route and departure day.

    Expected columns: see SNAPSHOT_COLUMNS. `operating_airlines` is
    '|'-separated. Timestamps are ISO-8601 with the airport's offset.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    missing = [c for c in ("origin", "destination", "departure_time", "points_cost") if c not in df.columns]
    if missing:
        raise ValueError(f"snapshot is missing columns: {missing}")

    df["origin"] = df["origin"].str.strip().str.upper()
    df["destination"] = df["destination"].str.strip().str.upper()

    df = df[(df["origin"] == criteria.origin.upper()) & (df["destination"] == criteria.destination.upper())]

    # Local departure day, read straight off the ISO string
    day = criteria.departure_date.isoformat()
    df = df[df["departure_time"].str.strip().str[:10] == day]

    return df


def _flag(value: Any) -> bool:
    return str(value).strip().lower() in _TRUTHY


def _cabin(value: Any) -> CabinClass:
    try:
        return CabinClass(str(value).strip())
    except ValueError:
        return CabinClass.UNKNOWN


class SnapshotFileProvider(AwardSearchProvider):
    """
    Serves fares a separate scraper already wrote to disk (one CSV per
    airline). Useful for backends whose live search has to run in a browser.
    """

    def __init__(self, code: str, name: str, path: str):
        self.code = code.upper()
        self.name = name
        self.path = path

    def fetch(self, criteria: SearchCriteria) -> Any:
        if not os.path.exists(self.path):
            raise ProviderCallError(FailureReason.UNREACHABLE, f"snapshot not found: {self.path}")
        try:
            df = load_snapshot_fares(self.path, criteria)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as exc:
            raise ProviderCallError(
                FailureReason.MALFORMED_RESPONSE, f"unreadable snapshot: {exc}"
            ) from None
        return df.to_dict(orient="records")

    def parse(self, payload: Any, criteria: SearchCriteria) -> List[CanonicalOffer]:
        offers: List[CanonicalOffer] = []
        for idx, d in enumerate(payload):
            points = coerce_points(d.get("points_cost"))
            if points <= 0:
                continue

            airlines_raw: Optional[str] = d.get("operating_airlines") or ""
            offers.append(
                self.make_offer(
                    str(idx),
                    route=(d["origin"], d["destination"]),
                    cabin_class=_cabin(d.get("cabin_class")),
                    points_cost=points,
                    departure_time=parse_timestamp(d.get("departure_time")),
                    arrival_time=parse_timestamp(d.get("arrival_time")),
                    duration_minutes=parse_duration_minutes(d.get("duration_minutes")) or 0,
                    cash_tax_amount=coerce_amount(d.get("cash_tax_amount")),
                    cash_tax_currency=d.get("cash_tax_currency") or "USD",
                    seats_remaining=coerce_seats(d.get("seats_remaining") or None),
                    refundable=_flag(d.get("refundable")),
                    operating_airlines=tuple(
                        a.strip() for a in airlines_raw.split("|") if a.strip()
                    ),
                    sold_out=_flag(d.get("sold_out")),
                    fare_code=d.get("fare_code") or None,
                )
            )
        return offers


def snapshot_records(offers: List[CanonicalOffer]) -> List[Dict[str, Any]]:
    """Rows in the layout `load_snapshot_fares` reads back."""
    rows = []
    for o in offers:
        rows.append(
            {
                "origin": o.origin,
                "destination": o.destination,
                "departure_time": o.departure_time.isoformat() if o.departure_time else "",
                "arrival_time": o.arrival_time.isoformat() if o.arrival_time else "",
                "cabin_class": o.cabin_class.value,
                "points_cost": o.points_cost,
                "cash_tax_amount": o.cash_tax_amount,
                "cash_tax_currency": o.cash_tax_currency,
                "seats_remaining": "" if o.seats_remaining is None else o.seats_remaining,
                "refundable": o.refundable,
                "duration_minutes": o.duration_minutes,
                "operating_airlines": "|".join(o.operating_airlines),
                "sold_out": o.sold_out,
                "fare_code": o.fare_code or "",
            }
        )
    return rows
