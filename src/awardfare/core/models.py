# src/awardfare/core/models.py

from __future__ import annotations

import hashlib
import json
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from awardfare.core.errors import ValidationError


LOCATION_CODE_RE = re.compile(r"^[A-Z]{3}$")


class CabinClass(str, Enum):
    ECONOMY = "Economy"
    PREMIUM_ECONOMY = "PremiumEconomy"
    BUSINESS = "Business"
    FIRST = "First"
    UNKNOWN = "Unknown"


class FailureReason(str, Enum):
    UNREACHABLE = "Unreachable"
    AUTH_EXPIRED = "AuthExpired"
    RATE_LIMITED = "RateLimited"
    MALFORMED_RESPONSE = "MalformedResponse"
    NO_OFFERS = "NoOffers"


class Outcome(str, Enum):
    SUCCESS = "Success"
    DEGRADED = "Degraded"
    FAILED = "Failed"


def _parse_date(value: Any, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(
            f"{field_name} must be an ISO calendar date (YYYY-MM-DD), got {value!r}",
            field=field_name,
        ) from None


@dataclass(frozen=True)
class SearchCriteria:
    """
    One logical award search. Construction does not validate; call
    `validate()` (the aggregator does) or build through `from_raw()`.
    """

    origin: str
    destination: str
    departure_date: date
    return_date: Optional[date] = None
    passenger_count: int = 1

    @classmethod
    def from_raw(
        cls,
        origin: Any,
        destination: Any,
        departure_date: Any,
        return_date: Any = None,
        passenger_count: Any = 1,
    ) -> "SearchCriteria":
        """Parse loosely-typed input (e.g. a JSON body) into validated criteria."""
        if isinstance(passenger_count, bool):
            raise ValidationError("passenger_count must be an integer", field="passenger_count")
        try:
            count = int(passenger_count)
        except (TypeError, ValueError):
            raise ValidationError(
                f"passenger_count must be an integer, got {passenger_count!r}",
                field="passenger_count",
            ) from None

        criteria = cls(
            origin=str(origin or "").strip().upper(),
            destination=str(destination or "").strip().upper(),
            departure_date=_parse_date(departure_date, "departure_date"),
            return_date=(
                _parse_date(return_date, "return_date")
                if return_date not in (None, "")
                else None
            ),
            passenger_count=count,
        )
        criteria.validate()
        return criteria

    def validate(self) -> None:
        for name in ("origin", "destination"):
            value = getattr(self, name)
            if not isinstance(value, str) or not LOCATION_CODE_RE.match(value.upper()):
                raise ValidationError(
                    f"{name} must be a 3-letter airport or city code, got {value!r}",
                    field=name,
                )
        if self.origin.upper() == self.destination.upper():
            raise ValidationError("origin and destination must differ", field="destination")

        # datetime subclasses date but cannot be compared with one
        for name in ("departure_date", "return_date"):
            value = getattr(self, name)
            if name == "return_date" and value is None:
                continue
            if isinstance(value, datetime) or not isinstance(value, date):
                raise ValidationError(f"{name} must be a calendar date, got {value!r}", field=name)
        if self.return_date is not None:
            if self.return_date < self.departure_date:
                raise ValidationError(
                    "return_date must not be before departure_date", field="return_date"
                )

        if (
            isinstance(self.passenger_count, bool)
            or not isinstance(self.passenger_count, int)
            or self.passenger_count < 1
        ):
            raise ValidationError(
                "passenger_count must be a positive integer", field="passenger_count"
            )

    @property
    def is_round_trip(self) -> bool:
        return self.return_date is not None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "origin": self.origin.upper(),
            "destination": self.destination.upper(),
            "departure_date": self.departure_date.isoformat(),
            "return_date": self.return_date.isoformat() if self.return_date else None,
            "passenger_count": int(self.passenger_count),
        }

    def fingerprint(self) -> str:
        """Deterministic cache key for these criteria."""
        raw = json.dumps(self.as_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _dt_to_str(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def _str_to_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass(frozen=True)
class CanonicalOffer:
    """
    One bookable award fare, provider-agnostic.

    Timestamps keep the offset the provider reported (local airport time);
    they are never converted to UTC. points_cost and cash_tax_amount are
    per passenger whatever the party size.
    """

    id: str
    route: Tuple[str, str]
    provider_name: str
    provider_code: str
    cabin_class: CabinClass
    points_cost: int
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None
    duration_minutes: int = 0
    cash_tax_amount: float = 0.0
    cash_tax_currency: str = "USD"
    seats_remaining: Optional[int] = None
    refundable: bool = False
    operating_airlines: Tuple[str, ...] = ()
    sold_out: bool = False

    # Traceability back to the raw fare
    fare_code: Optional[str] = None
    flight_numbers: Tuple[str, ...] = ()

    @property
    def origin(self) -> str:
        return self.route[0]

    @property
    def destination(self) -> str:
        return self.route[1]

    def dedup_key(self) -> tuple:
        return (
            self.route,
            self.provider_code,
            self.cabin_class,
            self.departure_time,
            self.arrival_time,
            self.points_cost,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "route": list(self.route),
            "provider_name": self.provider_name,
            "provider_code": self.provider_code,
            "cabin_class": self.cabin_class.value,
            "points_cost": self.points_cost,
            "cash_tax_amount": self.cash_tax_amount,
            "cash_tax_currency": self.cash_tax_currency,
            "seats_remaining": self.seats_remaining,
            "refundable": self.refundable,
            "departure_time": _dt_to_str(self.departure_time),
            "arrival_time": _dt_to_str(self.arrival_time),
            "duration_minutes": self.duration_minutes,
            "operating_airlines": list(self.operating_airlines),
            "sold_out": self.sold_out,
            "fare_code": self.fare_code,
            "flight_numbers": list(self.flight_numbers),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CanonicalOffer":
        route = d.get("route") or ["", ""]
        return cls(
            id=str(d.get("id", "")),
            route=(str(route[0]), str(route[1])),
            provider_name=str(d.get("provider_name", "")),
            provider_code=str(d.get("provider_code", "")),
            cabin_class=CabinClass(d.get("cabin_class", CabinClass.UNKNOWN.value)),
            points_cost=int(d.get("points_cost", 0) or 0),
            cash_tax_amount=float(d.get("cash_tax_amount", 0.0) or 0.0),
            cash_tax_currency=str(d.get("cash_tax_currency") or "USD"),
            seats_remaining=(
                int(d["seats_remaining"]) if d.get("seats_remaining") is not None else None
            ),
            refundable=bool(d.get("refundable", False)),
            departure_time=_str_to_dt(d.get("departure_time")),
            arrival_time=_str_to_dt(d.get("arrival_time")),
            duration_minutes=int(d.get("duration_minutes", 0) or 0),
            operating_airlines=tuple(d.get("operating_airlines") or ()),
            sold_out=bool(d.get("sold_out", False)),
            fare_code=d.get("fare_code"),
            flight_numbers=tuple(d.get("flight_numbers") or ()),
        )


@dataclass(frozen=True)
class Success:
    offers: List[CanonicalOffer] = field(default_factory=list)


@dataclass(frozen=True)
class Failure:
    reason: FailureReason
    partial_raw_payload: Optional[Any] = None
    detail: str = ""


ProviderResult = Union[Success, Failure]


@dataclass(frozen=True)
class ProviderCacheEntry:
    provider_code: str
    fingerprint: str
    offers: List[CanonicalOffer]
    captured_at: datetime


@dataclass(frozen=True)
class ProviderDiagnostic:
    """Per-provider outcome of one fan-out, returned next to the offers."""

    provider_code: str
    outcome: Outcome
    reason: Optional[FailureReason] = None
    offer_count: int = 0
    elapsed_ms: int = 0
    # Set for Degraded entries: when the fallback snapshot was captured.
    cache_captured_at: Optional[datetime] = None
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider_code": self.provider_code,
            "outcome": self.outcome.value,
            "reason": self.reason.value if self.reason else None,
            "offer_count": self.offer_count,
            "elapsed_ms": self.elapsed_ms,
            "cache_captured_at": _dt_to_str(self.cache_captured_at),
            "detail": self.detail,
        }


@dataclass(frozen=True)
class AggregationResult:
    offers: List[CanonicalOffer] = field(default_factory=list)
    diagnostics: List[ProviderDiagnostic] = field(default_factory=list)

    @property
    def all_providers_failed(self) -> bool:
        return bool(self.diagnostics) and all(
            d.outcome == Outcome.FAILED for d in self.diagnostics
        )

    def providers_with(self, outcome: Outcome) -> List[str]:
        return [d.provider_code for d in self.diagnostics if d.outcome == outcome]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "offers": [o.to_dict() for o in self.offers],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
