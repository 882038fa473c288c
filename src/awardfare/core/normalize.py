# src/awardfare/core/normalize.py
"""
Pure helpers shared by provider adapters when turning raw fare data into
CanonicalOffer fields. Nothing in here performs I/O.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

from awardfare.core.models import CabinClass


DURATION_RE = re.compile(r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?)?$")
POINTS_RE = re.compile(r"[^0-9.]")
LABEL_RE = re.compile(r"[^A-Z0-9]+")


def normalize_label(label: Optional[str]) -> str:
    """'Premium economy' -> 'PREMIUM_ECONOMY'."""
    if not label:
        return ""
    return LABEL_RE.sub("_", str(label).upper()).strip("_")


def map_cabin_by_keyword(
    label: Optional[str],
    rules: Sequence[Tuple[str, CabinClass]],
) -> CabinClass:
    """
    Map a provider class label onto CabinClass.

    Rules are checked in order; a rule matches when its keyword appears in the
    normalized label as whole '_'-separated tokens. First match wins, so more
    specific keywords ('PREMIUM_COACH') must come before general ones ('COACH').
    Unrecognized labels map to UNKNOWN.
    """
    norm = normalize_label(label)
    if not norm:
        return CabinClass.UNKNOWN

    padded = f"_{norm}_"
    for keyword, cabin in rules:
        if f"_{keyword}_" in padded:
            return cabin
    return CabinClass.UNKNOWN


def map_cabin_by_prefix(
    code: Optional[str],
    prefixes: Mapping[str, CabinClass],
) -> CabinClass:
    """Map a fare basis / booking code by its leading character(s)."""
    norm = normalize_label(code)
    if not norm:
        return CabinClass.UNKNOWN

    # Longest prefix first so 'PZ' can override 'P'
    for prefix in sorted(prefixes, key=len, reverse=True):
        if norm.startswith(prefix):
            return prefixes[prefix]
    return CabinClass.UNKNOWN


def coerce_points(value: Any) -> int:
    """
    Points cost as a non-negative int. Accepts ints, floats and display strings
    such as '12,500'. Anything unusable returns 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return max(0, int(value))
    if isinstance(value, str):
        cleaned = POINTS_RE.sub("", value)
        if not cleaned:
            return 0
        try:
            return max(0, int(float(cleaned)))
        except ValueError:
            return 0
    return 0


def coerce_seats(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        seats = int(value)
    except (TypeError, ValueError):
        return None
    return seats if seats >= 0 else None


def coerce_amount(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return default
    return amount if amount >= 0 else default


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse provider datetime strings like:
      - '2026-02-15T10:30:00'
      - '2026-02-15T10:30:00Z'
      - '2026-02-15T10:30:00.000-05:00'
    The offset is kept as reported.
    """
    if not value:
        return None
    try:
        v = str(value).strip().replace("Z", "+00:00")
        return datetime.fromisoformat(v)
    except ValueError:
        return None


def parse_duration_minutes(value: Any) -> Optional[int]:
    """
    Durations arrive either as minutes (int or numeric string) or ISO-8601
    ('PT6H30M', 'P1DT2H').
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return max(0, int(value))

    text = str(value).strip().upper()
    if not text:
        return None
    if text.isdigit():
        return int(text)

    match = DURATION_RE.match(text)
    if not match or text in ("P", "PT"):
        return None
    days = int(match.group(1) or 0)
    hours = int(match.group(2) or 0)
    minutes = int(match.group(3) or 0)
    return days * 1440 + hours * 60 + minutes


def sum_durations(values: Iterable[Any]) -> int:
    total = 0
    for v in values:
        total += parse_duration_minutes(v) or 0
    return total


def distinct_in_order(names: Iterable[Optional[str]]) -> Tuple[str, ...]:
    seen = set()
    out = []
    for name in names:
        if not name:
            continue
        name = str(name).strip()
        if name and name not in seen:
            seen.add(name)
            out.append(name)
    return tuple(out)
