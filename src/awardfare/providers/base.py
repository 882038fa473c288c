# src/awardfare/providers/base.py

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, List

from awardfare.core.errors import ProviderCallError
from awardfare.core.models import (
    CanonicalOffer,
    Failure,
    FailureReason,
    ProviderResult,
    SearchCriteria,
    Success,
)


logger = logging.getLogger(__name__)

# Raised by parse() on payloads whose shape does not match what the adapter expects
_SHAPE_ERRORS = (KeyError, TypeError, ValueError, AttributeError, IndexError)


class AwardSearchProvider(ABC):
    """
    One airline award backend.

    Callers only use `search()`, which never raises for upstream trouble:
    HTTP errors, timeouts, garbled bodies and empty result sets all come back
    as `Failure(reason)`. Subclasses implement `fetch()` (talk to the
    backend) and `parse()` (raw payload -> offers).
    """

    code: str = ""
    name: str = ""

    def search(self, criteria: SearchCriteria) -> ProviderResult:
        try:
            payload = self.fetch(criteria)
        except ProviderCallError as exc:
            logger.info("%s fetch failed: %s", self.code, exc)
            return Failure(exc.reason, exc.payload, exc.detail)

        if payload is None or payload == {} or payload == []:
            return Failure(FailureReason.NO_OFFERS, payload, "empty response")

        try:
            offers = self.parse(payload, criteria)
        except ProviderCallError as exc:
            return Failure(exc.reason, exc.payload if exc.payload is not None else payload, exc.detail)
        except _SHAPE_ERRORS as exc:
            logger.warning("%s returned an unexpected payload shape: %r", self.code, exc)
            return Failure(FailureReason.MALFORMED_RESPONSE, payload, f"{type(exc).__name__}: {exc}")

        offers = [o for o in offers if o.points_cost > 0]
        if not offers:
            return Failure(FailureReason.NO_OFFERS, None, "no priced fares")
        return Success(offers)

    @abstractmethod
    def fetch(self, criteria: SearchCriteria) -> Any:
        ...

    @abstractmethod
    def parse(self, payload: Any, criteria: SearchCriteria) -> List[CanonicalOffer]:
        ...

    def make_offer(self, provisional_id: str, **fields) -> CanonicalOffer:
        """Stamp provider identity on an offer; the merger replaces the id."""
        return CanonicalOffer(
            id=f"{self.code}:{provisional_id}",
            provider_name=self.name,
            provider_code=self.code,
            **fields,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r})"
