import json
import time
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional
from unittest.mock import Mock

import pytest

from awardfare.config import AggregatorConfig, ProviderCredentials
from awardfare.core.models import (
    CabinClass,
    CanonicalOffer,
    Failure,
    FailureReason,
    SearchCriteria,
    Success,
)
from awardfare.offer_cache_store import InMemoryOfferCacheStore
from awardfare.providers.base import AwardSearchProvider
from awardfare.services.award_client import AwardHttpClient


FIXTURES = Path(__file__).resolve().parent / "fixtures"


def load_fixture(name: str):
    with open(FIXTURES / name, encoding="utf-8") as f:
        return json.load(f)


def make_offer(
    provider_code: str = "AA",
    points_cost: int = 30000,
    cabin_class: CabinClass = CabinClass.ECONOMY,
    duration_minutes: int = 420,
    departure_hour: int = 18,
    seats_remaining: Optional[int] = 4,
    route=("JFK", "LHR"),
    **overrides,
) -> CanonicalOffer:
    tz = timezone(timedelta(hours=-5))
    departure = datetime(2026, 3, 1, departure_hour, 0, tzinfo=tz)
    fields = dict(
        id=f"{provider_code}:raw",
        route=tuple(route),
        provider_name=f"Provider {provider_code}",
        provider_code=provider_code,
        cabin_class=cabin_class,
        points_cost=points_cost,
        departure_time=departure,
        arrival_time=departure + timedelta(minutes=duration_minutes),
        duration_minutes=duration_minutes,
        seats_remaining=seats_remaining,
    )
    fields.update(overrides)
    return CanonicalOffer(**fields)


class ScriptedProvider(AwardSearchProvider):
    """Returns a fixed result and records every call."""

    def __init__(self, code: str, result=None, delay_s: float = 0.0, error: Exception = None):
        self.code = code
        self.name = f"Provider {code}"
        self.result = result if result is not None else Success([])
        self.delay_s = delay_s
        self.error = error
        self.calls: List[SearchCriteria] = []

    def search(self, criteria):
        self.calls.append(criteria)
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return self.result

    def fetch(self, criteria):
        raise NotImplementedError

    def parse(self, payload, criteria):
        raise NotImplementedError


def succeeding(code: str, *offers: CanonicalOffer) -> ScriptedProvider:
    return ScriptedProvider(code, Success(list(offers)))


def failing(code: str, reason: FailureReason = FailureReason.UNREACHABLE) -> ScriptedProvider:
    return ScriptedProvider(code, Failure(reason, None, "scripted failure"))


def fake_response(status_code: int = 200, payload=None, text: str = "") -> Mock:
    resp = Mock()
    resp.status_code = status_code
    resp.text = text
    if payload is None:
        resp.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
    else:
        resp.json.return_value = payload
    return resp


def client_returning(base_url: str, response: Mock, credentials=None) -> AwardHttpClient:
    session = Mock()
    session.request.return_value = response
    return AwardHttpClient(base_url, credentials=credentials, session=session)


@pytest.fixture
def criteria() -> SearchCriteria:
    return SearchCriteria("JFK", "LHR", date(2026, 3, 1))


@pytest.fixture
def round_trip() -> SearchCriteria:
    return SearchCriteria("JFK", "LHR", date(2026, 3, 1), date(2026, 3, 10), 2)


@pytest.fixture
def cache() -> InMemoryOfferCacheStore:
    return InMemoryOfferCacheStore()


@pytest.fixture
def config() -> AggregatorConfig:
    return AggregatorConfig(default_timeout_s=2.0)


@pytest.fixture
def session_cookies() -> ProviderCredentials:
    return ProviderCredentials(cookies={"session": "abc"})
