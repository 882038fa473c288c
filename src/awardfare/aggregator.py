# src/awardfare/aggregator.py
"""
Entry point for callers: validate a search, fan it out to every configured
award provider, and return one ranked offer list plus per-provider
diagnostics.

    config = AggregatorConfig.from_env()
    aggregator = AwardAggregator.from_config(config)
    result = aggregator.aggregate_search("JFK", "LHR", "2026-03-01")
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence, Union

from awardfare.config import AggregatorConfig, ProviderCredentials
from awardfare.core.errors import ValidationError
from awardfare.core.models import AggregationResult, Outcome, SearchCriteria
from awardfare.core.ranking import merge_offers
from awardfare.logging_config import configure_logging, search_id_context
from awardfare.offer_cache_store import SqliteOfferCacheStore
from awardfare.orchestrator import FanOutOrchestrator
from awardfare.providers.base import AwardSearchProvider
from awardfare.providers.registry import build_providers


logger = logging.getLogger(__name__)


class AwardAggregator:
    def __init__(
        self,
        providers: Sequence[AwardSearchProvider],
        cache,
        config: Optional[AggregatorConfig] = None,
    ):
        self.config = config or AggregatorConfig()
        self.providers = list(providers)
        self.cache = cache
        self.orchestrator = FanOutOrchestrator(self.providers, cache, self.config)

    @classmethod
    def from_config(
        cls,
        config: AggregatorConfig,
        credentials: Optional[Mapping[str, ProviderCredentials]] = None,
        setup_logging: bool = True,
    ) -> "AwardAggregator":
        """Pass setup_logging=False when the host process owns the logging handlers."""
        if setup_logging:
            configure_logging(config.log_level, json=config.log_json)
        providers = build_providers(config, credentials)
        cache = SqliteOfferCacheStore(config.cache_db_path)
        return cls(providers, cache, config)

    def aggregate(self, criteria: SearchCriteria) -> AggregationResult:
        """
        Raises ValidationError for bad criteria before any provider is called.
        Provider trouble never raises; it shows up in `diagnostics`.
        """
        criteria.validate()

        with search_id_context():
            logger.info(
                "Search %s -> %s on %s%s for %d pax across %d providers",
                criteria.origin,
                criteria.destination,
                criteria.departure_date.isoformat(),
                f" returning {criteria.return_date.isoformat()}" if criteria.return_date else "",
                criteria.passenger_count,
                len(self.providers),
            )

            fan_out = self.orchestrator.run(criteria)
            offers = merge_offers(fan_out.offers)
            result = AggregationResult(offers=offers, diagnostics=fan_out.diagnostics)

            if result.all_providers_failed:
                logger.warning("Every provider failed; returning no offers")
            else:
                logger.info(
                    "Search done: %d offers (success=%s degraded=%s failed=%s)",
                    len(offers),
                    result.providers_with(Outcome.SUCCESS),
                    result.providers_with(Outcome.DEGRADED),
                    result.providers_with(Outcome.FAILED),
                )
            return result

    def aggregate_search(
        self,
        origin: Any,
        destination: Any,
        departure_date: Any,
        return_date: Any = None,
        passenger_count: Any = 1,
    ) -> AggregationResult:
        criteria = SearchCriteria.from_raw(
            origin, destination, departure_date, return_date, passenger_count
        )
        return self.aggregate(criteria)


def status_code_for(outcome: Union[AggregationResult, BaseException]) -> int:
    """
    Transport status for an aggregation outcome: 400 for bad criteria, 200 for
    any completed aggregation, including one where every provider failed.
    """
    if isinstance(outcome, ValidationError):
        return 400
    if isinstance(outcome, AggregationResult):
        return 200
    return 500
