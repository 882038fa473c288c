# src/awardfare/orchestrator.py

from __future__ import annotations

import contextvars
import json
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from awardfare.config import AggregatorConfig
from awardfare.core.errors import CacheUnavailable
from awardfare.core.models import (
    CanonicalOffer,
    Failure,
    FailureReason,
    Outcome,
    ProviderDiagnostic,
    ProviderResult,
    SearchCriteria,
    Success,
)
from awardfare.providers.base import AwardSearchProvider


logger = logging.getLogger(__name__)


@dataclass
class FanOutResult:
    offers: List[CanonicalOffer] = field(default_factory=list)
    diagnostics: List[ProviderDiagnostic] = field(default_factory=list)


def _call_provider(provider: AwardSearchProvider, criteria: SearchCriteria) -> Tuple[ProviderResult, int]:
    started = time.monotonic()
    try:
        result = provider.search(criteria)
    except Exception as exc:
        # Adapters must not raise; if one does it counts as unreachable
        logger.exception("%s raised from search()", provider.code)
        result = Failure(FailureReason.UNREACHABLE, None, f"{type(exc).__name__}: {exc}")
    return result, int((time.monotonic() - started) * 1000)


class FanOutOrchestrator:
    """
    Runs one search per provider concurrently and settles all of them.

    Each provider gets its own deadline; a slow provider is reported as
    Unreachable without cancelling its siblings. Failed providers fall back to
    their last cached result when one exists (Degraded), else contribute
    nothing (Failed).
    """

    def __init__(self, providers: Sequence[AwardSearchProvider], cache, config: Optional[AggregatorConfig] = None):
        self.providers = list(providers)
        self.cache = cache
        self.config = config or AggregatorConfig()

    def run(self, criteria: SearchCriteria) -> FanOutResult:
        if not self.providers:
            return FanOutResult()

        fingerprint = criteria.fingerprint()
        started = time.monotonic()

        executor = ThreadPoolExecutor(
            max_workers=len(self.providers), thread_name_prefix="award-provider"
        )
        futures: List[Future] = []
        try:
            for provider in self.providers:
                # Each worker gets a copy of the caller's context (search id)
                ctx = contextvars.copy_context()
                futures.append(executor.submit(ctx.run, _call_provider, provider, criteria))

            result = FanOutResult()
            for provider, future in zip(self.providers, futures):
                deadline = started + self.config.timeout_for(provider.code)
                provider_result, elapsed_ms = self._await(provider, future, deadline)

                offers, diagnostic = self._settle(
                    provider, provider_result, criteria, fingerprint, elapsed_ms
                )
                result.offers.extend(offers)
                result.diagnostics.append(diagnostic)
        finally:
            # Timed-out workers are abandoned, not joined
            executor.shutdown(wait=False, cancel_futures=True)

        return result

    def _await(
        self, provider: AwardSearchProvider, future: Future, deadline: float
    ) -> Tuple[ProviderResult, int]:
        remaining = max(0.0, deadline - time.monotonic())
        try:
            return future.result(timeout=remaining)
        except FutureTimeout:
            timeout_s = self.config.timeout_for(provider.code)
            logger.warning("%s did not answer within %.1fs", provider.code, timeout_s)
            failure = Failure(FailureReason.UNREACHABLE, None, f"timed out after {timeout_s:g}s")
            return failure, int(timeout_s * 1000)

    def _settle(
        self,
        provider: AwardSearchProvider,
        provider_result: ProviderResult,
        criteria: SearchCriteria,
        fingerprint: str,
        elapsed_ms: int,
    ):
        code = provider.code

        if isinstance(provider_result, Success):
            offers = list(provider_result.offers)
            try:
                self.cache.put(
                    code, fingerprint, offers, criteria_json=_criteria_json(criteria)
                )
            except CacheUnavailable as exc:
                logger.error("Could not cache %s offers: %s", code, exc)

            logger.info(
                "%s returned %d offers in %dms", code, len(offers), elapsed_ms,
                extra={"provider_code": code, "outcome": "success"},
            )
            return offers, ProviderDiagnostic(
                provider_code=code,
                outcome=Outcome.SUCCESS,
                offer_count=len(offers),
                elapsed_ms=elapsed_ms,
            )

        reason = provider_result.reason
        try:
            entry = self.cache.get_entry(code, fingerprint)
        except CacheUnavailable as exc:
            logger.error("Cache lookup for %s failed: %s", code, exc)
            entry = None

        if entry is not None:
            logger.warning(
                "%s failed (%s); serving %d cached offers captured at %s",
                code, reason.value, len(entry.offers), entry.captured_at.isoformat(),
                extra={"provider_code": code, "outcome": "degraded", "reason": reason.value},
            )
            return list(entry.offers), ProviderDiagnostic(
                provider_code=code,
                outcome=Outcome.DEGRADED,
                reason=reason,
                offer_count=len(entry.offers),
                elapsed_ms=elapsed_ms,
                cache_captured_at=entry.captured_at,
                detail=provider_result.detail,
            )

        logger.warning(
            "%s failed (%s) with no cached fallback: %s",
            code, reason.value, provider_result.detail,
            extra={"provider_code": code, "outcome": "failed", "reason": reason.value},
        )
        return [], ProviderDiagnostic(
            provider_code=code,
            outcome=Outcome.FAILED,
            reason=reason,
            offer_count=0,
            elapsed_ms=elapsed_ms,
            detail=provider_result.detail,
        )


def _criteria_json(criteria: SearchCriteria) -> str:
    return json.dumps(criteria.as_dict(), sort_keys=True)
