# src/awardfare/providers/registry.py

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from awardfare.config import SNAPSHOT_PREFIX, AggregatorConfig, ProviderCredentials, provider_code_for
from awardfare.core.errors import ConfigurationError
from awardfare.providers.airfrance_provider import AirFranceProvider
from awardfare.providers.alaska_provider import AlaskaProvider
from awardfare.providers.american_provider import AmericanProvider
from awardfare.providers.base import AwardSearchProvider
from awardfare.providers.snapshot_provider import SnapshotFileProvider, snapshot_path
from awardfare.providers.virgin_provider import VirginAtlanticProvider


logger = logging.getLogger(__name__)

PROVIDER_CLASSES = {
    "AA": AmericanProvider,
    "AS": AlaskaProvider,
    "VS": VirginAtlanticProvider,
    "AF": AirFranceProvider,
}


def resolve_code(raw: str) -> str:
    code = provider_code_for(raw)
    if code not in PROVIDER_CLASSES:
        raise ConfigurationError(f"Unknown award provider: {raw!r}")
    return code


def build_providers(
    config: AggregatorConfig,
    credentials: Optional[Mapping[str, ProviderCredentials]] = None,
) -> List[AwardSearchProvider]:
    """
    Build the provider registry, in configured order.

    `credentials` maps provider code -> ProviderCredentials; codes missing
    from it are read from the environment.
    """
    providers: List[AwardSearchProvider] = []
    seen: Dict[str, str] = {}

    for raw in config.enabled_providers:
        token = str(raw).strip()
        from_file = token.lower().startswith(SNAPSHOT_PREFIX)
        if from_file:
            token = token[len(SNAPSHOT_PREFIX):]
        code = resolve_code(token)

        if code in seen:
            raise ConfigurationError(f"Provider {code} listed twice ({seen[code]!r}, {raw!r})")
        seen[code] = str(raw)

        provider_cls = PROVIDER_CLASSES[code]
        if from_file:
            if not config.snapshot_dir:
                raise ConfigurationError(
                    f"{raw!r} needs a snapshot directory (AWARDFARE_SNAPSHOT_DIR)"
                )
            provider = SnapshotFileProvider(
                code, provider_cls.name, snapshot_path(config.snapshot_dir, code)
            )
        else:
            creds = (credentials or {}).get(code)
            if creds is None:
                creds = ProviderCredentials.from_env(code)
            provider = provider_cls(credentials=creds, timeout_seconds=config.http_timeout_s)

        providers.append(provider)

    logger.info("Award providers: %s", ", ".join(repr(p) for p in providers))
    return providers
