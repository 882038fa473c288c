# src/awardfare/config.py

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from dotenv import load_dotenv

from awardfare.core.errors import ConfigurationError


ENV_PREFIX = "AWARDFARE_"

DEFAULT_PROVIDERS: Tuple[str, ...] = ("AA", "AS", "VS", "AF")
DEFAULT_TIMEOUT_S = 25.0
DEFAULT_HTTP_TIMEOUT_S = 20.0
DEFAULT_CACHE_DB_PATH = os.path.join("data", "offer_cache.sqlite")

_TRUTHY = {"1", "true", "yes", "on"}

PROVIDER_ALIASES = {
    "american": "AA",
    "american-airlines": "AA",
    "aadvantage": "AA",
    "alaska": "AS",
    "alaska-airlines": "AS",
    "mileage-plan": "AS",
    "virgin": "VS",
    "virgin-atlantic": "VS",
    "flying-club": "VS",
    "airfrance": "AF",
    "air-france": "AF",
    "flying-blue": "AF",
}

# "file:VS" serves VS from the snapshot directory instead of the live endpoint
SNAPSHOT_PREFIX = "file:"


def provider_code_for(token: str) -> str:
    """Map a configured provider token ("file:virgin", "Air France", "aa") to its code."""
    name = str(token).strip().lower()
    if name.startswith(SNAPSHOT_PREFIX):
        name = name[len(SNAPSHOT_PREFIX):]
    name = name.strip().replace(" ", "-").replace("_", "-")
    return PROVIDER_ALIASES.get(name, name).upper()



def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def _parse_cookie_header(raw: str) -> Dict[str, str]:
    cookies: Dict[str, str] = {}
    for part in raw.split(";"):
        if "=" not in part:
            continue
        name, value = part.split("=", 1)
        name = name.strip()
        if name:
            cookies[name] = value.strip()
    return cookies


@dataclass(frozen=True)
class ProviderCredentials:
    """
    Auth context for one provider. Produced by the external login / cookie
    capture tooling and handed to the adapter at construction time.
    """

    cookies: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    bearer_token: Optional[str] = None

    @classmethod
    def from_env(
        cls, code: str, environ: Optional[Mapping[str, str]] = None
    ) -> "ProviderCredentials":
        env = os.environ if environ is None else environ
        code = code.upper()
        cookie_raw = env.get(f"{ENV_PREFIX}{code}_COOKIE", "").strip()
        token = env.get(f"{ENV_PREFIX}{code}_TOKEN", "").strip()
        return cls(
            cookies=_parse_cookie_header(cookie_raw) if cookie_raw else {},
            bearer_token=token or None,
        )

    @property
    def is_empty(self) -> bool:
        return not (self.cookies or self.headers or self.bearer_token)

    def auth_headers(self) -> Dict[str, str]:
        headers = dict(self.headers)
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"
        return headers

    def __repr__(self) -> str:
        # Never print secrets
        return (
            f"ProviderCredentials(cookies={len(self.cookies)}, "
            f"headers={sorted(self.headers)}, bearer_token={'set' if self.bearer_token else None})"
        )


@dataclass(frozen=True)
class AggregatorConfig:
    default_timeout_s: float = DEFAULT_TIMEOUT_S
    provider_timeouts: Dict[str, float] = field(default_factory=dict)
    enabled_providers: Tuple[str, ...] = DEFAULT_PROVIDERS
    cache_db_path: str = DEFAULT_CACHE_DB_PATH
    snapshot_dir: Optional[str] = None
    http_timeout_s: float = DEFAULT_HTTP_TIMEOUT_S
    log_level: str = "INFO"
    log_json: bool = False

    def __post_init__(self) -> None:
        if self.default_timeout_s <= 0:
            raise ConfigurationError("default_timeout_s must be positive")
        if self.http_timeout_s <= 0:
            raise ConfigurationError("http_timeout_s must be positive")
        for code, timeout in self.provider_timeouts.items():
            if timeout <= 0:
                raise ConfigurationError(f"timeout for {code} must be positive")

    def timeout_for(self, provider_code: str) -> float:
        return float(
            self.provider_timeouts.get(provider_code.upper(), self.default_timeout_s)
        )

    @classmethod
    def from_env(
        cls,
        env_file: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "AggregatorConfig":
        """
        Build config from AWARDFARE_* variables. A .env file is loaded first
        (without overriding variables already set) unless `environ` is given.
        """
        if environ is None:
            load_dotenv(env_file)
            environ = os.environ

        providers_raw = environ.get(f"{ENV_PREFIX}PROVIDERS", "").strip()
        enabled = (
            tuple(p.strip().upper() for p in providers_raw.split(",") if p.strip())
            if providers_raw
            else DEFAULT_PROVIDERS
        )

        per_provider: Dict[str, float] = {}
        for token in enabled:
            code = provider_code_for(token)
            name = f"{ENV_PREFIX}TIMEOUT_{code}"
            if environ.get(name, "").strip():
                per_provider[code] = _env_float(environ, name, DEFAULT_TIMEOUT_S)

        return cls(
            default_timeout_s=_env_float(
                environ, f"{ENV_PREFIX}TIMEOUT_S", DEFAULT_TIMEOUT_S),
            provider_timeouts=per_provider,
            enabled_providers=enabled,
            cache_db_path=(
                environ.get(f"{ENV_PREFIX}CACHE_DB", "").strip() or DEFAULT_CACHE_DB_PATH
            ),
            snapshot_dir=environ.get(f"{ENV_PREFIX}SNAPSHOT_DIR", "").strip() or None,
            http_timeout_s=_env_float(
                environ, f"{ENV_PREFIX}HTTP_TIMEOUT_S", DEFAULT_HTTP_TIMEOUT_S),
            log_level=environ.get(f"{ENV_PREFIX}LOG_LEVEL", "").strip().upper() or "INFO",
            log_json=environ.get(f"{ENV_PREFIX}LOG_JSON", "").strip().lower() in _TRUTHY,
        )
