# src/awardfare/core/errors.py

from __future__ import annotations

from typing import Any, Optional


class AwardfareError(Exception):
    """Base class for every error raised by the aggregation engine."""


class ValidationError(AwardfareError):
    """Malformed search criteria. Raised before any provider is called."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ConfigurationError(AwardfareError):
    pass


class CacheUnavailable(AwardfareError):
    """Cache read/write failed. Callers treat it as 'no fallback available'."""


class ProviderCallError(AwardfareError):
    """
    Internal signal raised inside an adapter (or its HTTP client) and converted
    into a Failure at the adapter boundary. Never escapes `search()`.
    """

    def __init__(self, reason, detail: str = "", payload: Optional[Any] = None):
        super().__init__(f"{reason.value}: {detail}" if detail else reason.value)
        self.reason = reason
        self.detail = detail
        self.payload = payload
