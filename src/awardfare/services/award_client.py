# src/awardfare/services/award_client.py

import logging
from typing import Any, Dict, Optional

import requests

from awardfare.config import DEFAULT_HTTP_TIMEOUT_S, ProviderCredentials
from awardfare.core.errors import ProviderCallError
from awardfare.core.models import FailureReason


logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/135.0.0.0 Safari/537.36"
)

# Bodies attached to MalformedResponse failures are clipped to this many chars
RAW_BODY_LIMIT = 4000


def classify_status(status_code: int) -> Optional[FailureReason]:
    if 200 <= status_code < 300:
        return None
    if status_code in (401, 403):
        return FailureReason.AUTH_EXPIRED
    if status_code == 429:
        return FailureReason.RATE_LIMITED
    return FailureReason.UNREACHABLE


class AwardHttpClient:
    """
    Minimal JSON-over-HTTP client for airline award search endpoints.

    Credentials are injected; nothing is read from the environment here.
    Every transport problem surfaces as ProviderCallError carrying the
    FailureReason the adapter reports.
    """

    def __init__(
        self,
        base_url: str,
        credentials: Optional[ProviderCredentials] = None,
        timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_S,
        default_headers: Optional[Dict[str, str]] = None,
        session: Any = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials or ProviderCredentials()
        self.timeout_seconds = timeout_seconds
        self.default_headers = {
            "accept": "application/json, text/plain, */*",
            "accept-language": "en-US",
            "user-agent": DEFAULT_USER_AGENT,
        }
        self.default_headers.update(default_headers or {})
        # Anything with a requests-compatible .request(); the module itself by default
        self.session = session or requests

    def _headers(self, extra: Optional[Dict[str, str]]) -> Dict[str, str]:
        headers = dict(self.default_headers)
        headers.update(self.credentials.auth_headers())
        headers.update(extra or {})
        return headers

    def request_json(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Any] = None,
        data: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(
                method,
                url,
                params=params,
                json=json_body,
                data=data,
                headers=self._headers(headers),
                cookies=self.credentials.cookies or None,
                timeout=self.timeout_seconds,
            )
        except requests.Timeout:
            raise ProviderCallError(
                FailureReason.UNREACHABLE, f"timed out after {self.timeout_seconds}s"
            ) from None
        except requests.RequestException as exc:
            raise ProviderCallError(
                FailureReason.UNREACHABLE, f"{type(exc).__name__}: {exc}"
            ) from None

        reason = classify_status(resp.status_code)
        if reason is not None:
            # Helpful error detail without leaking secrets
            logger.debug("%s %s -> HTTP %s", method, url, resp.status_code)
            raise ProviderCallError(reason, f"HTTP {resp.status_code}")

        try:
            return resp.json()
        except ValueError:
            body = (resp.text or "")[:RAW_BODY_LIMIT]
            raise ProviderCallError(
                FailureReason.MALFORMED_RESPONSE, "response body is not JSON", payload=body
            ) from None

    def get(self, path: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        return self.request_json("GET", path, params=params, **kwargs)

    def post(self, path: str, json_body: Any, **kwargs) -> Any:
        return self.request_json("POST", path, json_body=json_body, **kwargs)
