from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from fundflow.config import settings
from fundflow.core.errors import RateLimitError, UpstreamError
from fundflow.core.logger import get_logger
from fundflow.ports.provider_port import TransactionProviderPort

logger = get_logger(__name__)

HTTP_TOO_MANY_REQUESTS = 429


class HttpProviderAdapter(TransactionProviderPort):
    """
    Shared GET-JSON plumbing for the HTTP providers. One attempt per call: a
    429 surfaces as RateLimitError and every other transport failure as
    UpstreamError.
    """

    def __init__(self, timeout_sec: int = settings.HTTP_TIMEOUT_SEC) -> None:
        self._timeout = timeout_sec
        self._session = requests.Session()

    def _call(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        logger.info("provider_fetch", provider=self.provider_key, url=url)
        try:
            resp = self._session.get(url, params=params, headers=headers, timeout=self._timeout)
        except requests.RequestException as e:
            raise UpstreamError(f"{self.provider_key} request failed: {e}") from e

        if resp.status_code == HTTP_TOO_MANY_REQUESTS:
            logger.warning("provider_rate_limited", provider=self.provider_key)
            raise RateLimitError("Rate limit exceeded. Please wait a moment before trying again.")

        try:
            resp.raise_for_status()
        except requests.HTTPError as e:
            raise UpstreamError(f"{self.provider_key} returned HTTP {resp.status_code}") from e

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(f"{self.provider_key} returned invalid JSON") from e
