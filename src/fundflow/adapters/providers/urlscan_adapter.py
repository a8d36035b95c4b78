from typing import Any, Dict, List, Optional

from fundflow.config import settings
from fundflow.adapters.providers.http_provider import HttpProviderAdapter
from fundflow.core.enums import CryptoType
from fundflow.core.errors import ConfigMissingError
from fundflow.core.models import Transaction
from fundflow.services.normalizer import normalize_urlscan


class UrlscanAdapter(HttpProviderAdapter):
    """
    Domain lookups: each urlscan.io search hit becomes a DOMAIN pseudo-transaction
    from the domain to the IP it resolved to.
    """

    provider_key = "domain"
    crypto_type = CryptoType.DOMAIN

    def __init__(
        self,
        base_url: Optional[str] = settings.URLSCAN_BASE_URL,
        api_key: Optional[str] = settings.URLSCAN_API_KEY,
        min_interval_ms: int = settings.URLSCAN_MIN_INTERVAL_MS,
        timeout_sec: int = settings.HTTP_TIMEOUT_SEC,
    ) -> None:
        if not base_url:
            raise ConfigMissingError("Missing URLSCAN_BASE_URL")
        super().__init__(timeout_sec=timeout_sec)
        self._base_url = base_url
        self._api_key = api_key
        self.min_interval_ms = min_interval_ms

    def fetch(self, address: str) -> Dict[str, Any]:
        headers = {"API-Key": self._api_key} if self._api_key else None
        return self._call(self._base_url, params={"q": f"domain:{address}"}, headers=headers)

    def normalize(self, raw: Any, address: str) -> List[Transaction]:
        return normalize_urlscan(raw, address, self.crypto_type)
