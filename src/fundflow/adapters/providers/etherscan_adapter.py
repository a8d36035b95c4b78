from typing import Any, Dict, List, Optional

from fundflow.config import settings
from fundflow.adapters.providers.http_provider import HttpProviderAdapter
from fundflow.core.enums import CryptoType
from fundflow.core.errors import ConfigMissingError
from fundflow.core.models import Transaction
from fundflow.services.normalizer import normalize_etherscan


class EtherscanAdapter(HttpProviderAdapter):

    provider_key = "ethereum"
    crypto_type = CryptoType.ETH

    def __init__(
        self,
        api_key: Optional[str] = settings.ETHERSCAN_API_KEY,
        base_url: Optional[str] = settings.ETHERSCAN_BASE_URL,
        min_interval_ms: int = settings.ETHERSCAN_MIN_INTERVAL_MS,
        timeout_sec: int = settings.HTTP_TIMEOUT_SEC,
    ) -> None:
        if not api_key:
            raise ConfigMissingError("Missing ETHERSCAN_API_KEY")
        if not base_url:
            raise ConfigMissingError("Missing ETHERSCAN_BASE_URL")
        super().__init__(timeout_sec=timeout_sec)
        self._api_key = api_key
        self._base_url = base_url
        self.min_interval_ms = min_interval_ms

    def fetch(self, address: str) -> Dict[str, Any]:
        return self._call(self._base_url, params={
            "module": "account",
            "action": "txlist",
            "address": address,
            "startblock": 0,
            "endblock": 99999999,
            "sort": "desc",
            "apikey": self._api_key,
        })

    def normalize(self, raw: Any, address: str) -> List[Transaction]:
        return normalize_etherscan(raw, address, self.crypto_type)
