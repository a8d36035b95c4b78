from typing import Any, Dict, List, Optional

from fundflow.config import settings
from fundflow.adapters.providers.http_provider import HttpProviderAdapter
from fundflow.core.enums import CryptoType
from fundflow.core.errors import ConfigMissingError
from fundflow.core.models import Transaction
from fundflow.services.normalizer import normalize_blockchain_info


class BlockchainInfoAdapter(HttpProviderAdapter):

    provider_key = "bitcoin"
    crypto_type = CryptoType.BTC

    def __init__(
        self,
        base_url: Optional[str] = settings.BLOCKCHAIN_INFO_BASE_URL,
        min_interval_ms: int = settings.BLOCKCHAIN_INFO_MIN_INTERVAL_MS,
        max_txs: int = settings.BTC_MAX_TXS,
        timeout_sec: int = settings.HTTP_TIMEOUT_SEC,
    ) -> None:
        if not base_url:
            raise ConfigMissingError("Missing BLOCKCHAIN_INFO_BASE_URL")
        super().__init__(timeout_sec=timeout_sec)
        self._base_url = base_url.rstrip("/")
        self._max_txs = max_txs
        self.min_interval_ms = min_interval_ms

    def fetch(self, address: str) -> Dict[str, Any]:
        return self._call(f"{self._base_url}/rawaddr/{address}")

    def normalize(self, raw: Any, address: str) -> List[Transaction]:
        return normalize_blockchain_info(raw, address, self.crypto_type, max_txs=self._max_txs)
