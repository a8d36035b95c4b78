from fundflow.core.enums import CryptoType
from fundflow.core.models import Transaction
from fundflow.ports.provider_port import TransactionProviderPort
from typing import Any, List, Optional

class StaticProviderAdapter(TransactionProviderPort):
    def __init__(self,
                 transactions: Optional[List[Transaction]] = None,
                 crypto_type: CryptoType = CryptoType.ETH,
                 provider_key: str = "static",
                 min_interval_ms: int = 0,
                 error: Optional[Exception] = None,
                 ):
        self._txs = transactions or []
        self.crypto_type = crypto_type
        self.provider_key = provider_key
        self.min_interval_ms = min_interval_ms
        self._error = error
        self.fetch_calls: List[str] = []

    def fetch(self, address):
        self.fetch_calls.append(address)
        if self._error is not None:
            raise self._error
        return [
            t for t in self._txs
            if t.from_address == address or t.to_address == address
        ]

    def normalize(self, raw: Any, address):
        return list(raw)
