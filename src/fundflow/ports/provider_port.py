from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List

from fundflow.core.enums import CryptoType
from fundflow.core.models import Transaction


class TransactionProviderPort(ABC):
    """
    Abstract block-explorer / lookup provider.

    `fetch` is a blocking call returning the provider's raw JSON; it is run off
    the event loop and spaced out by the request gate under `provider_key`.
    """

    provider_key: str = ""
    min_interval_ms: int = 0
    crypto_type: CryptoType = CryptoType.ETH

    @abstractmethod
    def fetch(self, address: str) -> Any:
        raise NotImplementedError

    @abstractmethod
    def normalize(self, raw: Any, address: str) -> List[Transaction]:
        raise NotImplementedError
