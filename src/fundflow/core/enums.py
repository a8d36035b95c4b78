from enum import Enum


class CryptoType(str, Enum):
    BTC = "BTC"
    ETH = "ETH"
    DOMAIN = "DOMAIN"

    @classmethod
    def parse(cls, raw: str) -> "CryptoType":
        if isinstance(raw, cls):
            return raw
        # stored documents may carry the lower-case "domain" currency
        return cls(str(raw).strip().upper())
