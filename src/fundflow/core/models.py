from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from fundflow.core.enums import CryptoType


# Transaction record

@dataclass(frozen=True)
class Transaction:
    """
    Canonical transaction produced by a provider normalizer.

    `amount` is the display string at the currency's fixed precision. For
    DOMAIN lookups it holds the resolved IP address instead, and `value` is None.
    """

    from_address: str
    to_address: str
    amount: str
    currency: CryptoType
    timestamp: datetime
    tx_hash: Optional[str] = None

    @property
    def type(self) -> CryptoType:
        return self.currency

    @property
    def value(self) -> Optional[Decimal]:
        if self.currency == CryptoType.DOMAIN:
            return None
        try:
            return Decimal(self.amount)
        except InvalidOperation:
            return None


# Graph models

@dataclass
class Node:

    id: str
    crypto_type: CryptoType
    color: str
    label: str = ""
    display_title: str = ""
    tags: List[str] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.label = self.label or self.id
        self.display_title = self.display_title or self.id


@dataclass
class Edge:

    from_address: str
    to_address: str
    currency: CryptoType
    amount: Decimal = Decimal("0")
    count: int = 1
    label: str = ""

    @property
    def key(self) -> Tuple[str, str]:
        return (self.from_address, self.to_address)


@dataclass(frozen=True)
class GraphSnapshot:

    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)


# Derived views

@dataclass(frozen=True)
class AccountSummary:

    address: str
    type: CryptoType
    total_sent: Decimal
    total_received: Decimal
    balance: Decimal
    transaction_count: int
    tags: Tuple[str, ...]
    last_activity: Optional[datetime]


# Sessions

@dataclass
class Session:

    id: str
    name: str
    user_id: str
    created: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    last_transactions: List[Transaction] = field(default_factory=list)


@dataclass
class SessionContext:
    """
    Per-session UI cursor state. At most one node is selected at a time.
    """

    session: Optional[Session] = None
    selected_node: Optional[str] = None
