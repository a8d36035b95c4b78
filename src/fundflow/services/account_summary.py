from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from fundflow.core.models import AccountSummary, Node


def summarize(node: Node) -> AccountSummary:
    """
    Per-account totals over the node's transaction list. Self-transfers count
    as both sent and received; lookup records carry no value and only count
    towards transaction_count and last_activity.
    """
    total_sent = Decimal("0")
    total_received = Decimal("0")
    last_activity: Optional[datetime] = None

    for tx in node.transactions:
        value = tx.value
        if value is not None:
            if tx.from_address == node.id:
                total_sent += value
            if tx.to_address == node.id:
                total_received += value
        if last_activity is None or tx.timestamp > last_activity:
            last_activity = tx.timestamp

    return AccountSummary(
        address=node.id,
        type=node.crypto_type,
        total_sent=total_sent,
        total_received=total_received,
        balance=total_received - total_sent,
        transaction_count=len(node.transactions),
        tags=tuple(node.tags),
        last_activity=last_activity,
    )


def summarize_all(nodes: Iterable[Node]) -> List[AccountSummary]:
    summaries = [summarize(n) for n in nodes if n.transactions]
    # sorted() is stable with reverse=True, ties keep iteration order
    return sorted(summaries, key=lambda s: s.transaction_count, reverse=True)
