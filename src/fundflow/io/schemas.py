from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from fundflow.core.enums import CryptoType
from fundflow.core.errors import UpstreamError
from fundflow.core.models import Edge, GraphSnapshot, Node, Session, Transaction
from fundflow.services.graph_engine import default_color
from fundflow.services.normalizer import format_instant, parse_instant


def _dec_to_str(x: Decimal) -> str:
    # keep as string for JSON precision safety
    return format(x, "f")


def _str_to_dec(raw: Any) -> Decimal:
    if raw is None or raw == "":
        return Decimal("0")
    try:
        return Decimal(str(raw))
    except InvalidOperation as e:
        raise UpstreamError(f"Invalid stored amount: {raw!r}") from e


def _instant(raw: Any) -> Optional[datetime]:
    if raw in (None, ""):
        return None
    try:
        return parse_instant(raw)
    except (TypeError, ValueError) as e:
        raise UpstreamError(f"Invalid stored timestamp: {raw!r}") from e


def _crypto_type(raw: Any, fallback: CryptoType) -> CryptoType:
    if not raw:
        return fallback
    try:
        return CryptoType.parse(raw)
    except ValueError as e:
        raise UpstreamError(f"Unknown crypto type: {raw!r}") from e


# -------------------------
# Transactions
# -------------------------

def transaction_to_dict(tx: Transaction) -> Dict[str, Any]:
    return {
        "from": tx.from_address,
        "to": tx.to_address,
        "amount": tx.amount,
        "currency": tx.currency.value,
        "type": tx.type.value,
        "timestamp": format_instant(tx.timestamp),
        "hash": tx.tx_hash,
    }


def transaction_from_dict(d: Dict[str, Any]) -> Transaction:
    currency = _crypto_type(d.get("currency") or d.get("type"), CryptoType.ETH)
    timestamp = _instant(d.get("timestamp"))
    if timestamp is None:
        raise UpstreamError(f"Stored transaction without timestamp: {d!r}")
    amount = d.get("amount")
    if amount is None:
        # lookup records were stored with the resolved IP under "value"
        amount = d.get("value", "")
    return Transaction(
        from_address=d.get("from") or "",
        to_address=d.get("to") or "",
        amount=str(amount),
        currency=currency,
        timestamp=timestamp,
        tx_hash=d.get("hash") or None,
    )


# -------------------------
# Graph
# -------------------------

def node_to_dict(n: Node) -> Dict[str, Any]:
    return {
        "id": n.id,
        "label": n.label,
        "title": n.display_title,
        "crypto_type": n.crypto_type.value,
        "color": n.color,
        "tags": list(n.tags),
        "transactions": [transaction_to_dict(t) for t in n.transactions],
    }


def node_from_dict(d: Dict[str, Any]) -> Node:
    node_id = d.get("id")
    if not node_id:
        raise UpstreamError(f"Stored node without id: {d!r}")
    crypto_type = _crypto_type(d.get("crypto_type") or d.get("cryptoType"), CryptoType.ETH)
    return Node(
        id=node_id,
        crypto_type=crypto_type,
        color=d.get("color") or default_color(crypto_type),
        label=d.get("label") or node_id,
        display_title=d.get("title") or node_id,
        tags=[str(t) for t in (d.get("tags") or [])],
        transactions=[transaction_from_dict(t) for t in (d.get("transactions") or [])],
    )


def edge_to_dict(e: Edge) -> Dict[str, Any]:
    return {
        "from": e.from_address,
        "to": e.to_address,
        "amount": _dec_to_str(e.amount),
        "count": e.count,
        "label": e.label,
        "currency": e.currency.value,
    }


def edge_from_dict(d: Dict[str, Any], fallback_currency: CryptoType = CryptoType.ETH) -> Edge:
    if not d.get("from") or not d.get("to"):
        raise UpstreamError(f"Stored edge without endpoints: {d!r}")
    count = d.get("count")
    return Edge(
        from_address=d["from"],
        to_address=d["to"],
        currency=_crypto_type(d.get("currency"), fallback_currency),
        amount=_str_to_dec(d.get("amount")),
        # a raw edge without a stored count stands for one transaction
        count=int(count) if count else 1,
        label=d.get("label") or "",
    )


def snapshot_to_dict(g: GraphSnapshot) -> Dict[str, Any]:
    return {
        "nodes": [node_to_dict(n) for n in g.nodes],
        "edges": [edge_to_dict(e) for e in g.edges],
    }


# -------------------------
# Sessions
# -------------------------

def session_to_dict(s: Session) -> Dict[str, Any]:
    return {
        "id": s.id,
        "name": s.name,
        "user_id": s.user_id,
        "created": format_instant(s.created) if s.created else None,
        "last_modified": format_instant(s.last_modified) if s.last_modified else None,
        "nodes": [node_to_dict(n) for n in s.nodes],
        "edges": [edge_to_dict(e) for e in s.edges],
        "last_transactions": [transaction_to_dict(t) for t in s.last_transactions],
    }


def session_from_dict(d: Dict[str, Any], session_id: Optional[str] = None) -> Session:
    """
    Rebuild a Session from a stored document. Edges are returned as stored;
    collapsing repeated pairs is AggregationEngine.load's job.
    """
    nodes: List[Node] = [node_from_dict(n) for n in (d.get("nodes") or [])]
    currency_by_node = {n.id: n.crypto_type for n in nodes}

    edges: List[Edge] = []
    for e in d.get("edges") or []:
        fallback = currency_by_node.get(e.get("from"), CryptoType.ETH)
        edges.append(edge_from_dict(e, fallback))

    return Session(
        id=session_id or d.get("id") or "",
        name=d.get("name") or "",
        user_id=d.get("user_id") or d.get("userId") or "",
        created=_instant(d.get("created")),
        last_modified=_instant(d.get("last_modified")),
        nodes=nodes,
        edges=edges,
        last_transactions=[transaction_from_dict(t) for t in (d.get("last_transactions") or [])],
    )
