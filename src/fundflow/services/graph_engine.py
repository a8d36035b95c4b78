from __future__ import annotations

import copy
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from fundflow.config import settings
from fundflow.core.enums import CryptoType
from fundflow.core.errors import NotFoundError, ValidationError
from fundflow.core.logger import get_logger
from fundflow.core.models import Edge, GraphSnapshot, Node, Transaction

logger = get_logger(__name__)

EdgeKey = Tuple[str, str]

DEFAULT_NODE_COLORS: Dict[CryptoType, str] = {
    CryptoType.ETH: settings.ETH_NODE_COLOR,
    CryptoType.BTC: settings.BTC_NODE_COLOR,
    CryptoType.DOMAIN: settings.DOMAIN_NODE_COLOR,
}

# substring -> color; checked in this order for every tag
TAG_COLOR_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("Fund", "Deposit"), settings.FUND_TAG_COLOR),
    (("Victim",), settings.VICTIM_TAG_COLOR),
)


def default_color(crypto_type: CryptoType) -> str:
    return DEFAULT_NODE_COLORS.get(crypto_type, settings.BTC_NODE_COLOR)


def format_amount(amount: Decimal) -> str:
    # drop trailing zeros without switching to exponent notation
    return format(amount.normalize(), "f")


def edge_label(edge: Edge) -> str:
    # lookups carry no value; show the resolved target instead
    if edge.currency == CryptoType.DOMAIN:
        shown = edge.to_address
    else:
        shown = format_amount(edge.amount)
    return f"{shown} {edge.currency.value} ({edge.count})"


def color_from_tags(tags: Iterable[str], current: str) -> str:
    color = current
    for tag in tags:
        for needles, rule_color in TAG_COLOR_RULES:
            if any(n in tag for n in needles):
                color = rule_color
    return color


@dataclass
class GraphStore:
    """
    Live node/edge state of one session. Both mappings keep insertion order.
    """

    nodes: Dict[str, Node] = field(default_factory=dict)
    edges: Dict[EdgeKey, Edge] = field(default_factory=dict)

    def get_node(self, node_id: str) -> Node:
        node = self.nodes.get(node_id)
        if node is None:
            raise NotFoundError(f"Node not found: {node_id}")
        return node

    def snapshot(self) -> GraphSnapshot:
        return GraphSnapshot(nodes=list(self.nodes.values()), edges=list(self.edges.values()))

    def replace(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        self.nodes = {n.id: n for n in nodes}
        self.edges = {e.key: e for e in edges}

    def clear(self) -> None:
        self.replace([], [])

    def copy(self) -> "GraphStore":
        return copy.deepcopy(self)


class AggregationEngine:
    """
    Folds normalized transaction batches into a GraphStore.

    - Nodes: one per address, every folded transaction appended to both ends
    - Edges: one per ordered (from, to) pair, count and amount accumulate
    - Colors: default per crypto type, overridden by tag rules or set_color

    Merging is additive: folding the same batch twice doubles edge counts and
    amounts. With dedupe_by_hash a transaction whose hash is already recorded on
    its sender node is skipped.
    """

    def __init__(self, store: Optional[GraphStore] = None, dedupe_by_hash: bool = False) -> None:
        self.store = store or GraphStore()
        self.dedupe_by_hash = dedupe_by_hash

    def merge_transactions(self, transactions: Iterable[Transaction], crypto_type: CryptoType) -> int:
        merged = 0
        skipped = 0
        for tx in transactions:
            if self._is_duplicate(tx):
                skipped += 1
                continue
            self._fold(tx, crypto_type)
            merged += 1

        logger.info(
            "graph_merged",
            crypto_type=crypto_type.value,
            merged=merged,
            skipped=skipped,
            nodes=len(self.store.nodes),
            edges=len(self.store.edges),
        )
        return merged

    # -------------------------
    # Folding
    # -------------------------

    def _fold(self, tx: Transaction, crypto_type: CryptoType) -> None:
        for address in (tx.to_address, tx.from_address):
            node = self.store.nodes.get(address)
            if node is None:
                self.store.nodes[address] = Node(
                    id=address,
                    crypto_type=crypto_type,
                    color=default_color(crypto_type),
                    transactions=[tx],
                )
            else:
                node.transactions.append(tx)

        self._fold_edge(tx)

    def _fold_edge(self, tx: Transaction) -> None:
        key = (tx.from_address, tx.to_address)
        value = tx.value
        edge = self.store.edges.get(key)

        if edge is None:
            edge = Edge(
                from_address=tx.from_address,
                to_address=tx.to_address,
                currency=tx.currency,
                amount=value if value is not None else Decimal("0"),
                count=1,
            )
            self.store.edges[key] = edge
        else:
            edge.count += 1
            if value is not None:
                edge.amount += value

        edge.label = edge_label(edge)

    def _is_duplicate(self, tx: Transaction) -> bool:
        if not self.dedupe_by_hash or not tx.tx_hash:
            return False
        sender = self.store.nodes.get(tx.from_address)
        if sender is None:
            return False
        return any(t.tx_hash == tx.tx_hash for t in sender.transactions)

    # -------------------------
    # Node operations
    # -------------------------

    def ensure_node(self, address: str, crypto_type: CryptoType, color: Optional[str] = None) -> Node:
        node = self.store.nodes.get(address)
        if node is None:
            node = Node(id=address, crypto_type=crypto_type, color=color or default_color(crypto_type))
            self.store.nodes[address] = node
        return node

    def add_tag(self, node_id: str, text: str) -> Node:
        if not text or not text.strip():
            raise ValidationError("Please enter a label")
        node = self.store.get_node(node_id)
        node.tags.append(text)
        self.recolor(node)
        return node

    def set_color(self, node_id: str, color: str) -> Node:
        if not color or not color.strip():
            raise ValidationError("Please choose a color")
        node = self.store.get_node(node_id)
        node.color = color
        return node

    @staticmethod
    def recolor(node: Node) -> None:
        node.color = color_from_tags(node.tags, node.color)

    # -------------------------
    # Snapshot loading
    # -------------------------

    def load(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        """
        Replace the store wholesale. Edges repeated for the same ordered pair are
        collapsed the way merging would: counts and amounts add up.
        """
        loaded_nodes: List[Node] = []
        for node in nodes:
            self.recolor(node)
            loaded_nodes.append(node)

        collapsed: Dict[EdgeKey, Edge] = {}
        for edge in edges:
            existing = collapsed.get(edge.key)
            if existing is None:
                collapsed[edge.key] = edge
                existing = edge
            else:
                existing.count += edge.count
                existing.amount += edge.amount
            existing.label = edge_label(existing)

        self.store.replace(loaded_nodes, collapsed.values())
