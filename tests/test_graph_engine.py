import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from fundflow.core.enums import CryptoType
from fundflow.core.errors import NotFoundError, ValidationError
from fundflow.core.models import Edge, Node, Transaction
from fundflow.services.graph_engine import AggregationEngine, GraphStore


T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _tx(frm, to, amount, currency=CryptoType.ETH, tx_hash=None, minutes=0):
    return Transaction(
        from_address=frm,
        to_address=to,
        amount=amount,
        currency=currency,
        timestamp=T0 + timedelta(minutes=minutes),
        tx_hash=tx_hash,
    )


class MergeTransactionsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = GraphStore()
        self.engine = AggregationEngine(self.store)

    def test_repeated_pair_merges_into_one_edge(self) -> None:
        t1 = _tx("A", "B", "1")
        t2 = _tx("A", "B", "2")

        self.engine.merge_transactions([t1, t2], CryptoType.ETH)

        self.assertEqual(len(self.store.edges), 1)
        edge = self.store.edges[("A", "B")]
        self.assertEqual(edge.count, 2)
        self.assertEqual(edge.amount, Decimal("3"))
        self.assertEqual(edge.label, "3 ETH (2)")
        self.assertEqual(set(self.store.nodes), {"A", "B"})
        self.assertEqual(self.store.nodes["A"].transactions, [t1, t2])
        self.assertEqual(self.store.nodes["B"].transactions, [t1, t2])

    def test_first_edge_label_shows_count_one(self) -> None:
        self.engine.merge_transactions([_tx("A", "B", "0.5000")], CryptoType.ETH)
        self.assertEqual(self.store.edges[("A", "B")].label, "0.5 ETH (1)")

    def test_merging_same_batch_twice_is_additive(self) -> None:
        batch = [_tx("A", "B", "1.2500", tx_hash="0x1"), _tx("B", "C", "2", tx_hash="0x2")]

        self.engine.merge_transactions(batch, CryptoType.ETH)
        first = {k: (e.count, e.amount) for k, e in self.store.edges.items()}
        self.engine.merge_transactions(batch, CryptoType.ETH)

        for key, (count, amount) in first.items():
            edge = self.store.edges[key]
            self.assertEqual(edge.count, count * 2)
            self.assertEqual(edge.amount, amount * 2)
        self.assertEqual(len(self.store.nodes["B"].transactions), 4)

    def test_opposite_directions_stay_distinct(self) -> None:
        self.engine.merge_transactions([_tx("A", "B", "5"), _tx("B", "A", "5")], CryptoType.ETH)

        self.assertEqual(len(self.store.edges), 2)
        self.assertEqual(self.store.edges[("A", "B")].count, 1)
        self.assertEqual(self.store.edges[("B", "A")].count, 1)
        self.assertEqual(self.store.edges[("A", "B")].amount, self.store.edges[("B", "A")].amount)

    def test_new_nodes_get_crypto_type_default_color(self) -> None:
        self.engine.merge_transactions([_tx("A", "B", "1")], CryptoType.ETH)
        self.engine.merge_transactions([_tx("1X", "1Y", "1", currency=CryptoType.BTC)], CryptoType.BTC)

        self.assertEqual(self.store.nodes["A"].color, "#62688F")
        self.assertEqual(self.store.nodes["1X"].color, "#F7931A")
        self.assertEqual(self.store.nodes["1X"].crypto_type, CryptoType.BTC)
        self.assertEqual(self.store.nodes["A"].tags, [])
        self.assertEqual(self.store.nodes["A"].label, "A")
        self.assertEqual(self.store.nodes["A"].display_title, "A")

    def test_existing_node_keeps_its_color_and_type(self) -> None:
        self.engine.ensure_node("A", CryptoType.ETH, color="#FF0000")
        self.engine.merge_transactions([_tx("A", "B", "1")], CryptoType.ETH)

        self.assertEqual(self.store.nodes["A"].color, "#FF0000")
        self.assertEqual(len(self.store.nodes["A"].transactions), 1)

    def test_domain_edges_count_without_summing(self) -> None:
        d1 = _tx("example.com", "1.2.3.4", "1.2.3.4", currency=CryptoType.DOMAIN)
        d2 = _tx("example.com", "1.2.3.4", "1.2.3.4", currency=CryptoType.DOMAIN, minutes=1)

        self.engine.merge_transactions([d1, d2], CryptoType.DOMAIN)

        edge = self.store.edges[("example.com", "1.2.3.4")]
        self.assertEqual(edge.count, 2)
        self.assertEqual(edge.amount, Decimal("0"))
        self.assertEqual(edge.label, "1.2.3.4 DOMAIN (2)")

    def test_self_transfer_is_appended_once_per_endpoint(self) -> None:
        self.engine.merge_transactions([_tx("A", "A", "1")], CryptoType.ETH)

        self.assertEqual(len(self.store.nodes["A"].transactions), 2)
        self.assertEqual(self.store.edges[("A", "A")].count, 1)


class DedupeByHashTests(unittest.TestCase):
    def test_second_merge_of_same_hashes_changes_nothing(self) -> None:
        engine = AggregationEngine(dedupe_by_hash=True)
        batch = [_tx("A", "B", "1", tx_hash="0x1"), _tx("A", "B", "2", tx_hash="0x2")]

        self.assertEqual(engine.merge_transactions(batch, CryptoType.ETH), 2)
        self.assertEqual(engine.merge_transactions(batch, CryptoType.ETH), 0)

        edge = engine.store.edges[("A", "B")]
        self.assertEqual(edge.count, 2)
        self.assertEqual(edge.amount, Decimal("3"))
        self.assertEqual(len(engine.store.nodes["A"].transactions), 2)

    def test_transactions_without_hash_are_never_deduped(self) -> None:
        engine = AggregationEngine(dedupe_by_hash=True)
        batch = [_tx("A", "B", "1")]

        engine.merge_transactions(batch, CryptoType.ETH)
        engine.merge_transactions(batch, CryptoType.ETH)

        self.assertEqual(engine.store.edges[("A", "B")].count, 2)


class TagColorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = AggregationEngine()
        self.engine.merge_transactions([_tx("A", "B", "1")], CryptoType.ETH)

    def test_fund_or_deposit_tag_turns_node_red(self) -> None:
        self.engine.add_tag("A", "Fund Deposit")
        self.assertEqual(self.engine.store.nodes["A"].color, "red")

        self.engine.add_tag("B", "Exchange Deposit")
        self.assertEqual(self.engine.store.nodes["B"].color, "red")

    def test_victim_after_fund_deposit_ends_blue(self) -> None:
        self.engine.add_tag("A", "Fund Deposit")
        self.engine.add_tag("A", "Victim")

        node = self.engine.store.nodes["A"]
        self.assertEqual(node.tags, ["Fund Deposit", "Victim"])
        self.assertEqual(node.color, "blue")

    def test_later_fund_tag_overrides_earlier_victim(self) -> None:
        self.engine.add_tag("A", "Victim")
        self.engine.add_tag("A", "Fund")
        self.assertEqual(self.engine.store.nodes["A"].color, "red")

    def test_matching_is_case_sensitive_and_unmatched_keeps_color(self) -> None:
        self.engine.set_color("A", "#00FF00")
        self.engine.add_tag("A", "victim of fund theft")
        self.assertEqual(self.engine.store.nodes["A"].color, "#00FF00")

    def test_manual_color_holds_until_next_tag(self) -> None:
        self.engine.add_tag("A", "Victim")
        self.engine.set_color("A", "#123456")
        self.assertEqual(self.engine.store.nodes["A"].color, "#123456")

        self.engine.add_tag("A", "note")
        self.assertEqual(self.engine.store.nodes["A"].color, "blue")

    def test_blank_tag_and_unknown_node_are_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            self.engine.add_tag("A", "  ")
        with self.assertRaises(NotFoundError):
            self.engine.add_tag("Z", "Victim")
        with self.assertRaises(NotFoundError):
            self.engine.set_color("Z", "red")


class LoadSnapshotTests(unittest.TestCase):
    def test_repeated_stored_edges_collapse(self) -> None:
        engine = AggregationEngine()
        nodes = [Node(id="A", crypto_type=CryptoType.ETH, color="#62688F"),
                 Node(id="B", crypto_type=CryptoType.ETH, color="#62688F")]
        edges = [Edge("A", "B", CryptoType.ETH, amount=Decimal("1")),
                 Edge("A", "B", CryptoType.ETH, amount=Decimal("2")),
                 Edge("B", "A", CryptoType.ETH, amount=Decimal("4"))]

        engine.load(nodes, edges)

        self.assertEqual(len(engine.store.edges), 2)
        edge = engine.store.edges[("A", "B")]
        self.assertEqual(edge.count, 2)
        self.assertEqual(edge.amount, Decimal("3"))
        self.assertEqual(edge.label, "3 ETH (2)")

    def test_load_replaces_state_and_applies_tag_colors(self) -> None:
        engine = AggregationEngine()
        engine.merge_transactions([_tx("X", "Y", "1")], CryptoType.ETH)

        engine.load([Node(id="A", crypto_type=CryptoType.ETH, color="#abcdef", tags=["Victim"]),
                     Node(id="B", crypto_type=CryptoType.ETH, color="#abcdef")], [])

        self.assertEqual(list(engine.store.nodes), ["A", "B"])
        self.assertEqual(engine.store.edges, {})
        self.assertEqual(engine.store.nodes["A"].color, "blue")
        self.assertEqual(engine.store.nodes["B"].color, "#abcdef")


if __name__ == "__main__":
    unittest.main()
