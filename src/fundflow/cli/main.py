from __future__ import annotations

import argparse
import asyncio
import datetime as dt
import sys
from typing import Dict, List, Optional

from fundflow.config import settings
from fundflow.core.enums import CryptoType
from fundflow.core.errors import ConfigMissingError, TracerError
from fundflow.core.logger import get_logger
from fundflow.core.models import Transaction
from fundflow.io.output_writer import write_accounts_md, write_graph_json
from fundflow.services.explorer_service import ExplorerService
from fundflow.services.normalizer import format_instant

from fundflow.adapters.providers.blockchain_info_adapter import BlockchainInfoAdapter
from fundflow.adapters.providers.etherscan_adapter import EtherscanAdapter
from fundflow.adapters.providers.urlscan_adapter import UrlscanAdapter
from fundflow.adapters.storage.json_session_store import JsonFileSessionStore
from fundflow.ports.provider_port import TransactionProviderPort

logger = get_logger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="fundflow", description="Fund-flow graph explorer (ETH, BTC, domains)")
    p.add_argument("--store", default=settings.FUNDFLOW_SESSION_DIR, help="Session store directory")
    p.add_argument("--user", default=settings.FUNDFLOW_USER_ID, help="Owning user id")
    p.add_argument("--dedupe-by-hash", action="store_true", default=settings.DEDUPE_BY_HASH,
                   help="Skip transactions whose hash is already in the graph")
    sub = p.add_subparsers(dest="command", required=True)

    c = sub.add_parser("create", help="Create an empty session")
    c.add_argument("name")

    sub.add_parser("sessions", help="List your sessions, newest first")

    a = sub.add_parser("add", help="Seed the graph with an address and fetch its transactions")
    a.add_argument("session")
    a.add_argument("address")
    a.add_argument("--type", dest="crypto_type", choices=[t.value for t in CryptoType], default="ETH")

    e = sub.add_parser("expand", help="Fetch and merge the transactions of an existing node")
    e.add_argument("session")
    e.add_argument("node")

    lb = sub.add_parser("label", help="Tag a node")
    lb.add_argument("session")
    lb.add_argument("node")
    lb.add_argument("text")

    co = sub.add_parser("color", help="Set a node color")
    co.add_argument("session")
    co.add_argument("node")
    co.add_argument("color")

    se = sub.add_parser("select", help="Show the transactions of one node")
    se.add_argument("session")
    se.add_argument("node")

    ac = sub.add_parser("accounts", help="Print account summaries")
    ac.add_argument("session")

    ex = sub.add_parser("export", help="Write graph.json and accounts.md")
    ex.add_argument("session")
    ex.add_argument("--out", default="out", help="Output folder")
    return p


def build_providers() -> Dict[CryptoType, TransactionProviderPort]:
    providers: Dict[CryptoType, TransactionProviderPort] = {}
    for crypto_type, factory in (
        (CryptoType.ETH, EtherscanAdapter),
        (CryptoType.BTC, BlockchainInfoAdapter),
        (CryptoType.DOMAIN, UrlscanAdapter),
    ):
        try:
            providers[crypto_type] = factory()
        except ConfigMissingError as exc:
            # commands that need this provider fail with ConfigMissingError
            logger.warning("provider_unavailable", crypto_type=crypto_type.value, reason=str(exc))
    return providers


def _ts() -> str:
    return dt.datetime.now().strftime("%H:%M:%S")


def _short_addr(addr: str) -> str:
    if not addr:
        return "N/A"
    if len(addr) <= 14:
        return addr
    return f"{addr[:8]}...{addr[-4:]}"


def _print_transactions(transactions: List[Transaction]) -> None:
    if not transactions:
        print("No transactions.")
        return
    for tx in transactions:
        print(
            f"{format_instant(tx.timestamp)} | {_short_addr(tx.from_address)} -> "
            f"{_short_addr(tx.to_address)} | {tx.amount} {tx.currency.value}"
            + (f" | tx: {tx.tx_hash}" if tx.tx_hash else "")
        )


def run(args: argparse.Namespace, svc: ExplorerService) -> int:
    if args.command == "create":
        session = svc.create_session(args.name)
        print(f"[{_ts()}] Created session {session.name} • id {session.id}")
        return 0

    if args.command == "sessions":
        sessions = svc.list_sessions()
        if not sessions:
            print("No sessions.")
        for s in sessions:
            created = format_instant(s.created) if s.created else "-"
            print(f"{s.id} | {s.name} | created {created} | {len(s.nodes)} nodes • {len(s.edges)} edges")
        return 0

    svc.load_session(args.session)

    if args.command == "add":
        txs = asyncio.run(svc.add_address(args.address, args.crypto_type))
        _print_transactions(txs)
    elif args.command == "expand":
        txs = asyncio.run(svc.on_node_activated(args.node))
        _print_transactions(txs)
    elif args.command == "label":
        svc.add_label(args.node, args.text)
    elif args.command == "color":
        svc.set_color(args.node, args.color)
    elif args.command == "select":
        _print_transactions(svc.on_node_selected(args.node))
        return 0
    elif args.command == "accounts":
        for s in svc.account_summaries():
            tags = ", ".join(s.tags)
            print(
                f"{s.address} | {s.type.value} | sent {s.total_sent:.4f} | received {s.total_received:.4f} "
                f"| balance {s.balance:.4f} | {s.transaction_count} tx | {tags}"
            )
        return 0
    elif args.command == "export":
        session = svc.current_session
        graph_path = write_graph_json(svc.get_snapshot(), args.out)
        accounts_path = write_accounts_md(svc.account_summaries(), args.out, session_name=session.name if session else None)
        print(f"Wrote: {graph_path}")
        print(f"Wrote: {accounts_path}")
        return 0

    snapshot = svc.get_snapshot()
    print(f"[{_ts()}] Done • {len(snapshot.nodes)} nodes • {len(snapshot.edges)} edges")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    svc = ExplorerService(
        providers=build_providers(),
        store=JsonFileSessionStore(args.store),
        user_id=args.user,
        dedupe_by_hash=args.dedupe_by_hash,
    )
    try:
        return run(args, svc)
    except ConfigMissingError as exc:
        print(f"[{_ts()}] Error: {exc}", file=sys.stderr)
        return 2
    except TracerError as exc:
        logger.warning("command_failed", command=args.command, error=exc.__class__.__name__, message=str(exc))
        print(f"[{_ts()}] Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
