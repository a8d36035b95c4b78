from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

from fundflow.core.models import AccountSummary, GraphSnapshot
from fundflow.io.schemas import snapshot_to_dict
from fundflow.services.normalizer import format_instant


def write_graph_json(graph: GraphSnapshot, out_dir: str, filename: str = "graph.json") -> str:
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(snapshot_to_dict(graph), f, indent=2)

    return str(out_path)


def write_accounts_md(
    summaries: List[AccountSummary],
    out_dir: str,
    filename: str = "accounts.md",
    session_name: Optional[str] = None,
) -> str:
    """
    Accounts table in the order given (busiest first when fed summarize_all).
    """
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename

    def fmt(x: Decimal, currency: str) -> str:
        return f"{x:.4f} {currency}"

    lines = []
    lines.append("# Accounts\n")
    if session_name:
        lines.append(f"- Session: **{session_name}**\n")
    lines.append(f"- Accounts: **{len(summaries)}**\n\n")

    if not summaries:
        lines.append("_No accounts with transactions yet._\n")
    else:
        lines.append("| Address | Type | Sent | Received | Balance | Transactions | Tags | Last activity |\n")
        lines.append("|---|---|---|---|---|---|---|---|\n")
        for s in summaries:
            currency = s.type.value
            last = format_instant(s.last_activity) if s.last_activity else ""
            lines.append(
                f"| {s.address} | {currency} "
                f"| {fmt(s.total_sent, currency)} | {fmt(s.total_received, currency)} "
                f"| {fmt(s.balance, currency)} | {s.transaction_count} "
                f"| {', '.join(s.tags)} | {last} |\n"
            )

    with out_path.open("w", encoding="utf-8") as f:
        f.writelines(lines)

    return str(out_path)
