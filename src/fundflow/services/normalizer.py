from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional

from fundflow.config import settings
from fundflow.core.enums import CryptoType
from fundflow.core.errors import RateLimitError, UpstreamError
from fundflow.core.logger import get_logger
from fundflow.core.models import Transaction

logger = get_logger(__name__)

WEI_PER_ETH = Decimal("1000000000000000000")
SATOSHI_PER_BTC = Decimal("100000000")

ETHERSCAN_EMPTY_MESSAGE = "no transactions found"


# -------------------------
# Shared helpers
# -------------------------

def to_display_units(raw: Any, scale: Decimal, decimals: int) -> str:
    try:
        base = Decimal(int(str(raw)))
    except (TypeError, ValueError, InvalidOperation) as e:
        raise UpstreamError(f"Invalid base-unit value: {raw!r}") from e
    quantum = Decimal(1).scaleb(-decimals)
    return format((base / scale).quantize(quantum, rounding=ROUND_HALF_UP), "f")


def unix_to_instant(raw: Any) -> datetime:
    try:
        return datetime.fromtimestamp(int(str(raw)), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError) as e:
        raise UpstreamError(f"Invalid unix timestamp: {raw!r}") from e


def parse_instant(raw: Any) -> datetime:
    """
    Parse an ISO-8601 instant. A trailing "Z" is accepted and naive values are
    taken as UTC.
    """
    if isinstance(raw, datetime):
        dt = raw
    else:
        text = str(raw or "").strip()
        if not text:
            raise ValueError("empty timestamp")
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_instant(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_dict(value: Any, what: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise UpstreamError(f"Malformed {what}: {value!r}")
    return value


# -------------------------
# Etherscan (ETH)
# -------------------------

def normalize_etherscan(
    raw: Dict[str, Any],
    address: str,
    crypto_type: CryptoType = CryptoType.ETH,
) -> List[Transaction]:
    if not isinstance(raw, dict):
        raise UpstreamError(f"Invalid Etherscan response: {raw!r}")

    status = str(raw.get("status", ""))
    message = str(raw.get("message") or "")
    result = raw.get("result")

    if status != "1":
        detail = result if isinstance(result, str) else ""
        if "rate limit" in f"{message} {detail}".lower():
            raise RateLimitError(detail or message)
        if message.lower().startswith(ETHERSCAN_EMPTY_MESSAGE):
            return []
        raise UpstreamError(": ".join(p for p in (message, detail) if p) or "Failed to fetch Ethereum transactions")

    if not isinstance(result, list):
        raise UpstreamError(f"Invalid Etherscan result: {result!r}")

    out: List[Transaction] = []
    for r in result:
        r = _as_dict(r, "Etherscan row")
        out.append(
            Transaction(
                from_address=r.get("from") or "",
                to_address=r.get("to") or r.get("contractAddress") or "",
                amount=to_display_units(r.get("value", 0), WEI_PER_ETH, settings.ETH_DECIMALS),
                currency=crypto_type,
                timestamp=unix_to_instant(r.get("timeStamp")),
                tx_hash=r.get("hash") or None,
            )
        )
    return out


# -------------------------
# blockchain.info (BTC)
# -------------------------

def _output_addr(output: Dict[str, Any]) -> Optional[str]:
    return output.get("addr")


def _satoshi(raw: Any) -> int:
    try:
        return int(str(raw))
    except (TypeError, ValueError) as e:
        raise UpstreamError(f"Invalid output value: {raw!r}") from e


def _first_sender(inputs: List[Any]) -> Optional[str]:
    # coinbase inputs carry no prev_out
    for i in inputs:
        prev_out = _as_dict(i, "blockchain.info input").get("prev_out") or {}
        addr = _as_dict(prev_out, "blockchain.info prev_out").get("addr")
        if addr:
            return addr
    return None


def normalize_blockchain_info(
    raw: Dict[str, Any],
    address: str,
    crypto_type: CryptoType = CryptoType.BTC,
    max_txs: int = settings.BTC_MAX_TXS,
) -> List[Transaction]:
    """
    Map the most recent `max_txs` entries of a /rawaddr response. A transaction
    whose counterparty has no address (coinbase sender, data-only outputs) is
    skipped rather than attached to an empty-id node.
    """
    if not isinstance(raw, dict) or not isinstance(raw.get("txs"), list):
        raise UpstreamError(f"Invalid blockchain.info response for {address}")

    out: List[Transaction] = []
    for tx in raw["txs"][:max_txs]:
        tx = _as_dict(tx, "blockchain.info transaction")
        outputs = [_as_dict(o, "blockchain.info output") for o in (tx.get("out") or [])]
        if not outputs:
            raise UpstreamError(f"Transaction without outputs: {tx.get('hash')}")

        paid_to_address = [o for o in outputs if _output_addr(o) == address]
        if paid_to_address:
            from_address, to_address = _first_sender(tx.get("inputs") or []), address
            value = sum(_satoshi(o.get("value", 0)) for o in paid_to_address)
        else:
            counterparty = next((o for o in outputs if _output_addr(o)), None)
            from_address = address
            to_address = _output_addr(counterparty) if counterparty else None
            value = _satoshi(counterparty.get("value", 0)) if counterparty else 0

        if not from_address or not to_address:
            logger.debug("btc_tx_skipped", address=address, tx_hash=tx.get("hash"))
            continue

        out.append(
            Transaction(
                from_address=from_address,
                to_address=to_address,
                amount=to_display_units(value, SATOSHI_PER_BTC, settings.BTC_DECIMALS),
                currency=crypto_type,
                timestamp=unix_to_instant(tx.get("time")),
                tx_hash=tx.get("hash") or None,
            )
        )
    return out


# -------------------------
# urlscan.io (DOMAIN)
# -------------------------

def normalize_urlscan(
    raw: Dict[str, Any],
    address: str,
    crypto_type: CryptoType = CryptoType.DOMAIN,
) -> List[Transaction]:
    results = raw.get("results") if isinstance(raw, dict) else None
    if not isinstance(results, list):
        raise UpstreamError(f"Invalid urlscan response for {address}")

    out: List[Transaction] = []
    for result in results:
        result = _as_dict(result, "urlscan result")
        ip = _as_dict(result.get("page") or {}, "urlscan page").get("ip")
        if not ip:
            continue
        scanned_at = _as_dict(result.get("task") or {}, "urlscan task").get("time")
        try:
            timestamp = parse_instant(scanned_at)
        except (TypeError, ValueError) as e:
            raise UpstreamError(f"Invalid urlscan task time: {scanned_at!r}") from e

        out.append(
            Transaction(
                from_address=address,
                to_address=str(ip),
                amount=str(ip),
                currency=crypto_type,
                timestamp=timestamp,
            )
        )
    return out


NORMALIZERS: Dict[CryptoType, Callable[..., List[Transaction]]] = {
    CryptoType.ETH: normalize_etherscan,
    CryptoType.BTC: normalize_blockchain_info,
    CryptoType.DOMAIN: normalize_urlscan,
}


def normalize(raw: Any, address: str, crypto_type: CryptoType) -> List[Transaction]:
    return NORMALIZERS[crypto_type](raw, address, crypto_type)
