from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Mapping, Optional, Union

from fundflow.adapters.providers.request_gate import RequestGate
from fundflow.config import settings
from fundflow.core.enums import CryptoType
from fundflow.core.errors import (
    ConfigMissingError,
    NotFoundError,
    TracerError,
    UnauthorizedError,
    ValidationError,
)
from fundflow.core.logger import bind_session, get_logger
from fundflow.core.models import (
    AccountSummary,
    GraphSnapshot,
    Session,
    SessionContext,
    Transaction,
)
from fundflow.io.schemas import session_from_dict, session_to_dict
from fundflow.ports.provider_port import TransactionProviderPort
from fundflow.ports.session_store_port import SessionStorePort
from fundflow.services.account_summary import summarize_all
from fundflow.services.graph_engine import AggregationEngine, GraphStore

logger = get_logger(__name__)


class ExplorerService:
    """
    Command boundary for one user's graph exploration.

    - Sessions: create / load / list, persisted after every mutation
    - Expansion: gate-throttled fetch, normalize, then one synchronous merge
    - Node commands: label (tag), color, select

    A command either completes and persists or leaves the graph as it was: the
    merge only starts once a full normalized batch is in hand, and a failed
    save restores the pre-command graph.
    """

    def __init__(
        self,
        providers: Mapping[CryptoType, TransactionProviderPort],
        store: SessionStorePort,
        user_id: str,
        gate: Optional[RequestGate] = None,
        dedupe_by_hash: bool = settings.DEDUPE_BY_HASH,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.providers = dict(providers)
        self.store = store
        self.user_id = user_id
        self.gate = gate or RequestGate()
        self.graph = GraphStore()
        self.engine = AggregationEngine(self.graph, dedupe_by_hash=dedupe_by_hash)
        self.context = SessionContext()
        self._now = now or (lambda: datetime.now(timezone.utc))

    # -------------------------
    # Sessions
    # -------------------------

    def create_session(self, name: str) -> Session:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Please enter a session name")

        now = self._now()
        session = Session(id="", name=name, user_id=self.user_id, created=now, last_modified=now)
        session.id = self.store.create(self.user_id, session_to_dict(session))

        self.graph.clear()
        self.context = SessionContext(session=session)
        bind_session(session.id).info("session_created", name=name)
        return session

    def load_session(self, session_id: str) -> Session:
        if not session_id:
            raise ValidationError("Please select a session")

        doc = self.store.load(session_id)
        if doc.get("user_id") != self.user_id:
            raise UnauthorizedError("Unauthorized access to session")

        # parse fully before touching the live graph
        session = session_from_dict(doc, session_id)
        self.engine.load(session.nodes, session.edges)
        snapshot = self.graph.snapshot()
        session.nodes, session.edges = snapshot.nodes, snapshot.edges

        self.context = SessionContext(session=session)
        bind_session(session_id).info(
            "session_loaded",
            name=session.name,
            nodes=len(snapshot.nodes),
            edges=len(snapshot.edges),
            transactions=len(session.last_transactions),
        )
        return session

    def list_sessions(self) -> List[Session]:
        return [session_from_dict(d) for d in self.store.list_sessions(self.user_id)]

    @property
    def current_session(self) -> Optional[Session]:
        return self.context.session

    # -------------------------
    # Expansion
    # -------------------------

    async def add_address(self, address: str, crypto_type: Union[CryptoType, str]) -> List[Transaction]:
        session = self._require_session()
        address = (address or "").strip()
        if not address:
            raise ValidationError("Please enter an address")
        try:
            crypto_type = CryptoType.parse(crypto_type)
        except ValueError as e:
            raise ValidationError(f"Unsupported crypto type: {crypto_type}") from e
        if crypto_type == CryptoType.ETH:
            # only hex addresses are case-insensitive
            address = address.lower()

        transactions = await self._fetch(crypto_type, address)
        self._ensure_still_active(session)

        def mutate() -> None:
            self.engine.ensure_node(address, crypto_type, color=settings.SEED_NODE_COLOR)
            self.engine.merge_transactions(transactions, crypto_type)
            session.last_transactions = list(transactions)

        self._commit(session, mutate)
        return transactions

    async def expand_node(self, node_id: str) -> List[Transaction]:
        session = self._require_session()
        node = self.graph.get_node(node_id)
        crypto_type = node.crypto_type

        transactions = await self._fetch(crypto_type, node.id)
        self._ensure_still_active(session)

        def mutate() -> None:
            self.engine.merge_transactions(transactions, crypto_type)
            session.last_transactions = list(transactions)

        self._commit(session, mutate)
        return transactions

    async def _fetch(self, crypto_type: CryptoType, address: str) -> List[Transaction]:
        provider = self.providers.get(crypto_type)
        if provider is None:
            raise ConfigMissingError(f"No provider configured for {crypto_type.value}")

        raw = await self.gate.enqueue(
            provider.provider_key,
            provider.min_interval_ms,
            lambda: asyncio.to_thread(provider.fetch, address),
        )
        transactions = provider.normalize(raw, address)
        logger.info(
            "expansion_fetched",
            provider=provider.provider_key,
            address=address,
            transactions=len(transactions),
        )
        return transactions

    # -------------------------
    # Node commands
    # -------------------------

    def add_label(self, node_id: str, text: str) -> None:
        session = self._require_session()
        if not text or not text.strip():
            raise ValidationError("Please enter a label")
        self._commit(session, lambda: self.engine.add_tag(node_id, text))

    def set_color(self, node_id: str, color: str) -> None:
        session = self._require_session()
        self._commit(session, lambda: self.engine.set_color(node_id, color))

    def select_node(self, node_id: Optional[str]) -> List[Transaction]:
        """
        Move the selection cursor and return the transactions for the detail view.
        Passing None clears the selection.
        """
        if node_id is None:
            self.context.selected_node = None
            return []
        node = self.graph.get_node(node_id)
        self.context.selected_node = node.id
        return list(node.transactions)

    def on_node_selected(self, node_id: Optional[str]) -> List[Transaction]:
        return self.select_node(node_id)

    async def on_node_activated(self, node_id: str) -> List[Transaction]:
        return await self.expand_node(node_id)

    # -------------------------
    # Views
    # -------------------------

    def get_snapshot(self) -> GraphSnapshot:
        return self.graph.snapshot()

    def account_summaries(self) -> List[AccountSummary]:
        return summarize_all(self.graph.nodes.values())

    # -------------------------
    # Helpers
    # -------------------------

    def _require_session(self) -> Session:
        if self.context.session is None:
            raise NotFoundError("Please create or select a session first")
        return self.context.session

    def _ensure_still_active(self, session: Session) -> None:
        if self.context.session is not session:
            raise TracerError(f"Session {session.id} was replaced while its expansion was in flight")

    def _commit(self, session: Session, mutate: Callable[[], object]) -> None:
        backup = self.graph.copy()
        previous_batch = session.last_transactions
        try:
            mutate()
            self._persist(session)
        except Exception:
            self.graph.replace(backup.nodes.values(), backup.edges.values())
            session.last_transactions = previous_batch
            raise

    def _persist(self, session: Session) -> None:
        snapshot = self.graph.snapshot()
        session.nodes, session.edges = snapshot.nodes, snapshot.edges
        session.last_modified = self._now()
        self.store.save(session.id, session_to_dict(session))
        bind_session(session.id).debug("session_saved", nodes=len(snapshot.nodes), edges=len(snapshot.edges))
