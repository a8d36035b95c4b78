from __future__ import annotations

import copy
import uuid
from typing import Any, Dict, List

from fundflow.core.errors import NotFoundError
from fundflow.ports.session_store_port import SessionStorePort


class MemorySessionStore(SessionStorePort):
    def __init__(self) -> None:
        self._docs: Dict[str, Dict[str, Any]] = {}
        self.save_calls = 0

    def create(self, user_id: str, doc: Dict[str, Any]) -> str:
        session_id = uuid.uuid4().hex
        stored = copy.deepcopy(doc)
        stored["id"] = session_id
        stored["user_id"] = user_id
        self._docs[session_id] = stored
        return session_id

    def save(self, session_id: str, doc: Dict[str, Any]) -> None:
        if session_id not in self._docs:
            raise NotFoundError(f"Session not found: {session_id}")
        stored = copy.deepcopy(doc)
        stored["id"] = session_id
        # ownership is fixed at creation
        stored["user_id"] = self._docs[session_id].get("user_id")
        self._docs[session_id] = stored
        self.save_calls += 1

    def load(self, session_id: str) -> Dict[str, Any]:
        doc = self._docs.get(session_id)
        if doc is None:
            raise NotFoundError(f"Session not found: {session_id}")
        return copy.deepcopy(doc)

    def list_sessions(self, user_id: str) -> List[Dict[str, Any]]:
        docs = [copy.deepcopy(d) for d in self._docs.values() if d.get("user_id") == user_id]
        docs.sort(key=lambda d: d.get("created") or "", reverse=True)
        return docs
