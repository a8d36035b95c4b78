from __future__ import annotations

import json
import uuid
from pathlib import Path
from typing import Any, Dict, List

from fundflow.config import settings
from fundflow.core.errors import NotFoundError, UpstreamError, ValidationError
from fundflow.core.logger import get_logger
from fundflow.ports.session_store_port import SessionStorePort

logger = get_logger(__name__)


class JsonFileSessionStore(SessionStorePort):
    """
    One `<session_id>.json` document per session under `root`. Writes replace
    the whole file (last write wins).
    """

    def __init__(self, root: str = settings.FUNDFLOW_SESSION_DIR) -> None:
        self._root = Path(root)

    def _path(self, session_id: str) -> Path:
        if not session_id or "/" in session_id or "\\" in session_id or session_id.startswith("."):
            raise ValidationError(f"Invalid session id: {session_id!r}")
        return self._root / f"{session_id}.json"

    def _write(self, path: Path, doc: Dict[str, Any]) -> None:
        self._root.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(doc, f, indent=2)
        tmp.replace(path)

    def _read(self, path: Path) -> Dict[str, Any]:
        try:
            with path.open("r", encoding="utf-8") as f:
                doc = json.load(f)
        except json.JSONDecodeError as e:
            raise UpstreamError(f"Corrupt session document: {path.name}") from e
        if not isinstance(doc, dict):
            raise UpstreamError(f"Corrupt session document: {path.name}")
        return doc

    def create(self, user_id: str, doc: Dict[str, Any]) -> str:
        session_id = uuid.uuid4().hex
        stored = dict(doc)
        stored["id"] = session_id
        stored["user_id"] = user_id
        self._write(self._path(session_id), stored)
        logger.info("session_created", session_id=session_id, path=str(self._root))
        return session_id

    def save(self, session_id: str, doc: Dict[str, Any]) -> None:
        path = self._path(session_id)
        if not path.exists():
            raise NotFoundError(f"Session not found: {session_id}")
        stored = dict(doc)
        stored["id"] = session_id
        stored["user_id"] = self._read(path).get("user_id")
        self._write(path, stored)

    def load(self, session_id: str) -> Dict[str, Any]:
        path = self._path(session_id)
        if not path.exists():
            raise NotFoundError(f"Session not found: {session_id}")
        return self._read(path)

    def list_sessions(self, user_id: str) -> List[Dict[str, Any]]:
        if not self._root.exists():
            return []
        docs = []
        for path in sorted(self._root.glob("*.json")):
            doc = self._read(path)
            if doc.get("user_id") == user_id:
                docs.append(doc)
        docs.sort(key=lambda d: d.get("created") or "", reverse=True)
        return docs
