from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List


class SessionStorePort(ABC):
    """
    Last-write-wins document store keyed by session id.

    Documents are the JSON-safe dicts produced by `fundflow.io.schemas`; each
    carries the owning `user_id`.
    """

    @abstractmethod
    def create(self, user_id: str, doc: Dict[str, Any]) -> str:
        raise NotImplementedError

    @abstractmethod
    def save(self, session_id: str, doc: Dict[str, Any]) -> None:
        raise NotImplementedError

    @abstractmethod
    def load(self, session_id: str) -> Dict[str, Any]:
        """Return the stored document or raise NotFoundError."""
        raise NotImplementedError

    @abstractmethod
    def list_sessions(self, user_id: str) -> List[Dict[str, Any]]:
        """Return the user's documents, newest first."""
        raise NotImplementedError
