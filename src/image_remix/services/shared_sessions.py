"""Grants read access to a chat for holders of its checkout session id."""

from dataclasses import dataclass
from typing import Protocol

from image_remix.errors import ValidationError


class SharedSessionRepository(Protocol):
    """Persistence interface for shared-session grants."""

    def upsert_grant(self, session_id: str, chat_id: int) -> None:
        """Insert a grant, ignoring an existing identical row."""


@dataclass
class SharedSessionService:
    """Registers shared-session grants."""

    repository: SharedSessionRepository

    def register(self, session_id: str, chat_id: int | None) -> None:
        """Grant ``session_id`` read access to ``chat_id``."""
        if not session_id or chat_id is None:
            raise ValidationError("Session ID and chat ID are required")
        self.repository.upsert_grant(session_id, chat_id)
