"""Supabase-backed shared-session grants."""

from dataclasses import dataclass

from supabase import Client

from image_remix.services.shared_sessions import SharedSessionRepository


@dataclass
class SupabaseSharedSessionRepository(SharedSessionRepository):
    """Supabase implementation for the shared_sessions table."""

    client: Client

    def upsert_grant(self, session_id: str, chat_id: int) -> None:
        """Insert a grant; an identical existing row is left alone."""
        self.client.table("shared_sessions").upsert(
            {"session_id": session_id, "chat_id": chat_id},
            on_conflict="session_id,chat_id",
            ignore_duplicates=True,
        ).execute()
