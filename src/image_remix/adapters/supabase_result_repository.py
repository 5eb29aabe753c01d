"""Supabase reads for chat requests and responses."""

from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache

from supabase import Client, ClientOptions, create_client

from image_remix.adapters.supabase_chat_repository import (
    parse_timestamp,
    request_from_row,
    url_list,
)
from image_remix.domain.chats import RequestRecord, ResponseRecord
from image_remix.services.results import ResultRepository, ResultRepositoryFactory

SESSION_ID_HEADER = "x-session-id"


@dataclass
class SupabaseResultRepository(ResultRepository):
    """Supabase implementation for result lookups."""

    client: Client

    def get_request(self, chat_id: int) -> RequestRecord | None:
        """Return the request for a chat, if present."""
        response = (
            self.client.table("requests")
            .select("id, chat_id, created_at, image_url, prompt")
            .eq("chat_id", chat_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return request_from_row(response.data[0])

    def get_response(self, chat_id: int) -> ResponseRecord | None:
        """Return the response for a chat, if present."""
        response = (
            self.client.table("responses")
            .select("id, chat_id, created_at, image_url, message")
            .eq("chat_id", chat_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return ResponseRecord(
            id=row.get("id"),
            chat_id=int(row["chat_id"]),
            image_url=url_list(row.get("image_url")),
            message=row.get("message"),
            created_at=parse_timestamp(row.get("created_at")),
        )


def shared_session_client(url: str, anon_key: str, session_id: str) -> Client:
    """Create an anon-key client whose requests carry the checkout session id.

    Row-level policies on requests/responses match the header against
    shared_sessions.
    """
    return create_client(
        url, anon_key, options=ClientOptions(headers={SESSION_ID_HEADER: session_id})
    )


def cached_session_client_factory(
    url: str, anon_key: str, maxsize: int = 256
) -> Callable[[str], Client]:
    """Return a factory that reuses shared-session clients per session id.

    Polling repeats the same session id, so the least recently used clients
    are dropped once ``maxsize`` ids are held.
    """

    @lru_cache(maxsize=maxsize)
    def factory(session_id: str) -> Client:
        return shared_session_client(url, anon_key, session_id)

    return factory


def build_result_repository_factory(
    service_client: Client,
    session_client_factory: Callable[[str], Client],
) -> ResultRepositoryFactory:
    """Return a factory choosing the credential for a lookup."""

    def factory(session_id: str | None) -> ResultRepository:
        if session_id:
            return SupabaseResultRepository(session_client_factory(session_id))
        return SupabaseResultRepository(service_client)

    return factory
