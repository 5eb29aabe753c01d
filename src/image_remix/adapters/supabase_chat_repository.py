"""Supabase-backed chat and request repository."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from image_remix.domain.chats import ChatRecord, ChatStatus, RequestRecord
from image_remix.services.provisioning import ChatRepository


@dataclass
class SupabaseChatRepository(ChatRepository):
    """Supabase implementation for chats and requests."""

    client: Client

    def create_chat(self, user_id: UUID, status: ChatStatus) -> ChatRecord:
        """Create a chat row and return it."""
        response = (
            self.client.table("chats")
            .insert({"user_id": str(user_id), "status": status.value})
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create chat")
        row = response.data[0]
        return ChatRecord(
            id=int(row["id"]),
            user_id=UUID(row["user_id"]),
            status=ChatStatus(row["status"]),
        )

    def create_request(
        self, chat_id: int, image_urls: list[str], prompt: str
    ) -> RequestRecord:
        """Create the request row for a chat and return it."""
        response = (
            self.client.table("requests")
            .insert({"chat_id": chat_id, "image_url": image_urls, "prompt": prompt})
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create request")
        return request_from_row(response.data[0])


def request_from_row(row: dict[str, object]) -> RequestRecord:
    """Build a request record from a requests row."""
    return RequestRecord(
        id=row.get("id"),
        chat_id=int(row["chat_id"]),
        image_url=url_list(row.get("image_url")),
        prompt=str(row.get("prompt") or ""),
        created_at=parse_timestamp(row.get("created_at")),
    )


def url_list(value: object) -> list[str]:
    """Normalize an image_url column that may hold one URL or several."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


def parse_timestamp(value: object) -> datetime | None:
    """Parse a timestamptz column value."""
    if not value:
        return None
    return datetime.fromisoformat(str(value))
