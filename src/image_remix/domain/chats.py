"""Domain models for transformation chats."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID


class ChatStatus(StrEnum):
    """Lifecycle of a transformation job."""

    PENDING = "pending"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class ChatRecord:
    """Represents one transformation job."""

    id: int
    user_id: UUID
    status: ChatStatus


@dataclass(frozen=True)
class RequestRecord:
    """Images and prompt submitted for a chat."""

    chat_id: int
    image_url: list[str]
    prompt: str
    created_at: datetime | None = None
    id: int | None = None


@dataclass(frozen=True)
class ResponseRecord:
    """Result images written by the transformation worker."""

    chat_id: int
    image_url: list[str]
    message: str | None
    created_at: datetime | None = None
    id: int | None = None
