"""Polling reads for a chat's request and response."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from image_remix.domain.chats import RequestRecord, ResponseRecord
from image_remix.errors import NotFoundError


class ResultRepository(Protocol):
    """Read interface for requests and responses."""

    def get_request(self, chat_id: int) -> RequestRecord | None:
        """Return the request for a chat, if present."""

    def get_response(self, chat_id: int) -> ResponseRecord | None:
        """Return the response for a chat, if present."""


ResultRepositoryFactory = Callable[[str | None], ResultRepository]


@dataclass(frozen=True)
class PublicSession:
    """A chat's request and, once produced, its response."""

    request: RequestRecord
    response: ResponseRecord | None


@dataclass
class ResultService:
    """Result lookup; ``None`` means the row is not available yet."""

    repository_factory: ResultRepositoryFactory

    def get_request(
        self, chat_id: int, session_id: str | None = None
    ) -> RequestRecord | None:
        """Return the request for a chat.

        A session id selects the shared-session credential instead of the
        service credential.
        """
        return self.repository_factory(session_id).get_request(chat_id)

    def get_response(
        self, chat_id: int, session_id: str | None = None
    ) -> ResponseRecord | None:
        """Return the response for a chat."""
        return self.repository_factory(session_id).get_response(chat_id)

    def get_public_session(self, chat_id: int) -> PublicSession:
        """Return the request/response pair for the public results page."""
        repository = self.repository_factory(None)
        request = repository.get_request(chat_id)
        if request is None:
            raise NotFoundError("No request found")
        return PublicSession(
            request=request, response=repository.get_response(chat_id)
        )
