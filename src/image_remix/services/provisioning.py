"""Turns a confirmed payment into an identity, a chat and its request."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from image_remix.domain.chats import ChatRecord, ChatStatus, RequestRecord
from image_remix.domain.checkout import CheckoutSession, checkout_items
from image_remix.domain.identity import AnonymousIdentity, PaymentSessionRecord
from image_remix.errors import ProvisioningError, ValidationError
from image_remix.services.session_metadata import SessionMetadataService
from image_remix.services.shared_sessions import SharedSessionService

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    """Interface for creating anonymous users."""

    def sign_in_anonymously(self) -> AnonymousIdentity:
        """Create an anonymous user and return its session tokens."""


class PaymentSessionRepository(Protocol):
    """Persistence interface for checkout session to user mappings."""

    def create_mapping(
        self, stripe_session_id: str, identity: AnonymousIdentity
    ) -> None:
        """Store the identity and its tokens for a checkout session."""

    def get_mapping(self, stripe_session_id: str) -> PaymentSessionRecord | None:
        """Return the mapping for a checkout session, if present."""


class ChatRepository(Protocol):
    """Persistence interface for chats and their requests."""

    def create_chat(self, user_id: UUID, status: ChatStatus) -> ChatRecord:
        """Create a chat row and return it."""

    def create_request(
        self, chat_id: int, image_urls: list[str], prompt: str
    ) -> RequestRecord:
        """Create the request row for a chat and return it."""


class ProcessedSessionRepository(Protocol):
    """Persistence interface for fulfillment dedup markers."""

    def claim(self, stripe_session_id: str) -> bool:
        """Insert a marker; return false when it already existed."""

    def release(self, stripe_session_id: str) -> None:
        """Remove a marker so the session can be provisioned again."""


class FulfillmentFailureRepository(Protocol):
    """Persistence interface for identities that need reconciliation."""

    def record_failure(
        self, stripe_session_id: str, user_id: UUID, stage: str, error: str
    ) -> None:
        """Record a paid identity whose chat or request was not created."""


@dataclass(frozen=True)
class FulfillmentResult:
    """Outcome of provisioning one checkout session."""

    user_id: UUID | None
    chat_id: int | None
    duplicate: bool = False


@dataclass
class ProvisioningService:
    """Runs the fulfillment sequence for a paid checkout session."""

    identity_provider: IdentityProvider
    payment_session_repository: PaymentSessionRepository
    chat_repository: ChatRepository
    processed_session_repository: ProcessedSessionRepository
    failure_repository: FulfillmentFailureRepository
    shared_session_service: SharedSessionService
    session_metadata_service: SessionMetadataService
    idempotent: bool = True

    def provision(self, session: CheckoutSession) -> FulfillmentResult:
        """Provision identity, chat and request for a paid session."""
        try:
            items = checkout_items(session.metadata)
        except ValidationError as exc:
            raise ProvisioningError("metadata", str(exc)) from exc
        if not items.image_urls:
            raise ProvisioningError("metadata", "Checkout session carries no images")

        if self.idempotent and not self.processed_session_repository.claim(session.id):
            logger.info(
                "Checkout session already provisioned",
                extra={"session_id": session.id},
            )
            mapping = self.payment_session_repository.get_mapping(session.id)
            return FulfillmentResult(
                user_id=mapping.user_id if mapping else None,
                chat_id=None,
                duplicate=True,
            )

        try:
            identity = self.identity_provider.sign_in_anonymously()
        except Exception:
            self._release(session.id)
            raise

        try:
            self.payment_session_repository.create_mapping(session.id, identity)
        except Exception:
            logger.exception(
                "Failed to store payment session mapping",
                extra={"session_id": session.id, "user_id": str(identity.user_id)},
            )

        try:
            chat = self.chat_repository.create_chat(
                identity.user_id, ChatStatus.PENDING
            )
        except Exception as exc:
            self._fail(session.id, identity.user_id, "chat", exc)
            raise ProvisioningError("chat", f"Failed to create chat: {exc}") from exc

        try:
            self.chat_repository.create_request(chat.id, items.image_urls, items.prompt)
        except Exception as exc:
            self._fail(session.id, identity.user_id, "request", exc)
            raise ProvisioningError(
                "request", f"Failed to create request: {exc}"
            ) from exc

        logger.info(
            "Provisioned checkout session",
            extra={
                "session_id": session.id,
                "user_id": str(identity.user_id),
                "chat_id": chat.id,
            },
        )
        self._link(session.id, identity.user_id, chat.id)
        return FulfillmentResult(user_id=identity.user_id, chat_id=chat.id)

    def _link(self, session_id: str, user_id: UUID, chat_id: int) -> None:
        """Write the best-effort cross references for a provisioned session."""
        try:
            self.shared_session_service.register(session_id, chat_id)
        except Exception:
            logger.exception(
                "Failed to register shared session",
                extra={"session_id": session_id, "chat_id": chat_id},
            )
        try:
            self.session_metadata_service.update(
                session_id, user_id=str(user_id), chat_id=chat_id
            )
        except Exception:
            logger.exception(
                "Failed to write chat id to checkout metadata",
                extra={"session_id": session_id, "chat_id": chat_id},
            )

    def _fail(self, session_id: str, user_id: UUID, stage: str, exc: Exception) -> None:
        logger.error(
            "Provisioning failed after identity creation",
            extra={"session_id": session_id, "user_id": str(user_id), "stage": stage},
        )
        try:
            self.failure_repository.record_failure(session_id, user_id, stage, str(exc))
        except Exception:
            logger.exception(
                "Failed to record fulfillment failure",
                extra={"session_id": session_id, "user_id": str(user_id)},
            )
        self._release(session_id)

    def _release(self, session_id: str) -> None:
        if not self.idempotent:
            return
        try:
            self.processed_session_repository.release(session_id)
        except Exception:
            logger.exception(
                "Failed to release dedup marker", extra={"session_id": session_id}
            )
