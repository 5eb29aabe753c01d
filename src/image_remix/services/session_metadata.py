"""Read and update checkout session metadata."""

from dataclasses import dataclass

from image_remix.adapters.stripe_checkout_client import CheckoutClient
from image_remix.domain.checkout import split_image_urls
from image_remix.errors import ValidationError


@dataclass(frozen=True)
class PaymentStatus:
    """Payment state of a checkout session."""

    status: str | None

    @property
    def is_paid(self) -> bool:
        return self.status == "paid"


@dataclass
class SessionMetadataService:
    """Accessor for metadata stored on the checkout session.

    The ``userId``/``chatId`` keys are a cross-reference for clients that only
    hold the checkout session id. The relational rows stay authoritative.
    """

    checkout_client: CheckoutClient

    def read(self, session_id: str) -> dict[str, object]:
        """Return metadata with indexed image keys folded into ``imagesUrl``."""
        if not session_id:
            raise ValidationError("Missing session_id parameter")
        session = self.checkout_client.retrieve_session(session_id)
        urls, remaining = split_image_urls(session.metadata)
        return {**remaining, "imagesUrl": urls}

    def update(
        self,
        session_id: str,
        user_id: str | None = None,
        chat_id: int | str | None = None,
    ) -> dict[str, str]:
        """Merge user and/or chat id onto the existing metadata."""
        if not session_id:
            raise ValidationError("Missing session_id parameter")
        user_id = user_id.strip() if user_id else None
        chat = str(chat_id).strip() if chat_id is not None else ""
        if not user_id and not chat:
            raise ValidationError("Missing userId or chatId parameter")
        session = self.checkout_client.retrieve_session(session_id)
        metadata = dict(session.metadata)
        if user_id:
            metadata["userId"] = user_id
        if chat:
            metadata["chatId"] = chat
        updated = self.checkout_client.update_metadata(session_id, metadata)
        return updated.metadata

    def payment_status(self, session_id: str) -> PaymentStatus:
        """Return the payment status of a checkout session."""
        if not session_id:
            raise ValidationError("Missing session_id parameter")
        session = self.checkout_client.retrieve_session(session_id)
        return PaymentStatus(status=session.payment_status)
