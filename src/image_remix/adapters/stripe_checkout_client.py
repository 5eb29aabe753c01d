"""Stripe Checkout adapter."""

import json
from dataclasses import dataclass
from typing import Any, Protocol

import stripe

from image_remix.domain.checkout import CheckoutSession
from image_remix.errors import NotFoundError, WebhookVerificationError


class CheckoutClient(Protocol):
    """Interface for the hosted checkout provider."""

    def create_session(self, params: dict[str, Any]) -> CheckoutSession:
        """Create a checkout session and return it."""

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        """Return a checkout session, raising NotFoundError if unknown."""

    def update_metadata(
        self, session_id: str, metadata: dict[str, str]
    ) -> CheckoutSession:
        """Replace the session metadata and return the updated session."""

    def verify_event(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """Authenticate a signed webhook payload and return the event."""


@dataclass
class StripeCheckoutClient(CheckoutClient):
    """Checkout client backed by the Stripe SDK."""

    api_key: str
    webhook_secret: str
    tolerance_seconds: int = 300

    def create_session(self, params: dict[str, Any]) -> CheckoutSession:
        """Create a Stripe checkout session."""
        session = stripe.checkout.Session.create(api_key=self.api_key, **params)
        return _to_checkout_session(session)

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        """Retrieve a Stripe checkout session by id."""
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)
        except stripe.InvalidRequestError as exc:
            if exc.code == "resource_missing":
                raise NotFoundError(f"Checkout session {session_id} not found") from exc
            raise
        return _to_checkout_session(session)

    def update_metadata(
        self, session_id: str, metadata: dict[str, str]
    ) -> CheckoutSession:
        """Write metadata onto a Stripe checkout session."""
        try:
            session = stripe.checkout.Session.modify(
                session_id, api_key=self.api_key, metadata=metadata
            )
        except stripe.InvalidRequestError as exc:
            if exc.code == "resource_missing":
                raise NotFoundError(f"Checkout session {session_id} not found") from exc
            raise
        return _to_checkout_session(session)

    def verify_event(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """Verify the Stripe-Signature header and decode the event body."""
        if not signature:
            raise WebhookVerificationError("Missing stripe-signature header")
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise WebhookVerificationError("Invalid event payload") from exc
        try:
            stripe.WebhookSignature.verify_header(
                text, signature, self.webhook_secret, self.tolerance_seconds
            )
        except stripe.SignatureVerificationError as exc:
            raise WebhookVerificationError(str(exc)) from exc
        try:
            event = json.loads(text)
        except ValueError as exc:
            raise WebhookVerificationError("Invalid event payload") from exc
        if not isinstance(event, dict):
            raise WebhookVerificationError("Invalid event payload")
        return event


def _to_checkout_session(session: Any) -> CheckoutSession:
    # StripeObject is not a dict on current SDK releases.
    data = session.to_dict()
    metadata = data.get("metadata") or {}
    return CheckoutSession(
        id=data["id"],
        url=data.get("url"),
        payment_status=data.get("payment_status"),
        metadata={str(key): str(value) for key, value in metadata.items()},
    )
