"""Payment confirmation webhook handling."""

import json
import logging
from dataclasses import dataclass
from typing import Any

from image_remix.adapters.stripe_checkout_client import CheckoutClient
from image_remix.domain.checkout import CheckoutSession
from image_remix.errors import WebhookVerificationError
from image_remix.services.provisioning import ProvisioningService

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


@dataclass
class PaymentConfirmationService:
    """Authenticates checkout events and triggers provisioning for paid ones."""

    checkout_client: CheckoutClient
    provisioning_service: ProvisioningService
    allow_development_mode: bool = False

    def parse_event(
        self, payload: bytes, signature: str | None, development_mode: bool = False
    ) -> dict[str, Any]:
        """Return the authenticated event.

        Development mode trusts the raw JSON body and is only honored when
        explicitly allowed; otherwise the signature is always checked.
        """
        if development_mode and self.allow_development_mode:
            try:
                event = json.loads(payload)
            except ValueError as exc:
                raise WebhookVerificationError("Invalid event payload") from exc
            if not isinstance(event, dict):
                raise WebhookVerificationError("Invalid event payload")
            return event
        if development_mode:
            logger.warning("Ignoring development-mode header outside local")
        return self.checkout_client.verify_event(payload, signature)

    def handle(
        self, payload: bytes, signature: str | None, development_mode: bool = False
    ) -> dict[str, object]:
        """Process one webhook delivery and return the acknowledgment body."""
        event = self.parse_event(payload, signature, development_mode)
        event_type = event.get("type")
        if event_type != CHECKOUT_COMPLETED:
            logger.info("Ignoring webhook event", extra={"event_type": event_type})
            return {"received": True}

        session = _session_from_event(event)
        if session.payment_status != "paid":
            logger.info(
                "Checkout completed without payment",
                extra={
                    "session_id": session.id,
                    "payment_status": session.payment_status,
                },
            )
            return {
                "received": True,
                "success": False,
                "sessionId": session.id,
                "paymentStatus": session.payment_status,
            }

        result = self.provisioning_service.provision(session)
        return {
            "received": True,
            "success": True,
            "sessionId": session.id,
            "paymentStatus": session.payment_status,
            "userId": str(result.user_id) if result.user_id else None,
        }


def _session_from_event(event: dict[str, Any]) -> CheckoutSession:
    data = event.get("data")
    obj = data.get("object") if isinstance(data, dict) else None
    if not isinstance(obj, dict) or not isinstance(obj.get("id"), str):
        raise WebhookVerificationError("Event has no checkout session")
    metadata = obj.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise WebhookVerificationError("Checkout session metadata is malformed")
    return CheckoutSession(
        id=obj["id"],
        url=obj.get("url"),
        payment_status=obj.get("payment_status"),
        metadata={str(key): str(value) for key, value in metadata.items()},
    )
