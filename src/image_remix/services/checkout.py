"""Checkout session creation."""

import logging
import time
from dataclasses import dataclass
from typing import Any

from image_remix.adapters.dev_webhook_client import DevWebhookClient
from image_remix.adapters.stripe_checkout_client import CheckoutClient
from image_remix.domain.checkout import encode_checkout_metadata
from image_remix.errors import ValidationError

logger = logging.getLogger(__name__)

_DESCRIPTION_LIMIT = 100
_SUCCESS_PATH = "/payment-success?session_id="


@dataclass
class CheckoutService:
    """Builds Stripe checkout sessions that carry the transformation request."""

    checkout_client: CheckoutClient
    dev_webhook_client: DevWebhookClient
    unit_amount_cents: int = 100
    currency: str = "usd"
    product_name: str = "AI Image Transformation"
    max_images: int = 3
    bypass_stripe: bool = False
    strict_dev_webhook: bool = True

    def build_session_params(
        self,
        origin: str,
        image_urls: list[str],
        prompt: str,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """Return the checkout creation parameters for an image set and prompt."""
        self._validate(image_urls, prompt)
        description = prompt[:_DESCRIPTION_LIMIT] + (
            "..." if len(prompt) > _DESCRIPTION_LIMIT else ""
        )
        return {
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": self.currency,
                        "product_data": {
                            "name": self.product_name,
                            "description": description,
                            "images": [image_urls[0]],
                        },
                        "unit_amount": self.unit_amount_cents,
                    },
                    "quantity": 1,
                }
            ],
            "mode": "payment",
            "success_url": f"{origin}{_SUCCESS_PATH}{{CHECKOUT_SESSION_ID}}",
            "cancel_url": origin,
            "metadata": encode_checkout_metadata(image_urls, prompt, user_id),
        }

    async def create_checkout(
        self,
        origin: str,
        image_urls: list[str],
        prompt: str,
        user_id: str | None = None,
    ) -> str:
        """Create a checkout session and return the URL to redirect to."""
        params = self.build_session_params(origin, image_urls, prompt, user_id)
        if self.bypass_stripe:
            return await self._bypass(origin, params["metadata"])
        session = self.checkout_client.create_session(params)
        logger.info(
            "Created checkout session",
            extra={"session_id": session.id, "image_count": len(image_urls)},
        )
        if not session.url:
            raise RuntimeError("Checkout session has no redirect URL")
        return session.url

    async def _bypass(self, origin: str, metadata: dict[str, str]) -> str:
        session_id = f"dev_session_{int(time.time() * 1000)}"
        logger.info("Bypassing Stripe checkout", extra={"session_id": session_id})
        event = {
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": session_id,
                    "payment_status": "paid",
                    "metadata": metadata,
                }
            },
        }
        try:
            await self.dev_webhook_client.deliver(origin, event)
        except Exception:
            logger.exception(
                "Development webhook call failed", extra={"session_id": session_id}
            )
            if self.strict_dev_webhook:
                raise
        return f"{origin}{_SUCCESS_PATH}{session_id}"

    def _validate(self, image_urls: list[str], prompt: str) -> None:
        if not image_urls:
            raise ValidationError("No images provided")
        if len(image_urls) > self.max_images:
            raise ValidationError(f"At most {self.max_images} images are allowed")
        if any(not url.strip() for url in image_urls):
            raise ValidationError("Image URL must not be empty")
        if not prompt.strip():
            raise ValidationError("Prompt is required")
