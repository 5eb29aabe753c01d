"""Checkout session models and the Stripe metadata encoding."""

import re
from dataclasses import dataclass, field

from image_remix.errors import ValidationError

METADATA_VALUE_LIMIT = 500
METADATA_VERSION = "1"
IMAGE_KEY_PREFIX = "imageUrl_"

_IMAGE_KEY_PATTERN = re.compile(rf"^{IMAGE_KEY_PREFIX}(\d+)$")


@dataclass(frozen=True)
class CheckoutSession:
    """Represents a Stripe checkout session as seen by this service."""

    id: str
    url: str | None
    payment_status: str | None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CheckoutItems:
    """Images and prompt carried by a checkout session."""

    image_urls: list[str]
    prompt: str


def truncate_prompt(prompt: str, limit: int = METADATA_VALUE_LIMIT) -> str:
    """Trim a prompt so it fits into a single metadata value."""
    return prompt[:limit]


def encode_checkout_metadata(
    image_urls: list[str], prompt: str, user_id: str | None = None
) -> dict[str, str]:
    """Flatten images and prompt into Stripe's string-only metadata map.

    Layout: ``imageUrl_0`` .. ``imageUrl_{n-1}``, ``image_count``, ``prompt``,
    ``metadata_version`` and optionally ``userId``.
    """
    if not image_urls:
        raise ValidationError("At least one image is required")
    metadata: dict[str, str] = {}
    for index, url in enumerate(image_urls):
        if len(url) > METADATA_VALUE_LIMIT:
            raise ValidationError(
                f"Image URL {index} exceeds {METADATA_VALUE_LIMIT} characters"
            )
        metadata[f"{IMAGE_KEY_PREFIX}{index}"] = url
    metadata["image_count"] = str(len(image_urls))
    metadata["prompt"] = truncate_prompt(prompt)
    metadata["metadata_version"] = METADATA_VERSION
    if user_id:
        metadata["userId"] = user_id
    return metadata


def split_image_urls(metadata: dict[str, str]) -> tuple[list[str], dict[str, str]]:
    """Fold indexed image keys back into a list.

    Returns the ordered URLs and the metadata without the indexed keys. Indexes
    must run contiguously from zero and agree with ``image_count`` when it is
    present. Sessions created before indexed keys carry a single ``imageUrl``.
    """
    indexed: dict[int, str] = {}
    remaining: dict[str, str] = {}
    for key, value in metadata.items():
        match = _IMAGE_KEY_PATTERN.match(key)
        if match:
            indexed[int(match.group(1))] = value
        else:
            remaining[key] = value

    if sorted(indexed) != list(range(len(indexed))):
        raise ValidationError("Image metadata keys are not contiguous")
    urls = [indexed[index] for index in range(len(indexed))]

    raw_count = remaining.get("image_count")
    if raw_count is not None:
        if not raw_count.isdigit() or int(raw_count) != len(urls):
            raise ValidationError("Image metadata does not match image_count")

    if not urls and remaining.get("imageUrl"):
        urls = [remaining["imageUrl"]]
    return urls, remaining


def checkout_items(metadata: dict[str, str]) -> CheckoutItems:
    """Extract the fulfillment payload from checkout metadata."""
    urls, remaining = split_image_urls(metadata)
    return CheckoutItems(image_urls=urls, prompt=remaining.get("prompt", ""))
