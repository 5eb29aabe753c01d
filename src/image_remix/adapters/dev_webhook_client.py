"""Client that delivers synthetic webhook events during local development."""

from dataclasses import dataclass
from typing import Any, Protocol

import httpx

DEVELOPMENT_MODE_HEADER = "x-development-mode"


class DevWebhookClient(Protocol):
    """Interface for posting synthetic checkout events to our own webhook."""

    async def deliver(self, origin: str, event: dict[str, Any]) -> dict[str, Any]:
        """Post an event to the webhook endpoint and return its JSON reply."""


@dataclass
class HttpxDevWebhookClient(DevWebhookClient):
    """Dev webhook client implemented with httpx."""

    http_client: httpx.AsyncClient
    path: str = "/webhook"

    @classmethod
    def create(cls) -> "HttpxDevWebhookClient":
        """Create a client with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient())

    async def deliver(self, origin: str, event: dict[str, Any]) -> dict[str, Any]:
        """Post the event with the development-mode header set."""
        response = await self.http_client.post(
            f"{origin.rstrip('/')}{self.path}",
            json=event,
            headers={DEVELOPMENT_MODE_HEADER: "true"},
            timeout=30,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()
