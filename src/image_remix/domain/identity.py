"""Domain models for anonymous identities."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class AnonymousIdentity:
    """An anonymous user and the auth session issued for it."""

    user_id: UUID
    access_token: str
    refresh_token: str
    expires_at: int | None


@dataclass(frozen=True)
class PaymentSessionRecord:
    """Maps a checkout session to the identity provisioned for it."""

    stripe_session_id: str
    user_id: UUID
    session_token: str | None
    refresh_token: str | None
    expires_at: datetime | None
