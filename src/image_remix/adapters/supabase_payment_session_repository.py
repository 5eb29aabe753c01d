"""Supabase-backed payment session mapping repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from image_remix.domain.identity import AnonymousIdentity, PaymentSessionRecord
from image_remix.services.provisioning import PaymentSessionRepository


@dataclass
class SupabasePaymentSessionRepository(PaymentSessionRepository):
    """Supabase implementation for the payment_sessions table."""

    client: Client

    def create_mapping(
        self, stripe_session_id: str, identity: AnonymousIdentity
    ) -> None:
        """Store the anonymous identity's tokens for a checkout session."""
        expires_at = (
            datetime.fromtimestamp(identity.expires_at, tz=UTC).isoformat()
            if identity.expires_at
            else None
        )
        self.client.table("payment_sessions").insert(
            {
                "stripe_sessions_id": stripe_session_id,
                "user_id": str(identity.user_id),
                "session_token": identity.access_token,
                "refresh_token": identity.refresh_token,
                "expires_at": expires_at,
            }
        ).execute()

    def get_mapping(self, stripe_session_id: str) -> PaymentSessionRecord | None:
        """Return the mapping for a checkout session, if present."""
        response = (
            self.client.table("payment_sessions")
            .select(
                "stripe_sessions_id, user_id, session_token, refresh_token, expires_at"
            )
            .eq("stripe_sessions_id", stripe_session_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return PaymentSessionRecord(
            stripe_session_id=row["stripe_sessions_id"],
            user_id=UUID(row["user_id"]),
            session_token=row.get("session_token"),
            refresh_token=row.get("refresh_token"),
            expires_at=(
                datetime.fromisoformat(row["expires_at"])
                if row.get("expires_at")
                else None
            ),
        )
