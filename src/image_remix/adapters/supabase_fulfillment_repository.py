"""Supabase tables that guard and reconcile fulfillment."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from image_remix.services.provisioning import (
    FulfillmentFailureRepository,
    ProcessedSessionRepository,
)


@dataclass
class SupabaseProcessedSessionRepository(ProcessedSessionRepository):
    """Dedup markers in processed_sessions (unique on stripe_sessions_id)."""

    client: Client

    def claim(self, stripe_session_id: str) -> bool:
        """Insert the marker; conflicting rows are not returned."""
        response = (
            self.client.table("processed_sessions")
            .upsert(
                {"stripe_sessions_id": stripe_session_id},
                on_conflict="stripe_sessions_id",
                ignore_duplicates=True,
            )
            .execute()
        )
        return bool(response.data)

    def release(self, stripe_session_id: str) -> None:
        """Delete the marker for a checkout session."""
        self.client.table("processed_sessions").delete().eq(
            "stripe_sessions_id", stripe_session_id
        ).execute()


@dataclass
class SupabaseFulfillmentFailureRepository(FulfillmentFailureRepository):
    """Reconciliation rows in fulfillment_failures."""

    client: Client

    def record_failure(
        self, stripe_session_id: str, user_id: UUID, stage: str, error: str
    ) -> None:
        """Insert a reconciliation row."""
        self.client.table("fulfillment_failures").insert(
            {
                "stripe_sessions_id": stripe_session_id,
                "user_id": str(user_id),
                "stage": stage,
                "error": error,
            }
        ).execute()
