"""Re-entry lookup for the identity provisioned for a checkout session."""

from dataclasses import dataclass

from image_remix.errors import (
    MissingSessionTokensError,
    NotFoundError,
    ValidationError,
)
from image_remix.services.provisioning import PaymentSessionRepository


@dataclass
class SessionUserService:
    """Returns stored tokens so a returning browser can resume its session."""

    repository: PaymentSessionRepository

    def get_session_user(self, session_id: str) -> dict[str, object]:
        """Return the user id and auth session for a checkout session."""
        if not session_id:
            raise ValidationError("Missing session_id parameter")
        mapping = self.repository.get_mapping(session_id)
        if mapping is None:
            raise NotFoundError("Session not found or no user associated")
        if not mapping.session_token or not mapping.refresh_token:
            raise MissingSessionTokensError("Authentication data not found")
        return {
            "userId": str(mapping.user_id),
            "session": {
                "access_token": mapping.session_token,
                "refresh_token": mapping.refresh_token,
                "expires_at": (
                    int(mapping.expires_at.timestamp()) if mapping.expires_at else None
                ),
            },
        }
