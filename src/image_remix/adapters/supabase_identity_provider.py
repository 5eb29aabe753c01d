"""Supabase Auth adapter for anonymous identities."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from image_remix.domain.identity import AnonymousIdentity
from image_remix.errors import IdentityProvisioningError
from image_remix.services.provisioning import IdentityProvider


@dataclass
class SupabaseIdentityProvider(IdentityProvider):
    """Creates anonymous users through Supabase Auth.

    Uses its own client so signing in does not change the auth state of the
    client used for table access.
    """

    client: Client

    def sign_in_anonymously(self) -> AnonymousIdentity:
        """Create an anonymous user and return its tokens."""
        response = self.client.auth.sign_in_anonymously()
        user = response.user
        session = response.session
        if user is None:
            raise IdentityProvisioningError("Failed to create anonymous user")
        if session is None or not session.access_token or not session.refresh_token:
            raise IdentityProvisioningError(
                "Anonymous sign-in returned no session tokens"
            )
        return AnonymousIdentity(
            user_id=UUID(str(user.id)),
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_at=session.expires_at,
        )
