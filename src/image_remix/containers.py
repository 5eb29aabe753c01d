"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from image_remix.adapters.dev_webhook_client import HttpxDevWebhookClient
from image_remix.adapters.stripe_checkout_client import StripeCheckoutClient
from image_remix.adapters.supabase_chat_repository import SupabaseChatRepository
from image_remix.adapters.supabase_fulfillment_repository import (
    SupabaseFulfillmentFailureRepository,
    SupabaseProcessedSessionRepository,
)
from image_remix.adapters.supabase_identity_provider import SupabaseIdentityProvider
from image_remix.adapters.supabase_payment_session_repository import (
    SupabasePaymentSessionRepository,
)
from image_remix.adapters.supabase_result_repository import (
    build_result_repository_factory,
    cached_session_client_factory,
)
from image_remix.adapters.supabase_shared_session_repository import (
    SupabaseSharedSessionRepository,
)
from image_remix.config import Settings
from image_remix.services.checkout import CheckoutService
from image_remix.services.provisioning import ProvisioningService
from image_remix.services.results import ResultService
from image_remix.services.session_metadata import SessionMetadataService
from image_remix.services.session_users import SessionUserService
from image_remix.services.shared_sessions import SharedSessionService
from image_remix.services.webhooks import PaymentConfirmationService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    checkout_service: CheckoutService
    payment_confirmation_service: PaymentConfirmationService
    provisioning_service: ProvisioningService
    session_metadata_service: SessionMetadataService
    shared_session_service: SharedSessionService
    result_service: ResultService
    session_user_service: SessionUserService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    # Separate clients: anonymous sign-in mutates the auth client's session.
    db_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    auth_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    checkout_client = StripeCheckoutClient(
        api_key=resolved_settings.stripe_secret_key,
        webhook_secret=resolved_settings.stripe_webhook_secret,
        tolerance_seconds=resolved_settings.webhook_tolerance_seconds,
    )
    dev_webhook_client = HttpxDevWebhookClient.create()
    payment_session_repository = SupabasePaymentSessionRepository(db_client)
    session_metadata_service = SessionMetadataService(checkout_client)
    shared_session_service = SharedSessionService(
        SupabaseSharedSessionRepository(db_client)
    )
    provisioning_service = ProvisioningService(
        identity_provider=SupabaseIdentityProvider(auth_client),
        payment_session_repository=payment_session_repository,
        chat_repository=SupabaseChatRepository(db_client),
        processed_session_repository=SupabaseProcessedSessionRepository(db_client),
        failure_repository=SupabaseFulfillmentFailureRepository(db_client),
        shared_session_service=shared_session_service,
        session_metadata_service=session_metadata_service,
        idempotent=resolved_settings.idempotent_fulfillment,
    )
    checkout_service = CheckoutService(
        checkout_client=checkout_client,
        dev_webhook_client=dev_webhook_client,
        unit_amount_cents=resolved_settings.checkout_unit_amount_cents,
        currency=resolved_settings.checkout_currency,
        product_name=resolved_settings.checkout_product_name,
        max_images=resolved_settings.max_images,
        bypass_stripe=resolved_settings.bypass_stripe and resolved_settings.is_local,
        strict_dev_webhook=resolved_settings.is_local,
    )
    payment_confirmation_service = PaymentConfirmationService(
        checkout_client=checkout_client,
        provisioning_service=provisioning_service,
        allow_development_mode=resolved_settings.is_local,
    )

    session_client_factory = cached_session_client_factory(
        resolved_settings.supabase_url,
        resolved_settings.supabase_anon_key,
        maxsize=resolved_settings.shared_session_client_cache_size,
    )
    result_service = ResultService(
        build_result_repository_factory(db_client, session_client_factory)
    )

    async def close_resources() -> None:
        await dev_webhook_client.close()

    return AppContainer(
        settings=resolved_settings,
        checkout_service=checkout_service,
        payment_confirmation_service=payment_confirmation_service,
        provisioning_service=provisioning_service,
        session_metadata_service=session_metadata_service,
        shared_session_service=shared_session_service,
        result_service=result_service,
        session_user_service=SessionUserService(payment_session_repository),
        close_resources=close_resources,
    )
