"""Shared test fixtures."""

import json
from dataclasses import dataclass, field
from itertools import count
from typing import Any
from uuid import UUID, uuid4

import pytest

from image_remix.adapters.dev_webhook_client import DevWebhookClient
from image_remix.adapters.stripe_checkout_client import CheckoutClient
from image_remix.config import Settings
from image_remix.containers import AppContainer
from image_remix.domain.chats import (
    ChatRecord,
    ChatStatus,
    RequestRecord,
    ResponseRecord,
)
from image_remix.domain.checkout import CheckoutSession
from image_remix.domain.identity import AnonymousIdentity, PaymentSessionRecord
from image_remix.errors import (
    IdentityProvisioningError,
    NotFoundError,
    WebhookVerificationError,
)
from image_remix.services.checkout import CheckoutService
from image_remix.services.provisioning import (
    ChatRepository,
    FulfillmentFailureRepository,
    IdentityProvider,
    PaymentSessionRepository,
    ProcessedSessionRepository,
    ProvisioningService,
)
from image_remix.services.results import ResultRepository, ResultService
from image_remix.services.session_metadata import SessionMetadataService
from image_remix.services.session_users import SessionUserService
from image_remix.services.shared_sessions import (
    SharedSessionRepository,
    SharedSessionService,
)
from image_remix.services.webhooks import PaymentConfirmationService

VALID_SIGNATURE = "t=1,v1=valid"


@dataclass
class FakeCheckoutClient(CheckoutClient):
    """In-memory checkout provider."""

    sessions: dict[str, CheckoutSession] = field(default_factory=dict)
    created: list[dict[str, Any]] = field(default_factory=list)
    updates: list[tuple[str, dict[str, str]]] = field(default_factory=list)
    retrieve_calls: int = 0
    fail_create: bool = False
    _ids: count = field(default_factory=lambda: count(1))

    def add_session(
        self,
        session_id: str,
        metadata: dict[str, str],
        payment_status: str = "paid",
    ) -> CheckoutSession:
        session = CheckoutSession(
            id=session_id,
            url=f"https://checkout.stripe.test/{session_id}",
            payment_status=payment_status,
            metadata=dict(metadata),
        )
        self.sessions[session_id] = session
        return session

    def create_session(self, params: dict[str, Any]) -> CheckoutSession:
        if self.fail_create:
            raise RuntimeError("stripe unavailable")
        self.created.append(params)
        session_id = f"cs_test_{next(self._ids)}"
        return self.add_session(session_id, params["metadata"], "unpaid")

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        self.retrieve_calls += 1
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Checkout session {session_id} not found")
        return session

    def update_metadata(
        self, session_id: str, metadata: dict[str, str]
    ) -> CheckoutSession:
        current = self.retrieve_session(session_id)
        self.updates.append((session_id, metadata))
        updated = CheckoutSession(
            id=current.id,
            url=current.url,
            payment_status=current.payment_status,
            metadata=dict(metadata),
        )
        self.sessions[session_id] = updated
        return updated

    def verify_event(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        if signature != VALID_SIGNATURE:
            raise WebhookVerificationError("No signatures found matching the payload")
        return json.loads(payload)


@dataclass
class FakeDevWebhookClient(DevWebhookClient):
    """Records synthetic webhook deliveries."""

    deliveries: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    error: Exception | None = None

    async def deliver(self, origin: str, event: dict[str, Any]) -> dict[str, Any]:
        if self.error is not None:
            raise self.error
        self.deliveries.append((origin, event))
        return {"received": True}


@dataclass
class FakeIdentityProvider(IdentityProvider):
    """Issues anonymous identities without a network call."""

    issued: list[AnonymousIdentity] = field(default_factory=list)
    fail: bool = False

    def sign_in_anonymously(self) -> AnonymousIdentity:
        if self.fail:
            raise IdentityProvisioningError("Failed to create anonymous user")
        identity = AnonymousIdentity(
            user_id=uuid4(),
            access_token=f"access-{len(self.issued)}",
            refresh_token=f"refresh-{len(self.issued)}",
            expires_at=1_900_000_000,
        )
        self.issued.append(identity)
        return identity


@dataclass
class InMemoryPaymentSessionRepository(PaymentSessionRepository):
    """In-memory payment_sessions table."""

    rows: dict[str, PaymentSessionRecord] = field(default_factory=dict)
    fail: bool = False

    def create_mapping(
        self, stripe_session_id: str, identity: AnonymousIdentity
    ) -> None:
        if self.fail:
            raise RuntimeError("payment_sessions insert failed")
        if stripe_session_id in self.rows:
            raise RuntimeError("duplicate key value violates unique constraint")
        self.rows[stripe_session_id] = PaymentSessionRecord(
            stripe_session_id=stripe_session_id,
            user_id=identity.user_id,
            session_token=identity.access_token,
            refresh_token=identity.refresh_token,
            expires_at=None,
        )

    def get_mapping(self, stripe_session_id: str) -> PaymentSessionRecord | None:
        return self.rows.get(stripe_session_id)


@dataclass
class InMemoryChatRepository(ChatRepository):
    """In-memory chats, requests and responses tables."""

    chats: dict[int, ChatRecord] = field(default_factory=dict)
    requests: dict[int, RequestRecord] = field(default_factory=dict)
    responses: dict[int, ResponseRecord] = field(default_factory=dict)
    fail_chat: bool = False
    fail_request: bool = False
    _ids: count = field(default_factory=lambda: count(1))

    def create_chat(self, user_id: UUID, status: ChatStatus) -> ChatRecord:
        if self.fail_chat:
            raise RuntimeError("chats insert failed")
        chat = ChatRecord(id=next(self._ids), user_id=user_id, status=status)
        self.chats[chat.id] = chat
        return chat

    def create_request(
        self, chat_id: int, image_urls: list[str], prompt: str
    ) -> RequestRecord:
        if self.fail_request:
            raise RuntimeError("requests insert failed")
        record = RequestRecord(
            id=len(self.requests) + 1,
            chat_id=chat_id,
            image_url=list(image_urls),
            prompt=prompt,
        )
        self.requests[chat_id] = record
        return record

    def add_response(
        self, chat_id: int, image_url: list[str], message: str | None = None
    ) -> ResponseRecord:
        record = ResponseRecord(chat_id=chat_id, image_url=image_url, message=message)
        self.responses[chat_id] = record
        return record


@dataclass
class InMemoryResultRepository(ResultRepository):
    """Reads from an in-memory chat repository."""

    chat_repository: InMemoryChatRepository

    def get_request(self, chat_id: int) -> RequestRecord | None:
        return self.chat_repository.requests.get(chat_id)

    def get_response(self, chat_id: int) -> ResponseRecord | None:
        return self.chat_repository.responses.get(chat_id)


@dataclass
class RecordingResultRepositoryFactory:
    """Result repository factory that records which credential was chosen."""

    chat_repository: InMemoryChatRepository
    session_ids: list[str | None] = field(default_factory=list)

    def __call__(self, session_id: str | None) -> ResultRepository:
        self.session_ids.append(session_id)
        return InMemoryResultRepository(self.chat_repository)


@dataclass
class InMemoryProcessedSessionRepository(ProcessedSessionRepository):
    """In-memory processed_sessions table."""

    claimed: set[str] = field(default_factory=set)
    released: list[str] = field(default_factory=list)

    def claim(self, stripe_session_id: str) -> bool:
        if stripe_session_id in self.claimed:
            return False
        self.claimed.add(stripe_session_id)
        return True

    def release(self, stripe_session_id: str) -> None:
        self.claimed.discard(stripe_session_id)
        self.released.append(stripe_session_id)


@dataclass
class InMemoryFailureRepository(FulfillmentFailureRepository):
    """In-memory fulfillment_failures table."""

    failures: list[dict[str, object]] = field(default_factory=list)

    def record_failure(
        self, stripe_session_id: str, user_id: UUID, stage: str, error: str
    ) -> None:
        self.failures.append(
            {
                "stripe_sessions_id": stripe_session_id,
                "user_id": user_id,
                "stage": stage,
                "error": error,
            }
        )


@dataclass
class InMemorySharedSessionRepository(SharedSessionRepository):
    """In-memory shared_sessions table with a unique (session_id, chat_id)."""

    grants: set[tuple[str, int]] = field(default_factory=set)
    calls: int = 0
    fail: bool = False

    def upsert_grant(self, session_id: str, chat_id: int) -> None:
        self.calls += 1
        if self.fail:
            raise RuntimeError("shared_sessions upsert failed")
        self.grants.add((session_id, chat_id))


def paid_event(
    session_id: str,
    metadata: dict[str, str],
    payment_status: str = "paid",
    event_type: str = "checkout.session.completed",
) -> dict[str, object]:
    """Build a checkout event payload."""
    return {
        "id": f"evt_{session_id}",
        "type": event_type,
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "payment_status": payment_status,
                "metadata": metadata,
            }
        },
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test_secret",
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.service-payload.signature",
        supabase_anon_key="header.anon-payload.signature",
        environment="test",
    )


@pytest.fixture
def checkout_client() -> FakeCheckoutClient:
    return FakeCheckoutClient()


@pytest.fixture
def dev_webhook_client() -> FakeDevWebhookClient:
    return FakeDevWebhookClient()


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def payment_session_repository() -> InMemoryPaymentSessionRepository:
    return InMemoryPaymentSessionRepository()


@pytest.fixture
def chat_repository() -> InMemoryChatRepository:
    return InMemoryChatRepository()


@pytest.fixture
def processed_session_repository() -> InMemoryProcessedSessionRepository:
    return InMemoryProcessedSessionRepository()


@pytest.fixture
def failure_repository() -> InMemoryFailureRepository:
    return InMemoryFailureRepository()


@pytest.fixture
def shared_session_repository() -> InMemorySharedSessionRepository:
    return InMemorySharedSessionRepository()


@pytest.fixture
def result_repository_factory(
    chat_repository: InMemoryChatRepository,
) -> RecordingResultRepositoryFactory:
    return RecordingResultRepositoryFactory(chat_repository)


@pytest.fixture
def session_metadata_service(
    checkout_client: FakeCheckoutClient,
) -> SessionMetadataService:
    return SessionMetadataService(checkout_client)


@pytest.fixture
def shared_session_service(
    shared_session_repository: InMemorySharedSessionRepository,
) -> SharedSessionService:
    return SharedSessionService(shared_session_repository)


@pytest.fixture
def provisioning_service(  # noqa: PLR0913
    identity_provider: FakeIdentityProvider,
    payment_session_repository: InMemoryPaymentSessionRepository,
    chat_repository: InMemoryChatRepository,
    processed_session_repository: InMemoryProcessedSessionRepository,
    failure_repository: InMemoryFailureRepository,
    shared_session_service: SharedSessionService,
    session_metadata_service: SessionMetadataService,
) -> ProvisioningService:
    return ProvisioningService(
        identity_provider=identity_provider,
        payment_session_repository=payment_session_repository,
        chat_repository=chat_repository,
        processed_session_repository=processed_session_repository,
        failure_repository=failure_repository,
        shared_session_service=shared_session_service,
        session_metadata_service=session_metadata_service,
    )


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    checkout_client: FakeCheckoutClient,
    dev_webhook_client: FakeDevWebhookClient,
    provisioning_service: ProvisioningService,
    session_metadata_service: SessionMetadataService,
    shared_session_service: SharedSessionService,
    payment_session_repository: InMemoryPaymentSessionRepository,
    result_repository_factory: RecordingResultRepositoryFactory,
) -> AppContainer:
    checkout_service = CheckoutService(
        checkout_client=checkout_client,
        dev_webhook_client=dev_webhook_client,
    )
    payment_confirmation_service = PaymentConfirmationService(
        checkout_client=checkout_client,
        provisioning_service=provisioning_service,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        checkout_service=checkout_service,
        payment_confirmation_service=payment_confirmation_service,
        provisioning_service=provisioning_service,
        session_metadata_service=session_metadata_service,
        shared_session_service=shared_session_service,
        result_service=ResultService(result_repository_factory),
        session_user_service=SessionUserService(payment_session_repository),
        close_resources=close_resources,
    )
