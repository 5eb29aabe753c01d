"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from image_remix.adapters.dev_webhook_client import DEVELOPMENT_MODE_HEADER
from image_remix.api.models import (
    CheckoutRequest,
    SharedSessionRequest,
    UpdateSessionMetadataRequest,
)
from image_remix.app_logging import configure_logging
from image_remix.config import parse_origin
from image_remix.containers import AppContainer
from image_remix.domain.chats import RequestRecord, ResponseRecord
from image_remix.errors import (
    IdentityProvisioningError,
    ImageRemixError,
    MissingSessionTokensError,
    NotFoundError,
    ProvisioningError,
    ValidationError,
    WebhookVerificationError,
)

_ERROR_STATUS: dict[type[ImageRemixError], int] = {
    ValidationError: 400,
    WebhookVerificationError: 400,
    NotFoundError: 404,
    IdentityProvisioningError: 500,
    ProvisioningError: 500,
    MissingSessionTokensError: 500,
}


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(ImageRemixError)
    async def handle_domain_error(
        request: Request, exc: ImageRemixError
    ) -> JSONResponse:
        return JSONResponse({"error": str(exc)}, status_code=_status_for(exc))

    @app.exception_handler(RequestValidationError)
    async def handle_invalid_body(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/checkout-session")
    async def create_checkout_session(
        body: CheckoutRequest, request: Request
    ) -> JSONResponse:
        """Create a checkout session for the submitted images and prompt."""
        state_container: AppContainer = request.app.state.container
        origin = parse_origin(
            request.headers.get("origin"), state_container.settings.default_origin
        )
        try:
            url = await state_container.checkout_service.create_checkout(
                origin=origin,
                image_urls=[image.image_url for image in body.images],
                prompt=body.prompt,
                user_id=body.user_id,
            )
        except ImageRemixError:
            raise
        except Exception as exc:
            logger.exception("Error creating checkout session")
            return _server_error(
                state_container, exc, "Error creating checkout session"
            )
        return JSONResponse({"url": url})

    @app.post("/webhook")
    async def webhook(
        request: Request,
        stripe_signature: str | None = Header(default=None),
    ) -> JSONResponse:
        """Handle Stripe checkout events."""
        state_container: AppContainer = request.app.state.container
        payload = await request.body()
        development_mode = request.headers.get(DEVELOPMENT_MODE_HEADER) == "true"
        try:
            body = state_container.payment_confirmation_service.handle(
                payload, stripe_signature, development_mode=development_mode
            )
        except WebhookVerificationError as exc:
            logger.warning("Webhook rejected: %s", exc)
            return JSONResponse({"error": f"Webhook Error: {exc}"}, status_code=400)
        except Exception as exc:
            logger.exception("Error processing webhook")
            return _server_error(state_container, exc, "Server error")
        return JSONResponse(body)

    @app.get("/session-metadata")
    async def get_session_metadata(
        request: Request, session_id: str | None = None
    ) -> JSONResponse:
        """Return checkout metadata with image URLs folded into a list."""
        state_container: AppContainer = request.app.state.container
        try:
            metadata = state_container.session_metadata_service.read(session_id or "")
        except ImageRemixError:
            raise
        except Exception as exc:
            logger.exception("Error retrieving session metadata")
            return _server_error(
                state_container, exc, "Failed to retrieve session metadata"
            )
        return JSONResponse({"success": True, "metadata": metadata})

    @app.post("/update-session-metadata")
    async def update_session_metadata(
        body: UpdateSessionMetadataRequest, request: Request
    ) -> JSONResponse:
        """Merge user and/or chat id into checkout metadata."""
        state_container: AppContainer = request.app.state.container
        try:
            metadata = state_container.session_metadata_service.update(
                body.session_id or "", user_id=body.user_id, chat_id=body.chat_id
            )
        except ImageRemixError:
            raise
        except Exception as exc:
            logger.exception("Error updating session metadata")
            return _server_error(
                state_container, exc, "Failed to update session metadata"
            )
        return JSONResponse({"success": True, "metadata": metadata})

    @app.get("/payment-status")
    async def payment_status(
        request: Request, session_id: str | None = None
    ) -> JSONResponse:
        """Return whether a checkout session has been paid."""
        state_container: AppContainer = request.app.state.container
        try:
            status = state_container.session_metadata_service.payment_status(
                session_id or ""
            )
        except ImageRemixError:
            raise
        except Exception as exc:
            logger.exception("Error retrieving payment status")
            return _server_error(
                state_container, exc, "Failed to retrieve payment status"
            )
        return JSONResponse({"status": status.status, "isPaid": status.is_paid})

    @app.get("/session-user")
    async def session_user(
        request: Request, session_id: str | None = None
    ) -> dict[str, object]:
        """Return the anonymous identity provisioned for a checkout session."""
        state_container: AppContainer = request.app.state.container
        return state_container.session_user_service.get_session_user(
            session_id or ""
        )

    @app.post("/shared-sessions")
    async def register_shared_session(
        body: SharedSessionRequest, request: Request
    ) -> JSONResponse:
        """Grant the checkout session id read access to a chat."""
        state_container: AppContainer = request.app.state.container
        try:
            state_container.shared_session_service.register(
                body.session_id or "", body.chat_id
            )
        except ImageRemixError:
            raise
        except Exception as exc:
            logger.exception(
                "Error registering shared session",
                extra={"session_id": body.session_id, "chat_id": body.chat_id},
            )
            return _server_error(
                state_container, exc, "Failed to register shared session"
            )
        return JSONResponse({"success": True})

    @app.get("/public-session")
    async def public_session(
        request: Request, chat_id: str | None = None
    ) -> dict[str, object]:
        """Return the request/response pair for a chat."""
        state_container: AppContainer = request.app.state.container
        parsed = _parse_chat_id(chat_id)
        if parsed is None:
            raise ValidationError("Missing chat_id")
        session = state_container.result_service.get_public_session(parsed)
        return {
            "request": _serialize_request(session.request),
            "response": _serialize_response(session.response),
        }

    @app.get("/requests/{chat_id}")
    async def get_request(
        chat_id: int,
        request: Request,
        x_session_id: str | None = Header(default=None),
    ) -> dict[str, object]:
        """Return the request for a chat, or null while unavailable."""
        state_container: AppContainer = request.app.state.container
        record = state_container.result_service.get_request(
            chat_id, session_id=x_session_id
        )
        return {"request": _serialize_request(record)}

    @app.get("/responses/{chat_id}")
    async def get_response(
        chat_id: int,
        request: Request,
        x_session_id: str | None = Header(default=None),
    ) -> dict[str, object]:
        """Return the response for a chat, or null while processing."""
        state_container: AppContainer = request.app.state.container
        record = state_container.result_service.get_response(
            chat_id, session_id=x_session_id
        )
        return {"response": _serialize_response(record)}

    return app


def _status_for(exc: ImageRemixError) -> int:
    for error_type, status_code in _ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


def _server_error(
    state_container: AppContainer, exc: Exception, message: str
) -> JSONResponse:
    """Return a 500 body with exception detail outside production."""
    if isinstance(exc, ImageRemixError):
        status_code = _status_for(exc)
    else:
        status_code = 500
    body: dict[str, object] = {"error": message, "message": str(exc)}
    if state_container.settings.is_local:
        body["debug"] = f"{type(exc).__name__}: {exc}"
    return JSONResponse(body, status_code=status_code)


def _parse_chat_id(raw: str | None) -> int | None:
    if raw is None or not raw.strip().isdigit():
        return None
    return int(raw.strip())


def _serialize_request(record: RequestRecord | None) -> dict[str, object] | None:
    if record is None:
        return None
    return {
        "id": record.id,
        "chat_id": record.chat_id,
        "created_at": record.created_at.isoformat() if record.created_at else None,
        "image_url": record.image_url,
        "prompt": record.prompt,
    }


def _serialize_response(record: ResponseRecord | None) -> dict[str, object] | None:
    if record is None:
        return None
    return {
        "id": record.id,
        "chat_id": record.chat_id,
        "created_at": record.created_at.isoformat() if record.created_at else None,
        "image_url": record.image_url,
        "message": record.message,
    }
