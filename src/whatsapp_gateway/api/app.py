"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from whatsapp_gateway.api.auth import require_api_key, require_bridge_token
from whatsapp_gateway.api.bridge_models import BridgeEvent
from whatsapp_gateway.api.models import (
    ConnectRequest,
    InstagramConnectRequest,
    SendRequest,
    connect_response,
)
from whatsapp_gateway.app_logging import configure_logging
from whatsapp_gateway.containers import AppContainer
from whatsapp_gateway.domain.errors import (
    AuthError,
    ProviderError,
    SessionNotConnectedError,
    ValidationError,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    _register_error_handlers(app, logger)

    @app.get("/")
    async def index(request: Request) -> dict[str, object]:
        """Service info."""
        state_container: AppContainer = request.app.state.container
        return {
            "name": "whatsapp-gateway",
            "status": "online",
            "activeSessions": state_container.session_manager.active_count(),
        }

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/api/whatsapp/connect", dependencies=[Depends(require_api_key)])
    async def whatsapp_connect(
        body: ConnectRequest, request: Request
    ) -> dict[str, object]:
        """Start linking a WhatsApp account by QR code or pairing code."""
        state_container: AppContainer = request.app.state.container
        result = await state_container.connect_handler.connect(
            body.user_id, body.phone_number
        )
        return connect_response(result)

    @app.get("/api/whatsapp/qrcode/{user_id}", dependencies=[Depends(require_api_key)])
    async def whatsapp_qrcode(user_id: str, request: Request) -> dict[str, object]:
        """Return the current QR code or pairing code for a user."""
        state_container: AppContainer = request.app.state.container
        return state_container.query_service.get_artifact(user_id)

    @app.get("/api/whatsapp/status/{user_id}", dependencies=[Depends(require_api_key)])
    async def whatsapp_status(user_id: str, request: Request) -> dict[str, object]:
        """Return the connection status for a user."""
        state_container: AppContainer = request.app.state.container
        return state_container.query_service.get_status(user_id)

    @app.post("/api/whatsapp/send", dependencies=[Depends(require_api_key)])
    async def whatsapp_send(body: SendRequest, request: Request) -> dict[str, object]:
        """Send a text message from a connected account."""
        if not body.user_id:
            raise ValidationError("userId is required")
        state_container: AppContainer = request.app.state.container
        await state_container.session_manager.send_message(
            body.user_id, body.to, body.text
        )
        return {"success": True}

    @app.post(
        "/api/whatsapp/disconnect/{user_id}", dependencies=[Depends(require_api_key)]
    )
    async def whatsapp_disconnect(user_id: str, request: Request) -> dict[str, object]:
        """Close a user's WhatsApp session."""
        state_container: AppContainer = request.app.state.container
        stopped = await state_container.session_manager.stop_session(user_id)
        return {"success": stopped, "userId": user_id}

    @app.post(
        "/api/whatsapp/provider/events", dependencies=[Depends(require_bridge_token)]
    )
    async def provider_events(event: BridgeEvent, request: Request) -> dict[str, str]:
        """Receive connection and message events from the WhatsApp bridge."""
        state_container: AppContainer = request.app.state.container
        delivered = await state_container.event_sink.dispatch(
            event.session_id, event.to_provider_events()
        )
        return {"status": "ok" if delivered else "ignored"}

    @app.post("/api/instagram/connect", dependencies=[Depends(require_api_key)])
    async def instagram_connect(body: InstagramConnectRequest) -> dict[str, object]:
        """Acknowledge an Instagram connect request."""
        if not body.user_id:
            raise ValidationError("userId is required")
        logger.info("Instagram connect requested", extra={"user_id": body.user_id})
        return {
            "success": True,
            "message": "Instagram connection request received",
            "userId": body.user_id,
        }

    return app


def _register_error_handlers(app: FastAPI, logger: logging.Logger) -> None:
    """Map gateway errors to HTTP responses."""

    @app.exception_handler(ValidationError)
    async def validation_error(_: Request, exc: ValidationError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(
        _: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, _describe_invalid_request(exc))

    @app.exception_handler(AuthError)
    async def auth_error(_: Request, exc: AuthError) -> JSONResponse:
        return _error(status.HTTP_401_UNAUTHORIZED, str(exc))

    @app.exception_handler(SessionNotConnectedError)
    async def not_connected(_: Request, exc: SessionNotConnectedError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, str(exc))

    @app.exception_handler(ProviderError)
    async def provider_error(_: Request, exc: ProviderError) -> JSONResponse:
        logger.warning("Provider request failed: %s", exc)
        return _error(status.HTTP_502_BAD_GATEWAY, str(exc))

    @app.exception_handler(Exception)
    async def unhandled_error(_: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


def _describe_invalid_request(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Request body is not valid JSON"
    fields = [str(part) for part in first.get("loc", ()) if part != "body"]
    if not fields:
        return "Request body is required"
    field = ".".join(fields)
    if first.get("type") == "missing":
        return f"{field} is required"
    return f"{field} is invalid"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})
