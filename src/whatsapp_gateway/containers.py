"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import create_client

from whatsapp_gateway.adapters.bridge_provider import HttpxBridgeProvider
from whatsapp_gateway.adapters.file_credential_store import FileCredentialStore
from whatsapp_gateway.adapters.qr_renderer import QrCodeRenderer
from whatsapp_gateway.adapters.supabase_message_repository import (
    SupabaseMessageRepository,
)
from whatsapp_gateway.adapters.supabase_session_status_repository import (
    SupabaseSessionStatusRepository,
)
from whatsapp_gateway.config import Settings
from whatsapp_gateway.services.connect import ConnectHandler
from whatsapp_gateway.services.registry import SessionRegistry
from whatsapp_gateway.services.sessions import ProviderEventSink, SessionManager
from whatsapp_gateway.services.status import SessionQueryService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_manager: SessionManager
    connect_handler: ConnectHandler
    query_service: SessionQueryService
    event_sink: ProviderEventSink
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    provider = HttpxBridgeProvider.create(
        base_url=resolved_settings.bridge_url,
        connect_timeout_seconds=resolved_settings.provider_connect_timeout_seconds,
    )
    registry = SessionRegistry()
    session_manager = SessionManager(
        registry=registry,
        credential_store=FileCredentialStore(Path(resolved_settings.credentials_dir)),
        provider=provider,
        status_repository=SupabaseSessionStatusRepository(supabase_client),
        message_repository=SupabaseMessageRepository(supabase_client),
        qr_renderer=QrCodeRenderer(),
        max_qr_attempts=resolved_settings.max_qr_attempts,
        pairing_request_delay_seconds=resolved_settings.pairing_request_delay_seconds,
    )
    connect_handler = ConnectHandler(
        session_manager=session_manager,
        poll_interval_seconds=resolved_settings.connect_poll_interval_seconds,
        poll_timeout_seconds=resolved_settings.connect_poll_timeout_seconds,
    )

    async def close_resources() -> None:
        await provider.close()

    return AppContainer(
        settings=resolved_settings,
        session_manager=session_manager,
        connect_handler=connect_handler,
        query_service=SessionQueryService(registry),
        event_sink=provider,
        close_resources=close_resources,
    )
