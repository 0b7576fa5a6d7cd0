"""Session lifecycle state machine for WhatsApp account linking."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine, Sequence
from dataclasses import dataclass, field
from functools import partial
from typing import Protocol

from whatsapp_gateway.config import normalize_phone_number
from whatsapp_gateway.domain.errors import (
    PersistenceError,
    ProviderError,
    SessionNotConnectedError,
)
from whatsapp_gateway.domain.events import (
    Closed,
    CredentialsUpdated,
    MessageReceived,
    Opened,
    PairingReady,
    ProviderEvent,
    QrReady,
    phone_from_identity,
)
from whatsapp_gateway.domain.sessions import (
    LinkMethod,
    PairingArtifact,
    QrArtifact,
    SessionRecord,
    SessionState,
)
from whatsapp_gateway.services.registry import SessionRegistry

logger = logging.getLogger(__name__)

EventListener = Callable[[ProviderEvent], Awaitable[None]]

QR_ATTEMPTS_EXHAUSTED = "qr_attempts_exhausted"


class CredentialStore(Protocol):
    """Persistence interface for per-user auth material."""

    def load(self, user_id: str) -> dict[str, object]:
        """Return stored credentials, or an empty dict for a new user."""

    def save(self, user_id: str, credentials: dict[str, object]) -> None:
        """Persist updated credentials."""


class ProviderHandle(Protocol):
    """A live provider connection for one user."""

    async def request_pairing_code(self, phone_number: str) -> str:
        """Request a pairing code for the given phone number."""

    async def send_text(self, to: str, text: str) -> None:
        """Send a text message from the linked account."""

    async def close(self) -> None:
        """Close the connection."""


class LinkingProvider(Protocol):
    """Opens provider connections that report lifecycle events."""

    async def open(
        self, user_id: str, credentials: dict[str, object], listener: EventListener
    ) -> ProviderHandle:
        """Open a connection; events are delivered to listener in order."""


class ProviderEventSink(Protocol):
    """Receives events pushed by the provider out of band."""

    async def dispatch(
        self, session_id: str, events: Sequence[ProviderEvent]
    ) -> bool:
        """Deliver events for a provider session; false when it is unknown."""


class SessionStatusRepository(Protocol):
    """Persistence interface for session status rows."""

    def upsert_session_status(
        self, user_id: str, status: str, extra: dict[str, object] | None = None
    ) -> None:
        """Insert or update the status row for a user."""


class MessageRepository(Protocol):
    """Persistence interface for inbound messages."""

    def insert_message(self, user_id: str, from_number: str, text: str) -> None:
        """Store an inbound message."""


class QrRenderer(Protocol):
    """Turns a raw QR payload into a displayable image."""

    def render(self, data: str) -> str:
        """Return the rendered image as a data URL."""


@dataclass
class SessionManager:
    """Creates sessions and applies provider events to them.

    The manager owns every provider handle and is the only writer of the
    registry.
    """

    registry: SessionRegistry
    credential_store: CredentialStore
    provider: LinkingProvider
    status_repository: SessionStatusRepository
    message_repository: MessageRepository
    qr_renderer: QrRenderer
    max_qr_attempts: int = 5
    pairing_request_delay_seconds: float = 3.0
    _background: set[asyncio.Task] = field(default_factory=set, repr=False)

    async def start_session(
        self, user_id: str, phone_number: str | None = None
    ) -> SessionRecord:
        """Start linking for a user, or return the session already running.

        A failed start leaves the returned record ``CLOSED`` and evicted.
        """
        existing = self.registry.get(user_id)
        if existing is not None and existing.state is not SessionState.CLOSED:
            return existing

        record = SessionRecord(
            user_id=user_id, phone_number=normalize_phone_number(phone_number)
        )
        self.registry.put(user_id, record)
        record.state = SessionState.STARTING
        logger.info("Starting WhatsApp session", extra={"user_id": user_id})

        try:
            credentials = self.credential_store.load(user_id)
            handle = await self.provider.open(
                user_id, credentials, partial(self.handle_event, record)
            )
        except (PersistenceError, ProviderError) as exc:
            logger.exception(
                "Failed to open provider connection", extra={"user_id": user_id}
            )
            self._mark_closed(record, reason=str(exc) or type(exc).__name__)
            return record

        record.handle = handle
        if record.state is SessionState.CLOSED:
            # Stopped while the connection was still opening.
            await self._close_handle(record)
            return record
        if record.wants_pairing and record.state is SessionState.STARTING:
            record.state = SessionState.AWAITING_ARTIFACT
            await self._request_pairing(record)
        return record

    async def handle_event(self, record: SessionRecord, event: ProviderEvent) -> None:
        """Apply one provider event; events for a record are serialized."""
        async with record.lock:
            if isinstance(event, CredentialsUpdated):
                self._save_credentials(record, event)
            elif isinstance(event, QrReady):
                self._on_qr(record, event)
            elif isinstance(event, PairingReady):
                self._on_pairing_code(record, event.code)
            elif isinstance(event, Opened):
                self._on_opened(record, event)
            elif isinstance(event, Closed):
                self._mark_closed(record, reason=event.reason)
            elif isinstance(event, MessageReceived):
                self._on_message(record, event)

    async def send_message(self, user_id: str, to: str, text: str) -> None:
        """Send a text through a connected session."""
        record = self.registry.get(user_id)
        if record is None or record.state is not SessionState.CONNECTED:
            raise SessionNotConnectedError(f"WhatsApp is not connected for {user_id}")
        await record.handle.send_text(to, text)

    async def stop_session(self, user_id: str) -> bool:
        """Close a user's session. Returns false when there was none."""
        record = self.registry.get(user_id)
        if record is None:
            return False
        self._mark_closed(record, reason="requested")
        await self._close_handle(record)
        return True

    def active_count(self) -> int:
        return len(self.registry)

    async def _request_pairing(self, record: SessionRecord) -> None:
        # The provider needs a moment after opening before it accepts this.
        await asyncio.sleep(self.pairing_request_delay_seconds)
        if record.state is not SessionState.AWAITING_ARTIFACT or record.pairing_code:
            return
        try:
            code = await record.handle.request_pairing_code(record.phone_number)
        except ProviderError:
            logger.exception(
                "Failed to request pairing code", extra={"user_id": record.user_id}
            )
            return
        self._on_pairing_code(record, code)

    def _on_pairing_code(self, record: SessionRecord, code: str) -> None:
        if not record.wants_pairing or not record.is_pending:
            return
        record.artifact = PairingArtifact(code=code)
        record.link_method = LinkMethod.PAIRING
        record.state = SessionState.AWAITING_ARTIFACT
        logger.info("Pairing code generated", extra={"user_id": record.user_id})
        self._persist_status(record, "awaiting_pairing", {"pairing_code": code})

    def _on_qr(self, record: SessionRecord, event: QrReady) -> None:
        if record.wants_pairing:
            logger.debug(
                "Ignoring QR code for pairing session",
                extra={"user_id": record.user_id},
            )
            return
        if not record.is_pending:
            return
        record.attempt_count += 1
        if record.attempt_count > self.max_qr_attempts:
            logger.warning(
                "QR code attempts exhausted",
                extra={"user_id": record.user_id, "attempts": record.attempt_count},
            )
            self._mark_closed(record, reason=QR_ATTEMPTS_EXHAUSTED)
            # Closing may echo a Closed event back; never await it under the lock.
            self._spawn(self._close_handle(record))
            return
        image = self.qr_renderer.render(event.data)
        record.artifact = QrArtifact(image=image)
        record.link_method = LinkMethod.QR_CODE
        record.state = SessionState.AWAITING_ARTIFACT
        logger.info(
            "QR code generated",
            extra={"user_id": record.user_id, "attempts": record.attempt_count},
        )
        self._persist_status(record, "awaiting_scan", {"qr_code": image})

    def _on_opened(self, record: SessionRecord, event: Opened) -> None:
        if not record.is_pending:
            return
        record.state = SessionState.CONNECTED
        record.artifact = None
        record.connected_phone = phone_from_identity(event.identity)
        logger.info("WhatsApp connected", extra={"user_id": record.user_id})
        self._persist_status(
            record,
            "connected",
            {
                "phone_number": record.connected_phone,
                "qr_code": None,
                "pairing_code": None,
            },
        )

    def _on_message(self, record: SessionRecord, event: MessageReceived) -> None:
        if record.state is not SessionState.CONNECTED or event.from_me:
            return
        logger.info("Inbound message received", extra={"user_id": record.user_id})
        try:
            self.message_repository.insert_message(
                record.user_id, event.remote_jid, event.text
            )
        except PersistenceError:
            logger.exception(
                "Failed to store inbound message", extra={"user_id": record.user_id}
            )

    def _save_credentials(
        self, record: SessionRecord, event: CredentialsUpdated
    ) -> None:
        try:
            self.credential_store.save(record.user_id, event.credentials)
        except PersistenceError:
            logger.exception(
                "Failed to save credentials", extra={"user_id": record.user_id}
            )

    async def _close_handle(self, record: SessionRecord) -> None:
        if record.handle is None:
            return
        try:
            await record.handle.close()
        except ProviderError:
            logger.exception(
                "Failed to close provider connection",
                extra={"user_id": record.user_id},
            )

    def _spawn(self, coro: Coroutine[object, object, None]) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _mark_closed(self, record: SessionRecord, reason: str | None) -> None:
        if record.state is SessionState.CLOSED:
            return
        record.state = SessionState.CLOSED
        record.artifact = None
        if self._is_current(record):
            self.registry.remove(record.user_id)
        logger.info(
            "WhatsApp session closed",
            extra={"user_id": record.user_id, "reason": reason},
        )
        extra: dict[str, object] = {"qr_code": None, "pairing_code": None}
        if reason:
            extra["disconnect_reason"] = reason
        self._persist_status(record, "disconnected", extra)

    def _persist_status(
        self, record: SessionRecord, status: str, extra: dict[str, object]
    ) -> None:
        try:
            self.status_repository.upsert_session_status(record.user_id, status, extra)
        except PersistenceError:
            logger.exception(
                "Failed to persist session status",
                extra={"user_id": record.user_id, "status": status},
            )

    def _is_current(self, record: SessionRecord) -> bool:
        return self.registry.get(record.user_id) is record
