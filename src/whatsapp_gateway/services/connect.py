"""Connect request orchestration with a bounded wait for the QR artifact."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from whatsapp_gateway.domain.errors import ValidationError
from whatsapp_gateway.domain.sessions import (
    ConnectResult,
    SessionRecord,
    SessionState,
)
from whatsapp_gateway.services.sessions import SessionManager

logger = logging.getLogger(__name__)


async def poll_until(
    predicate: Callable[[], bool], *, interval: float, timeout: float
) -> bool:
    """Check predicate every interval seconds until it holds or timeout elapses.

    Returns the final value of the predicate. Never raises on timeout.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        remaining = deadline - loop.time()
        if remaining <= 0:
            return False
        await asyncio.sleep(min(interval, remaining))
    return True


@dataclass
class ConnectHandler:
    """Bridges the synchronous connect contract to asynchronous provider events."""

    session_manager: SessionManager
    poll_interval_seconds: float = 0.5
    poll_timeout_seconds: float = 20.0

    async def connect(
        self, user_id: str | None, phone_number: str | None = None
    ) -> ConnectResult:
        """Start or resume linking for a user and return the current artifact."""
        if not user_id or not user_id.strip():
            raise ValidationError("userId is required")

        existing = self.session_manager.registry.get(user_id)
        if existing is not None and existing.state is not SessionState.CLOSED:
            return _result(existing, success=True, message="Session already started")

        logger.info("WhatsApp connect requested", extra={"user_id": user_id})
        record = await self.session_manager.start_session(user_id, phone_number)

        if record.state is SessionState.CLOSED:
            return _result(
                record, success=False, message="Could not start WhatsApp session"
            )

        if record.state is SessionState.CONNECTED:
            return _result(record, success=True, message="WhatsApp already connected")

        if record.wants_pairing:
            if record.pairing_code:
                return _result(
                    record, success=True, message="Enter the code in WhatsApp"
                )
            return _result(
                record, success=False, message="Pairing code not available yet"
            )

        await poll_until(
            lambda: record.artifact is not None or not record.is_pending,
            interval=self.poll_interval_seconds,
            timeout=self.poll_timeout_seconds,
        )

        if record.state is SessionState.CONNECTED:
            return _result(record, success=True, message="WhatsApp already connected")
        if record.qr_code:
            return _result(record, success=True, message="Scan the QR code")
        return _result(record, success=False, message="Waiting for QR code...")


def _result(record: SessionRecord, *, success: bool, message: str) -> ConnectResult:
    return ConnectResult(
        success=success,
        message=message,
        user_id=record.user_id,
        method=record.requested_method,
        state=record.state,
        qr_code=record.qr_code,
        pairing_code=record.pairing_code,
    )
