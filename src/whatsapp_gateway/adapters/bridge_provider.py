"""Linking provider backed by a WhatsApp bridge sidecar over HTTP.

The bridge runs the WhatsApp Web protocol. The gateway drives it through a
small REST API and the bridge pushes connection events back to the gateway
webhook, tagged with the session id the gateway assigned when opening.
"""

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

import httpx

from whatsapp_gateway.domain.errors import ProviderError
from whatsapp_gateway.domain.events import Closed, ProviderEvent
from whatsapp_gateway.services.sessions import (
    EventListener,
    LinkingProvider,
    ProviderEventSink,
)

logger = logging.getLogger(__name__)

_BROWSER = ["Chrome (Linux)", "", ""]


@dataclass
class BridgeSessionHandle:
    """Handle for one bridge session."""

    provider: "HttpxBridgeProvider"
    session_id: str
    user_id: str

    async def request_pairing_code(self, phone_number: str) -> str:
        """Ask the bridge for a phone pairing code."""
        data = await self.provider.request(
            "POST",
            f"/sessions/{self.session_id}/pairing-code",
            json={"phoneNumber": phone_number},
        )
        code = data.get("code")
        if not code:
            raise ProviderError("Bridge returned no pairing code")
        return str(code)

    async def send_text(self, to: str, text: str) -> None:
        """Send a text message through the linked account."""
        await self.provider.request(
            "POST",
            f"/sessions/{self.session_id}/messages",
            json={"to": to, "text": text},
        )

    async def close(self) -> None:
        """Stop listening and tear the bridge session down."""
        self.provider.forget(self.session_id)
        await self.provider.request("DELETE", f"/sessions/{self.session_id}")


@dataclass
class HttpxBridgeProvider(LinkingProvider, ProviderEventSink):
    """HTTPX-backed linking provider."""

    base_url: str
    http_client: httpx.AsyncClient
    connect_timeout_seconds: float = 60.0
    _listeners: dict[str, EventListener] = field(default_factory=dict, repr=False)

    @classmethod
    def create(
        cls, base_url: str, connect_timeout_seconds: float = 60.0
    ) -> "HttpxBridgeProvider":
        """Create a bridge provider with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            connect_timeout_seconds=connect_timeout_seconds,
        )

    async def open(
        self, user_id: str, credentials: dict[str, object], listener: EventListener
    ) -> BridgeSessionHandle:
        """Open a bridge session for a user and subscribe listener to its events."""
        session_id = uuid.uuid4().hex
        # The bridge may post events before the open call returns.
        self._listeners[session_id] = listener
        try:
            data = await self.request(
                "POST",
                "/sessions",
                json={
                    "sessionId": session_id,
                    "userId": user_id,
                    "credentials": credentials,
                    "browser": _BROWSER,
                    "connectTimeoutMs": int(self.connect_timeout_seconds * 1000),
                    "markOnlineOnConnect": True,
                    "syncFullHistory": False,
                },
                timeout=self.connect_timeout_seconds,
            )
        except ProviderError:
            self.forget(session_id)
            raise
        bridge_session_id = str(data.get("sessionId") or session_id)
        if bridge_session_id != session_id and session_id in self._listeners:
            self._listeners[bridge_session_id] = self._listeners.pop(session_id)
        logger.info(
            "Bridge session opened",
            extra={"user_id": user_id, "session_id": bridge_session_id},
        )
        return BridgeSessionHandle(
            provider=self, session_id=bridge_session_id, user_id=user_id
        )

    async def dispatch(
        self, session_id: str, events: Sequence[ProviderEvent]
    ) -> bool:
        """Deliver bridge events in order. Returns false for unknown sessions."""
        listener = self._listeners.get(session_id)
        if listener is None:
            logger.info(
                "Dropping events for unknown bridge session",
                extra={"session_id": session_id},
            )
            return False
        for event in events:
            await listener(event)
            if isinstance(event, Closed):
                self.forget(session_id)
                break
        return True

    def forget(self, session_id: str) -> None:
        """Stop delivering events for a session."""
        self._listeners.pop(session_id, None)

    async def request(
        self,
        method: str,
        path: str,
        json: dict[str, object] | None = None,
        timeout: float = 15,
    ) -> dict[str, object]:
        """Call the bridge API, translating transport failures to ProviderError."""
        try:
            response = await self.http_client.request(
                method, f"{self.base_url}{path}", json=json, timeout=timeout
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ProviderError(f"Bridge request failed: {exc}") from exc
        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError("Bridge returned invalid JSON") from exc
        return payload if isinstance(payload, dict) else {}

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
