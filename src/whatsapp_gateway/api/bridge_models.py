"""Pydantic models for events pushed by the WhatsApp bridge."""

from pydantic import BaseModel, Field
from pydantic import ValidationError as PayloadError

from whatsapp_gateway.domain.errors import ValidationError
from whatsapp_gateway.domain.events import (
    Closed,
    CredentialsUpdated,
    MessageReceived,
    Opened,
    PairingReady,
    ProviderEvent,
    QrReady,
)


class BridgeDisconnect(BaseModel):
    """Why the bridge connection closed."""

    reason: str | None = None
    status_code: int | None = Field(default=None, alias="statusCode")

    def describe(self) -> str | None:
        if self.reason:
            return self.reason
        if self.status_code is not None:
            return f"status {self.status_code}"
        return None


class BridgeAccount(BaseModel):
    """Authenticated account identity."""

    id: str


class ConnectionUpdate(BaseModel):
    """Payload of a connection.update event."""

    connection: str | None = None
    qr: str | None = None
    last_disconnect: BridgeDisconnect | None = Field(
        default=None, alias="lastDisconnect"
    )
    me: BridgeAccount | None = None


class BridgeMessageKey(BaseModel):
    """Message key payload."""

    id: str | None = None
    remote_jid: str = Field(alias="remoteJid")
    from_me: bool = Field(default=False, alias="fromMe")


class BridgeExtendedText(BaseModel):
    """Extended text message payload."""

    text: str | None = None


class BridgeMessageContent(BaseModel):
    """Message content payload; only text kinds are read."""

    conversation: str | None = None
    extended_text_message: BridgeExtendedText | None = Field(
        default=None, alias="extendedTextMessage"
    )

    def text(self) -> str:
        if self.conversation:
            return self.conversation
        if self.extended_text_message and self.extended_text_message.text:
            return self.extended_text_message.text
        return ""


class BridgeMessage(BaseModel):
    """Single message in a messages.upsert event."""

    key: BridgeMessageKey
    message: BridgeMessageContent | None = None


class MessagesUpsert(BaseModel):
    """Payload of a messages.upsert event."""

    messages: list[BridgeMessage] = Field(default_factory=list)


class BridgeEvent(BaseModel):
    """Envelope for every event the bridge posts to the webhook."""

    session_id: str = Field(alias="sessionId")
    user_id: str | None = Field(default=None, alias="userId")
    event: str
    data: dict[str, object] = Field(default_factory=dict)

    def to_provider_events(self) -> list[ProviderEvent]:
        """Translate the bridge payload into ordered provider events."""
        try:
            return self._translate()
        except PayloadError as exc:
            raise ValidationError(f"Malformed {self.event} payload") from exc

    def _translate(self) -> list[ProviderEvent]:
        if self.event == "creds.update":
            return [CredentialsUpdated(credentials=self.data)]
        if self.event == "pairing.code":
            code = self.data.get("code")
            return [PairingReady(code=str(code))] if code else []
        if self.event == "connection.update":
            return _connection_events(ConnectionUpdate.model_validate(self.data))
        if self.event == "messages.upsert":
            upsert = MessagesUpsert.model_validate(self.data)
            return [
                MessageReceived(
                    message_id=item.key.id,
                    remote_jid=item.key.remote_jid,
                    text=item.message.text(),
                    from_me=item.key.from_me,
                )
                for item in upsert.messages
                if item.message is not None
            ]
        return []


def _connection_events(update: ConnectionUpdate) -> list[ProviderEvent]:
    events: list[ProviderEvent] = []
    if update.qr:
        events.append(QrReady(data=update.qr))
    if update.connection == "open" and update.me is not None:
        events.append(Opened(identity=update.me.id))
    elif update.connection == "close":
        reason = update.last_disconnect.describe() if update.last_disconnect else None
        events.append(Closed(reason=reason))
    return events
