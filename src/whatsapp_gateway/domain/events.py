"""Lifecycle events emitted by a linking provider connection."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CredentialsUpdated:
    """Auth material changed and must be persisted."""

    credentials: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class QrReady:
    """The provider produced (or refreshed) a QR payload."""

    data: str


@dataclass(frozen=True)
class PairingReady:
    """The provider delivered a phone pairing code."""

    code: str


@dataclass(frozen=True)
class Opened:
    """The connection authenticated; identity is the account JID."""

    identity: str


@dataclass(frozen=True)
class Closed:
    """The connection closed, with a reason when the provider gave one."""

    reason: str | None = None


@dataclass(frozen=True)
class MessageReceived:
    """An inbound chat message."""

    message_id: str | None
    remote_jid: str
    text: str
    from_me: bool = False


ProviderEvent = (
    CredentialsUpdated | QrReady | PairingReady | Opened | Closed | MessageReceived
)


def phone_from_identity(identity: str) -> str:
    """Extract the phone number from a JID like 5511999:12@s.whatsapp.net."""
    return identity.split(":", maxsplit=1)[0].split("@", maxsplit=1)[0]
