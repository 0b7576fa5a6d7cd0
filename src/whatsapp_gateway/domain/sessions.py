"""Domain models for WhatsApp linking sessions."""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SessionState(str, Enum):
    """Lifecycle state of a linking session."""

    IDLE = "idle"
    STARTING = "starting"
    AWAITING_ARTIFACT = "awaiting_artifact"
    CONNECTED = "connected"
    CLOSED = "closed"


class LinkMethod(str, Enum):
    """How the user authorizes the link."""

    UNSET = "unset"
    QR_CODE = "qrcode"
    PAIRING = "pairing"


@dataclass(frozen=True)
class QrArtifact:
    """Rendered QR image, as a data URL."""

    image: str


@dataclass(frozen=True)
class PairingArtifact:
    """Numeric/alphanumeric code typed into the phone."""

    code: str


Artifact = QrArtifact | PairingArtifact


@dataclass
class SessionRecord:
    """In-memory state of one user's linking session.

    Only the session manager mutates a record. ``handle`` is the live
    provider connection and is usable for sends only while ``state`` is
    ``CONNECTED``.
    """

    user_id: str
    phone_number: str | None = None
    state: SessionState = SessionState.IDLE
    artifact: Artifact | None = None
    link_method: LinkMethod = LinkMethod.UNSET
    attempt_count: int = 0
    connected_phone: str | None = None
    handle: Any = field(default=None, repr=False)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def wants_pairing(self) -> bool:
        """Pairing takes priority over QR whenever a phone number was given."""
        return self.phone_number is not None

    @property
    def requested_method(self) -> LinkMethod:
        """Link method reported to clients for this session."""
        return LinkMethod.PAIRING if self.wants_pairing else LinkMethod.QR_CODE

    @property
    def is_pending(self) -> bool:
        """True while the session still waits for the user to link."""
        return self.state in {
            SessionState.IDLE,
            SessionState.STARTING,
            SessionState.AWAITING_ARTIFACT,
        }

    @property
    def qr_code(self) -> str | None:
        if isinstance(self.artifact, QrArtifact):
            return self.artifact.image
        return None

    @property
    def pairing_code(self) -> str | None:
        if isinstance(self.artifact, PairingArtifact):
            return self.artifact.code
        return None


@dataclass(frozen=True)
class ConnectResult:
    """Outcome of a connect request."""

    success: bool
    message: str
    user_id: str
    method: LinkMethod
    state: SessionState
    qr_code: str | None = None
    pairing_code: str | None = None
