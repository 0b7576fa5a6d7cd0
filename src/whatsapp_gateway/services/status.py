"""Read-only queries over the session registry."""

from dataclasses import dataclass

from whatsapp_gateway.domain.sessions import SessionRecord, SessionState
from whatsapp_gateway.services.registry import SessionRegistry


@dataclass
class SessionQueryService:
    """Answers status and artifact polls without touching the provider."""

    registry: SessionRegistry

    def get_artifact(self, user_id: str) -> dict[str, object]:
        """Return the current QR code or pairing code for a user."""
        record = self.registry.get(user_id)
        qr_code = record.qr_code if record else None
        pairing_code = record.pairing_code if record else None
        return {
            "success": bool(qr_code or pairing_code),
            "qrCode": qr_code,
            "pairingCode": pairing_code,
            "userId": user_id,
            "method": record.requested_method.value if record else None,
        }

    def get_status(self, user_id: str) -> dict[str, object]:
        """Return the connection status for a user."""
        record = self.registry.get(user_id)
        return {
            "userId": user_id,
            "active": record is not None,
            "hasQRCode": bool(record and record.qr_code),
            "hasPairingCode": bool(record and record.pairing_code),
            "status": _status_label(record),
        }


def _status_label(record: SessionRecord | None) -> str:
    if record is None or record.state is SessionState.CLOSED:
        return "disconnected"
    if record.state is SessionState.CONNECTED:
        return "connected"
    return "awaiting_connection"
