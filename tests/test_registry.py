"""Tests for the session registry and status queries."""

from whatsapp_gateway.domain.sessions import (
    PairingArtifact,
    QrArtifact,
    SessionRecord,
    SessionState,
)
from whatsapp_gateway.services.registry import SessionRegistry
from whatsapp_gateway.services.status import SessionQueryService


def test_registry_put_get_remove() -> None:
    registry = SessionRegistry()
    record = SessionRecord(user_id="user-1")

    registry.put("user-1", record)

    assert registry.has("user-1")
    assert registry.get("user-1") is record
    assert len(registry) == 1

    registry.remove("user-1")
    registry.remove("user-1")

    assert not registry.has("user-1")
    assert registry.get("user-1") is None


def test_status_for_unknown_user_is_disconnected() -> None:
    service = SessionQueryService(SessionRegistry())

    assert service.get_status("nobody") == {
        "userId": "nobody",
        "active": False,
        "hasQRCode": False,
        "hasPairingCode": False,
        "status": "disconnected",
    }
    assert service.get_artifact("nobody")["success"] is False


def test_status_reports_awaiting_connection_with_qr() -> None:
    registry = SessionRegistry()
    registry.put(
        "user-1",
        SessionRecord(
            user_id="user-1",
            state=SessionState.AWAITING_ARTIFACT,
            artifact=QrArtifact(image="data:image/png;base64,abc"),
        ),
    )
    service = SessionQueryService(registry)

    status = service.get_status("user-1")
    artifact = service.get_artifact("user-1")

    assert status["status"] == "awaiting_connection"
    assert status["hasQRCode"] is True
    assert artifact["qrCode"] == "data:image/png;base64,abc"
    assert artifact["method"] == "qrcode"


def test_status_reports_pairing_and_connected() -> None:
    registry = SessionRegistry()
    registry.put(
        "user-1",
        SessionRecord(
            user_id="user-1",
            phone_number="5511999999999",
            state=SessionState.AWAITING_ARTIFACT,
            artifact=PairingArtifact(code="ABCD1234"),
        ),
    )
    registry.put(
        "user-2", SessionRecord(user_id="user-2", state=SessionState.CONNECTED)
    )
    service = SessionQueryService(registry)

    artifact = service.get_artifact("user-1")

    assert artifact["pairingCode"] == "ABCD1234"
    assert artifact["method"] == "pairing"
    assert service.get_status("user-1")["hasPairingCode"] is True
    assert service.get_status("user-2")["status"] == "connected"
