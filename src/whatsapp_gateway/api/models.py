"""Request and response models for the WhatsApp HTTP API."""

from pydantic import BaseModel, ConfigDict, Field

from whatsapp_gateway.domain.sessions import ConnectResult


class ConnectRequest(BaseModel):
    """Body of POST /api/whatsapp/connect."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(default=None, alias="userId")
    phone_number: str | None = Field(default=None, alias="phoneNumber")


class SendRequest(BaseModel):
    """Body of POST /api/whatsapp/send."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(default=None, alias="userId")
    to: str
    text: str


class InstagramConnectRequest(BaseModel):
    """Body of POST /api/instagram/connect."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(default=None, alias="userId")


def connect_response(result: ConnectResult) -> dict[str, object]:
    """Serialize a connect result in the camelCase wire format."""
    return {
        "success": result.success,
        "message": result.message,
        "userId": result.user_id,
        "qrCode": result.qr_code,
        "pairingCode": result.pairing_code,
        "method": result.method.value,
    }
