"""QR payload rendering with the qrcode library."""

import base64
import io
from dataclasses import dataclass

import qrcode

from whatsapp_gateway.services.sessions import QrRenderer


@dataclass
class QrCodeRenderer(QrRenderer):
    """Render QR payloads as PNG data URLs."""

    box_size: int = 10
    border: int = 4

    def render(self, data: str) -> str:
        """Return the QR code for data as a data:image/png URL."""
        qr = qrcode.QRCode(
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=self.box_size,
            border=self.border,
        )
        qr.add_data(data)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        encoded = base64.b64encode(buf.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"
