"""QR payload for receiving payments: the user's phone number as a PNG data URL."""

import base64
import io

import qrcode

from app.core.exceptions import BadRequestError
from app.models.user import User


def qr_data_url(payload: str) -> str:
    if not payload:
        raise BadRequestError("Nothing to encode")
    img = qrcode.make(payload)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def qr_for_user(user: User) -> str:
    """The client decodes this back to the phone number and posts it as qr_data."""
    return qr_data_url(user.phone_no)
