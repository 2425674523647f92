"""
Redemption credential generation.

A confirmed claim gets two codes:

- ``qr_code``: 256 bits from ``secrets``, URL-safe. Anyone holding it
  can redeem the deal, so it is treated as a bearer secret.
- ``redemption_code``: a 6-digit fallback typed by staff when no scanner
  is available. Low entropy; only usable inside the scanning vendor's
  own deals and only once.

Uniqueness of ``qr_code`` rests on entropy, backed by a unique column
(see ``claim_store.confirm_deposit``).
"""

import re
import secrets
from io import BytesIO
from typing import Tuple

from django.conf import settings


QR_CODE_BYTES = 32
REDEMPTION_CODE_RE = re.compile(r'^\d{6}$')


def generate_credential() -> Tuple[str, str]:
    """
    Generate a fresh (qr_code, redemption_code) pair.

    Returns:
        Tuple of the opaque URL-safe code and a 6-digit string in
        the range 100000-999999
    """
    qr_code = secrets.token_urlsafe(QR_CODE_BYTES)
    redemption_code = str(100000 + secrets.randbelow(900000))
    return qr_code, redemption_code


def is_redemption_code(credential: str) -> bool:
    """True if the credential looks like the 6-digit staff fallback."""
    return bool(REDEMPTION_CODE_RE.match(credential.strip()))


def get_redemption_url(qr_code: str) -> str:
    """Customer-facing link encoded into the QR image."""
    return f"{settings.APP_URL.rstrip('/')}/redeem/{qr_code}"


def render_qr_png(qr_code: str) -> bytes:
    """
    Render the redemption URL as a PNG QR image.

    Uses error correction level H so the code still scans from a
    cracked or dimmed phone screen.

    Args:
        qr_code: The claim's opaque credential

    Returns:
        PNG bytes
    """
    import qrcode

    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        box_size=10,
        border=2,
    )
    qr.add_data(get_redemption_url(qr_code))
    qr.make(fit=True)

    img = qr.make_image(fill_color="#1A1A2E", back_color="white")

    buffer = BytesIO()
    img.save(buffer, format='PNG')
    return buffer.getvalue()
