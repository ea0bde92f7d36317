"""LINE webhook signature verification."""

import base64
import hashlib
import hmac


def compute_line_signature(channel_secret: str, body: bytes) -> str:
    """Base64-encoded HMAC-SHA256 of the raw request body."""
    digest = hmac.new(
        channel_secret.encode("utf-8"), body, hashlib.sha256
    ).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_line_signature(
    channel_secret: str, body: bytes, signature: str | None
) -> bool:
    """Constant-time check of the X-Line-Signature header against the body."""
    if not channel_secret or not signature:
        return False
    expected = compute_line_signature(channel_secret, body)
    return hmac.compare_digest(expected, signature)
