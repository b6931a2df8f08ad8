"""
Webhook signature validation for Loyverse.

Loyverse signs each delivery with HMAC-SHA1 over the raw body, sent in the
X-Loyverse-Signature header. Both base64 and hex encodings are accepted.
"""
import base64
import hashlib
import hmac
import logging
from typing import Optional

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-loyverse-signature"


def validate_loyverse_signature(
    secret: str,
    signature: Optional[str],
    body: bytes,
) -> bool:
    """
    Validate a Loyverse HMAC-SHA1 webhook signature.
    Returns True if valid, False if invalid, missing, or on error.
    """
    if not secret or not signature:
        return False

    try:
        digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha1).digest()
    except Exception as e:
        logger.error("HMAC-SHA1 validation error: %s", str(e))
        return False

    sig = signature.strip()
    if sig.startswith("sha1="):
        sig = sig[len("sha1="):]

    expected_b64 = base64.b64encode(digest).decode("ascii")
    if hmac.compare_digest(expected_b64, sig):
        return True
    return hmac.compare_digest(digest.hex(), sig.lower())


def verify_loyverse_request(headers, body: bytes) -> bool:
    """
    Check the signature of an inbound Loyverse delivery against settings.
    Returns True when enforcement is off or no secret is configured.
    """
    from azura_pos.config import get_settings
    settings = get_settings()

    if not settings.loyverse_enforce_signature:
        return True

    if not settings.loyverse_webhook_secret:
        logger.warning(
            "LOYVERSE_ENFORCE_SIGNATURE is on but LOYVERSE_WEBHOOK_SECRET is not set - "
            "accepting webhook without signature verification."
        )
        return True

    signature = headers.get(SIGNATURE_HEADER, "")
    return validate_loyverse_signature(settings.loyverse_webhook_secret, signature, body)
