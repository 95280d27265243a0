"""
PayMongo REST client and webhook signature verification.
"""
import hashlib
import hmac
import logging
from typing import Any, Dict, Optional
import httpx
from app.core.config import settings
from app.services.errors import PaymentProviderError

logger = logging.getLogger(__name__)

PAYMENT_METHODS_ALLOWED = ["card", "gcash", "paymaya", "grab_pay"]


def create_payment_intent(
    amount: int,
    currency: str,
    metadata: Optional[Dict[str, Any]] = None,
    description: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a PayMongo payment intent.

    Returns the `data` resource: `{"id": "pi_...", "attributes": {"client_key": ..., ...}}`.
    """
    if not settings.PAYMONGO_SECRET_KEY:
        raise PaymentProviderError("paymongo", "PAYMONGO_SECRET_KEY is not configured")

    attributes: Dict[str, Any] = {
        "amount": amount,
        "currency": currency.upper(),
        "payment_method_allowed": PAYMENT_METHODS_ALLOWED,
        "capture_type": "automatic",
        # PayMongo only accepts string metadata values
        "metadata": {k: str(v) for k, v in (metadata or {}).items()},
    }
    if description:
        attributes["description"] = description

    try:
        response = httpx.post(
            f"{settings.PAYMONGO_API_BASE}/payment_intents",
            json={"data": {"attributes": attributes}},
            auth=(settings.PAYMONGO_SECRET_KEY, ""),
            timeout=15.0,
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error("[PAYMONGO] Payment intent creation failed: %s %s", e.response.status_code, e.response.text)
        raise PaymentProviderError("paymongo", f"Payment intent creation failed ({e.response.status_code})")
    except httpx.HTTPError as e:
        logger.error("[PAYMONGO] Could not reach PayMongo: %s", e)
        raise PaymentProviderError("paymongo", "Could not reach PayMongo")

    return response.json()["data"]


def _parse_signature_header(header: str) -> Dict[str, str]:
    parts: Dict[str, str] = {}
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if sep:
            parts[key] = value
    return parts


def verify_webhook_signature(payload: bytes, header: Optional[str], secret: str) -> bool:
    """
    Verify a `paymongo-signature` header: `t=<timestamp>,te=<test sig>,li=<live sig>`.

    The signature is the hex HMAC-SHA256 of `<timestamp>.<raw body>` keyed by
    the webhook secret. A match on either the test or the live signature is
    accepted.
    """
    if not header:
        return False
    parts = _parse_signature_header(header)
    timestamp = parts.get("t")
    if not timestamp:
        return False

    signed = timestamp.encode("utf-8") + b"." + payload
    expected = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()

    for key in ("te", "li"):
        candidate = parts.get(key)
        if candidate and hmac.compare_digest(expected, candidate):
            return True
    return False
