from __future__ import annotations

import hmac
import logging
from datetime import datetime


logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Signature-256"
TIMESTAMP_HEADER = "X-Event-Timestamp"


def _digest(secret: str, timestamp: int, body: bytes) -> str:
    signed = f"{timestamp}.".encode("utf-8") + body
    return hmac.new(secret.encode("utf-8"), signed, "sha256").hexdigest()


def sign_event(body: bytes, secret: str, timestamp: int) -> str:
    """Signature header value for an event body sent at `timestamp` (unix seconds)."""
    return "sha256=" + _digest(secret, timestamp, body)


def verify_event_signature(
    body: bytes,
    signature_header: str | None,
    timestamp_header: str | None,
    secret: str | None,
    env: str,
    now: datetime,
    tolerance_seconds: int = 300,
) -> bool:
    if not signature_header:
        if env.lower() in {"dev", "local"}:
            logger.warning("Missing signature header; accepting in dev mode")
            return True
        return False

    if not secret:
        logger.error("Missing events secret for signature verification")
        return False

    try:
        algo, signature = signature_header.split("=", 1)
        timestamp = int(timestamp_header or "")
    except ValueError:
        return False

    if algo.lower() != "sha256":
        return False

    if tolerance_seconds > 0 and abs(now.timestamp() - timestamp) > tolerance_seconds:
        logger.warning("Event timestamp outside tolerance", extra={"reason": f"timestamp={timestamp}"})
        return False

    return hmac.compare_digest(_digest(secret, timestamp, body), signature)
