"""
Stripe webhook signature verification.

Header format: `t=<unix ts>,v1=<hex hmac>[,v1=...]`. The signed payload is
`"<t>.<raw body>"`, HMAC-SHA256 with the endpoint secret.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from typing import Any

from core import config

DEFAULT_TOLERANCE_S = 300


class SignatureVerificationError(ValueError):
    pass


def webhook_secret() -> str:
    return config.env_str("STRIPE_WEBHOOK_SECRET")


def compute_signature(payload: bytes | str, secret: str, timestamp: int) -> str:
    body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
    signed = f"{timestamp}.{body}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def _parse_header(header: str) -> tuple[int, list[str]]:
    timestamp: int | None = None
    signatures: list[str] = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError as exc:
                raise SignatureVerificationError("Invalid timestamp in signature header.") from exc
        elif key == "v1" and value:
            signatures.append(value)
    if timestamp is None:
        raise SignatureVerificationError("No timestamp in signature header.")
    if not signatures:
        raise SignatureVerificationError("No v1 signature in signature header.")
    return timestamp, signatures


def verify_signature(
    payload: bytes | str,
    header: str,
    secret: str,
    *,
    tolerance: int = DEFAULT_TOLERANCE_S,
    now: int | None = None,
) -> None:
    if not header:
        raise SignatureVerificationError("Missing signature header.")
    timestamp, signatures = _parse_header(header)

    expected = compute_signature(payload, secret, timestamp)
    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise SignatureVerificationError("Signature mismatch.")

    current = int(time.time()) if now is None else now
    if tolerance and abs(current - timestamp) > tolerance:
        raise SignatureVerificationError("Timestamp outside the tolerance zone.")


def construct_event(
    payload: bytes | str,
    header: str,
    secret: str,
    *,
    tolerance: int = DEFAULT_TOLERANCE_S,
    now: int | None = None,
) -> dict[str, Any]:
    verify_signature(payload, header, secret, tolerance=tolerance, now=now)
    try:
        event = json.loads(payload)
    except ValueError as exc:
        raise SignatureVerificationError("Webhook payload is not valid JSON.") from exc
    if not isinstance(event, dict) or "type" not in event:
        raise SignatureVerificationError("Webhook payload is not an event.")
    return event
