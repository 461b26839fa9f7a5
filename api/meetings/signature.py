"""
Meeting SDK join signatures.

The web SDK authenticates with an HS256 JWT signed by the app's SDK secret.
`iat` is backdated 30 seconds to tolerate clock skew between us and the
provider.
"""

from __future__ import annotations

import re
import time

import jwt

from core import config
from core.errors import ConfigurationError

ATTENDEE_ROLE = 0
HOST_ROLE = 1
DEFAULT_EXPIRES_IN_S = 7200
CLOCK_SKEW_S = 30

_SEPARATORS = re.compile(r"[\s-]+")


class InvalidMeetingNumber(ValueError):
    pass


def sdk_credentials() -> tuple[str, str]:
    key = config.env_str("ZOOM_SDK_KEY")
    secret = config.env_str("ZOOM_SDK_SECRET")
    if not key or not secret:
        raise ConfigurationError("Meeting SDK is not configured.")
    return key, secret


def normalize_meeting_number(meeting_number: str | int) -> str:
    cleaned = _SEPARATORS.sub("", str(meeting_number))
    if not cleaned.isdigit():
        raise InvalidMeetingNumber("Meeting number must contain only digits.")
    return cleaned


def generate_signature(
    sdk_key: str,
    sdk_secret: str,
    meeting_number: str | int,
    role: int = ATTENDEE_ROLE,
    *,
    now: float | None = None,
    expires_in: int = DEFAULT_EXPIRES_IN_S,
) -> str:
    if role not in (ATTENDEE_ROLE, HOST_ROLE):
        raise ValueError("role must be 0 (attendee) or 1 (host).")

    issued_at = int(time.time() if now is None else now) - CLOCK_SKEW_S
    expires_at = issued_at + expires_in
    claims = {
        "appKey": sdk_key,
        "sdkKey": sdk_key,
        "mn": normalize_meeting_number(meeting_number),
        "role": role,
        "iat": issued_at,
        "exp": expires_at,
        "tokenExp": expires_at,
    }
    return jwt.encode(claims, sdk_secret, algorithm="HS256")
