"""
Transactional email via the Resend REST API.
"""

from __future__ import annotations

import logging

import httpx

from core import config
from core.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)


class ResendError(UpstreamError):
    """Resend rejected the request; `name` is the provider's error name."""

    def __init__(self, message: str, *, name: str | None = None, status_code: int | None = None) -> None:
        super().__init__("resend", message, status_code=status_code)
        self.name = name

    @property
    def is_test_mode_rejection(self) -> bool:
        # Sandbox accounts can only mail the account owner.
        return self.name == "validation_error" and "testing emails" in (self.message or "")


def resend_api_url() -> str:
    return config.env_str("RESEND_API_URL", "https://api.resend.com").rstrip("/")


def resend_api_key() -> str:
    key = config.env_str("RESEND_API_KEY")
    if not key:
        raise ConfigurationError("Resend is not configured.")
    return key


def default_from_address() -> str:
    return config.env_str("EMAIL_FROM", "Dubai Wealth Hub <hello@dubairealestateinvestor.com>")


async def send_email(
    to: str | list[str],
    subject: str,
    html: str,
    *,
    from_address: str | None = None,
    reply_to: str | None = None,
) -> str:
    """
    Send one email and return the provider message id.
    """
    payload: dict = {
        "from": from_address or default_from_address(),
        "to": [to] if isinstance(to, str) else list(to),
        "subject": subject,
        "html": html,
    }
    if reply_to:
        payload["reply_to"] = reply_to

    async with httpx.AsyncClient(base_url=resend_api_url(), timeout=15.0) as client:
        resp = await client.post(
            "/emails",
            json=payload,
            headers={"Authorization": f"Bearer {resend_api_key()}"},
        )

    try:
        data = resp.json()
    except ValueError:
        data = {}

    if resp.status_code >= 400:
        message = str(data.get("message") or resp.text[:500])
        logger.warning("resend_send_failed status=%s name=%s", resp.status_code, data.get("name"))
        raise ResendError(message, name=data.get("name"), status_code=resp.status_code)

    email_id = str(data.get("id") or "")
    logger.info("email_sent id=%s subject=%s", email_id, subject)
    return email_id
