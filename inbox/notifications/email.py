"""Verification email rendering and delivery through an HTTP email provider."""

from __future__ import annotations

import html
import logging

import httpx

from ..config import Settings
from ..domain.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "Your verification code"

_VERIFICATION_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
  <body style="font-family: Verdana, sans-serif;">
    <h2>Hello {username},</h2>
    <p>Thank you for registering. Please use the following verification code to complete your registration:</p>
    <p style="font-size: 24px; letter-spacing: 4px;"><strong>{code}</strong></p>
    <p>The code expires in one hour. If you did not request this code, please ignore this email.</p>
  </body>
</html>
"""


def render_verification_email(username: str, code: str) -> tuple[str, str]:
    """Return the subject and HTML body of the verification email."""
    body = _VERIFICATION_TEMPLATE.format(username=html.escape(username), code=html.escape(code))
    return VERIFICATION_SUBJECT, body


class EmailSender:
    """Sends transactional email through a Resend-compatible ``/emails`` endpoint."""

    def __init__(self, settings: Settings, client: httpx.Client | None = None) -> None:
        self._settings = settings
        self._client = client or httpx.Client(
            base_url=settings.email_api_url,
            timeout=settings.http_timeout_seconds,
        )

    def send_verification_email(self, email: str, username: str, code: str) -> None:
        """Deliver the verification code to ``email``; one attempt, no retries."""
        subject, body = render_verification_email(username, code)
        payload = {
            "from": self._settings.email_from,
            "to": [email],
            "subject": subject,
            "html": body,
        }
        headers = {"Authorization": f"Bearer {self._settings.email_api_key}"}
        try:
            resp = self._client.post("/emails", json=payload, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "email provider rejected verification email status=%s body=%s",
                exc.response.status_code,
                exc.response.text[:300],
            )
            raise UpstreamServiceError("Failed to send verification email") from exc
        except httpx.HTTPError as exc:
            logger.error("email provider unreachable: %s", exc)
            raise UpstreamServiceError("Failed to send verification email") from exc
        logger.info("verification email sent to user=%s", username)

    def close(self) -> None:
        self._client.close()
