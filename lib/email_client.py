# =============================================================================
# lib/email_client.py - Transactional Email (Resend)
# =============================================================================
# Thin wrapper over the Resend HTTP API used for invitations, digests and
# the contact form. Sending never raises on provider errors; callers get an
# EmailResult and decide whether a failure is fatal.
#
# Usage:
#   from lib.email_client import EmailClient
#   result = EmailClient.send(to="a@b.c", subject="Hi", text="...")
#   if not result.sent:
#       logger.error(result.error)
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

DEFAULT_SENDER_NAME = "Scene Mapper"
SEND_TIMEOUT_SECONDS = 10


@dataclass
class EmailResult:
    """Outcome of one send attempt."""
    sent: bool
    error: str | None = None


class EmailClient:
    """Sends plain-text email through Resend."""

    @staticmethod
    def format_sender(display_name: str | None = None) -> str:
        """
        Build the From header. Only the display name varies per map; the
        address stays the configured one.
        """
        return f"{display_name or DEFAULT_SENDER_NAME} <{settings.RESEND_FROM_EMAIL}>"

    @staticmethod
    def send(
        to: str,
        subject: str,
        text: str,
        sender_name: str | None = None,
        reply_to: str | None = None,
    ) -> EmailResult:
        """
        Send one email.

        Args:
            to: Recipient address
            subject: Subject line
            text: Plain-text body
            sender_name: Display name for the From header
            reply_to: Optional Reply-To address

        Returns:
            EmailResult with sent=False and an error message when email is not
            configured or the provider rejects the request
        """
        if not settings.email_enabled:
            return EmailResult(sent=False, error="RESEND_API_KEY not configured")

        payload = {
            "from": EmailClient.format_sender(sender_name),
            "to": [to],
            "subject": subject,
            "text": text,
        }
        if reply_to:
            payload["reply_to"] = reply_to

        try:
            response = httpx.post(
                settings.RESEND_API_URL,
                json=payload,
                headers={"Authorization": f"Bearer {settings.RESEND_API_KEY}"},
                timeout=SEND_TIMEOUT_SECONDS,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Email request to {to} failed: {e}")
            return EmailResult(sent=False, error=str(e))

        if response.is_success:
            logger.debug(f"Sent email '{subject}' to {to}")
            return EmailResult(sent=True)

        try:
            message = response.json().get("message")
        except ValueError:
            message = None
        return EmailResult(sent=False, error=message or response.reason_phrase)
