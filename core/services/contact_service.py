# =============================================================================
# core/services/contact_service.py - Contact Form
# =============================================================================

import logging
from typing import Any

from app.config import settings
from app.exceptions import EmailDeliveryError, ServiceNotConfiguredError, ValidationFailedError
from lib.email_client import EmailClient

logger = logging.getLogger(__name__)

CONTACT_SENDER_NAME = "Scene Mapper Contact"


class ContactService:
    """Relay contact form messages to the site owner."""

    @staticmethod
    def send_message(name: str, email: str, subject: str, body: str) -> dict[str, Any]:
        """
        Forward a contact form message. Replies go straight to the sender.

        Raises:
            ValidationFailedError: If any field is blank
            ServiceNotConfiguredError: If email is not configured
            EmailDeliveryError: If the provider rejects the message
        """
        name, email, subject, body = (v.strip() for v in (name, email, subject, body))
        if not (name and email and subject and body):
            raise ValidationFailedError("Name, email, subject, and message are required")

        if not settings.email_enabled:
            raise ServiceNotConfiguredError(
                "Contact form is not configured. Please try again later or email us directly.",
                "RESEND_API_KEY",
            )

        result = EmailClient.send(
            to=settings.CONTACT_EMAIL or settings.RESEND_FROM_EMAIL,
            subject=f"[Contact] {subject}",
            text=f"From: {name} <{email}>\nSubject: {subject}\n\n{body}",
            sender_name=CONTACT_SENDER_NAME,
            reply_to=email,
        )
        if not result.sent:
            logger.error(f"Contact message from {email} failed: {result.error}")
            raise EmailDeliveryError(result.error or "")

        logger.info(f"Contact message from {email} delivered")
        return {"success": True}
