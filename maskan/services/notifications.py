"""
Notification gateway for account emails and WhatsApp listing broadcasts.
Senders wrap every delivery failure in NotificationError; callers decide its weight.
"""

from email.message import EmailMessage
from typing import Any, Mapping, Optional
import asyncio
import logging
import smtplib
import ssl

from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioClient

from maskan.config import Settings
from maskan.utils.exceptions import NotificationError

logger = logging.getLogger(__name__)


class EmailSender:
    """
    Sends plain-text email through SMTP, or logs it with the console backend.
    """

    channel = "email"

    def __init__(self, settings: Settings):
        self.backend = settings.email_backend
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.user = settings.smtp_user
        self.password = settings.smtp_password
        self.sender = settings.smtp_from or settings.smtp_user
        self.timeout = settings.smtp_timeout_seconds

    async def send(self, to: str, subject: str, text: str) -> None:
        """
        Deliver one message.

        Raises:
            NotificationError: If the recipient is unusable or delivery fails
        """
        to = (to or "").strip()
        if not to or "@" not in to:
            raise NotificationError(self.channel, "invalid recipient address")

        if self.backend == "console":
            logger.info(f"EMAIL_BACKEND=console: to={to} subject={subject}\n{text}")
            return

        try:
            await asyncio.to_thread(self._send_via_smtp, to, subject, text)
        except NotificationError:
            raise
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(self.channel, str(e)) from e

        logger.info(f"Email sent to {to}: {subject}")

    def _send_via_smtp(self, to: str, subject: str, text: str) -> None:
        if not self.host:
            raise NotificationError(self.channel, "SMTP_HOST not configured")
        if not self.sender:
            raise NotificationError(self.channel, "SMTP_FROM not configured")

        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text)

        if self.port == 465:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout, context=context) as smtp:
                if self.user and self.password:
                    smtp.login(self.user, self.password)
                smtp.send_message(msg)
            return

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.ehlo()
            if smtp.has_extn("starttls"):
                smtp.starttls(context=ssl.create_default_context())
                smtp.ehlo()
            if self.user and self.password:
                smtp.login(self.user, self.password)
            smtp.send_message(msg)


class WhatsAppSender:
    """Sends WhatsApp messages through Twilio, or logs them with the console backend."""

    channel = "whatsapp"

    def __init__(self, settings: Settings, client: Optional[TwilioClient] = None):
        self.backend = settings.whatsapp_backend
        self.from_number = settings.twilio_whatsapp_number
        self._client = client
        self._account_sid = settings.twilio_account_sid
        self._auth_token = settings.twilio_auth_token

    @staticmethod
    def whatsapp_address(number: str) -> str:
        number = number.strip()
        return number if number.startswith("whatsapp:") else f"whatsapp:{number}"

    def _get_client(self) -> TwilioClient:
        if self._client is None:
            if not (self._account_sid and self._auth_token):
                raise NotificationError(self.channel, "Twilio credentials not configured")
            self._client = TwilioClient(self._account_sid, self._auth_token)
        return self._client

    async def send(self, to: str, body: str) -> None:
        """
        Deliver one WhatsApp message.

        Raises:
            NotificationError: If the number is missing or Twilio rejects the message
        """
        to = (to or "").strip()
        if not to:
            raise NotificationError(self.channel, "no destination number")

        if self.backend == "console":
            logger.info(f"WHATSAPP_BACKEND=console: to={to}\n{body}")
            return

        if not self.from_number:
            raise NotificationError(self.channel, "TWILIO_WHATSAPP_NUMBER not configured")

        client = self._get_client()
        try:
            message = await asyncio.to_thread(
                client.messages.create,
                from_=self.whatsapp_address(self.from_number),
                to=self.whatsapp_address(to),
                body=body,
            )
        except TwilioException as e:
            raise NotificationError(self.channel, str(e)) from e
        except OSError as e:
            raise NotificationError(self.channel, str(e)) from e

        logger.info(f"WhatsApp message {getattr(message, 'sid', '')} sent to {to}")


def verification_email(frontend_url: str, token: str) -> tuple:
    url = f"{frontend_url.rstrip('/')}/verify/{token}"
    return (
        "Email Verification from MASKAN",
        f"Please verify your profile by clicking the following link: {url}",
    )


def password_reset_email(frontend_url: str, token: str) -> tuple:
    url = f"{frontend_url.rstrip('/')}/reset-password/{token}"
    return (
        "Password Reset Request",
        f"You requested a password reset. Click the link to reset your password: {url}",
    )


def listing_broadcast(listing: Mapping[str, Any]) -> str:
    """Plain-text summary of a listing for a WhatsApp broadcast."""
    return (
        "Property Details:\n\n"
        f"Title: {listing.get('title', '')}\n"
        f"Price: {listing.get('price', '')}\n"
        f"City: {listing.get('city', '')}\n"
        f"Location: {listing.get('location', '')}\n"
        f"Property Type: {listing.get('property_type', '')}\n"
        f"Beds: {listing.get('beds', '')}\n"
    )
