"""Email sending service.

Supports three backends:
- Mailgun HTTP API via httpx (production)
- SMTP via aiosmtplib
- Log-only (development / testing) — logs the email instead of sending

Set EMAIL_BACKEND=mailgun (MAILGUN_*) or EMAIL_BACKEND=smtp (SMTP_*) for
production. Default is EMAIL_BACKEND=log which just logs the message.
"""

import logging
from functools import lru_cache
from typing import Protocol

import httpx

from echo_api.config import settings
from echo_api.services import email_templates

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """The transport refused or failed to deliver a message."""


class EmailSender(Protocol):
    async def send(self, to: str, subject: str, html: str) -> str | None: ...


class LogEmailSender:
    """Development sender — logs email content instead of sending."""

    async def send(self, to: str, subject: str, html: str) -> str | None:
        logger.info("EMAIL to=%s subject=%s\n%s", to, subject, html)
        return None


class SmtpEmailSender:
    """Sends via SMTP."""

    async def send(self, to: str, subject: str, html: str) -> str | None:
        import aiosmtplib
        from email.message import EmailMessage

        msg = EmailMessage()
        msg["From"] = settings.from_email
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML-capable email client.")
        msg.add_alternative(html, subtype="html")

        try:
            await aiosmtplib.send(
                msg,
                hostname=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_username or None,
                password=settings.smtp_password or None,
                use_tls=settings.smtp_use_tls,
                timeout=settings.email_timeout_seconds,
            )
        except aiosmtplib.SMTPException as e:
            raise EmailDeliveryError(f"SMTP delivery to {to} failed: {e}") from e
        return None


class MailgunEmailSender:
    """Sends through the Mailgun messages API. Returns the Mailgun message id."""

    def __init__(
        self,
        api_key: str,
        domain: str,
        api_url: str = "https://api.mailgun.net/v3",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.domain = domain
        self.api_url = api_url.rstrip("/")
        self._transport = transport

    async def send(self, to: str, subject: str, html: str) -> str | None:
        async with httpx.AsyncClient(
            timeout=settings.email_timeout_seconds, transport=self._transport
        ) as client:
            try:
                resp = await client.post(
                    f"{self.api_url}/{self.domain}/messages",
                    auth=("api", self.api_key),
                    data={
                        "from": settings.from_email,
                        "to": to,
                        "subject": subject,
                        "html": html,
                    },
                )
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                # InvalidURL (bad domain / api_url) is not an HTTPError subclass
                raise EmailDeliveryError(f"Mailgun request failed: {e}") from e

        if resp.status_code >= 400:
            raise EmailDeliveryError(
                f"Mailgun rejected message to {to}: HTTP {resp.status_code}"
            )
        try:
            payload = resp.json()
        except ValueError:
            return None
        if not isinstance(payload, dict):
            return None
        message_id = payload.get("id")
        return str(message_id) if message_id is not None else None


class Notifier:
    """Builds account emails and hands them to an ``EmailSender``."""

    def __init__(self, sender: EmailSender) -> None:
        self.sender = sender

    async def send_verification_email(self, to: str, username: str, token: str) -> str | None:
        url = f"{settings.verify_email_url}?token={token}"
        html = email_templates.verification_email(
            settings.app_name, username, url, settings.verification_token_ttl_hours
        )
        message_id = await self._send(to, f"Verify your {settings.app_name} account", html)
        logger.info("Verification email sent to %s", to)
        return message_id

    async def send_password_reset_email(self, to: str, username: str, token: str) -> str | None:
        url = f"{settings.reset_password_url}?token={token}"
        html = email_templates.password_reset_email(
            settings.app_name, username, url, settings.password_reset_ttl_hours
        )
        message_id = await self._send(to, f"Reset your {settings.app_name} password", html)
        logger.info("Password reset email sent to %s", to)
        return message_id

    async def _send(self, to: str, subject: str, html: str) -> str | None:
        try:
            return await self.sender.send(to=to, subject=subject, html=html)
        except EmailDeliveryError:
            logger.exception("Error sending email to %s", to)
            raise


def get_email_sender() -> EmailSender:
    if settings.email_backend == "mailgun":
        return MailgunEmailSender(
            api_key=settings.mailgun_api_key,
            domain=settings.mailgun_domain,
            api_url=settings.mailgun_api_url,
        )
    if settings.email_backend == "smtp":
        return SmtpEmailSender()
    return LogEmailSender()


@lru_cache
def get_notifier() -> Notifier:
    """Process-wide notifier, built on first use and injected into handlers."""
    return Notifier(get_email_sender())
