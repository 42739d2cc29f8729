"""
Email service with provider abstraction.

Supports Resend (default) and SMTP. Without credentials the ``NullProvider``
logs the attempt and reports failure, so notifications degrade to no-ops.
"""

from __future__ import annotations

import ssl
from abc import ABC, abstractmethod
from collections.abc import Callable
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any

import httpx
import structlog

from academy.config import get_settings
from academy.email.templates import (
    achievement_notification,
    deadline_reminder,
    intel_drop_notification,
    level_up_notification,
    mention_notification,
    reply_notification,
    review_notification,
)

logger = structlog.get_logger()

RESEND_API_URL = "https://api.resend.com/emails"

# Template registry: name -> renderer returning (subject, html_body, text_body)
_TEMPLATE_REGISTRY: dict[str, Callable[..., tuple[str, str, str]]] = {
    "review": review_notification,
    "achievement": achievement_notification,
    "level_up": level_up_notification,
    "deadline_reminder": deadline_reminder,
    "mention": mention_notification,
    "reply": reply_notification,
    "intel_drop": intel_drop_notification,
}


class BaseEmailProvider(ABC):
    """Abstract base class for email delivery providers."""

    name = "base"

    @abstractmethod
    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        """Send an email. Returns True on success."""
        ...


class NullProvider(BaseEmailProvider):
    """Used when no delivery credentials are configured."""

    name = "null"

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        logger.warning("email_not_configured", to=to_email, subject=subject)
        return False


class SMTPProvider(BaseEmailProvider):
    """Send emails via SMTP using aiosmtplib."""

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_address: str,
        from_name: str,
        use_tls: bool = True,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address
        self.from_name = from_name
        self.use_tls = use_tls

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        """Send via SMTP."""
        import aiosmtplib

        msg = MIMEMultipart("alternative")
        msg["From"] = f"{self.from_name} <{self.from_address}>"
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            tls_context = ssl.create_default_context() if self.use_tls else None
            await aiosmtplib.send(
                msg,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
                tls_context=tls_context,
            )
            logger.info("email_sent", to=to_email, subject=subject, provider=self.name)
            return True
        except (aiosmtplib.SMTPException, OSError):
            logger.exception("email_send_failed", to=to_email, provider=self.name)
            return False


class ResendProvider(BaseEmailProvider):
    """Send emails via the Resend HTTP API."""

    name = "resend"

    def __init__(self, api_key: str, from_address: str, from_name: str, timeout: float = 10.0) -> None:
        self.api_key = api_key
        self.from_address = from_address
        self.from_name = from_name
        self.timeout = timeout

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        """Send via Resend HTTP API."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "from": f"{self.from_name} <{self.from_address}>",
                        "to": [to_email],
                        "subject": subject,
                        "html": html_body,
                        "text": text_body,
                    },
                )
                response.raise_for_status()
        except httpx.HTTPError:
            logger.exception("email_send_failed", to=to_email, provider=self.name)
            return False
        logger.info("email_sent", to=to_email, subject=subject, provider=self.name)
        return True


def _create_provider() -> BaseEmailProvider:
    """Create the email provider based on configuration."""
    settings = get_settings()
    provider_name = settings.email_provider.lower()

    if provider_name == "smtp":
        return SMTPProvider(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
            use_tls=settings.smtp_use_tls,
        )
    if provider_name == "resend":
        if not settings.resend_api_key:
            return NullProvider()
        return ResendProvider(
            api_key=settings.resend_api_key,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
        )
    if provider_name in ("none", "null", ""):
        return NullProvider()
    msg = f"Unsupported email provider: {provider_name}"
    raise ValueError(msg)


def render_template(template_name: str, context: dict[str, Any]) -> tuple[str, str, str]:
    """
    Render a registered template.

    Raises:
        ValueError: If the template name is unknown.
    """
    template_func = _TEMPLATE_REGISTRY.get(template_name)
    if template_func is None:
        msg = f"Unknown template: {template_name}"
        raise ValueError(msg)
    context = {"app_url": get_settings().app_url, **context}
    return template_func(**context)


class EmailService:
    """High-level email service: template rendering plus delivery."""

    def __init__(self, provider: BaseEmailProvider | None = None) -> None:
        self.provider = provider or _create_provider()

    async def send_email(self, to: str, subject: str, html_body: str, text_body: str) -> bool:
        return await self.provider.send(to, subject, html_body, text_body)

    async def send_template(self, to: str, template_name: str, context: dict[str, Any]) -> bool:
        """Render a template and send it in a single attempt."""
        subject, html_body, text_body = render_template(template_name, context)
        return await self.send_email(to, subject, html_body, text_body)


# Module-level singleton
_email_service: EmailService | None = None


def get_email_service() -> EmailService:
    """Get or create the email service singleton."""
    global _email_service  # noqa: PLW0603
    if _email_service is None:
        _email_service = EmailService()
    return _email_service


def set_email_service(service: EmailService) -> None:
    """Install a specific service (tests install one with a recording provider)."""
    global _email_service  # noqa: PLW0603
    _email_service = service


def reset_email_service() -> None:
    """Reset the email service singleton (for testing)."""
    global _email_service  # noqa: PLW0603
    _email_service = None
