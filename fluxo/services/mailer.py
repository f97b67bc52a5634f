"""
Mail delivery: templated outbound email through an HTTP relay.

Mail is a side effect of state changes that have already been recorded.
A failed send never raises into the caller: senders return a
``MailResult`` and the calling service turns a failure into a soft
warning on its response.
"""

import html
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from ..core.config import Settings, get_settings


logger = logging.getLogger(__name__)


# =============================================================================
# TEMPLATES
# =============================================================================


@dataclass(frozen=True)
class MailTemplate:
    subject: str
    html: str

    def render(self, variables: dict[str, Any]) -> tuple[str, str]:
        escaped = {key: html.escape(str(value)) for key, value in variables.items()}
        return self.subject.format_map(variables), self.html.format_map(escaped)


_LAYOUT = """
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;
             line-height: 1.6; color: #374151; max-width: 600px; margin: 0 auto; padding: 20px;">
{body}
    <hr style="border: none; border-top: 1px solid #E5E7EB; margin: 24px 0;">
    <p style="color: #9CA3AF; font-size: 12px;">Sent by Fluxo.</p>
</body>
</html>
"""


def _layout(body: str) -> str:
    return _LAYOUT.replace("{body}", body)


TEMPLATES: dict[str, MailTemplate] = {
    "access_approved": MailTemplate(
        subject="Welcome to Fluxo - Your Access Has Been Approved!",
        html=_layout("""
    <h1 style="font-size: 20px;">Welcome to Fluxo, {name}!</h1>
    <p>Your request for access has been approved. Sign in with:</p>
    <p><strong>Email:</strong> {email}<br><strong>Password:</strong> {password}</p>
    <p>Please change your password after your first sign-in.</p>
    <p><a href="{login_url}">Sign in to Fluxo</a></p>
"""),
    ),
    "account_approved": MailTemplate(
        subject="Your Fluxo Account is Approved!",
        html=_layout("""
    <h1 style="font-size: 20px;">You're in, {name}!</h1>
    <p>An administrator approved your account. You can now sign in.</p>
    <p><a href="{login_url}">Sign in to Fluxo</a></p>
"""),
    ),
    "access_request_received": MailTemplate(
        subject="New access request from {name}",
        html=_layout("""
    <h1 style="font-size: 20px;">New access request</h1>
    <p><strong>{name}</strong> ({email}) from {company} asked for access.</p>
    <p>{message}</p>
    <p><a href="{review_url}">Review requests</a></p>
"""),
    ),
    "workspace_invitation": MailTemplate(
        subject="You're invited to join {workspace_name}",
        html=_layout("""
    <h1 style="font-size: 20px;">Join {workspace_name} on Fluxo</h1>
    <p>{inviter_name} invited you to join <strong>{workspace_name}</strong> as {role}.</p>
    <p><a href="{accept_url}">Accept invitation</a></p>
    <p style="color: #6B7280;">This link expires on {expires_at}.</p>
"""),
    ),
}


# =============================================================================
# SENDERS
# =============================================================================


@dataclass
class MailResult:
    success: bool
    error: str | None = None


class MailSender(ABC):
    """Abstract outbound mail collaborator."""

    @abstractmethod
    async def send(
        self,
        template: str,
        recipient_email: str,
        variables: dict[str, Any],
    ) -> MailResult:
        pass

    def render(self, template: str, variables: dict[str, Any]) -> tuple[str, str]:
        try:
            mail_template = TEMPLATES[template]
        except KeyError:
            raise ValueError(f"Unknown mail template: {template}") from None
        return mail_template.render(variables)


class LoggingMailSender(MailSender):
    """Logs mail instead of sending it. Used when no relay is configured."""

    async def send(
        self,
        template: str,
        recipient_email: str,
        variables: dict[str, Any],
    ) -> MailResult:
        subject, _ = self.render(template, variables)
        logger.info(f"[EMAIL] To: {recipient_email}, Subject: {subject}, Template: {template}")
        return MailResult(success=True)


class WebhookMailSender(MailSender):
    """Posts rendered mail to an HTTP relay (e.g. an Apps Script endpoint)."""

    def __init__(
        self,
        url: str,
        secret: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._url = url
        self._secret = secret
        self._timeout = timeout
        self._transport = transport

    async def send(
        self,
        template: str,
        recipient_email: str,
        variables: dict[str, Any],
    ) -> MailResult:
        subject, html_body = self.render(template, variables)
        payload = {
            "secret": self._secret,
            "to": recipient_email,
            "subject": subject,
            "htmlBody": html_body,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, json=payload)
                response.raise_for_status()
                body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            error = f"Mail relay request failed: {e}"
            logger.warning(f"{error} (to={recipient_email}, template={template})")
            return MailResult(success=False, error=error)

        if not isinstance(body, dict):
            error = f"Mail relay returned an unexpected response: {body!r}"
            logger.warning(f"{error} (to={recipient_email}, template={template})")
            return MailResult(success=False, error=error)

        if not body.get("success"):
            error = f"Mail relay rejected message: {body.get('error', 'unknown error')}"
            logger.warning(f"{error} (to={recipient_email}, template={template})")
            return MailResult(success=False, error=error)

        logger.info(f"[EMAIL] Sent '{subject}' to {recipient_email}")
        return MailResult(success=True)


def build_mail_sender(settings: Settings | None = None) -> MailSender:
    settings = settings or get_settings()
    if settings.mail_enabled:
        return WebhookMailSender(
            url=settings.mail_webhook_url,
            secret=settings.mail_webhook_secret,
            timeout=settings.mail_timeout_seconds,
        )
    return LoggingMailSender()


def get_mail_sender() -> MailSender:
    """FastAPI dependency returning the configured mail sender."""
    return build_mail_sender()


async def send_mail(
    sender: MailSender,
    template: str,
    recipient_email: str,
    variables: dict[str, Any],
    warnings: list[str],
) -> bool:
    """Send one mail, recording a soft warning on failure."""
    result = await sender.send(template, recipient_email, variables)
    if not result.success:
        warnings.append(f"Email to {recipient_email} could not be sent: {result.error}")
    return result.success
