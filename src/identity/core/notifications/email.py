"""Email delivery using the Resend API.

The rest of the application treats this module as a black-box ``send(message)``
capability: callers build an :class:`EmailMessage` and get back whether it was
handed to the provider.
"""

import html
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from datetime import datetime

import resend

from src.identity.core.config import get_settings
from src.identity.core.logging import get_logger, mask_email

logger = get_logger(__name__)

# Thread pool for email sending with timeout support
_email_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="email_sender")

_BODY_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;"
)
_BUTTON_STYLE = (
    "background-color: #2563eb; color: white; padding: 12px 24px; "
    "text-decoration: none; border-radius: 6px; display: inline-block; font-weight: 500;"
)
_MUTED_STYLE = "color: #666; font-size: 14px;"


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str
    kind: str


def send_email(message: EmailMessage) -> bool:
    """Hand a message to the email provider.

    Returns:
        True if the email was sent (or logged in dev mode), False on error.
    """
    settings = get_settings()

    if not settings.resend_api_key:
        logger.warning(
            "RESEND_API_KEY not set - email not sent",
            to=mask_email(message.to),
            email_type=message.kind,
        )
        return True

    resend.api_key = settings.resend_api_key

    def _send() -> None:
        resend.Emails.send(
            {
                "from": settings.email_from,
                "to": [message.to],
                "subject": message.subject,
                "html": message.html,
            }
        )

    try:
        future = _email_executor.submit(_send)
        future.result(timeout=settings.email_send_timeout_seconds)
        logger.info("Email sent", to=mask_email(message.to), email_type=message.kind)
        return True
    except FuturesTimeoutError:
        logger.error(
            "Email send timed out",
            to=mask_email(message.to),
            timeout=settings.email_send_timeout_seconds,
        )
        return False
    except Exception as e:
        logger.error(
            "Failed to send email",
            to=mask_email(message.to),
            email_type=message.kind,
            error=str(e),
        )
        return False


def send_invitation_email(to: str, token: str, role: str, expires_at: datetime) -> bool:
    """Send a registration invitation carrying the single-use token."""
    settings = get_settings()
    register_url = f"{settings.app_url}/register?token={token}"
    message = EmailMessage(
        to=to,
        subject=f"You've been invited to join {settings.app_name}",
        html=_get_invitation_email_html(settings.app_name, role, register_url, expires_at),
        kind="invitation",
    )
    return send_email(message)


def send_alumni_decision_email(to: str, first_name: str, approved: bool) -> bool:
    """Tell an identity the outcome of its alumni status request."""
    settings = get_settings()
    message = EmailMessage(
        to=to,
        subject="Your alumni status request",
        html=_get_alumni_decision_email_html(first_name, approved, settings.app_name),
        kind="alumni_decision",
    )
    return send_email(message)


def _get_invitation_email_html(
    app_name: str, role: str, register_url: str, expires_at: datetime
) -> str:
    safe_app_name = html.escape(app_name)
    safe_role = html.escape(role.replace("_", " "))
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="{_BODY_STYLE}">
    <h1 style="color: #2563eb; margin-bottom: 24px;">You're invited!</h1>
    <p>You have been invited to join <strong>{safe_app_name}</strong>
    as <strong>{safe_role}</strong>.</p>
    <p style="margin: 32px 0;">
        <a href="{register_url}" style="{_BUTTON_STYLE}">Create your account</a>
    </p>
    <p style="{_MUTED_STYLE} margin-top: 32px;">
        This invitation expires on {expires_at:%Y-%m-%d %H:%M} UTC and can be used once.
        If you didn't expect this invitation, you can safely ignore this email.
    </p>
</body>
</html>"""


def _get_alumni_decision_email_html(first_name: str, approved: bool, app_name: str) -> str:
    safe_first_name = html.escape(first_name)
    if approved:
        outcome = "Your alumni status has been confirmed. Alumni features are now available."
    else:
        outcome = "Your alumni status request was not approved. Please contact the board."
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
</head>
<body style="{_BODY_STYLE}">
    <p>Hi {safe_first_name},</p>
    <p>{outcome}</p>
    <p style="margin-top: 32px;">The {html.escape(app_name)} Team</p>
</body>
</html>"""
