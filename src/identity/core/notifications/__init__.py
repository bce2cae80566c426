"""Notification utilities - email."""

from src.identity.core.notifications.email import (
    EmailMessage,
    send_alumni_decision_email,
    send_email,
    send_invitation_email,
)

__all__ = [
    "EmailMessage",
    "send_alumni_decision_email",
    "send_email",
    "send_invitation_email",
]
