"""
Partner invitation and notification email through Resend.

Without ``RESEND_API_KEY`` nothing is sent and the invitation link is logged,
which is how local development accepts invitations.
"""

import asyncio
import html
import logging

import resend

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

PERMISSION_LABELS = {
    "read": "View only",
    "write": "View and edit",
}

_LAYOUT = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><meta name="viewport" content="width=device-width, initial-scale=1.0"></head>
<body style="font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; background: #F3F4F6; padding: 32px 16px;">
  <div style="max-width: 560px; margin: 0 auto; background: #FFFFFF; border-radius: 12px; padding: 32px;">
    <p style="color: #111827; font-size: 20px; font-weight: 600; margin: 0 0 24px;">BuildTrack</p>
    {body}
    <p style="color: #9CA3AF; font-size: 12px; margin-top: 32px;">{footer}</p>
  </div>
</body>
</html>"""


def _button(url: str, label: str) -> str:
    return (
        f'<p style="margin: 28px 0;"><a href="{html.escape(url, quote=True)}" '
        'style="background: #2563EB; color: #FFFFFF; padding: 12px 28px; '
        f'border-radius: 8px; text-decoration: none;">{label}</a></p>'
    )


class ResendEmailService:
    def __init__(self):
        if settings.resend_api_key:
            resend.api_key = settings.resend_api_key
        self._from_email = settings.resend_from_email
        self._frontend_url = settings.frontend_url.rstrip("/")

    @property
    def is_configured(self) -> bool:
        return bool(settings.resend_api_key)

    def invitation_url(self, token: str) -> str:
        return f"{self._frontend_url}/invitations/accept?token={token}"

    async def _send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        try:
            # The Resend SDK is synchronous
            await asyncio.to_thread(
                resend.Emails.send,
                {
                    "from": self._from_email,
                    "to": to_email,
                    "subject": subject,
                    "html": html_body,
                    "text": text_body,
                },
            )
            return True
        except Exception as e:
            logger.error("Failed to send '%s' to %s: %s", subject, to_email, e)
            return False

    async def send_partner_invitation_email(
        self,
        to_email: str,
        inviter_name: str,
        project_name: str,
        permission: str,
        invitation_token: str,
        expires_in_days: int = 7,
    ) -> bool:
        """
        Email a project invitation link.

        Returns:
            False when Resend rejected the message. Callers treat the email as
            best effort; the invitation row already exists.
        """
        url = self.invitation_url(invitation_token)
        if not self.is_configured:
            logger.info("[DEV] Partner invitation for %s: %s", to_email, url)
            return True

        access = PERMISSION_LABELS.get(permission, permission.title())
        subject = f"{inviter_name} invited you to {project_name} on BuildTrack"
        body = (
            f"<p>{html.escape(inviter_name)} has invited you to collaborate on "
            f"<strong>{html.escape(project_name)}</strong>.</p>"
            f"<p>Access: {access}</p>"
            + _button(url, "Accept invitation")
            + "<p>New to BuildTrack? You'll be asked to create an account first.</p>"
        )
        footer = (
            f"This invitation expires in {expires_in_days} days. "
            "If you weren't expecting it, you can ignore this email."
        )
        text = (
            f"{inviter_name} has invited you to collaborate on {project_name} ({access}).\n\n"
            f"Accept the invitation: {url}\n\n{footer}\n"
        )
        return await self._send(to_email, subject, _LAYOUT.format(body=body, footer=footer), text)

    def unsubscribe_url(self, token: str) -> str:
        return f"{self._frontend_url}/notifications/unsubscribe?token={token}"

    async def send_notification_email(
        self,
        to_email: str,
        project_name: str,
        message: str,
        unsubscribe_token: str,
    ) -> bool:
        """Email one project activity notification with an unsubscribe footer."""
        url = self.unsubscribe_url(unsubscribe_token)
        if not self.is_configured:
            logger.info("[DEV] Notification email for %s: %s", to_email, message)
            return True

        subject = f"{project_name}: {message}"
        body = f"<p>{html.escape(message)}</p>"
        footer = (
            "You receive these emails because notifications are on for this project. "
            f'<a href="{html.escape(url, quote=True)}">Unsubscribe</a>'
        )
        text = f"{message}\n\nUnsubscribe: {url}\n"
        return await self._send(to_email, subject, _LAYOUT.format(body=body, footer=footer), text)


email_service = ResendEmailService()
