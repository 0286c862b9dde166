"""Email service using the SendGrid v3 API."""
import html
import logging
from typing import Optional

import httpx

from splarve.config.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class EmailService:
    """Sends invitation and welcome emails. Never raises on delivery failure."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[httpx.Client] = None):
        self.settings = settings or default_settings
        self.api_key = self.settings.sendgrid_api_key
        self.from_email = self.settings.sendgrid_from_email
        self.site_url = self.settings.site_url.rstrip("/")
        self._client = client

    def is_configured(self) -> bool:
        """Check if email service is properly configured."""
        return bool(self.api_key)

    def _send(self, to_email: str, subject: str, text: str, html: str) -> bool:
        if not self.is_configured():
            logger.warning(f"SendGrid API key not configured, skipping email to {to_email}")
            return False

        payload = {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {"email": self.from_email},
            "subject": subject,
            "content": [
                {"type": "text/plain", "value": text},
                {"type": "text/html", "value": html},
            ],
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            if self._client is not None:
                response = self._client.post(self.settings.sendgrid_api_url, json=payload, headers=headers)
            else:
                with httpx.Client(timeout=self.settings.email_timeout_seconds) as client:
                    response = client.post(self.settings.sendgrid_api_url, json=payload, headers=headers)
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.error(f"Error sending email '{subject}' to {to_email}: {e}")
            return False

    def send_invitation_email(
        self,
        recipient_email: str,
        inviter_name: str,
        company_name: str,
        company_handle: str,
        role: str,
        message: Optional[str],
        invitation_id: str,
    ) -> bool:
        """Send a company invitation. Returns True if sent successfully, False otherwise."""
        invite_url = f"{self.site_url}/auth/accept_invite?invitation={invitation_id}"
        company_url = f"{self.site_url}/companies/{company_handle}"
        message_text = f'\n\nPersonal message from {inviter_name}:\n"{message}"' if message else ""
        safe = {key: html.escape(value or "") for key, value in {
            "inviter": inviter_name,
            "company": company_name,
            "role": role,
            "message": message,
            "invite_url": invite_url,
            "company_url": company_url,
        }.items()}
        message_html = (
            f"<blockquote>{safe['message']}</blockquote><p>- {safe['inviter']}</p>" if message else ""
        )

        text = (
            f"Hello,\n\n{inviter_name} has invited you to join {company_name} on Splarve "
            f"as {role}.{message_text}\n\n"
            f"Accept the invitation: {invite_url}\n"
            f"About {company_name}: {company_url}\n\n"
            f"This invitation expires in {self.settings.invitation_ttl_days} days."
        )
        body = f"""
<!DOCTYPE html>
<html>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; color: #333;">
    <p>Hello,</p>
    <p><strong>{safe['inviter']}</strong> has invited you to join <strong>{safe['company']}</strong> on Splarve as <strong>{safe['role']}</strong>.</p>
    {message_html}
    <p><a href="{safe['invite_url']}">Accept invitation</a></p>
    <p><a href="{safe['company_url']}">About {safe['company']}</a></p>
    <p style="color: #6b7280; font-size: 12px;">This invitation expires in {self.settings.invitation_ttl_days} days.</p>
</body>
</html>
"""
        return self._send(recipient_email, f"You've been invited to join {company_name} on Splarve", text, body)

    def send_welcome_email(self, user_name: str, user_email: str, account_type: str) -> bool:
        """Send the post sign-up welcome email. Returns True if sent successfully, False otherwise."""
        dashboard_url = f"{self.site_url}/dashboard/{account_type}"
        if account_type == "personal":
            next_step = "start your job search and discover opportunities that match your skills and interests"
        else:
            next_step = "build your employer brand and find the best talent for your team"

        text = (
            f"Hello {user_name},\n\nWelcome to Splarve! We're excited to have you join our platform.\n\n"
            f"You've successfully created a {account_type} account. You can now {next_step}.\n\n"
            f"Visit your dashboard to get started: {dashboard_url}\n\nBest regards,\nThe Splarve Team"
        )
        body = f"""
<!DOCTYPE html>
<html>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; color: #333;">
    <p>Hello {html.escape(user_name)},</p>
    <p>Welcome to Splarve! You've successfully created a {account_type} account. You can now {next_step}.</p>
    <p><a href="{dashboard_url}">Go to your dashboard</a></p>
    <p>Best regards,<br>The Splarve Team</p>
</body>
</html>
"""
        return self._send(user_email, f"Welcome to Splarve, {user_name}!", text, body)
