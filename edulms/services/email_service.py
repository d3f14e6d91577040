#!/usr/bin/env python3
"""
EduLMS - Email Service
======================
Send HTML notification emails via the Resend API or an SMTP relay.

Setup:
1. MAIL_TRANSPORT=resend with RESEND_API_KEY, or
   MAIL_TRANSPORT=smtp with SMTP_HOST / SMTP_PORT / SMTP_USER / SMTP_PASSWORD
2. MAIL_FROM sets the sender (default: EduLMS <noreply@edulms.com>)
"""

import logging
import smtplib
from email.message import EmailMessage

import resend

from edulms.config import config

logger = logging.getLogger(__name__)


class LMSEmailer:
    """Send HTML emails through the configured transport."""

    def __init__(self, settings=None):
        self.settings = settings or config
        self.transport = self.settings.mail_transport
        self.from_email = self.settings.mail_from
        self.available = self._init_transport()

    def _init_transport(self):
        if self.transport == 'smtp':
            return bool(self.settings.smtp_host and self.settings.smtp_user)
        if self.settings.resend_api_key:
            resend.api_key = self.settings.resend_api_key
            return True
        return False

    def send_html(self, to_email: str, subject: str, html: str, reply_to: str = None) -> bool:
        """
        Send a single HTML email.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html: Rendered HTML body
            reply_to: Optional reply-to address

        Returns:
            True if the transport accepted the message
        """
        if not to_email:
            logger.warning("No recipient for '%s', skipping", subject)
            return False

        if not self.available:
            logger.warning("Email transport '%s' not configured, skipping '%s'", self.transport, subject)
            return False

        if self.transport == 'smtp':
            self._send_smtp(to_email, subject, html, reply_to)
            logger.info("Sent '%s' to %s via SMTP", subject, to_email)
            return True

        params = {
            "from": self.from_email,
            "to": [to_email],
            "subject": subject,
            "html": html,
        }
        if reply_to:
            params["reply_to"] = reply_to

        response = resend.Emails.send(params)
        if response and response.get('id'):
            logger.info("Sent '%s' to %s", subject, to_email)
            return True
        logger.error("Failed to send to %s: No response ID", to_email)
        return False

    def _send_smtp(self, to_email, subject, html, reply_to=None):
        msg = EmailMessage()
        msg['From'] = self.from_email
        msg['To'] = to_email
        msg['Subject'] = subject
        if reply_to:
            msg['Reply-To'] = reply_to
        msg.set_content("This message requires an HTML capable email client.")
        msg.add_alternative(html, subtype='html')

        host, port = self.settings.smtp_host, self.settings.smtp_port
        if port == 465:
            with smtplib.SMTP_SSL(host, port, timeout=10) as server:
                server.login(self.settings.smtp_user, self.settings.smtp_password)
                server.send_message(msg)
        else:
            with smtplib.SMTP(host, port, timeout=10) as server:
                server.starttls()
                server.login(self.settings.smtp_user, self.settings.smtp_password)
                server.send_message(msg)


_emailer = None


def get_emailer():
    """Shared emailer instance."""
    global _emailer
    if _emailer is None:
        _emailer = LMSEmailer()
    return _emailer
