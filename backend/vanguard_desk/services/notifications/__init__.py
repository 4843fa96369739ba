"""Inquiry mail notifications.

All senders here are best-effort: they log and swallow delivery errors so a
mail outage never fails or rolls back the request that triggered them. They take
a rendered thread dict rather than an ORM object because they run after the
request's session is closed.
"""

import logging
from html import escape
from typing import Any

from vanguard_desk.core.config import settings
from vanguard_desk.services.notifications.base import BaseNotifier, NullNotifier

logger = logging.getLogger(__name__)


def get_notifier() -> BaseNotifier:
    """Returns the SMTP notifier when configured, otherwise a no-op."""
    from vanguard_desk.services.notifications.smtp import SMTPNotifier
    notifier = SMTPNotifier()
    if notifier.is_configured:
        return notifier
    return NullNotifier()


def _deliver(to: str, subject: str, html: str) -> bool:
    notifier = get_notifier()
    if not notifier.is_configured:
        logger.debug(f"Mail not configured, skipping '{subject}'")
        return False
    try:
        notifier.send(to, subject, html)
        return True
    except Exception as e:
        logger.warning(f"Skipped mail '{subject}' to {to}: {e}")
        return False


def send_confirmation(contact: dict[str, Any]) -> bool:
    company = escape(settings.company_name)
    html = (
        "<h2>Thank you for your inquiry</h2>"
        f"<p>Dear {escape(contact['name'])},</p>"
        "<p>We have received your message and will get back to you shortly.</p>"
        f"<p><strong>Your inquiry:</strong> {escape(contact['subject'])}</p>"
        f"<p><strong>Message:</strong> {escape(contact['message'])}</p>"
        f"<p>Best regards,<br>{company} Team</p>"
    )
    return _deliver(contact["email"], f"Thank you for contacting {settings.company_name}", html)


def send_admin_notification(contact: dict[str, Any]) -> bool:
    admin = settings.mail_from or settings.smtp_user
    if not admin:
        return False
    html = (
        "<h2>New Contact Form Submission</h2>"
        f"<p><strong>Name:</strong> {escape(contact['name'])}</p>"
        f"<p><strong>Email:</strong> {escape(contact['email'])}</p>"
        f"<p><strong>Subject:</strong> {escape(contact['subject'])}</p>"
        f"<p><strong>Message:</strong> {escape(contact['message'])}</p>"
        f"<p><strong>Company:</strong> {escape(contact.get('company') or 'N/A')}</p>"
        f"<p><strong>Country:</strong> {escape(contact.get('country') or 'N/A')}</p>"
        f"<p><strong>Inquiry Type:</strong> {escape(contact['inquiry_type'])}</p>"
        f"<p><strong>Submitted:</strong> {escape(contact['created_at'] or '')}</p>"
    )
    return _deliver(admin, "New Contact Form Submission", html)


def send_response(contact: dict[str, Any]) -> bool:
    response = contact.get("response") or {}
    company = escape(settings.company_name)
    html = (
        "<h2>Response to your inquiry</h2>"
        f"<p>Dear {escape(contact['name'])},</p>"
        f"<p>Thank you for contacting {company}. Here is our response:</p>"
        '<div style="background-color: #f5f5f5; padding: 15px; margin: 15px 0; '
        'border-left: 4px solid #007bff;">'
        f"{escape(response.get('message', ''))}"
        "</div>"
        "<p>If you have any further questions, please don't hesitate to contact us.</p>"
        f"<p>Best regards,<br>{company} Team</p>"
    )
    return _deliver(contact["email"], f"Re: {contact['subject']}", html)
