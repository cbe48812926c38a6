"""
Guestbook and prayer list email notifications.

Payloads are plain dicts ({to, type, subject, html, data}) so callers can
log or inspect them; ``deliver`` sends through SendGrid when an API key is
configured and only logs otherwise.
"""
import html
import logging
import re
from urllib.error import URLError
from typing import Any, Dict, Iterable, List, Optional

from flask import current_app
from python_http_client.exceptions import HTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Content, Email, Mail, MimeType, To

logger = logging.getLogger(__name__)


def _wrap(title: str, inner_html: str) -> str:
    return f"""
<div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;padding:20px;color:#333;">
  <h2 style="color:#003087;">{html.escape(title)}</h2>
  {inner_html}
  <p style="text-align:center;margin-top:20px;color:#666;font-size:12px;">
    GatherMemorials. This is an automated notification, please do not reply.
  </p>
</div>"""


def _html_to_text(html_content: str) -> str:
    text = re.sub(r"</p>", "\n\n", html_content)
    text = re.sub(r"<[^>]+>", "", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return html.unescape(text).strip()


def _memorial_url(memorial) -> str:
    app_url = current_app.config["APP_URL"].rstrip("/")
    return f"{app_url}/memorials/{memorial.custom_url or memorial.id}"


def new_entry_moderation(*, entry, memorial, owner) -> Optional[Dict[str, Any]]:
    to = memorial.guestbook_notify_email or owner.email
    if not to or memorial.guestbook_notify_frequency == "never":
        return None

    app_url = current_app.config["APP_URL"].rstrip("/")
    data = {
        "owner_name": owner.display_name,
        "memorial_name": memorial.full_name,
        "author_name": entry.author_name,
        "message": entry.message,
        "has_photo": bool(entry.photo_url),
        "moderation_url": f"{app_url}/account/guestbook/pending",
    }
    body = _wrap("New Guestbook Entry", f"""
  <p>Hello {html.escape(data['owner_name'])},</p>
  <p>A new guestbook entry has been posted for <strong>{html.escape(data['memorial_name'])}</strong>
     and requires your approval.</p>
  <blockquote><strong>From:</strong> {html.escape(data['author_name'])}<br>{html.escape(data['message'])}</blockquote>
  <p><a href="{data['moderation_url']}">Review entry</a></p>""")

    return {
        "to": to,
        "type": "new_entry_moderation",
        "subject": f"New guestbook entry for {data['memorial_name']} requires moderation",
        "html": body,
        "data": data,
    }


def moderation_result(*, entry, memorial, reason: Optional[str]) -> Optional[Dict[str, Any]]:
    if not entry.author_email:
        return None

    approved = entry.status == "approved"
    data = {
        "author_name": entry.author_name,
        "memorial_name": memorial.full_name,
        "message": entry.message,
        "reason": reason,
        "memorial_url": _memorial_url(memorial),
    }

    if approved:
        subject = f"Your message on {data['memorial_name']}'s memorial has been approved"
        inner = f"""
  <p>Dear {html.escape(data['author_name'])},</p>
  <p>Your message on <strong>{html.escape(data['memorial_name'])}'s</strong> memorial is now visible to all visitors.</p>
  <p><a href="{data['memorial_url']}">View memorial</a></p>"""
    else:
        subject = f"Update on your message for {data['memorial_name']}'s memorial"
        reason_html = f"<p>Reason: {html.escape(reason)}</p>" if reason else ""
        inner = f"""
  <p>Dear {html.escape(data['author_name'])},</p>
  <p>The family has chosen not to display your message on <strong>{html.escape(data['memorial_name'])}'s</strong> memorial.</p>
  {reason_html}"""

    return {
        "to": entry.author_email,
        "type": "entry_approved" if approved else "entry_rejected",
        "subject": subject,
        "html": _wrap(subject, inner),
        "data": data,
    }


def prayer_reminder_test(*, user, memorials, reminders) -> Dict[str, Any]:
    app_url = current_app.config["APP_URL"].rstrip("/")
    data = {
        "user_name": user.display_name,
        "memorial_names": [memorial.full_name for memorial in memorials],
        "reminders": reminders,
        "settings_url": f"{app_url}/account/prayer-list",
    }

    names = "".join(f"<li>{html.escape(name)}</li>" for name in data["memorial_names"])
    names = names or "<li>Your prayer list is empty.</li>"
    upcoming = "".join(
        f"<li>{html.escape(item['memorial_name'])}: {item['type'].replace('_', ' ')} on {item['date']}</li>"
        for item in reminders
    )
    if upcoming:
        upcoming = f"<p>Coming up this week:</p><ul>{upcoming}</ul>"
    subject = "Your prayer list reminder (test)"
    inner = f"""
  <p>Dear {html.escape(data['user_name'])},</p>
  <p>This is how your prayer list reminders will look.</p>
  <ul>{names}</ul>
  {upcoming}
  <p><a href="{data['settings_url']}">Manage reminder settings</a></p>"""

    return {
        "to": user.email,
        "type": "prayer_reminder_test",
        "subject": subject,
        "html": _wrap(subject, inner),
        "data": data,
    }


def deliver(payload: Optional[Dict[str, Any]]) -> bool:
    """
    Sends one notification. Returns False when nothing was delivered.
    """
    if not payload:
        return False

    config = current_app.config
    api_key = config.get("SENDGRID_API_KEY")
    if not api_key:
        logger.info("Would send %s email to %s: %s", payload["type"], payload["to"], payload["subject"])
        return False

    message = Mail(
        from_email=Email(config["MAIL_FROM_EMAIL"], config["MAIL_FROM_NAME"]),
        to_emails=To(payload["to"]),
        subject=payload["subject"],
        plain_text_content=Content(MimeType.text, _html_to_text(payload["html"])),
        html_content=Content(MimeType.html, payload["html"]),
    )

    try:
        SendGridAPIClient(api_key).send(message)
    except (HTTPError, URLError) as exc:
        logger.error("SendGrid rejected %s email to %s: %s", payload["type"], payload["to"], exc)
        return False

    logger.info("Sent %s email to %s", payload["type"], payload["to"])
    return True


def deliver_all(payloads: Iterable[Optional[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    sent = []
    for payload in payloads:
        if payload and deliver(payload):
            sent.append(payload)
    return sent
