# propertyflow/services/notifications.py
from __future__ import annotations

import html
import json
import logging
from datetime import datetime
from typing import Any, List, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..config import settings
from ..models import Notification
from .email_client import Attachment, EmailClient

log = logging.getLogger(__name__)


# -----------------------------
# In-app notifications
# -----------------------------
def notify(
    db: Session,
    *,
    landlord_id: Optional[int],
    kind: str,
    title: str,
    message: str,
    user_id: Optional[int] = None,
    action_url: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> Notification:
    """Adds a notification row; landlord-wide when user_id is None."""
    row = Notification(
        landlord_id=landlord_id,
        user_id=user_id,
        kind=kind,
        title=title,
        message=message,
        action_url=action_url,
        metadata_json=json.dumps(metadata, default=str) if metadata else None,
        created_at=datetime.utcnow(),
    )
    db.add(row)
    db.flush()
    return row


def list_notifications(
    db: Session,
    *,
    landlord_id: int,
    user_id: Optional[int] = None,
    unread_only: bool = False,
    limit: int = 100,
) -> list[Notification]:
    q = select(Notification).where(Notification.landlord_id == int(landlord_id))
    if user_id is not None:
        q = q.where(or_(Notification.user_id.is_(None), Notification.user_id == int(user_id)))
    if unread_only:
        q = q.where(Notification.read_at.is_(None))
    return list(db.scalars(q.order_by(Notification.id.desc()).limit(int(limit))).all())


def mark_read(db: Session, *, landlord_id: int, notification_ids: Sequence[int]) -> int:
    now = datetime.utcnow()
    rows = db.scalars(
        select(Notification).where(
            Notification.landlord_id == int(landlord_id),
            Notification.id.in_([int(i) for i in notification_ids]),
            Notification.read_at.is_(None),
        )
    ).all()
    for r in rows:
        r.read_at = now
    db.flush()
    return len(rows)


# -----------------------------
# Email
# -----------------------------
def get_email_client() -> Optional[EmailClient]:
    if not settings.smtp_host:
        return None
    return EmailClient(
        smtp_host=settings.smtp_host,
        smtp_port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_ssl=settings.smtp_use_ssl,
        max_retries=settings.smtp_max_retries,
    )


def branded_email(
    heading: str,
    paragraphs: Sequence[str],
    *,
    action_url: Optional[str] = None,
    action_label: Optional[str] = None,
) -> tuple[str, str]:
    """Plain-text and HTML bodies sharing the app header and footer."""
    text_lines: List[str] = [heading, ""]
    text_lines.extend(paragraphs)
    if action_url:
        text_lines.extend(["", f"{action_label or 'Open'}: {action_url}"])
    text_lines.extend(["", f"-- {settings.app_name}"])

    parts = [
        '<div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto">',
        f'<div style="background:#1e3a5f;color:#fff;padding:16px 24px;font-size:18px">{html.escape(settings.app_name)}</div>',
        '<div style="padding:24px">',
        f"<h2>{html.escape(heading)}</h2>",
    ]
    parts.extend(f"<p>{html.escape(p)}</p>" for p in paragraphs)
    if action_url:
        parts.append(
            f'<p><a href="{html.escape(action_url)}" style="background:#1e3a5f;color:#fff;padding:10px 18px;'
            f'text-decoration:none;border-radius:4px">{html.escape(action_label or "Open")}</a></p>'
        )
    parts.append('</div><div style="color:#888;font-size:12px;padding:0 24px 24px">'
                 f"Sent by {html.escape(settings.app_name)}</div></div>")
    return "\n".join(text_lines), "".join(parts)


def _deliver(
    recipients: List[str],
    subject: str,
    text_body: str,
    html_body: Optional[str],
    attachments: Optional[List[Attachment]],
) -> bool:
    client = get_email_client()
    if client is None:
        log.info("SMTP not configured; email skipped: %s", subject)
        return False
    return client.send_email(
        sender=settings.smtp_sender,
        recipients=recipients,
        subject=subject,
        text_body=text_body,
        html_body=html_body,
        attachments=attachments,
    )


def send_email(
    to: str | Sequence[str],
    subject: str,
    heading: str,
    paragraphs: Sequence[str],
    *,
    action_url: Optional[str] = None,
    action_label: Optional[str] = None,
    attachments: Optional[List[Attachment]] = None,
) -> bool:
    """
    Best-effort branded email.

    Never raises: a failed send is logged and reported as False so the
    calling workflow can carry on.
    """
    recipients = [to] if isinstance(to, str) else [r for r in to if r]
    if not recipients:
        return False
    text_body, html_body = branded_email(heading, paragraphs, action_url=action_url, action_label=action_label)
    try:
        return _deliver(recipients, subject, text_body, html_body, attachments)
    except Exception:
        log.exception("email delivery failed: %s", subject)
        return False
