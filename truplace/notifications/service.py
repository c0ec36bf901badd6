"""Token notifications: created alongside a request decision, read through a public link."""

import logging
import secrets
from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import Session

from ..config import settings
from .models import Notification, NotificationType

logger = logging.getLogger(__name__)


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt


def generate_token() -> str:
    return secrets.token_urlsafe(32)


def create_notification(
    db: Session,
    recipient_hash: str,
    type: NotificationType,
    title: str,
    message: str,
    data: dict | None = None,
) -> Notification:
    now = datetime.now(UTC)
    notification = Notification(
        token=generate_token(),
        recipient_hash=recipient_hash,
        type=type,
        title=title,
        message=message,
        data=data or {},
        read=False,
        created_at=now,
        expires_at=now + timedelta(days=settings.notification_expiry_days),
    )
    db.add(notification)
    db.flush()
    return notification


def is_expired(notification: Notification, now: datetime | None = None) -> bool:
    now = now or datetime.now(UTC)
    return _as_utc(notification.expires_at) <= now


def get_notification_by_token(db: Session, token: str) -> Notification | None:
    """The live notification for a token; missing and expired tokens both yield None."""
    if not token:
        return None
    notification = db.query(Notification).filter(Notification.token == token).first()
    if notification is None or is_expired(notification):
        return None
    return notification


def mark_notification_read(db: Session, token: str) -> Notification | None:
    notification = get_notification_by_token(db, token)
    if notification is None:
        return None
    if not notification.read:
        notification.read = True
        db.flush()
    return notification


def consume_notification(db: Session, token: str) -> tuple[Notification | None, bool]:
    """Look up a notification and mark it read.

    Returns the notification (or None) and whether this call was its first read.
    """
    notification = get_notification_by_token(db, token)
    if notification is None:
        return None, False
    first_read = not notification.read
    if first_read:
        notification.read = True
        db.flush()
        logger.info("Notification %s read for the first time", notification.id)
    return notification, first_read


def serialize_notification(notification: Notification) -> dict:
    return {
        "type": str(notification.type),
        "title": notification.title,
        "message": notification.message,
        "data": notification.data or {},
        "read": bool(notification.read),
        "created_at": _as_utc(notification.created_at).isoformat() if notification.created_at else None,
        "expires_at": _as_utc(notification.expires_at).isoformat(),
    }
