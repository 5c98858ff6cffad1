# services/notifications.py
from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from skyinvest.extensions import db
from skyinvest.models import Notification

logger = logging.getLogger(__name__)


def notify(user_id: int | None, type: str, title: str, message: str, related_id: int | None = None) -> bool:
    """
    Persist a notification for ``user_id``. Fire and forget: callers invoke this
    only after their own commit, and a failure here is logged, never raised.
    Returns True when the row was stored.
    """
    if not user_id:
        return False
    try:
        db.session.add(Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            related_id=related_id,
        ))
        db.session.commit()
        return True
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to store %s notification for user %s", type, user_id)
        return False


def list_for_user(user_id: int, unread_only: bool = False, limit: int = 50) -> dict:
    q = Notification.query.filter_by(user_id=user_id)
    if unread_only:
        q = q.filter_by(is_read=False)
    rows = q.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()
    unread = Notification.query.filter_by(user_id=user_id, is_read=False).count()
    return {"notifications": [n.to_dict() for n in rows], "unread": unread}


def mark_read(user_id: int, notification_id: int) -> Notification | None:
    row = Notification.query.filter_by(id=notification_id, user_id=user_id).first()
    if not row:
        return None
    row.is_read = True
    db.session.commit()
    return row


def mark_all_read(user_id: int) -> int:
    updated = Notification.query.filter_by(user_id=user_id, is_read=False).update(
        {"is_read": True}, synchronize_session=False
    )
    db.session.commit()
    return updated
