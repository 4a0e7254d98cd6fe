# Overview: Fire-and-forget activity trail written after successful mutations.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import ActivityLog

"""
Activity log contract

- record() runs AFTER the business transaction has committed, in its own unit of work.
- A failed write is logged and dropped: it is never raised to the caller and
  never rolls back the mutation it describes.
"""

CREATE_ADOPTION_REQUEST = "CREATE_ADOPTION_REQUEST"
PROCESS_ADOPTION = "PROCESS_ADOPTION"
CANCEL_ADOPTION = "CANCEL_ADOPTION"
CREATE_INVOICE = "CREATE_INVOICE"
RECORD_PAYMENT = "RECORD_PAYMENT"
CANCEL_INVOICE = "CANCEL_INVOICE"
LOGIN = "LOGIN"
LOGOUT = "LOGOUT"


def _write_entry(user_id: int | None, action_type: str, description: str | None) -> ActivityLog:
    entry = ActivityLog(user_id=user_id, action_type=action_type, description=description)
    db.session.add(entry)
    db.session.commit()
    return entry


def record(user_id: int | None, action_type: str, description: str | None = None) -> ActivityLog | None:
    try:
        return _write_entry(user_id, action_type, description)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record activity %s for user %s", action_type, user_id)
        return None


def get_recent_activity(*, user_id: int | None = None, limit: int = 100) -> list[ActivityLog]:
    query = db.session.query(ActivityLog)
    if user_id is not None:
        query = query.filter_by(user_id=user_id)
    return query.order_by(ActivityLog.id.desc()).limit(limit).all()
