from __future__ import annotations

from ..extensions import db
from shelter.time_utils import to_utc_z, utcnow


class ActivityLog(db.Model):
    """
    Append-only activity trail written after each successful mutation.

    Not part of any business transaction: a failed write here never undoes
    the adoption or billing change it describes.
    """
    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("ix_activity_logs_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)  # Nullable for system actions
    action_type = db.Column(db.String(64), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action_type": self.action_type,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }
