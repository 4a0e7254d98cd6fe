from __future__ import annotations

from ..extensions import db
from shelter.time_utils import to_utc_z, utcnow


class AdoptionStatus:
    PENDING = "Pending"
    INTERVIEW_SCHEDULED = "Interview Scheduled"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    ALL = (PENDING, INTERVIEW_SCHEDULED, APPROVED, REJECTED, COMPLETED, CANCELLED)
    ACTIVE = (PENDING, INTERVIEW_SCHEDULED, APPROVED)


_ACTIVE_PREDICATE = db.text(
    "status IN ('Pending', 'Interview Scheduled', 'Approved')"
)


class AdoptionRequest(db.Model):
    """
    An adopter's application for one animal.

    LIFECYCLE:
        Pending -> Interview Scheduled -> Approved -> Completed
        any active state -> Rejected / Completed (staff)
        Pending -> Cancelled (owning adopter)

    Rows are never deleted; terminal rows stay as adoption history.

    INVARIANT: at most one active request per (animal_id, adopter_id).
    Enforced by the service and backed by a partial unique index.
    """
    __tablename__ = "adoption_requests"
    __table_args__ = (
        db.Index(
            "uq_adoption_requests_active_pair",
            "animal_id",
            "adopter_id",
            unique=True,
            sqlite_where=_ACTIVE_PREDICATE,
            postgresql_where=_ACTIVE_PREDICATE,
        ),
        db.Index("ix_adoption_requests_animal_status", "animal_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    animal_id = db.Column(db.Integer, db.ForeignKey("animals.id"), nullable=False, index=True)
    adopter_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    status = db.Column(db.String(32), nullable=False, default=AdoptionStatus.PENDING, index=True)
    requested_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    processed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    staff_comments = db.Column(db.Text, nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    animal = db.relationship("Animal", backref=db.backref("adoption_requests", lazy=True))
    adopter = db.relationship("User", foreign_keys=[adopter_id], backref=db.backref("adoption_requests", lazy=True))
    processed_by = db.relationship("User", foreign_keys=[processed_by_id])
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "animal_id": self.animal_id,
            "adopter_id": self.adopter_id,
            "status": self.status,
            "requested_at": to_utc_z(self.requested_at),
            "processed_by_id": self.processed_by_id,
            "staff_comments": self.staff_comments,
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
