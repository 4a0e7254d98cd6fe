from __future__ import annotations

from ..extensions import db
from shelter.time_utils import to_utc_z


class AnimalStatus:
    AVAILABLE = "Available"
    ADOPTED = "Adopted"
    IN_TREATMENT = "In Treatment"
    QUARANTINE = "Quarantine"
    DECEASED = "Deceased"
    RECLAIMED = "Reclaimed"

    ALL = (AVAILABLE, ADOPTED, IN_TREATMENT, QUARANTINE, DECEASED, RECLAIMED)


class Animal(db.Model):
    """
    Sheltered animal.

    Intake and medical updates live outside the adoption/billing core; the core
    only reads `status` and flips it to Adopted when an adoption completes.
    Soft-deleted animals (is_deleted) are treated as missing everywhere.
    """
    __tablename__ = "animals"
    __table_args__ = (
        db.Index("ix_animals_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    species = db.Column(db.String(50), nullable=False)
    breed = db.Column(db.String(100), nullable=True)

    status = db.Column(db.String(32), nullable=False, default=AnimalStatus.AVAILABLE)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "species": self.species,
            "breed": self.breed,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
