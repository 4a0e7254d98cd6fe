from __future__ import annotations

from ..extensions import db
from shelter.time_utils import to_utc_z, utcnow
from shelter.validation import money_str


class InvoiceStatus:
    UNPAID = "Unpaid"
    PAID = "Paid"
    CANCELLED = "Cancelled"

    ALL = (UNPAID, PAID, CANCELLED)
    CLOSED = (PAID, CANCELLED)


class TransactionType:
    ADOPTION_FEE = "Adoption Fee"
    RECLAIM_FEE = "Reclaim Fee"

    ALL = (ADOPTION_FEE, RECLAIM_FEE)


class PaymentMethod:
    CASH = "Cash"
    GCASH = "GCash"
    BANK_TRANSFER = "Bank Transfer"

    ALL = (CASH, GCASH, BANK_TRANSFER)


class Invoice(db.Model):
    """
    Amount owed by a payer for an adoption or a reclaim.

    INVARIANT: status == Paid iff the sum of payments >= total_amount.
    The status flip happens in the same transaction as the payment insert
    (see billing_service.record_payment).

    Cancelling sets status=Cancelled and is_deleted=True; cancelled invoices
    disappear from reads but remain in the table.
    related_animal_id / related_request_id are provenance only.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.CheckConstraint("total_amount > 0", name="ck_invoices_total_positive"),
        db.Index("ix_invoices_payer_status", "payer_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    payer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    issued_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    transaction_type = db.Column(db.String(32), nullable=False)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=InvoiceStatus.UNPAID, index=True)

    related_animal_id = db.Column(db.Integer, db.ForeignKey("animals.id"), nullable=True)
    related_request_id = db.Column(db.Integer, db.ForeignKey("adoption_requests.id"), nullable=True)

    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    payer = db.relationship("User", foreign_keys=[payer_id])
    issued_by = db.relationship("User", foreign_keys=[issued_by_id])
    related_animal = db.relationship("Animal")
    related_request = db.relationship("AdoptionRequest")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "payer_id": self.payer_id,
            "issued_by_id": self.issued_by_id,
            "transaction_type": self.transaction_type,
            "total_amount": money_str(self.total_amount),
            "status": self.status,
            "related_animal_id": self.related_animal_id,
            "related_request_id": self.related_request_id,
            "is_deleted": self.is_deleted,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class Payment(db.Model):
    """
    Money received against an invoice.

    APPEND-ONLY: rows are never updated or deleted by normal operation.
    Two identical submissions produce two rows; there is no deduplication.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        db.Index("ix_payments_invoice_paid_at", "invoice_id", "paid_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    received_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    method = db.Column(db.String(32), nullable=False)
    reference = db.Column(db.String(100), nullable=True)  # GCash ref, bank transfer ref

    paid_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    invoice = db.relationship("Invoice", backref=db.backref("payments", lazy=True, order_by="Payment.id"))
    received_by = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "received_by_id": self.received_by_id,
            "amount": money_str(self.amount),
            "method": self.method,
            "reference": self.reference,
            "paid_at": to_utc_z(self.paid_at),
        }
