# Overview: Service-layer operations for invoices and payments; encapsulates the billing ledger.

"""
Billing Ledger Service

WHY: Adoption and reclaim fees are billed as invoices and settled by one or
more payments (cash at the front desk, GCash, bank transfer).

DESIGN PRINCIPLES:
- Payments are separate from invoices (many-to-one relationship)
- Partial payments: an invoice stays Unpaid until payments cover the total
- Append-only ledger: payments are never edited or deleted
- Derived status: Paid iff sum(payments) >= total_amount, recomputed in the
  same transaction as every payment insert
- Overpayment: accepted by default (balance goes negative); set
  OVERPAYMENT_POLICY = "reject" to refuse payments above the balance
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import (
    AdoptionRequest,
    Animal,
    Invoice,
    InvoiceStatus,
    Payment,
    PaymentMethod,
    RoleName,
    TransactionType,
    User,
)
from ..validation import (
    CENT,
    ConflictError,
    NotFoundError,
    ValidationError,
    clean_text,
    money_str,
    parse_amount,
    parse_id,
    parse_optional_id,
)
from . import audit_service
from .adoption_service import RequestNotFound
from .caller_context import CallerContext, NotOwner, require_role
from .concurrency import lock_for_update, run_in_transaction
from .filters import InvoiceFilter


class InvoiceNotFound(NotFoundError):
    code = "InvoiceNotFound"


class PaymentNotFound(NotFoundError):
    code = "PaymentNotFound"


class PayerNotFound(NotFoundError):
    code = "PayerNotFound"
    http_status = 400


class AnimalNotFound(NotFoundError):
    code = "AnimalNotFound"
    http_status = 400


class InvoiceClosed(ConflictError):
    code = "InvoiceClosed"
    http_status = 409


class AlreadyPaid(ConflictError):
    code = "AlreadyPaid"
    http_status = 400


class HasPayments(ConflictError):
    code = "HasPayments"
    http_status = 400


class Overpayment(ConflictError):
    code = "Overpayment"
    http_status = 409


class InvalidMethod(ValidationError):
    code = "InvalidMethod"


class InvalidTransactionType(ValidationError):
    code = "InvalidTransactionType"


OVERPAYMENT_ALLOW = "allow"
OVERPAYMENT_REJECT = "reject"

ZERO = Decimal("0.00")


@dataclass
class PaymentReceipt:
    """Result of record_payment: the new payment and the invoice as it now stands."""
    payment: Payment
    invoice: dict

    def to_dict(self) -> dict:
        return {
            "payment_id": self.payment.id,
            "payment": self.payment.to_dict(),
            "invoice": self.invoice,
        }


def _to_money(value) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(CENT)


def _validate_method(method) -> str:
    if method not in PaymentMethod.ALL:
        raise InvalidMethod(f"Invalid payment method: {method}. Must be one of {list(PaymentMethod.ALL)}")
    return method


def _validate_transaction_type(transaction_type) -> str:
    if transaction_type not in TransactionType.ALL:
        raise InvalidTransactionType(
            f"Invalid transaction type: {transaction_type}. Must be one of {list(TransactionType.ALL)}"
        )
    return transaction_type


# =============================================================================
# INVOICE ISSUE
# =============================================================================

def issue_invoice(
    caller: CallerContext,
    payer_id: int,
    transaction_type: str,
    total_amount,
    related_animal_id: int | None = None,
    related_request_id: int | None = None,
) -> Invoice:
    """
    Bill a payer for an adoption or reclaim.

    Args:
        caller: Admin/Staff issuing the invoice (recorded as issued_by)
        payer_id: user who owes the amount
        transaction_type: "Adoption Fee" or "Reclaim Fee"
        total_amount: positive amount, at most two decimals
        related_animal_id / related_request_id: provenance only

    Raises:
        RoleRequired, InvalidAmount, InvalidTransactionType,
        PayerNotFound, AnimalNotFound, RequestNotFound
    """
    require_role(caller, *RoleName.SHELTER_STAFF)
    payer_id = parse_id(payer_id, "payer_id")
    transaction_type = _validate_transaction_type(transaction_type)
    total = parse_amount(total_amount, "total_amount")
    related_animal_id = parse_optional_id(related_animal_id, "animal_id")
    related_request_id = parse_optional_id(related_request_id, "request_id")

    def _op():
        payer = db.session.query(User).filter_by(id=payer_id, is_active=True).first()
        if not payer:
            raise PayerNotFound("Payer not found")

        if related_animal_id is not None:
            animal = db.session.query(Animal).filter_by(id=related_animal_id, is_deleted=False).first()
            if not animal:
                raise AnimalNotFound("Animal not found")

        if related_request_id is not None:
            if not db.session.get(AdoptionRequest, related_request_id):
                raise RequestNotFound(f"Adoption request {related_request_id} not found")

        invoice = Invoice(
            payer_id=payer_id,
            issued_by_id=caller.user_id,
            transaction_type=transaction_type,
            total_amount=total,
            status=InvoiceStatus.UNPAID,
            related_animal_id=related_animal_id,
            related_request_id=related_request_id,
            is_deleted=False,
        )
        db.session.add(invoice)
        db.session.flush()
        return invoice

    invoice = run_in_transaction(_op)

    audit_service.record(
        caller.user_id,
        audit_service.CREATE_INVOICE,
        f"Created invoice ID: {invoice.id} - {transaction_type} - PHP {money_str(total)}",
    )
    return invoice


# =============================================================================
# PAYMENT RECORDING
# =============================================================================

def record_payment(
    caller: CallerContext,
    invoice_id: int,
    amount,
    method: str,
    reference: str | None = None,
) -> PaymentReceipt:
    """
    Append a payment to an invoice and flip it to Paid once fully covered.

    Steps (one transaction, invoice row locked):
        1. Insert the Payment
        2. Recompute the amount paid, new payment included
        3. Set status = Paid when amount paid >= total

    Identical calls create distinct payments; both count toward the balance.

    Raises:
        RoleRequired, InvalidAmount, InvalidMethod,
        InvoiceNotFound, InvoiceClosed (Paid or Cancelled),
        Overpayment (only when OVERPAYMENT_POLICY == "reject")
    """
    require_role(caller, *RoleName.SHELTER_STAFF)
    amount = parse_amount(amount, "amount_paid")
    method = _validate_method(method)
    reference = clean_text(reference, "reference_number", max_length=100)
    reject_overpayment = current_app.config.get("OVERPAYMENT_POLICY", OVERPAYMENT_ALLOW) == OVERPAYMENT_REJECT

    def _op():
        invoice = lock_for_update(db.session.query(Invoice).filter_by(id=invoice_id)).first()
        if not invoice:
            raise InvoiceNotFound(f"Invoice {invoice_id} not found")

        if invoice.status in InvoiceStatus.CLOSED or invoice.is_deleted:
            raise InvoiceClosed(f"Cannot add payment to invoice in status '{invoice.status}'")

        if reject_overpayment:
            balance = _to_money(invoice.total_amount) - get_amount_paid(invoice_id)
            if amount > balance:
                raise Overpayment(f"Payment of {money_str(amount)} exceeds remaining balance of {money_str(balance)}")

        payment = Payment(
            invoice_id=invoice_id,
            received_by_id=caller.user_id,
            amount=amount,
            method=method,
            reference=reference,
        )
        db.session.add(payment)
        db.session.flush()  # Get payment ID; the sum below must see this row

        paid_so_far = get_amount_paid(invoice_id)
        became_paid = _sync_invoice_status(invoice, paid_so_far)
        return payment, became_paid

    payment, became_paid = run_in_transaction(_op)

    if became_paid:
        current_app.logger.info("Invoice %s fully paid by payment %s", invoice_id, payment.id)

    audit_service.record(
        caller.user_id,
        audit_service.RECORD_PAYMENT,
        f"Recorded payment ID: {payment.id} for invoice ID: {invoice_id} - PHP {money_str(amount)} via {method}",
    )

    invoice = db.session.get(Invoice, invoice_id)
    return PaymentReceipt(payment=payment, invoice=invoice_view(invoice))


def _sync_invoice_status(invoice: Invoice, amount_paid: Decimal) -> bool:
    """
    Keep status == Paid iff amount_paid >= total_amount.

    Cancelled invoices are left alone. Returns True when the invoice flipped to Paid.
    """
    if invoice.status == InvoiceStatus.CANCELLED:
        return False

    if amount_paid >= _to_money(invoice.total_amount):
        if invoice.status != InvoiceStatus.PAID:
            invoice.status = InvoiceStatus.PAID
            return True
        return False

    invoice.status = InvoiceStatus.UNPAID
    return False


# =============================================================================
# INVOICE CANCELLATION
# =============================================================================

def cancel_invoice(caller: CallerContext, invoice_id: int) -> bool:
    """
    Cancel an invoice that has not been paid into at all.

    Raises:
        RoleRequired, InvoiceNotFound,
        AlreadyPaid (status Paid), HasPayments (any payment recorded)
    """
    require_role(caller, *RoleName.SHELTER_STAFF)

    def _op():
        invoice = lock_for_update(
            db.session.query(Invoice).filter_by(id=invoice_id, is_deleted=False)
        ).first()
        if not invoice:
            raise InvoiceNotFound(f"Invoice {invoice_id} not found")

        if invoice.status == InvoiceStatus.PAID:
            raise AlreadyPaid("Cannot cancel a paid invoice")

        payment_count = db.session.query(Payment).filter_by(invoice_id=invoice_id).count()
        if payment_count > 0:
            raise HasPayments("Cannot cancel invoice with existing payments")

        invoice.status = InvoiceStatus.CANCELLED
        invoice.is_deleted = True
        return True

    result = run_in_transaction(_op)

    audit_service.record(
        caller.user_id,
        audit_service.CANCEL_INVOICE,
        f"Cancelled invoice ID: {invoice_id}",
    )
    return result


# =============================================================================
# BALANCES & READS
# =============================================================================

def get_amount_paid(invoice_id: int) -> Decimal:
    """Sum of every payment recorded against the invoice."""
    total = db.session.query(
        db.func.coalesce(db.func.sum(Payment.amount), 0)
    ).filter(Payment.invoice_id == invoice_id).scalar()
    return _to_money(total)


def compute_balance(invoice_id: int) -> Decimal:
    """
    total_amount - sum(payments). Negative when overpaid.

    Pure read, also used by reporting; works on cancelled invoices too.
    """
    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        raise InvoiceNotFound(f"Invoice {invoice_id} not found")
    return _to_money(invoice.total_amount) - get_amount_paid(invoice_id)


def invoice_view(invoice: Invoice, *, include_payments: bool = False) -> dict:
    """Invoice fields plus amount_paid and balance (and optionally its payments)."""
    amount_paid = get_amount_paid(invoice.id)
    view = invoice.to_dict()
    view["amount_paid"] = money_str(amount_paid)
    view["balance"] = money_str(_to_money(invoice.total_amount) - amount_paid)
    if include_payments:
        view["payments"] = [p.to_dict() for p in list_invoice_payments(invoice.id)]
    return view


def get_invoice_view(caller: CallerContext, invoice_id: int) -> dict:
    """
    Single invoice with its payments.

    Adopters may only see invoices they are the payer on. Cancelled invoices
    read as not found.
    """
    invoice = db.session.query(Invoice).filter_by(id=invoice_id, is_deleted=False).first()
    if not invoice:
        raise InvoiceNotFound(f"Invoice {invoice_id} not found")
    if not caller.is_staff and invoice.payer_id != caller.user_id:
        raise NotOwner("Access denied")
    return invoice_view(invoice, include_payments=True)


def list_invoices(caller: CallerContext, invoice_filter: InvoiceFilter) -> list[dict]:
    if not caller.is_staff:
        invoice_filter = invoice_filter.restricted_to(caller.user_id)
    invoices = invoice_filter.apply(db.session.query(Invoice)).all()
    return [invoice_view(invoice) for invoice in invoices]


def list_invoice_payments(invoice_id: int) -> list[Payment]:
    return db.session.query(Payment).filter_by(
        invoice_id=invoice_id
    ).order_by(Payment.paid_at, Payment.id).all()


def get_payment(payment_id: int) -> Payment:
    payment = db.session.get(Payment, payment_id)
    if not payment:
        raise PaymentNotFound(f"Payment {payment_id} not found")
    return payment
