"""
Activity trail tests.

Verifies:
- Each successful mutation writes one entry attributed to the caller
- Failed mutations write nothing
- A broken audit write never undoes the committed change
"""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from shelter.extensions import db
from shelter.models import ActivityLog, AdoptionRequest, AdoptionStatus, Invoice, InvoiceStatus, Payment, PaymentMethod
from shelter.services import adoption_service, audit_service, billing_service
from shelter.services.adoption_service import DuplicateActiveRequest
from shelter.services.caller_context import CallerContext


def _actions():
    return [row.action_type for row in db.session.query(ActivityLog).order_by(ActivityLog.id).all()]


class TestActivityEntries:

    def test_adoption_flow_is_recorded(self, adopter, animal, staff):
        req = adoption_service.create_request(CallerContext.for_user(adopter), animal.id)
        adoption_service.process_request(staff, req.id, AdoptionStatus.COMPLETED)

        entries = audit_service.get_recent_activity()

        assert [e.action_type for e in reversed(entries)] == [
            audit_service.CREATE_ADOPTION_REQUEST,
            audit_service.PROCESS_ADOPTION,
        ]
        assert entries[0].user_id == staff.user_id
        assert f"ID: {req.id}" in entries[0].description
        assert entries[1].user_id == adopter.id

    def test_billing_flow_is_recorded(self, staff, adopter):
        invoice = billing_service.issue_invoice(staff, adopter.id, "Adoption Fee", 500)
        billing_service.record_payment(staff, invoice.id, 500, PaymentMethod.CASH)
        second = billing_service.issue_invoice(staff, adopter.id, "Reclaim Fee", 100)
        billing_service.cancel_invoice(staff, second.id)

        assert _actions() == [
            audit_service.CREATE_INVOICE,
            audit_service.RECORD_PAYMENT,
            audit_service.CREATE_INVOICE,
            audit_service.CANCEL_INVOICE,
        ]

    def test_failed_mutation_writes_nothing(self, adopter, animal):
        caller = CallerContext.for_user(adopter)
        adoption_service.create_request(caller, animal.id)

        with pytest.raises(DuplicateActiveRequest):
            adoption_service.create_request(caller, animal.id)

        assert _actions() == [audit_service.CREATE_ADOPTION_REQUEST]

    def test_filter_by_user(self, adopter, animal, staff):
        req = adoption_service.create_request(CallerContext.for_user(adopter), animal.id)
        adoption_service.process_request(staff, req.id, AdoptionStatus.REJECTED)

        entries = audit_service.get_recent_activity(user_id=adopter.id)

        assert [e.action_type for e in entries] == [audit_service.CREATE_ADOPTION_REQUEST]


class TestAuditFailureIsolation:

    @pytest.fixture
    def broken_audit(self, monkeypatch):
        def boom(user_id, action_type, description):
            raise SQLAlchemyError("activity_logs unavailable")

        monkeypatch.setattr(audit_service, "_write_entry", boom)

    def test_adoption_survives_audit_failure(self, adopter, animal, staff, broken_audit):
        req = adoption_service.create_request(CallerContext.for_user(adopter), animal.id)

        result = adoption_service.process_request(staff, req.id, AdoptionStatus.INTERVIEW_SCHEDULED)

        assert result.status == AdoptionStatus.INTERVIEW_SCHEDULED
        db.session.expire_all()
        assert db.session.get(AdoptionRequest, req.id).status == AdoptionStatus.INTERVIEW_SCHEDULED
        assert db.session.query(ActivityLog).count() == 0

    def test_payment_survives_audit_failure(self, staff, make_invoice, adopter, staff_user, broken_audit):
        invoice = make_invoice(adopter, staff_user, total="100.00")

        receipt = billing_service.record_payment(staff, invoice.id, 100, PaymentMethod.GCASH)

        assert receipt.invoice["status"] == InvoiceStatus.PAID
        db.session.expire_all()
        assert db.session.get(Invoice, invoice.id).status == InvoiceStatus.PAID

    def test_record_returns_none_on_failure(self, db_session, broken_audit):
        assert audit_service.record(None, audit_service.LOGIN, "x") is None


class TestAuditNonDatabaseFailure:
    """Failures outside SQLAlchemy are also logged and dropped."""

    @pytest.fixture
    def crashing_audit(self, monkeypatch):
        def boom(user_id, action_type, description):
            raise RuntimeError("activity sink down")

        monkeypatch.setattr(audit_service, "_write_entry", boom)

    def test_completion_survives(self, adopters, animal, staff, crashing_audit):
        r1, r2, _ = [adoption_service.create_request(CallerContext.for_user(u), animal.id) for u in adopters]

        result = adoption_service.process_request(staff, r1.id, AdoptionStatus.COMPLETED)

        assert result.status == AdoptionStatus.COMPLETED
        db.session.expire_all()
        assert db.session.get(AdoptionRequest, r2.id).status == AdoptionStatus.REJECTED

    def test_payment_recorded_once(self, staff, make_invoice, adopter, staff_user, crashing_audit):
        invoice = make_invoice(adopter, staff_user, total="300.00")

        receipt = billing_service.record_payment(staff, invoice.id, 100, PaymentMethod.CASH)

        assert receipt.invoice["balance"] == "200.00"
        assert db.session.query(Payment).filter_by(invoice_id=invoice.id).count() == 1

    def test_record_returns_none(self, db_session, crashing_audit):
        assert audit_service.record(None, audit_service.LOGOUT, "x") is None
