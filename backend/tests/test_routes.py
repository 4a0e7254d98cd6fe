"""
HTTP surface tests.

Verifies:
- Unauthenticated requests return 401
- Role gates return 403 with the RoleRequired code
- Success and error bodies carry the documented shapes
"""

import pytest

from shelter.extensions import db
from shelter.models import AdoptionStatus, AnimalStatus, Animal, InvoiceStatus


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/logout"),
            ("GET", "/api/adoptions"),
            ("POST", "/api/adoptions"),
            ("GET", "/api/adoptions/1"),
            ("PUT", "/api/adoptions/1/process"),
            ("PUT", "/api/adoptions/1/cancel"),
            ("GET", "/api/invoices"),
            ("POST", "/api/invoices"),
            ("GET", "/api/invoices/1"),
            ("GET", "/api/invoices/1/balance"),
            ("PUT", "/api/invoices/1/cancel"),
            ("POST", "/api/payments"),
            ("GET", "/api/payments/1"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_bogus_token(self, client, db_session):
        resp = client.get("/api/adoptions", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401


class TestAuthRoutes:

    def test_login_and_me(self, client, staff_user):
        resp = client.post("/api/auth/login", json={"username": "staff1", "password": "Password123!"})
        assert resp.status_code == 200
        token = resp.get_json()["token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.get_json()["user"]["role"] == "Staff"

    def test_login_by_email(self, client, staff_user):
        resp = client.post("/api/auth/login", json={"email": "staff1@shelter.local", "password": "Password123!"})
        assert resp.status_code == 200

    def test_bad_password(self, client, staff_user):
        resp = client.post("/api/auth/login", json={"username": "staff1", "password": "wrong"})
        assert resp.status_code == 401

    def test_logout_revokes_token(self, client, staff_headers):
        assert client.post("/api/auth/logout", headers=staff_headers).status_code == 200
        assert client.get("/api/auth/me", headers=staff_headers).status_code == 401


# =============================================================================
# ROLE GATES (403)
# =============================================================================


class TestRoleGates:

    def test_adopter_cannot_process(self, client, adopter_headers):
        resp = client.put("/api/adoptions/1/process", json={"status": "Approved"}, headers=adopter_headers)
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "RoleRequired"

    def test_staff_cannot_file_request(self, client, staff_headers, animal):
        resp = client.post("/api/adoptions", json={"animal_id": animal.id}, headers=staff_headers)
        assert resp.status_code == 403

    def test_vet_cannot_touch_billing(self, client, vet_headers):
        assert client.get("/api/invoices", headers=vet_headers).status_code == 403
        assert client.post("/api/payments", json={}, headers=vet_headers).status_code == 403

    def test_adopter_cannot_record_payment(self, client, adopter_headers):
        resp = client.post(
            "/api/payments",
            json={"invoice_id": 1, "amount_paid": 100, "payment_method": "Cash"},
            headers=adopter_headers,
        )
        assert resp.status_code == 403


# =============================================================================
# ADOPTIONS
# =============================================================================


class TestAdoptionRoutes:

    def test_file_and_complete(self, client, adopter_headers, staff_headers, animal):
        created = client.post("/api/adoptions", json={"animal_id": animal.id}, headers=adopter_headers)
        assert created.status_code == 201
        request_id = created.get_json()["request"]["id"]
        assert created.get_json()["request"]["status"] == AdoptionStatus.PENDING

        resp = client.put(
            f"/api/adoptions/{request_id}/process",
            json={"status": "Completed", "comments": "Welcome home"},
            headers=staff_headers,
        )
        assert resp.status_code == 200
        body = resp.get_json()["request"]
        assert body["status"] == AdoptionStatus.COMPLETED
        assert body["staff_comments"] == "Welcome home"

        db.session.expire_all()
        assert db.session.get(Animal, animal.id).status == AnimalStatus.ADOPTED

    def test_duplicate_is_400(self, client, adopter_headers, animal):
        client.post("/api/adoptions", json={"animal_id": animal.id}, headers=adopter_headers)
        resp = client.post("/api/adoptions", json={"animal_id": animal.id}, headers=adopter_headers)

        assert resp.status_code == 400
        assert resp.get_json()["code"] == "DuplicateActiveRequest"

    def test_unknown_animal_is_404(self, client, adopter_headers, db_session):
        resp = client.post("/api/adoptions", json={"animal_id": 777}, headers=adopter_headers)

        assert resp.status_code == 404
        assert resp.get_json()["code"] == "AnimalUnavailable"

    def test_bad_animal_id_is_400(self, client, adopter_headers, db_session):
        resp = client.post("/api/adoptions", json={"animal_id": "seven"}, headers=adopter_headers)
        assert resp.status_code == 400

    @pytest.mark.parametrize("animal_id", ["\u00b2", "\u0663", "1\u00b2"])
    def test_non_ascii_digit_id_is_400(self, client, adopter_headers, db_session, animal_id):
        resp = client.post("/api/adoptions", json={"animal_id": animal_id}, headers=adopter_headers)

        assert resp.status_code == 400
        assert resp.get_json()["code"] == "ValidationError"

    @pytest.mark.parametrize("param", ["animal_id", "adopter_id"])
    def test_non_ascii_digit_query_arg_is_400(self, client, staff_headers, param):
        resp = client.get("/api/adoptions", query_string={param: "\u00b2"}, headers=staff_headers)

        assert resp.status_code == 400
        assert resp.get_json()["code"] == "ValidationError"

    def test_non_ascii_digit_payer_query_arg_is_400(self, client, staff_headers):
        resp = client.get("/api/invoices", query_string={"payer_id": "\u00b2"}, headers=staff_headers)
        assert resp.status_code == 400

    def test_illegal_transition_is_400(self, client, adopter_headers, staff_headers, animal):
        created = client.post("/api/adoptions", json={"animal_id": animal.id}, headers=adopter_headers)
        request_id = created.get_json()["request"]["id"]

        resp = client.put(f"/api/adoptions/{request_id}/process", json={"status": "Approved"}, headers=staff_headers)

        assert resp.status_code == 400
        assert resp.get_json()["code"] == "IllegalTransition"

    def test_process_missing_request_is_404(self, client, staff_headers):
        resp = client.put("/api/adoptions/999/process", json={"status": "Rejected"}, headers=staff_headers)
        assert resp.status_code == 404

    def test_cancel_own_request(self, client, adopter_headers, animal):
        created = client.post("/api/adoptions", json={"animal_id": animal.id}, headers=adopter_headers)
        request_id = created.get_json()["request"]["id"]

        resp = client.put(f"/api/adoptions/{request_id}/cancel", headers=adopter_headers)

        assert resp.status_code == 200
        again = client.put(f"/api/adoptions/{request_id}/cancel", headers=adopter_headers)
        assert again.status_code == 400
        assert again.get_json()["code"] == "InvalidState"

    def test_cancel_someone_elses_request_is_403(self, client, adopter_headers, staff_headers, animal):
        created = client.post("/api/adoptions", json={"animal_id": animal.id}, headers=adopter_headers)
        request_id = created.get_json()["request"]["id"]

        resp = client.put(f"/api/adoptions/{request_id}/cancel", headers=staff_headers)

        assert resp.status_code == 403
        assert resp.get_json()["code"] == "NotOwner"

    def test_list_with_filter(self, client, adopter_headers, staff_headers, animal):
        client.post("/api/adoptions", json={"animal_id": animal.id}, headers=adopter_headers)

        resp = client.get("/api/adoptions?status=Pending", headers=staff_headers)
        assert resp.status_code == 200
        assert resp.get_json()["count"] == 1

        bad = client.get("/api/adoptions?status=Bogus", headers=staff_headers)
        assert bad.status_code == 400


# =============================================================================
# BILLING
# =============================================================================


class TestBillingRoutes:

    def _issue(self, client, headers, payer_id, total=1000):
        resp = client.post(
            "/api/invoices",
            json={"payer_id": payer_id, "transaction_type": "Adoption Fee", "total_amount": total},
            headers=headers,
        )
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()["invoice"]

    def test_issue_pay_and_read(self, client, staff_headers, adopter, adopter_headers):
        invoice = self._issue(client, staff_headers, adopter.id)
        assert invoice["total_amount"] == "1000.00"
        assert invoice["balance"] == "1000.00"

        paid = client.post(
            "/api/payments",
            json={"invoice_id": invoice["id"], "amount_paid": 600, "payment_method": "Cash"},
            headers=staff_headers,
        )
        assert paid.status_code == 201
        body = paid.get_json()
        assert body["payment_id"] == body["payment"]["id"]
        assert body["invoice"]["balance"] == "400.00"
        assert body["invoice"]["status"] == InvoiceStatus.UNPAID

        balance = client.get(f"/api/invoices/{invoice['id']}/balance", headers=staff_headers)
        assert balance.get_json() == {"invoice_id": invoice["id"], "balance": "400.00"}

        own = client.get(f"/api/invoices/{invoice['id']}", headers=adopter_headers)
        assert own.status_code == 200
        assert len(own.get_json()["invoice"]["payments"]) == 1

    def test_payer_user_id_alias(self, client, staff_headers, adopter):
        resp = client.post(
            "/api/invoices",
            json={"payer_user_id": adopter.id, "transaction_type": "Reclaim Fee", "total_amount": "300.50"},
            headers=staff_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["invoice"]["transaction_type"] == "Reclaim Fee"

    def test_payment_on_paid_invoice_is_409(self, client, staff_headers, adopter):
        invoice = self._issue(client, staff_headers, adopter.id, total=100)
        payload = {"invoice_id": invoice["id"], "amount_paid": 100, "payment_method": "GCash"}

        assert client.post("/api/payments", json=payload, headers=staff_headers).status_code == 201
        resp = client.post("/api/payments", json=payload, headers=staff_headers)

        assert resp.status_code == 409
        assert resp.get_json()["code"] == "InvoiceClosed"

    def test_invalid_payment_method_is_400(self, client, staff_headers, adopter):
        invoice = self._issue(client, staff_headers, adopter.id)
        resp = client.post(
            "/api/payments",
            json={"invoice_id": invoice["id"], "amount_paid": 10, "payment_method": "Cheque"},
            headers=staff_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "InvalidMethod"

    def test_payment_on_missing_invoice_is_404(self, client, staff_headers):
        resp = client.post(
            "/api/payments",
            json={"invoice_id": 404, "amount_paid": 10, "payment_method": "Cash"},
            headers=staff_headers,
        )
        assert resp.status_code == 404

    def test_cancel_invoice_with_payment_is_400(self, client, staff_headers, adopter):
        invoice = self._issue(client, staff_headers, adopter.id, total=500)
        client.post(
            "/api/payments",
            json={"invoice_id": invoice["id"], "amount_paid": 50, "payment_method": "Cash"},
            headers=staff_headers,
        )

        resp = client.put(f"/api/invoices/{invoice['id']}/cancel", headers=staff_headers)

        assert resp.status_code == 400
        assert resp.get_json()["code"] == "HasPayments"

    def test_cancel_and_hide(self, client, admin_headers, adopter):
        invoice = self._issue(client, admin_headers, adopter.id)

        assert client.put(f"/api/invoices/{invoice['id']}/cancel", headers=admin_headers).status_code == 200
        assert client.get(f"/api/invoices/{invoice['id']}", headers=admin_headers).status_code == 404

    def test_adopter_cannot_read_others_invoice(self, client, staff_headers, adopters, adopter_headers):
        invoice = self._issue(client, staff_headers, adopters[0].id)

        resp = client.get(f"/api/invoices/{invoice['id']}", headers=adopter_headers)

        assert resp.status_code == 403

    def test_get_payment(self, client, staff_headers, adopter):
        invoice = self._issue(client, staff_headers, adopter.id)
        paid = client.post(
            "/api/payments",
            json={"invoice_id": invoice["id"], "amount_paid": "12.50", "payment_method": "Bank Transfer",
                  "reference_number": "BT-99"},
            headers=staff_headers,
        ).get_json()

        resp = client.get(f"/api/payments/{paid['payment_id']}", headers=staff_headers)

        assert resp.status_code == 200
        assert resp.get_json()["payment"]["reference"] == "BT-99"


class TestHealth:

    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
