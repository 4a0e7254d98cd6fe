# Overview: Flask API routes for invoices; parses input and returns JSON responses.

"""
Invoice API Routes

- POST /api/invoices               issue an invoice (Admin/Staff)
- GET  /api/invoices               list (adopters see only their own)
- GET  /api/invoices/:id           invoice with payments, amount_paid and balance
- GET  /api/invoices/:id/balance   balance only (Admin/Staff)
- PUT  /api/invoices/:id/cancel    cancel an unpaid invoice with no payments (Admin/Staff)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..models import RoleName
from ..services import billing_service
from ..services.filters import InvoiceFilter
from ..validation import ShelterError, money_str, require_json_object
from ..decorators import require_auth, require_role
from .responses import error_response


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.post("")
@require_auth
@require_role(RoleName.ADMIN, RoleName.STAFF)
def issue_invoice_route():
    """
    Request body:
    {
        "payer_id": 7,
        "transaction_type": "Adoption Fee" | "Reclaim Fee",
        "total_amount": 1500.00,
        "animal_id": 12,   (optional)
        "request_id": 34   (optional)
    }

    Returns:
        201: created invoice
        400: invalid input, payer or animal not found
    """
    try:
        data = require_json_object(request.get_json(silent=True))

        invoice = billing_service.issue_invoice(
            g.caller,
            payer_id=data.get("payer_id", data.get("payer_user_id")),
            transaction_type=data.get("transaction_type"),
            total_amount=data.get("total_amount"),
            related_animal_id=data.get("animal_id"),
            related_request_id=data.get("request_id"),
        )

        return jsonify({
            "invoice": billing_service.invoice_view(invoice),
            "message": "Invoice created"
        }), 201

    except ShelterError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to issue invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("")
@require_auth
@require_role(RoleName.ADMIN, RoleName.STAFF, RoleName.ADOPTER)
def list_invoices_route():
    """
    Query params: status, type, payer_id, limit
    """
    try:
        invoice_filter = InvoiceFilter.from_args(request.args)
        invoices = billing_service.list_invoices(g.caller, invoice_filter)
        return jsonify({"invoices": invoices, "count": len(invoices)}), 200

    except ShelterError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list invoices")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<int:invoice_id>")
@require_auth
@require_role(RoleName.ADMIN, RoleName.STAFF, RoleName.ADOPTER)
def get_invoice_route(invoice_id: int):
    try:
        return jsonify({"invoice": billing_service.get_invoice_view(g.caller, invoice_id)}), 200

    except ShelterError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<int:invoice_id>/balance")
@require_auth
@require_role(RoleName.ADMIN, RoleName.STAFF)
def get_invoice_balance_route(invoice_id: int):
    try:
        balance = billing_service.compute_balance(invoice_id)
        return jsonify({"invoice_id": invoice_id, "balance": money_str(balance)}), 200

    except ShelterError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to compute invoice balance")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.put("/<int:invoice_id>/cancel")
@require_auth
@require_role(RoleName.ADMIN, RoleName.STAFF)
def cancel_invoice_route(invoice_id: int):
    """
    Returns:
        200: cancelled
        400: AlreadyPaid / HasPayments
        404: invoice not found
    """
    try:
        billing_service.cancel_invoice(g.caller, invoice_id)
        return jsonify({"success": True, "message": "Invoice cancelled"}), 200

    except ShelterError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel invoice")
        return jsonify({"error": "Internal server error"}), 500
