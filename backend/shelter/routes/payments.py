# Overview: Flask API routes for payments; parses input and returns JSON responses.

"""
Payment API Routes

- POST /api/payments      record a payment against an invoice
- GET  /api/payments/:id  single payment

SECURITY:
- Admin/Staff only
- received_by is the authenticated user, never taken from the body
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..models import RoleName
from ..services import billing_service
from ..validation import ShelterError, parse_id, require_json_object
from ..decorators import require_auth, require_role
from .responses import error_response


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("")
@require_auth
@require_role(RoleName.ADMIN, RoleName.STAFF)
def record_payment_route():
    """
    Request body:
    {
        "invoice_id": 123,
        "amount_paid": 600,
        "payment_method": "Cash" | "GCash" | "Bank Transfer",
        "reference_number": "GC-0001"  (optional)
    }

    Returns:
        201: {"payment_id": ..., "payment": {...}, "invoice": {... amount_paid, balance}}
        400: invalid amount or method
        404: invoice not found
        409: invoice already Paid or Cancelled
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        invoice_id = parse_id(data.get("invoice_id"), "invoice_id")

        receipt = billing_service.record_payment(
            g.caller,
            invoice_id,
            amount=data.get("amount_paid"),
            method=data.get("payment_method"),
            reference=data.get("reference_number"),
        )

        return jsonify({
            **receipt.to_dict(),
            "message": "Payment recorded successfully"
        }), 201

    except ShelterError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/<int:payment_id>")
@require_auth
@require_role(RoleName.ADMIN, RoleName.STAFF)
def get_payment_route(payment_id: int):
    try:
        payment = billing_service.get_payment(payment_id)
        return jsonify({"payment": payment.to_dict()}), 200

    except ShelterError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load payment")
        return jsonify({"error": "Internal server error"}), 500
