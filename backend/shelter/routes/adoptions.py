# Overview: Flask API routes for adoption requests; parses input and returns JSON responses.

"""
Adoption Request API Routes

- POST /api/adoptions              adopter files a request
- GET  /api/adoptions              list (adopters see only their own)
- GET  /api/adoptions/:id          single request
- PUT  /api/adoptions/:id/process  staff decision (may complete the adoption)
- PUT  /api/adoptions/:id/cancel   owning adopter withdraws a Pending request

SECURITY:
- The acting user is always taken from the session (g.caller), never from the body
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..models import RoleName
from ..services import adoption_service
from ..services.filters import AdoptionRequestFilter
from ..validation import ShelterError, clean_text, parse_id, require_json_object
from ..decorators import require_auth, require_role
from .responses import error_response


adoptions_bp = Blueprint("adoptions", __name__, url_prefix="/api/adoptions")


@adoptions_bp.post("")
@require_auth
@require_role(RoleName.ADOPTER)
def create_request_route():
    """
    Request body:
    {
        "animal_id": 12
    }

    Returns:
        201: created request
        400: AnimalUnavailable / DuplicateActiveRequest / invalid input
        404: animal not found
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        animal_id = parse_id(data.get("animal_id"), "animal_id")

        adoption_request = adoption_service.create_request(g.caller, animal_id)

        return jsonify({
            "request": adoption_request.to_dict(),
            "message": "Adoption request submitted successfully"
        }), 201

    except ShelterError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create adoption request")
        return jsonify({"error": "Internal server error"}), 500


@adoptions_bp.get("")
@require_auth
@require_role(RoleName.ADMIN, RoleName.STAFF, RoleName.ADOPTER)
def list_requests_route():
    """
    Query params: status, animal_id, adopter_id, limit
    """
    try:
        request_filter = AdoptionRequestFilter.from_args(request.args)
        requests_ = adoption_service.list_requests(g.caller, request_filter)
        return jsonify({
            "requests": [r.to_dict() for r in requests_],
            "count": len(requests_),
        }), 200

    except ShelterError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list adoption requests")
        return jsonify({"error": "Internal server error"}), 500


@adoptions_bp.get("/<int:request_id>")
@require_auth
@require_role(RoleName.ADMIN, RoleName.STAFF, RoleName.ADOPTER)
def get_request_route(request_id: int):
    try:
        adoption_request = adoption_service.get_request(g.caller, request_id)
        return jsonify({"request": adoption_request.to_dict()}), 200

    except ShelterError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load adoption request")
        return jsonify({"error": "Internal server error"}), 500


@adoptions_bp.put("/<int:request_id>/process")
@require_auth
@require_role(RoleName.ADMIN, RoleName.STAFF)
def process_request_route(request_id: int):
    """
    Request body:
    {
        "status": "Interview Scheduled" | "Approved" | "Rejected" | "Completed",
        "comments": "..."  (optional)
    }

    Completing a request adopts the animal and rejects the other active
    requests for it in the same transaction.

    Returns:
        200: updated request
        400: IllegalTransition / InvalidStatus
        404: request not found
        409: AnimalAlreadyAdopted
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        new_status = clean_text(data.get("status"), "status")
        if not new_status:
            return jsonify({"error": "status required", "code": "ValidationError"}), 400

        adoption_request = adoption_service.process_request(
            g.caller,
            request_id,
            new_status,
            comments=data.get("comments"),
        )

        return jsonify({
            "request": adoption_request.to_dict(),
            "message": "Adoption request updated"
        }), 200

    except ShelterError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to process adoption request")
        return jsonify({"error": "Internal server error"}), 500


@adoptions_bp.put("/<int:request_id>/cancel")
@require_auth
def cancel_request_route(request_id: int):
    """
    Returns:
        200: cancelled
        400: InvalidState (not Pending)
        403: NotOwner
        404: request not found
    """
    try:
        adoption_service.cancel_request(g.caller, request_id)
        return jsonify({"success": True, "message": "Adoption request cancelled"}), 200

    except ShelterError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel adoption request")
        return jsonify({"error": "Internal server error"}), 500
