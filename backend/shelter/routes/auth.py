# Overview: Flask API routes for login, logout and the current caller.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import auth_service, session_service, audit_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Exchange credentials for a bearer token.

    Request body:
    {
        "username": "staff1",   (or "email")
        "password": "..."
    }

    Returns:
        200: token, user and session
        400: missing fields
        401: invalid credentials
    """
    try:
        data = request.get_json(silent=True) or {}
        identifier = data.get("username") or data.get("email")
        password = data.get("password")

        if not all([identifier, password]):
            return jsonify({"error": "username/email and password required"}), 400

        user = auth_service.authenticate(identifier, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        audit_service.record(user.id, audit_service.LOGIN, f"User {user.username} logged in")

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.session_token)
    audit_service.record(g.current_user.id, audit_service.LOGOUT, f"User {g.current_user.username} logged out")
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200
