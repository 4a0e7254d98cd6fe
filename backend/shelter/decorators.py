# Overview: Request authentication and role decorators for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'caller')


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid bearer token and establish the caller context.

    Sets the following Flask g attributes:
    - g.current_user: the authenticated User
    - g.caller: CallerContext(user_id, role) handed to the services
    - g.session_token: the plaintext token (used by logout)

    Returns 401 for a missing, invalid, expired or idle token.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.caller = context.caller
        g.session_token = token

        return f(*args, **kwargs)

    return decorated_function


def require_role(*role_names: str):
    """
    Require the authenticated user to hold one of the given roles.

    Must be stacked under @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.caller.role not in role_names:
                current_app.logger.warning(
                    "Role denied: user %s (%s) on %s %s",
                    g.caller.user_id, g.caller.role, request.method, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "code": "RoleRequired",
                    "required_roles": list(role_names),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
