# backend/vault/routes/auth.py
"""
Authentication API routes

The identity provider authenticates users before requests reach this
service; these routes only map the verified principal onto a registered
user. There is no password or token handling here.
"""

from flask import Blueprint, jsonify, current_app, request, g

from ..capabilities import READ_OWN_PROFILE
from ..decorators import principal_from_request, require_auth, require_capability
from ..outcomes import NotRegistered
from ..services import access_service, audit_service, identity_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Self-registration is disabled.

    Users can only be created by administrators via:
    - POST /api/admin/users (requires CREATE_USER)
    - CLI: flask users create
    """
    return jsonify({
        "error": "Self-registration is disabled. Contact an administrator to create an account."
    }), 403


@auth_bp.post("/login")
def login_route():
    """
    Resolve the verified principal and return the session bundle.

    Returns the user and the sites they can see. Unknown principals get 401
    and a LOGIN_FAILED security event.
    """
    principal = principal_from_request()
    if not principal:
        return jsonify({
            "error": "Could not detect an authenticated account. Please ensure you are logged in."
        }), 401

    try:
        user = identity_service.resolve(principal)

        if isinstance(user, NotRegistered):
            audit_service.log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource=request.path,
                action="LOGIN",
                reason="Principal is not registered",
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
            return jsonify({
                "error": f"Access denied: {user.principal_id} is not registered in the system."
            }), 401

        sites = access_service.get_accessible_sites(user)
        return jsonify({
            "user": user.to_dict(),
            "accessible_sites": [site.to_dict() for site in sites],
            "message": "Login successful",
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
@require_capability(READ_OWN_PROFILE)
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200
