# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

# backend/vault/routes/admin.py
"""
Admin routes for user management.

Provides endpoints for:
- Listing users
- Creating users
- Changing a user's access level (never one's own)

Sites, groups and direct grants are managed from the CLI.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..capabilities import CREATE_USER, LIST_USERS
from ..decorators import require_auth, require_capability
from ..outcomes import PermissionDenied
from ..responses import body_error, error_response
from ..services import audit_service, user_service
from ..services.user_service import UserDraft

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_capability(LIST_USERS)
def list_users():
    users = user_service.list_users()
    return jsonify({"users": [user.to_dict() for user in users], "count": len(users)})


@admin_bp.post("/users")
@require_auth
@require_capability(CREATE_USER)
def create_user():
    """
    Create a new user.

    Request body:
    - email: str (required)
    - name: str (required)
    - position: str (optional)
    - group_id: str (optional)
    - access_level: viewer | manager | admin (optional, default viewer)
    - avatar: str (optional)
    """
    data = request.get_json(silent=True) or {}
    invalid = body_error(data)
    if invalid:
        return invalid

    try:
        draft = UserDraft.from_dict(data)
        result = user_service.create_user(draft)
        failure = error_response(result)
        if failure:
            return failure

        audit_service.log_security_event(
            user_id=g.current_user.id,
            event_type="USER_CREATED",
            success=True,
            resource="/api/admin/users",
            action=f"Created user: {result.email}",
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent")
        )
        current_app.logger.info("User %s created by %s", result.id, g.current_user.id)

        return jsonify({"user": result.to_dict(), "message": "User created successfully"}), 201

    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.patch("/users/<user_id>/access-level")
@require_auth
def update_user_access_level(user_id: str):
    """
    Change a user's access level.

    Request body:
    - access_level: viewer | manager | admin
    """
    data = request.get_json(silent=True) or {}
    invalid = body_error(data)
    if invalid:
        return invalid
    new_level = data.get("access_level")

    try:
        result = user_service.update_user_access_level(g.current_user, user_id, new_level)

        if isinstance(result, PermissionDenied):
            audit_service.log_security_event(
                user_id=g.current_user.id,
                event_type="PERMISSION_DENIED",
                success=False,
                resource=request.path,
                action=result.operation,
                reason=result.reason,
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
        failure = error_response(result)
        if failure:
            return failure

        audit_service.log_security_event(
            user_id=g.current_user.id,
            event_type="ACCESS_LEVEL_CHANGED",
            success=True,
            resource=request.path,
            action=f"{user_id} -> {new_level}",
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        current_app.logger.info(
            "Access level of %s set to %s by %s", user_id, new_level, g.current_user.id
        )
        return jsonify({"user": result.to_dict()}), 200

    except Exception:
        current_app.logger.exception("Failed to update access level")
        return jsonify({"error": "Internal server error"}), 500
