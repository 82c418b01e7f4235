# Overview: Request and capability decorators for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .outcomes import NotRegistered, PermissionDenied
from .responses import error_response
from .services import access_service, audit_service, identity_service, role_gate


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def principal_from_request() -> str | None:
    """Verified email placed on the request by the identity-aware proxy."""
    header = current_app.config.get("PRINCIPAL_HEADER", "X-Authenticated-Email")
    value = request.headers.get(header)
    if not value or not value.strip():
        return None
    return value.strip()


def _record_denial(user, decision: PermissionDenied, resource_site: str | None = None) -> None:
    audit_service.log_security_event(
        user_id=user.id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=request.path,
        action=decision.operation,
        reason=decision.reason if resource_site is None else f"{decision.reason} (site {resource_site})",
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )


def require_auth(f):
    """
    Require a registered principal.

    Sets g.current_user to the resolved User. The user is re-read on every
    request so access-level changes apply immediately.

    SECURITY: Returns 401 if:
    - No principal header (the proxy did not authenticate the request)
    - The principal is not a registered user
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        principal = principal_from_request()
        if not principal:
            return jsonify({"error": "Authentication required"}), 401

        user = identity_service.resolve(principal)
        if isinstance(user, NotRegistered):
            audit_service.log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource=request.path,
                action=request.method,
                reason="Principal is not registered",
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
            return jsonify({"error": "Access denied: principal is not registered"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_capability(operation: str):
    """
    Require a capability that is not tied to a site.

    Denials are recorded as PERMISSION_DENIED security events.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            decision = role_gate.authorize(g.current_user, operation)
            if isinstance(decision, PermissionDenied):
                _record_denial(g.current_user, decision)
                return error_response(decision)

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def deny_site_access(operation: str, site_id: str | None):
    """
    Check a site-scoped operation for the current user.

    Returns a 403 response (and records the denial) when not allowed,
    None when allowed. Visible sites are recomputed for every check.
    """
    user = g.current_user
    visible = access_service.get_accessible_site_ids(user)
    decision = role_gate.authorize(user, operation, site_id, visible_site_ids=visible)
    if isinstance(decision, PermissionDenied):
        _record_denial(user, decision, resource_site=site_id)
        return error_response(decision)
    return None
