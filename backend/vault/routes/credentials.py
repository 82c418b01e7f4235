# Overview: Flask API routes for credentials and their history; parses input and returns JSON responses.

# backend/vault/routes/credentials.py
"""
Credential routes.

Every route resolves the site a credential belongs to first, then checks
the current user's access to that site, then acts. Secrets are returned
decoded; an undecodable secret is replaced by a placeholder and flagged
with "secret_error".
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..capabilities import CREATE_CREDENTIAL, DELETE_CREDENTIAL, READ_CREDENTIALS, UPDATE_CREDENTIAL
from ..decorators import deny_site_access, require_auth
from ..outcomes import NotFound, ValidationFailure
from ..responses import body_error, error_response
from ..services import audit_service, credential_service
from ..services.credential_service import CredentialDraft


credentials_bp = Blueprint("credentials", __name__, url_prefix="/api/credentials")


def _not_found(credential_id: str):
    return error_response(NotFound("Credential", credential_id))


def _record_write(event_type: str, credential_id: str, site_id: str) -> None:
    audit_service.log_security_event(
        user_id=g.current_user.id,
        event_type=event_type,
        success=True,
        resource=request.path,
        action=f"{event_type}:{credential_id}",
        reason=f"site {site_id}",
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )


@credentials_bp.get("/<credential_id>")
@require_auth
def get_credential(credential_id: str):
    site_id = credential_service.credential_site_id(credential_id)
    if site_id is None:
        return _not_found(credential_id)

    denied = deny_site_access(READ_CREDENTIALS, site_id)
    if denied:
        return denied

    result = credential_service.get_credential(credential_id)
    failure = error_response(result)
    if failure:
        return failure
    return jsonify(result.to_dict()), 200


@credentials_bp.get("/<credential_id>/history")
@require_auth
def get_credential_history(credential_id: str):
    """
    Previous states of a credential, newest first.

    Unknown ids return an empty list. History of a deleted credential stays
    readable by users who can see its site.
    """
    site_id = credential_service.credential_site_id(credential_id)
    if site_id is None:
        return jsonify([]), 200

    denied = deny_site_access(READ_CREDENTIALS, site_id)
    if denied:
        return denied

    entries = credential_service.credential_history(credential_id)
    return jsonify([entry.to_dict() for entry in entries]), 200


@credentials_bp.post("")
@require_auth
def save_credential():
    """
    Create or update a credential.

    Request body:
    - id: str (optional) - present means update
    - site_id: str (required on create; ignored on update)
    - description, username, secret, category: required
    """
    data = request.get_json(silent=True) or {}
    invalid = body_error(data)
    if invalid:
        return invalid
    draft = CredentialDraft.from_dict(data)
    for field in ("id", "site_id"):
        value = getattr(draft, field)
        if value is not None and not isinstance(value, str):
            return error_response(ValidationFailure(f"{field} must be a string", field))

    if draft.id:
        site_id = credential_service.credential_site_id(draft.id)
        if site_id is None:
            return _not_found(draft.id)
        operation = UPDATE_CREDENTIAL
    else:
        site_id = draft.site_id
        if not site_id:
            return jsonify({"error": "site_id is required", "field": "site_id"}), 400
        operation = CREATE_CREDENTIAL

    denied = deny_site_access(operation, site_id)
    if denied:
        return denied

    try:
        result = credential_service.save_credential(draft, g.current_user.id)
        failure = error_response(result)
        if failure:
            return failure

        if draft.id:
            _record_write("CREDENTIAL_UPDATED", result.id, result.site_id)
            current_app.logger.info("Credential %s updated by %s", result.id, g.current_user.id)
            return jsonify(result.to_dict()), 200

        _record_write("CREDENTIAL_CREATED", result.id, result.site_id)
        current_app.logger.info("Credential %s created by %s", result.id, g.current_user.id)
        return jsonify(result.to_dict()), 201

    except Exception:
        current_app.logger.exception("Failed to save credential")
        return jsonify({"error": "Internal server error"}), 500


@credentials_bp.delete("/<credential_id>")
@require_auth
def delete_credential(credential_id: str):
    site_id = credential_service.credential_site_id(credential_id)
    if site_id is None:
        return _not_found(credential_id)

    denied = deny_site_access(DELETE_CREDENTIAL, site_id)
    if denied:
        return denied

    try:
        result = credential_service.delete_credential(credential_id)
        failure = error_response(result)
        if failure:
            return failure

        _record_write("CREDENTIAL_DELETED", credential_id, site_id)
        current_app.logger.info("Credential %s deleted by %s", credential_id, g.current_user.id)
        return jsonify({"message": "Credential deleted"}), 200

    except Exception:
        current_app.logger.exception("Failed to delete credential")
        return jsonify({"error": "Internal server error"}), 500
