# Overview: Flask API routes for sites; lists what the current user can see.

from flask import Blueprint, jsonify, g

from ..capabilities import READ_CREDENTIALS, READ_OWN_PROFILE
from ..decorators import deny_site_access, require_auth, require_capability
from ..services import access_service, credential_service


sites_bp = Blueprint("sites", __name__, url_prefix="/api/sites")


@sites_bp.get("")
@require_auth
@require_capability(READ_OWN_PROFILE)
def list_accessible_sites():
    sites = access_service.get_accessible_sites(g.current_user)
    return jsonify([site.to_dict() for site in sites]), 200


@sites_bp.get("/<site_id>/credentials")
@require_auth
def list_site_credentials(site_id: str):
    denied = deny_site_access(READ_CREDENTIALS, site_id)
    if denied:
        return denied

    credentials = credential_service.list_credentials(site_id)
    return jsonify([credential.to_dict() for credential in credentials]), 200
