# backend/vault/routes/system.py
"""
System health and version endpoints.

Unauthenticated: they expose counts and timings only, never directory or
credential contents.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Credential, Site, User
from vault.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        site_count = db.session.query(Site).count()
        user_count = db.session.query(User).count()
        credential_count = db.session.query(Credential).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "sites": site_count,
                "users": user_count,
                "credentials": credential_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_codec_health() -> dict:
    """Encrypt and decrypt a probe value with the configured keys."""
    start_time = time.time()
    codec = current_app.extensions["secret_codec"]
    probe = "health-probe"
    ok = codec.decode(codec.encode(probe)) == probe
    elapsed_ms = (time.time() - start_time) * 1000
    if not ok:
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Secret codec round trip failed",
        }
    return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: All systems healthy
    - 503: One or more systems unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    codec_health = check_codec_health()

    all_checks = [database_health, codec_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status = "unhealthy"
        http_status = 503
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "secret_codec": codec_health,
        }
    }

    return response, http_status


@system_bp.get("/version")
def version():
    """Non-sensitive deployment information."""
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
