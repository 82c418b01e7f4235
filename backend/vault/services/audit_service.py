# Overview: Append-only security event trail (logins, denials, writes).

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import SecurityEvent
from vault.time_utils import utcnow


def log_security_event(
    user_id: str | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - LOGIN_FAILED
    - PERMISSION_DENIED
    - USER_CREATED
    - ACCESS_LEVEL_CHANGED
    - CREDENTIAL_CREATED / CREDENTIAL_UPDATED / CREDENTIAL_DELETED

    Callers must never put secret values in reason or action.
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event


def list_security_events(
    *,
    user_id: str | None = None,
    event_type: str | None = None,
    limit: int = 100,
) -> list[SecurityEvent]:
    query = db.session.query(SecurityEvent)
    if user_id is not None:
        query = query.filter_by(user_id=user_id)
    if event_type is not None:
        query = query.filter_by(event_type=event_type)
    return query.order_by(SecurityEvent.occurred_at.desc()).limit(limit).all()


def cleanup_security_events(*, retention_days: int = 90) -> int:
    """Delete events older than the retention window. Returns the count removed."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete()
    db.session.commit()
    return deleted
