from __future__ import annotations

from ..extensions import db
from vault.time_utils import to_utc_z
from .directory import new_id


class SecurityEvent(db.Model):
    """
    Security event audit log.

    Track failed logins, permission denials and every write to credentials
    or users. Reasons and actions never contain secret values.

    IMMUTABLE: Never update. Only the retention cleanup deletes rows.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_user_type", "user_id", "event_type"),
        db.Index("ix_security_events_occurred", "occurred_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    user_id = db.Column(db.String(36), nullable=True, index=True)  # Nullable for unknown principals

    # Event classification
    event_type = db.Column(db.String(64), nullable=False, index=True)  # PERMISSION_DENIED, LOGIN_FAILED, etc.
    resource = db.Column(db.String(255), nullable=True)  # e.g., "/api/credentials"
    action = db.Column(db.String(128), nullable=True)    # e.g., "DELETE_CREDENTIAL"

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    # Client context
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "resource": self.resource,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "occurred_at": to_utc_z(self.occurred_at),
        }
