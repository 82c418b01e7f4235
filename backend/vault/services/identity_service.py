# Overview: Maps an externally verified principal onto a registered User.

"""
Identity Resolution

The identity provider (in front of this service) has already verified the
principal's email. This module only answers "is that email registered, and
as whom?". It is the single trust boundary for authentication:

- Fail closed: unknown or blank principals yield NotRegistered
- Case-insensitive: emails are stored lower-cased, input is normalized
- No partial users: either a full User row or NotRegistered
"""

from __future__ import annotations

from ..extensions import db
from ..models import User
from ..outcomes import NotRegistered


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def resolve(principal_id: str | None) -> User | NotRegistered:
    email = normalize_email(principal_id)
    if not email:
        return NotRegistered(principal_id="")

    user = db.session.query(User).filter(db.func.lower(User.email) == email).first()
    if not user:
        return NotRegistered(principal_id=email)
    return user
