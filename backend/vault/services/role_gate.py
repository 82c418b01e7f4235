# Overview: Access-level checks for every operation.

"""
Role Gate

Decides whether a user may perform an operation, based on the capability
set of their access level (viewer < manager < admin).

DESIGN PRINCIPLES:
- Fail closed: unknown access levels and missing targets deny
- Self-change guard first: nobody changes their own access level, whatever
  their level, and this is checked before anything else
- Site-scoped operations also require the target site to be visible
- Pure: authorize() reads nothing but its arguments; callers record
  denials through audit_service
"""

from __future__ import annotations

from typing import Iterable

from ..capabilities import (
    CHANGE_ACCESS_LEVEL,
    READ_ANY_PROFILE,
    READ_OWN_PROFILE,
    SITE_SCOPED_CAPABILITIES,
    capabilities_for,
)
from ..outcomes import Allowed, PermissionDenied


def _target_id(target) -> str | None:
    if target is None:
        return None
    if isinstance(target, str):
        return target
    return getattr(target, "id", None)


def authorize(
    actor,
    operation: str,
    target=None,
    *,
    visible_site_ids: Iterable[str] | None = None,
) -> Allowed | PermissionDenied:
    """
    Check one operation for one actor.

    target:
    - CHANGE_ACCESS_LEVEL / READ_OWN_PROFILE: the User (or user id) acted on
    - site-scoped operations: the site id the credential belongs to
    """
    target_id = _target_id(target)

    if operation == CHANGE_ACCESS_LEVEL and target_id is not None and target_id == actor.id:
        return PermissionDenied("Users cannot change their own access level", operation)

    capabilities = capabilities_for(actor.access_level)

    if operation == READ_OWN_PROFILE and target_id is not None and target_id != actor.id:
        if READ_ANY_PROFILE not in capabilities:
            return PermissionDenied(f"Missing capability: {READ_ANY_PROFILE}", operation)
        return Allowed()

    if operation not in capabilities:
        return PermissionDenied(f"Missing capability: {operation}", operation)

    if operation in SITE_SCOPED_CAPABILITIES:
        if target_id is None:
            return PermissionDenied("Site is required for this operation", operation)
        if visible_site_ids is None or target_id not in set(visible_site_ids):
            return PermissionDenied("Site is not accessible", operation)

    return Allowed()
