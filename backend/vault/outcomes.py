# Overview: Typed results returned by services for expected failure conditions.

"""
Expected conditions (unknown principal, unknown id, bad input, denied
operation, unreadable secret) are returned as values instead of raised, so
callers branch on them explicitly:

    result = credential_service.get_credential(credential_id)
    if isinstance(result, NotFound):
        ...

Anything unexpected (database down, programming errors) is still raised.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Allowed:
    """RoleGate approved the operation."""


@dataclass(frozen=True)
class NotRegistered:
    """Principal has no matching User."""
    principal_id: str = ""


@dataclass(frozen=True)
class NotFound:
    """Referenced credential or user does not exist."""
    kind: str
    id: str

    @property
    def message(self) -> str:
        return f"{self.kind} not found"


@dataclass(frozen=True)
class ValidationFailure:
    """Required field missing or malformed."""
    message: str
    field: str | None = None


@dataclass(frozen=True)
class PermissionDenied:
    """RoleGate rejected the operation."""
    reason: str
    operation: str | None = None


@dataclass(frozen=True)
class DecodeFailure:
    """A stored secret could not be decoded. Never fatal for list operations."""
    reason: str


# Rendered in place of a secret whose stored value could not be decoded
DECODE_FAILURE_PLACEHOLDER = "Error decrypting"
