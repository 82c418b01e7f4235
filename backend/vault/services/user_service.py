# Overview: Service-layer operations for user administration.

from __future__ import annotations

import re
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from ..capabilities import CHANGE_ACCESS_LEVEL
from ..extensions import db
from ..models import User, Group, ACCESS_LEVELS, DEFAULT_ACCESS_LEVEL
from ..outcomes import NotFound, PermissionDenied, ValidationFailure
from .concurrency import lock_for_update, run_with_retry
from .identity_service import normalize_email
from .role_gate import authorize


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
DRAFT_FIELDS = ("email", "name", "position", "group_id", "access_level", "avatar")


def _blank_to_none(value):
    return None if value == "" else value


@dataclass(frozen=True)
class UserDraft:
    email: str | None = None
    name: str | None = None
    position: str | None = None
    group_id: str | None = None
    access_level: str | None = None
    avatar: str | None = None

    @classmethod
    def from_dict(cls, data: dict | None) -> "UserDraft":
        data = data or {}
        return cls(
            email=data.get("email"),
            name=data.get("name"),
            position=data.get("position"),
            group_id=_blank_to_none(data.get("group_id")),
            access_level=_blank_to_none(data.get("access_level")),
            avatar=_blank_to_none(data.get("avatar")),
        )


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.name.asc(), User.email.asc()).all()


def get_user(user_id: str) -> User | NotFound:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        return NotFound("User", user_id)
    return user


def create_user(draft: UserDraft) -> User | ValidationFailure:
    """
    Register a user.

    Email is lower-cased and must be unique. Access level defaults to viewer.
    """
    for field in DRAFT_FIELDS:
        value = getattr(draft, field)
        if value is not None and not isinstance(value, str):
            return ValidationFailure(f"{field} must be a string", field)

    email = normalize_email(draft.email)
    if not email:
        return ValidationFailure("email is required", "email")
    if not EMAIL_PATTERN.match(email):
        return ValidationFailure("email is not a valid address", "email")

    name = (draft.name or "").strip()
    if not name:
        return ValidationFailure("name is required", "name")

    access_level = draft.access_level or DEFAULT_ACCESS_LEVEL
    if access_level not in ACCESS_LEVELS:
        return ValidationFailure(
            f"access_level must be one of: {', '.join(ACCESS_LEVELS)}",
            "access_level",
        )

    if draft.group_id is not None:
        if not db.session.query(Group.id).filter_by(id=draft.group_id).first():
            return ValidationFailure("group_id does not reference a known group", "group_id")

    if db.session.query(User.id).filter(db.func.lower(User.email) == email).first():
        return ValidationFailure("A user with this email already exists", "email")

    user = User(
        email=email,
        name=name,
        position=(draft.position or "").strip(),
        group_id=draft.group_id,
        access_level=access_level,
        avatar=draft.avatar,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race against another registration of the same email
        db.session.rollback()
        return ValidationFailure("A user with this email already exists", "email")
    return user


def update_user_access_level(actor: User, user_id: str, new_level: str) -> User | NotFound | PermissionDenied | ValidationFailure:
    """
    Change another user's access level.

    The self-change guard runs before the existence check, so a user asking
    to change their own level is always denied.
    """
    decision = authorize(actor, CHANGE_ACCESS_LEVEL, user_id)
    if isinstance(decision, PermissionDenied):
        return decision

    if new_level not in ACCESS_LEVELS:
        return ValidationFailure(
            f"access_level must be one of: {', '.join(ACCESS_LEVELS)}",
            "access_level",
        )

    def _op():
        user = lock_for_update(db.session.query(User).filter_by(id=user_id)).first()
        if not user:
            return NotFound("User", user_id)
        user.access_level = new_level
        db.session.commit()
        return user

    return run_with_retry(_op)
