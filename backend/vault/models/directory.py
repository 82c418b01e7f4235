from __future__ import annotations

import uuid

from ..extensions import db


ACCESS_LEVELS = ("viewer", "manager", "admin")
DEFAULT_ACCESS_LEVEL = "viewer"


def new_id() -> str:
    """Random 128-bit identifier, rendered as a uuid4 string."""
    return str(uuid.uuid4())


class Group(db.Model):
    """
    Organizational unit above sites.

    Users and sites both optionally point at a group; a user sees every site
    of their group without needing a direct grant.
    """
    __tablename__ = "groups"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Group id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class Site(db.Model):
    """A hotel. Every credential belongs to exactly one site."""
    __tablename__ = "sites"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(255), nullable=False)
    group_id = db.Column(db.String(36), db.ForeignKey("groups.id"), nullable=True, index=True)

    group = db.relationship("Group", backref=db.backref("sites", lazy=True))

    def __repr__(self) -> str:
        return f"<Site id={self.id} name={self.name!r} group_id={self.group_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "group_id": self.group_id,
        }


class User(db.Model):
    """
    Registered principal.

    Authentication happens upstream (identity provider); a User row only
    says who is allowed in and at which access level. Email is stored
    lower-cased so lookups can be case-insensitive.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint(
            "access_level IN ('viewer', 'manager', 'admin')",
            name="ck_users_access_level",
        ),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    position = db.Column(db.String(255), nullable=False, default="")
    group_id = db.Column(db.String(36), db.ForeignKey("groups.id"), nullable=True, index=True)
    access_level = db.Column(db.String(16), nullable=False, default=DEFAULT_ACCESS_LEVEL)
    avatar = db.Column(db.String(1024), nullable=True)

    group = db.relationship("Group", backref=db.backref("users", lazy=True))

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} access_level={self.access_level}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "position": self.position,
            "group_id": self.group_id,
            "access_level": self.access_level,
            "avatar": self.avatar,
        }


class Permission(db.Model):
    """Direct grant: user may see site."""
    __tablename__ = "permissions"
    __table_args__ = (
        db.Index("ix_permissions_user_site", "user_id", "site_id"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    site_id = db.Column(db.String(36), db.ForeignKey("sites.id"), nullable=False, index=True)

    user = db.relationship("User", backref=db.backref("site_permissions", lazy=True))
    site = db.relationship("Site", backref=db.backref("user_permissions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "site_id": self.site_id,
        }
