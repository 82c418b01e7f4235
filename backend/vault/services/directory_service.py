from __future__ import annotations

from ..extensions import db
from ..models import Group, Site, User, Permission


class DirectoryError(Exception):
    """Raised when group, site or grant operations fail."""
    pass


def create_group(name: str) -> Group:
    if not name or not name.strip():
        raise DirectoryError("Group name is required")

    existing = db.session.query(Group).filter_by(name=name.strip()).first()
    if existing:
        raise DirectoryError("Group already exists")

    group = Group(name=name.strip())
    db.session.add(group)
    db.session.commit()
    return group


def list_groups() -> list[Group]:
    return db.session.query(Group).order_by(Group.name.asc()).all()


def create_site(name: str, group_id: str | None = None) -> Site:
    if not name or not name.strip():
        raise DirectoryError("Site name is required")

    if group_id is not None:
        group = db.session.query(Group).filter_by(id=group_id).first()
        if not group:
            raise DirectoryError("Group not found")

    site = Site(name=name.strip(), group_id=group_id)
    db.session.add(site)
    db.session.commit()
    return site


def list_sites() -> list[Site]:
    return db.session.query(Site).order_by(Site.name.asc(), Site.id.asc()).all()


def grant_site(user_id: str, site_id: str) -> Permission:
    """Grant direct visibility of a site. Granting twice returns the existing row."""
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise DirectoryError("User not found")

    site = db.session.query(Site).filter_by(id=site_id).first()
    if not site:
        raise DirectoryError("Site not found")

    existing = db.session.query(Permission).filter_by(user_id=user_id, site_id=site_id).first()
    if existing:
        return existing

    permission = Permission(user_id=user_id, site_id=site_id)
    db.session.add(permission)
    db.session.commit()
    return permission


def revoke_site(user_id: str, site_id: str) -> bool:
    deleted = db.session.query(Permission).filter_by(user_id=user_id, site_id=site_id).delete()
    db.session.commit()
    return deleted > 0


def list_permissions(user_id: str | None = None) -> list[Permission]:
    query = db.session.query(Permission)
    if user_id is not None:
        query = query.filter_by(user_id=user_id)
    return query.order_by(Permission.user_id.asc(), Permission.site_id.asc()).all()
