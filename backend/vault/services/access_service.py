# Overview: Computes which sites a user may see.

from __future__ import annotations

from typing import Iterable, Sequence

from ..extensions import db
from ..models import User, Site, Permission


def visible_sites(user: User, sites: Sequence[Site], permissions: Iterable[Permission]) -> list[Site]:
    """
    Sites visible to user: direct grants plus every site of the user's group.

    Pure function of its inputs. Output keeps the order of `sites` and holds
    each site id once, so identical inputs always give identical output.
    """
    granted_ids = {p.site_id for p in permissions if p.user_id == user.id}
    group_id = user.group_id

    result: list[Site] = []
    seen: set[str] = set()
    for site in sites:
        if site.id in seen:
            continue
        if site.id in granted_ids or (group_id is not None and site.group_id == group_id):
            seen.add(site.id)
            result.append(site)
    return result


def get_accessible_sites(user: User) -> list[Site]:
    """
    Load the directory tables and resolve the user's visible sites.

    Recomputed on every call: a revoked grant takes effect on the next request.
    """
    sites = db.session.query(Site).order_by(Site.name.asc(), Site.id.asc()).all()
    permissions = db.session.query(Permission).filter_by(user_id=user.id).all()
    return visible_sites(user, sites, permissions)


def get_accessible_site_ids(user: User) -> set[str]:
    return {site.id for site in get_accessible_sites(user)}
