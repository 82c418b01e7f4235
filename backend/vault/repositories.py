# Overview: Persistence contract for credentials and its SQLAlchemy implementation.

"""
Credential Repository

credential_service only talks to this interface: list/get/add/remove rows
and one atomic "append history + overwrite current row" unit. Any engine that
can honor those calls (relational, document, flat files) can stand in.

The SQLAlchemy implementation serializes writers on the same credential with
SELECT ... FOR UPDATE plus the optimistic version_id column, and re-runs the
whole unit when a concurrent writer wins.
"""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable

from .extensions import db
from .models import Credential, CredentialHistory, Site
from .services.concurrency import lock_for_update, run_with_retry


# Given the locked current row, returns the history snapshot to append and
# the column values to write onto the row.
VersionedChange = Callable[[Credential], "tuple[CredentialHistory, dict]"]


@runtime_checkable
class CredentialRepositoryProtocol(Protocol):
    """
    Interface for credential persistence.

    Implementations must make versioned_update all-or-nothing: either the
    history row and the overwrite are both visible afterwards, or neither is.
    """

    def site_exists(self, site_id: str) -> bool:
        ...

    def list_for_site(self, site_id: str) -> list[Credential]:
        ...

    def get(self, credential_id: str) -> Credential | None:
        ...

    def add(self, credential: Credential) -> Credential:
        ...

    def versioned_update(self, credential_id: str, change: VersionedChange) -> Credential | None:
        """Apply change atomically. None when the credential does not exist."""
        ...

    def remove(self, credential_id: str, *, cascade_history: bool = False) -> bool:
        """Delete the current row. False when it does not exist."""
        ...

    def history_for(self, credential_id: str) -> list[CredentialHistory]:
        """Entries for the credential, newest first."""
        ...

    def history_site_id(self, credential_id: str) -> str | None:
        ...


class SqlAlchemyCredentialRepository:
    def site_exists(self, site_id: str) -> bool:
        return db.session.query(Site.id).filter_by(id=site_id).first() is not None

    def list_for_site(self, site_id: str) -> list[Credential]:
        return (
            db.session.query(Credential)
            .filter_by(site_id=site_id)
            .order_by(Credential.description.asc(), Credential.id.asc())
            .all()
        )

    def get(self, credential_id: str) -> Credential | None:
        return db.session.query(Credential).filter_by(id=credential_id).first()

    def add(self, credential: Credential) -> Credential:
        def _op():
            db.session.add(credential)
            db.session.commit()
            return credential

        return run_with_retry(_op)

    def versioned_update(self, credential_id: str, change: VersionedChange) -> Credential | None:
        def _op():
            row = lock_for_update(db.session.query(Credential).filter_by(id=credential_id)).first()
            if not row:
                return None

            try:
                entry, values = change(row)
                db.session.add(entry)
                for column, value in values.items():
                    setattr(row, column, value)
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
            return row

        return run_with_retry(_op)

    def remove(self, credential_id: str, *, cascade_history: bool = False) -> bool:
        def _op():
            row = lock_for_update(db.session.query(Credential).filter_by(id=credential_id)).first()
            if not row:
                return False

            try:
                if cascade_history:
                    db.session.query(CredentialHistory).filter_by(
                        credential_id=credential_id
                    ).delete(synchronize_session=False)
                db.session.delete(row)
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
            return True

        return run_with_retry(_op)

    def history_for(self, credential_id: str) -> list[CredentialHistory]:
        return (
            db.session.query(CredentialHistory)
            .filter_by(credential_id=credential_id)
            .order_by(CredentialHistory.change_date.desc(), CredentialHistory.version.desc())
            .all()
        )

    def history_site_id(self, credential_id: str) -> str | None:
        row = (
            db.session.query(CredentialHistory.site_id)
            .filter_by(credential_id=credential_id)
            .filter(CredentialHistory.site_id.isnot(None))
            .first()
        )
        return row[0] if row else None
