from __future__ import annotations

from ..extensions import db
from .directory import new_id


CREDENTIAL_CATEGORIES = ("Admin", "WiFi", "PMS", "Vendor", "Social", "Other")


class Credential(db.Model):
    """
    Current state of a stored login for one site.

    The secret column only ever holds the codec's output; plaintext never
    reaches the database. Overwrites go through credential_service so the
    previous state lands in credential_history first.
    """
    __tablename__ = "credentials"
    __table_args__ = (
        db.CheckConstraint(
            "category IN ('Admin', 'WiFi', 'PMS', 'Vendor', 'Social', 'Other')",
            name="ck_credentials_category",
        ),
        db.Index("ix_credentials_site_id", "site_id"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    site_id = db.Column(db.String(36), db.ForeignKey("sites.id"), nullable=False)
    description = db.Column(db.String(255), nullable=False)
    username = db.Column(db.String(255), nullable=False)
    encoded_secret = db.Column(db.Text, nullable=False, default="")
    category = db.Column(db.String(16), nullable=False, default="Other")
    created_by = db.Column(db.String(36), nullable=False)
    last_edited = db.Column(db.DateTime(timezone=True), nullable=True)
    last_edited_by = db.Column(db.String(36), nullable=True)

    # Optimistic locking: concurrent writers on the same row raise StaleDataError
    version_id = db.Column(db.Integer, nullable=False, default=1)

    site = db.relationship("Site", backref=db.backref("credentials", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Credential id={self.id} site_id={self.site_id} description={self.description!r}>"


class CredentialHistory(db.Model):
    """
    Snapshot of a credential as it was before an update.

    IMMUTABLE: Never update. Rows are deleted only when the deployment opts
    into HISTORY_ON_DELETE = "cascade". credential_id carries no foreign key
    so entries outlive the credential they describe; site_id is copied so
    access to that history can still be checked after the credential is gone.
    """
    __tablename__ = "credential_history"
    __table_args__ = (
        db.Index("ix_credential_history_credential_date", "credential_id", "change_date", "version"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    credential_id = db.Column(db.String(36), nullable=False, index=True)
    site_id = db.Column(db.String(36), nullable=True, index=True)
    description = db.Column(db.String(255), nullable=False)
    username = db.Column(db.String(255), nullable=False)
    encoded_secret = db.Column(db.Text, nullable=False, default="")
    changed_by = db.Column(db.String(36), nullable=True)
    change_date = db.Column(db.DateTime(timezone=True), nullable=False)
    # version_id of the credential this entry snapshots; breaks change_date ties
    version = db.Column(db.Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<CredentialHistory id={self.id} credential_id={self.credential_id} change_date={self.change_date}>"
