# Overview: Service-layer operations for credentials and their version history.

"""
Credential Store

Create, read, update and delete site credentials, keeping every overwritten
state as an immutable history entry.

VERSIONING:
- update appends exactly one history entry holding the state the row had
  immediately before the call (description, username, encoded secret,
  last editor, last edit time)
- the append and the overwrite are one atomic unit in the repository
- history entries are never changed; on delete they are kept unless the
  deployment sets HISTORY_ON_DELETE = "cascade"

SECRETS:
- encoded through the application's SecretCodec before persisting
- decoded per row on read; one undecodable row is reported on that row only
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app

from ..models import Credential, CredentialHistory, CREDENTIAL_CATEGORIES
from ..outcomes import DECODE_FAILURE_PLACEHOLDER, DecodeFailure, NotFound, ValidationFailure
from ..repositories import CredentialRepositoryProtocol, SqlAlchemyCredentialRepository
from .secret_codec import SecretCodec, get_codec
from vault.time_utils import to_utc_z, utcnow


REQUIRED_CREATE_FIELDS = ("site_id", "description", "username", "secret", "category")
REQUIRED_UPDATE_FIELDS = ("description", "username", "secret", "category")


@dataclass(frozen=True)
class CredentialDraft:
    """Client-submitted credential fields. id present means update."""
    id: str | None = None
    site_id: str | None = None
    description: str | None = None
    username: str | None = None
    secret: str | None = None
    category: str | None = None

    @classmethod
    def from_dict(cls, data: dict | None) -> "CredentialDraft":
        data = data or {}
        # Older clients send password_value / login_type / hotel_id
        return cls(
            id=data.get("id") or None,
            site_id=data.get("site_id", data.get("hotel_id")),
            description=data.get("description"),
            username=data.get("username"),
            secret=data.get("secret", data.get("password_value")),
            category=data.get("category", data.get("login_type")),
        )


@dataclass(frozen=True)
class CredentialView:
    """A credential with its secret decoded (or the decode failure)."""
    id: str
    site_id: str
    description: str
    username: str
    secret: str | None
    category: str
    created_by: str
    last_edited: datetime | None
    last_edited_by: str | None
    secret_error: DecodeFailure | None = field(default=None, compare=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "site_id": self.site_id,
            "description": self.description,
            "username": self.username,
            "secret": self.secret if self.secret_error is None else DECODE_FAILURE_PLACEHOLDER,
            "secret_error": self.secret_error is not None,
            "category": self.category,
            "created_by": self.created_by,
            "last_edited": to_utc_z(self.last_edited),
            "last_edited_by": self.last_edited_by,
        }


@dataclass(frozen=True)
class HistoryView:
    id: str
    credential_id: str
    description: str
    username: str
    secret: str | None
    changed_by: str | None
    change_date: datetime
    version: int = 1
    encoded_secret: str = field(default="", repr=False, compare=False)
    secret_error: DecodeFailure | None = field(default=None, compare=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "credential_id": self.credential_id,
            "description": self.description,
            "username": self.username,
            "secret": self.secret if self.secret_error is None else DECODE_FAILURE_PLACEHOLDER,
            "secret_error": self.secret_error is not None,
            "changed_by": self.changed_by,
            "change_date": to_utc_z(self.change_date),
            "version": self.version,
        }


def _repository(repository: CredentialRepositoryProtocol | None) -> CredentialRepositoryProtocol:
    return repository if repository is not None else SqlAlchemyCredentialRepository()


def _codec(codec: SecretCodec | None) -> SecretCodec:
    return codec if codec is not None else get_codec()


def _split_decoded(decoded: str | DecodeFailure) -> tuple[str | None, DecodeFailure | None]:
    if isinstance(decoded, DecodeFailure):
        return None, decoded
    return decoded, None


def _to_view(row: Credential, codec: SecretCodec) -> CredentialView:
    secret, error = _split_decoded(codec.decode(row.encoded_secret))
    return CredentialView(
        id=row.id,
        site_id=row.site_id,
        description=row.description,
        username=row.username,
        secret=secret,
        category=row.category,
        created_by=row.created_by,
        last_edited=row.last_edited,
        last_edited_by=row.last_edited_by,
        secret_error=error,
    )


def _to_history_view(entry: CredentialHistory, codec: SecretCodec) -> HistoryView:
    secret, error = _split_decoded(codec.decode(entry.encoded_secret))
    return HistoryView(
        id=entry.id,
        credential_id=entry.credential_id,
        description=entry.description,
        username=entry.username,
        secret=secret,
        changed_by=entry.changed_by,
        change_date=entry.change_date,
        version=entry.version,
        encoded_secret=entry.encoded_secret,
        secret_error=error,
    )


def _validate(draft: CredentialDraft, required: tuple[str, ...]) -> ValidationFailure | None:
    for name in required:
        value = getattr(draft, name)
        if value is None:
            return ValidationFailure(f"{name} is required", name)
        if not isinstance(value, str):
            return ValidationFailure(f"{name} must be a string", name)
        # An empty secret is a legitimate value (open networks); other fields are not
        if name != "secret" and not value.strip():
            return ValidationFailure(f"{name} is required", name)

    if draft.category not in CREDENTIAL_CATEGORIES:
        return ValidationFailure(
            f"category must be one of: {', '.join(CREDENTIAL_CATEGORIES)}",
            "category",
        )
    return None


def list_credentials(
    site_id: str,
    *,
    repository: CredentialRepositoryProtocol | None = None,
    codec: SecretCodec | None = None,
) -> list[CredentialView]:
    codec = _codec(codec)
    return [_to_view(row, codec) for row in _repository(repository).list_for_site(site_id)]


def get_credential(
    credential_id: str,
    *,
    repository: CredentialRepositoryProtocol | None = None,
    codec: SecretCodec | None = None,
) -> CredentialView | NotFound:
    row = _repository(repository).get(credential_id)
    if not row:
        return NotFound("Credential", credential_id)
    return _to_view(row, _codec(codec))


def create_credential(
    draft: CredentialDraft,
    actor_id: str,
    *,
    repository: CredentialRepositoryProtocol | None = None,
    codec: SecretCodec | None = None,
) -> CredentialView | ValidationFailure:
    failure = _validate(draft, REQUIRED_CREATE_FIELDS)
    if failure:
        return failure

    repository = _repository(repository)
    codec = _codec(codec)

    if not repository.site_exists(draft.site_id):
        return ValidationFailure("site_id does not reference a known site", "site_id")

    now = utcnow()
    row = Credential(
        site_id=draft.site_id,
        description=draft.description.strip(),
        username=draft.username.strip(),
        encoded_secret=codec.encode(draft.secret),
        category=draft.category,
        created_by=actor_id,
        last_edited=now,
        last_edited_by=actor_id,
    )
    row = repository.add(row)
    return _to_view(row, codec)


def update_credential(
    credential_id: str,
    draft: CredentialDraft,
    actor_id: str,
    *,
    repository: CredentialRepositoryProtocol | None = None,
    codec: SecretCodec | None = None,
) -> CredentialView | NotFound | ValidationFailure:
    failure = _validate(draft, REQUIRED_UPDATE_FIELDS)
    if failure:
        return failure

    repository = _repository(repository)
    codec = _codec(codec)
    encoded_secret = codec.encode(draft.secret)

    def _change(current: Credential):
        now = utcnow()
        entry = CredentialHistory(
            credential_id=current.id,
            site_id=current.site_id,
            description=current.description,
            username=current.username,
            encoded_secret=current.encoded_secret,
            changed_by=current.last_edited_by or current.created_by,
            change_date=current.last_edited or now,
            version=current.version_id or 1,
        )
        values = {
            "description": draft.description.strip(),
            "username": draft.username.strip(),
            "encoded_secret": encoded_secret,
            "category": draft.category,
            "last_edited": now,
            "last_edited_by": actor_id,
        }
        return entry, values

    row = repository.versioned_update(credential_id, _change)
    if row is None:
        return NotFound("Credential", credential_id)
    return _to_view(row, codec)


def save_credential(
    draft: CredentialDraft,
    actor_id: str,
    *,
    repository: CredentialRepositoryProtocol | None = None,
    codec: SecretCodec | None = None,
) -> CredentialView | NotFound | ValidationFailure:
    """Update when the draft carries an id, create otherwise."""
    if draft.id:
        return update_credential(draft.id, draft, actor_id, repository=repository, codec=codec)
    return create_credential(draft, actor_id, repository=repository, codec=codec)


def delete_credential(
    credential_id: str,
    *,
    cascade_history: bool | None = None,
    repository: CredentialRepositoryProtocol | None = None,
) -> None | NotFound:
    """
    Remove the current row.

    cascade_history defaults to the HISTORY_ON_DELETE setting.
    """
    if cascade_history is None:
        cascade_history = current_app.config.get("HISTORY_ON_DELETE", "retain") == "cascade"

    removed = _repository(repository).remove(credential_id, cascade_history=cascade_history)
    if not removed:
        return NotFound("Credential", credential_id)
    return None


def credential_history(
    credential_id: str,
    *,
    repository: CredentialRepositoryProtocol | None = None,
    codec: SecretCodec | None = None,
) -> list[HistoryView]:
    """Newest first. Unknown ids give an empty list."""
    codec = _codec(codec)
    return [_to_history_view(entry, codec) for entry in _repository(repository).history_for(credential_id)]


def credential_site_id(
    credential_id: str,
    *,
    repository: CredentialRepositoryProtocol | None = None,
) -> str | None:
    """
    Site a credential (or, once deleted, its history) belongs to.

    Used to authorize access by id before any data is returned.
    """
    repository = _repository(repository)
    row = repository.get(credential_id)
    if row:
        return row.site_id
    return repository.history_site_id(credential_id)
