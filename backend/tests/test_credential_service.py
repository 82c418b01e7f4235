"""
Credential store tests.

Verifies:
- Create/list/get round trip with decoded secrets
- Update appends exactly one history entry holding the previous state
- History is newest first and survives delete unless cascading
- One undecodable row never breaks a listing
- The versioned write is all-or-nothing and retries a lost version race
- Entries sharing a timestamp still come back newest first
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from vault.extensions import db
from vault.models import Credential, CredentialHistory, Site
from vault.outcomes import DECODE_FAILURE_PLACEHOLDER, DecodeFailure, NotFound, ValidationFailure
from vault.repositories import CredentialRepositoryProtocol, SqlAlchemyCredentialRepository
from vault.services import concurrency, credential_service
from vault.services.credential_service import CredentialDraft, CredentialView


@pytest.fixture
def site_h1(db_session):
    site = Site(id="h1", name="H1")
    db_session.add(site)
    db_session.commit()
    return site


@pytest.fixture
def lobby_wifi(site_h1):
    """Credential created by manager bob."""
    draft = CredentialDraft(
        site_id="h1",
        description="Lobby WiFi",
        username="guest",
        secret="Sunrise!2024",
        category="WiFi",
    )
    result = credential_service.create_credential(draft, "bob")
    assert isinstance(result, CredentialView)
    return result


class RacingCredentialRepository(SqlAlchemyCredentialRepository):
    """Bumps version_id behind the session on the first `races` attempts."""

    def __init__(self, races):
        self.races = races
        self.attempts = 0

    def versioned_update(self, credential_id, change):
        def _racing_change(current):
            self.attempts += 1
            if self.attempts <= self.races:
                db.session.execute(
                    text("UPDATE credentials SET version_id = version_id + 1 WHERE id = :id"),
                    {"id": current.id},
                )
            return change(current)

        return super().versioned_update(credential_id, _racing_change)


def _update_draft(**overrides):
    fields = {
        "description": "Lobby WiFi v2",
        "username": "guest2",
        "secret": "Sunset!2025",
        "category": "WiFi",
    }
    fields.update(overrides)
    return CredentialDraft(**fields)


# =============================================================================
# CREATE / READ
# =============================================================================


class TestCreate:

    def test_create_sets_authorship(self, lobby_wifi):
        assert lobby_wifi.id
        assert lobby_wifi.created_by == "bob"
        assert lobby_wifi.last_edited_by == "bob"
        assert lobby_wifi.last_edited is not None

    def test_listed_with_decoded_secret(self, lobby_wifi):
        listed = credential_service.list_credentials("h1")
        assert [c.id for c in listed] == [lobby_wifi.id]
        assert listed[0].secret == "Sunrise!2024"
        assert listed[0].secret_error is None

    def test_secret_stored_encoded(self, db_session, lobby_wifi):
        row = db_session.get(Credential, lobby_wifi.id)
        assert row.encoded_secret
        assert "Sunrise!2024" not in row.encoded_secret

    def test_get_by_id(self, lobby_wifi):
        fetched = credential_service.get_credential(lobby_wifi.id)
        assert fetched == lobby_wifi

    def test_get_unknown_id(self, db_session):
        result = credential_service.get_credential("missing")
        assert isinstance(result, NotFound)
        assert result.message == "Credential not found"

    def test_empty_secret_allowed(self, site_h1):
        draft = CredentialDraft(site_id="h1", description="Pool WiFi", username="open", secret="", category="WiFi")
        result = credential_service.create_credential(draft, "bob")
        assert isinstance(result, CredentialView)
        assert result.secret == ""

    @pytest.mark.parametrize("missing", ["site_id", "description", "username", "secret", "category"])
    def test_required_fields(self, site_h1, missing):
        fields = {
            "site_id": "h1",
            "description": "Back office PC",
            "username": "frontdesk",
            "secret": "pw",
            "category": "Admin",
        }
        fields[missing] = None
        result = credential_service.create_credential(CredentialDraft(**fields), "bob")
        assert isinstance(result, ValidationFailure)
        assert result.field == missing

    def test_blank_description_rejected(self, site_h1):
        draft = CredentialDraft(site_id="h1", description="   ", username="u", secret="s", category="Admin")
        result = credential_service.create_credential(draft, "bob")
        assert isinstance(result, ValidationFailure)
        assert result.field == "description"

    def test_unknown_category_rejected(self, site_h1):
        draft = CredentialDraft(site_id="h1", description="d", username="u", secret="s", category="Email")
        result = credential_service.create_credential(draft, "bob")
        assert isinstance(result, ValidationFailure)
        assert result.field == "category"

    def test_unknown_site_rejected(self, db_session):
        draft = CredentialDraft(site_id="nowhere", description="d", username="u", secret="s", category="Admin")
        result = credential_service.create_credential(draft, "bob")
        assert isinstance(result, ValidationFailure)
        assert result.field == "site_id"

    def test_list_sorted_by_description(self, site_h1):
        for description in ("Vendor portal", "Admin PC", "Lobby WiFi"):
            credential_service.create_credential(
                CredentialDraft(site_id="h1", description=description, username="u", secret="s", category="Other"),
                "bob",
            )
        listed = credential_service.list_credentials("h1")
        assert [c.description for c in listed] == ["Admin PC", "Lobby WiFi", "Vendor portal"]

    def test_list_other_site_empty(self, lobby_wifi):
        assert credential_service.list_credentials("h2") == []

    def test_legacy_field_names(self):
        draft = CredentialDraft.from_dict({
            "hotel_id": "h1",
            "description": "d",
            "username": "u",
            "password_value": "s",
            "login_type": "PMS",
        })
        assert draft.site_id == "h1"
        assert draft.secret == "s"
        assert draft.category == "PMS"
        assert draft.id is None


# =============================================================================
# UPDATE / HISTORY
# =============================================================================


class TestUpdate:

    def test_update_records_previous_state(self, db_session, lobby_wifi):
        before = db_session.get(Credential, lobby_wifi.id).encoded_secret

        updated = credential_service.update_credential(lobby_wifi.id, _update_draft(), "alice")
        assert isinstance(updated, CredentialView)

        history = credential_service.credential_history(lobby_wifi.id)
        assert len(history) == 1
        entry = history[0]
        assert entry.description == "Lobby WiFi"
        assert entry.username == "guest"
        assert entry.changed_by == "bob"
        assert entry.secret == "Sunrise!2024"
        assert entry.encoded_secret == before

        current = credential_service.get_credential(lobby_wifi.id)
        assert current.description == "Lobby WiFi v2"
        assert current.username == "guest2"
        assert current.secret == "Sunset!2025"
        assert current.last_edited_by == "alice"
        assert current.created_by == "bob"

    def test_each_update_appends_one_entry(self, lobby_wifi):
        credential_service.update_credential(lobby_wifi.id, _update_draft(description="v2"), "alice")
        credential_service.update_credential(lobby_wifi.id, _update_draft(description="v3"), "carol")

        history = credential_service.credential_history(lobby_wifi.id)
        assert [entry.description for entry in history] == ["v2", "Lobby WiFi"]
        assert [entry.changed_by for entry in history] == ["alice", "bob"]
        assert history[0].change_date >= history[1].change_date

    def test_save_dispatches_on_id(self, lobby_wifi):
        draft = CredentialDraft(id=lobby_wifi.id, description="Renamed", username="guest", secret="x", category="WiFi")
        result = credential_service.save_credential(draft, "alice")
        assert result.id == lobby_wifi.id
        assert len(credential_service.credential_history(lobby_wifi.id)) == 1

    def test_update_unknown_id(self, db_session):
        result = credential_service.update_credential("missing", _update_draft(), "alice")
        assert isinstance(result, NotFound)
        assert db_session.query(CredentialHistory).count() == 0

    def test_invalid_update_leaves_no_history(self, lobby_wifi):
        result = credential_service.update_credential(lobby_wifi.id, _update_draft(category="Nope"), "alice")
        assert isinstance(result, ValidationFailure)
        assert credential_service.credential_history(lobby_wifi.id) == []

    def test_history_of_unknown_id_is_empty(self, db_session):
        assert credential_service.credential_history("missing") == []

    def test_failed_write_is_all_or_nothing(self, db_session, lobby_wifi):
        repository = SqlAlchemyCredentialRepository()

        def _change(current):
            entry = CredentialHistory(
                credential_id=current.id,
                site_id=current.site_id,
                description=current.description,
                username=current.username,
                encoded_secret=current.encoded_secret,
                changed_by=current.last_edited_by,
                change_date=current.last_edited,
            )
            # Violates ck_credentials_category at commit time
            return entry, {"description": "half-written", "category": "Bogus"}

        with pytest.raises(IntegrityError):
            repository.versioned_update(lobby_wifi.id, _change)

        assert repository.history_for(lobby_wifi.id) == []
        assert credential_service.get_credential(lobby_wifi.id).description == "Lobby WiFi"

    def test_lost_version_race_is_retried(self, db_session, lobby_wifi, monkeypatch):
        monkeypatch.setattr(concurrency.time, "sleep", lambda _: None)
        repository = RacingCredentialRepository(races=1)

        updated = credential_service.update_credential(
            lobby_wifi.id, _update_draft(), "alice", repository=repository
        )

        assert isinstance(updated, CredentialView)
        assert updated.description == "Lobby WiFi v2"
        assert repository.attempts == 2
        assert db_session.query(CredentialHistory).count() == 1
        assert credential_service.credential_history(lobby_wifi.id)[0].description == "Lobby WiFi"

    def test_race_on_every_attempt_propagates(self, db_session, lobby_wifi, monkeypatch):
        monkeypatch.setattr(concurrency.time, "sleep", lambda _: None)
        repository = RacingCredentialRepository(races=3)

        with pytest.raises(StaleDataError):
            credential_service.update_credential(lobby_wifi.id, _update_draft(), "alice", repository=repository)

        assert repository.attempts == 3
        assert db_session.query(CredentialHistory).count() == 0
        assert credential_service.get_credential(lobby_wifi.id).description == "Lobby WiFi"

    def test_same_timestamp_history_ordered_by_version(self, site_h1, monkeypatch):
        frozen = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        monkeypatch.setattr(credential_service, "utcnow", lambda: frozen)

        created = credential_service.create_credential(
            CredentialDraft(site_id="h1", description="Lobby WiFi", username="guest",
                            secret="Sunrise!2024", category="WiFi"),
            "bob",
        )
        credential_service.update_credential(created.id, _update_draft(description="v2"), "alice")
        credential_service.update_credential(created.id, _update_draft(description="v3"), "carol")

        history = credential_service.credential_history(created.id)
        assert [entry.description for entry in history] == ["v2", "Lobby WiFi"]
        assert [entry.version for entry in history] == [2, 1]
        assert history[0].change_date == history[1].change_date
        assert history[0].to_dict()["version"] == 2


# =============================================================================
# DELETE
# =============================================================================


class TestDelete:

    def test_delete_unknown_id(self, db_session):
        assert isinstance(credential_service.delete_credential("missing"), NotFound)

    def test_delete_retains_history_by_default(self, lobby_wifi):
        credential_service.update_credential(lobby_wifi.id, _update_draft(), "alice")

        assert credential_service.delete_credential(lobby_wifi.id) is None
        assert isinstance(credential_service.get_credential(lobby_wifi.id), NotFound)
        assert credential_service.list_credentials("h1") == []

        history = credential_service.credential_history(lobby_wifi.id)
        assert len(history) == 1
        assert history[0].description == "Lobby WiFi"
        assert credential_service.credential_site_id(lobby_wifi.id) == "h1"

    def test_delete_can_cascade(self, lobby_wifi):
        credential_service.update_credential(lobby_wifi.id, _update_draft(), "alice")

        assert credential_service.delete_credential(lobby_wifi.id, cascade_history=True) is None
        assert credential_service.credential_history(lobby_wifi.id) == []
        assert credential_service.credential_site_id(lobby_wifi.id) is None

    def test_cascade_from_config(self, app, lobby_wifi, monkeypatch):
        credential_service.update_credential(lobby_wifi.id, _update_draft(), "alice")
        monkeypatch.setitem(app.config, "HISTORY_ON_DELETE", "cascade")

        credential_service.delete_credential(lobby_wifi.id)
        assert credential_service.credential_history(lobby_wifi.id) == []

    def test_second_delete_not_found(self, lobby_wifi):
        credential_service.delete_credential(lobby_wifi.id)
        assert isinstance(credential_service.delete_credential(lobby_wifi.id), NotFound)


# =============================================================================
# DECODE FAILURES
# =============================================================================


class TestDecodeFailure:

    def test_bad_row_does_not_break_listing(self, db_session, lobby_wifi):
        broken = Credential(
            site_id="h1",
            description="Corrupted",
            username="x",
            encoded_secret="definitely-not-a-token",
            category="Other",
            created_by="bob",
        )
        db_session.add(broken)
        db_session.commit()

        listed = {c.description: c for c in credential_service.list_credentials("h1")}
        assert listed["Lobby WiFi"].secret == "Sunrise!2024"
        assert isinstance(listed["Corrupted"].secret_error, DecodeFailure)
        assert listed["Corrupted"].secret is None

        rendered = listed["Corrupted"].to_dict()
        assert rendered["secret"] == DECODE_FAILURE_PLACEHOLDER
        assert rendered["secret_error"] is True


# =============================================================================
# REPOSITORY CONTRACT
# =============================================================================


class InMemoryCredentialRepository:
    """Dict-backed repository; proves the service only relies on the contract."""

    def __init__(self, site_ids):
        self.site_ids = set(site_ids)
        self.rows = {}
        self.history = []

    def site_exists(self, site_id):
        return site_id in self.site_ids

    def list_for_site(self, site_id):
        return sorted(
            (row for row in self.rows.values() if row.site_id == site_id),
            key=lambda row: (row.description, row.id),
        )

    def get(self, credential_id):
        return self.rows.get(credential_id)

    def add(self, credential):
        credential.id = credential.id or f"c{len(self.rows) + 1}"
        credential.version_id = 1
        self.rows[credential.id] = credential
        return credential

    def versioned_update(self, credential_id, change):
        row = self.rows.get(credential_id)
        if row is None:
            return None
        entry, values = change(row)
        entry.id = f"e{len(self.history) + 1}"
        self.history.append(entry)
        for column, value in values.items():
            setattr(row, column, value)
        row.version_id += 1
        return row

    def remove(self, credential_id, *, cascade_history=False):
        if credential_id not in self.rows:
            return False
        del self.rows[credential_id]
        if cascade_history:
            self.history = [e for e in self.history if e.credential_id != credential_id]
        return True

    def history_for(self, credential_id):
        entries = [e for e in self.history if e.credential_id == credential_id]
        return sorted(entries, key=lambda e: (e.change_date, e.version), reverse=True)

    def history_site_id(self, credential_id):
        for entry in self.history:
            if entry.credential_id == credential_id and entry.site_id:
                return entry.site_id
        return None


class TestRepositoryContract:

    def test_sqlalchemy_repository_satisfies_protocol(self):
        assert isinstance(SqlAlchemyCredentialRepository(), CredentialRepositoryProtocol)

    def test_service_runs_on_another_store(self, db_session):
        repository = InMemoryCredentialRepository({"h1"})
        assert isinstance(repository, CredentialRepositoryProtocol)

        created = credential_service.create_credential(
            CredentialDraft(site_id="h1", description="Lobby WiFi", username="guest",
                            secret="Sunrise!2024", category="WiFi"),
            "bob",
            repository=repository,
        )
        credential_service.update_credential(created.id, _update_draft(), "alice", repository=repository)

        history = credential_service.credential_history(created.id, repository=repository)
        assert [entry.changed_by for entry in history] == ["bob"]
        current = credential_service.get_credential(created.id, repository=repository)
        assert current.secret == "Sunset!2025"

        # Nothing reached the database
        assert db.session.query(Credential).count() == 0
