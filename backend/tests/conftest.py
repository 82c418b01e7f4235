"""
Pytest fixtures for vault backend tests.

Provides an in-memory database, a directory with two groups and three
sites, one user per access level, and a test client.
"""

import pytest

from vault import create_app
from vault.config import Config
from vault.extensions import db
from vault.models import Group, Site, User, Permission
from vault.services.secret_codec import generate_key


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    VAULT_ENCRYPTION_KEYS = [generate_key()]
    PRINCIPAL_HEADER = 'X-Authenticated-Email'
    HISTORY_ON_DELETE = 'retain'
    CORS_ALLOWED_ORIGINS = ['http://localhost:5173']


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def group_bali(db_session):
    group = Group(name="Bali Resorts")
    db_session.add(group)
    db_session.commit()
    return group


@pytest.fixture(scope='function')
def group_lombok(db_session):
    group = Group(name="Lombok Resorts")
    db_session.add(group)
    db_session.commit()
    return group


@pytest.fixture(scope='function')
def site_ubud(db_session, group_bali):
    """Site in the Bali group."""
    site = Site(name="Ubud Hideaway", group_id=group_bali.id)
    db_session.add(site)
    db_session.commit()
    return site


@pytest.fixture(scope='function')
def site_seminyak(db_session, group_bali):
    """Second site in the Bali group."""
    site = Site(name="Seminyak Beach", group_id=group_bali.id)
    db_session.add(site)
    db_session.commit()
    return site


@pytest.fixture(scope='function')
def site_senggigi(db_session, group_lombok):
    """Site in the Lombok group."""
    site = Site(name="Senggigi Bay", group_id=group_lombok.id)
    db_session.add(site)
    db_session.commit()
    return site


def _make_user(db_session, email, name, access_level, group_id=None):
    user = User(email=email, name=name, position="Staff", access_level=access_level, group_id=group_id)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def viewer(db_session, group_bali, site_ubud, site_seminyak):
    """Viewer in the Bali group: sees both Bali sites."""
    return _make_user(db_session, "vera@example.com", "Vera Viewer", "viewer", group_bali.id)


@pytest.fixture(scope='function')
def manager(db_session, group_bali, site_ubud, site_seminyak):
    """Manager in the Bali group: sees and edits both Bali sites."""
    return _make_user(db_session, "max@example.com", "Max Manager", "manager", group_bali.id)


@pytest.fixture(scope='function')
def admin(db_session, group_lombok, site_senggigi):
    """Admin in the Lombok group: sees Senggigi only."""
    return _make_user(db_session, "ada@example.com", "Ada Admin", "admin", group_lombok.id)


@pytest.fixture(scope='function')
def outsider(db_session):
    """Manager without a group or grants: sees nothing."""
    return _make_user(db_session, "otto@example.com", "Otto Outsider", "manager")


@pytest.fixture(scope='function')
def grant(db_session):
    """Factory for direct site grants."""
    def _grant(user, site):
        permission = Permission(user_id=user.id, site_id=site.id)
        db_session.add(permission)
        db_session.commit()
        return permission
    return _grant


def principal_headers(user_or_email) -> dict:
    """Helper to create the identity-proxy header for a user."""
    email = getattr(user_or_email, "email", user_or_email)
    return {TestConfig.PRINCIPAL_HEADER: email}
