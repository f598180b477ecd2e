"""
Shared pytest fixtures for the family sharing test suite.

All tests run against an in-memory SQLite database (TestingConfig).
A single app context is pushed for the whole session so that SQLAlchemy
objects remain attached throughout.  After each test, clean_db wipes all
rows so tests are fully independent.
"""
from datetime import timedelta

import pytest
from flask import g
from flask_login import FlaskLoginClient

from app import create_app
from extensions import db as _db
from utils.clock import utc_now


# ---------------------------------------------------------------------------
# Application / database lifecycle
# ---------------------------------------------------------------------------

class LoginClient(FlaskLoginClient):
    """FlaskLoginClient that reloads the user on every request.

    The session-wide app context is reused by each request, so Flask-Login's
    cached g._login_user has to be dropped or the first user sticks.
    """

    def open(self, *args, **kwargs):
        g.pop('_login_user', None)
        return super().open(*args, **kwargs)


@pytest.fixture(scope='session')
def app():
    """Create a test Flask application with an in-memory SQLite database."""
    application = create_app('testing')
    application.test_client_class = LoginClient
    ctx = application.app_context()
    ctx.push()
    _db.create_all()
    yield application
    _db.session.remove()
    _db.drop_all()
    ctx.pop()


@pytest.fixture(autouse=True)
def clean_db(app):
    """Wipe every table after each test so tests never share state."""
    yield
    _db.session.rollback()
    for table in reversed(_db.metadata.sorted_tables):
        _db.session.execute(table.delete())
    _db.session.commit()
    _db.session.expunge_all()


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

class FrozenClock:
    """Stand-in for utils.clock.utc_now that only moves when told to."""

    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock(monkeypatch):
    """Pin the invitation service's notion of now."""
    frozen = FrozenClock(utc_now().replace(microsecond=0))
    monkeypatch.setattr('services.invitation_service.utc_now', frozen)
    return frozen


# ---------------------------------------------------------------------------
# Common model helpers
# ---------------------------------------------------------------------------

def make_user(email, name=None):
    from models.users import User
    u = User(email=email, name=name or email.split('@')[0].title())
    u.set_password('TestPass1!')
    _db.session.add(u)
    _db.session.commit()
    return u


@pytest.fixture
def owner(app):
    return make_user('alice@example.com', 'Alice')


@pytest.fixture
def other_user(app):
    return make_user('bob@example.com', 'Bob')


@pytest.fixture
def third_user(app):
    return make_user('carol@example.com', 'Carol')


@pytest.fixture
def group(app, owner):
    from services.group_service import GroupService
    return GroupService.create_group(42, owner.id, 'Smith Family', 'Baby Smith updates')


@pytest.fixture
def add_member(app):
    """Return a helper that puts a user straight into a group with a role's defaults."""
    from models.family_groups import GroupMember
    from utils.permissions import DEFAULT_PERMISSIONS, Role

    def _add(group, user, role='viewer', permissions=None):
        role = Role.parse(role)
        m = GroupMember(group_id=group.id, user_id=user.id, role=role.value)
        m.set_permissions(permissions or DEFAULT_PERMISSIONS[role])
        _db.session.add(m)
        _db.session.commit()
        return m
    return _add
