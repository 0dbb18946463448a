import os
from datetime import datetime, timedelta, timezone

import pytest

from runvault import create_app, db


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    # Keep password hashing fast in tests
    BCRYPT_LOG_ROUNDS = 4
    FRONTEND_URL = 'http://localhost:5173'
    LOG_LEVEL = 'DEBUG'
    LEADERBOARD_DEFAULT_LIMIT = 100
    LEADERBOARD_MAX_LIMIT = 1000
    RECENT_DEFAULT_LIMIT = 50
    RECENT_MAX_LIMIT = 500
    RECENT_DEFAULT_HOURS = 24


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import runvault.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def runs(flask_app):
    return flask_app.extensions['run_lifecycle']


@pytest.fixture()
def scores(flask_app):
    return flask_app.extensions['leaderboard']


@pytest.fixture()
def make_user(flask_app):
    from runvault.models import User

    def _make(username='alice'):
        user = User(username=username, email=f'{username}@example.com')
        user.set_password('password')
        db.session.add(user)
        db.session.commit()
        return user.id
    return _make


@pytest.fixture()
def add_score(flask_app):
    """Insert a leaderboard row directly, with control over created_at."""
    from runvault.models import LeaderboardScore

    base = datetime.now(timezone.utc) - timedelta(minutes=30)

    def _add(user_id='u1', username='alice', character_id='ahri', floor=1, gold=0, minutes=0):
        entry = LeaderboardScore(
            user_id=user_id,
            username=username,
            character_id=character_id,
            final_floor=floor,
            final_gold=gold,
            total_encounters=0,
            created_at=base + timedelta(minutes=minutes),
        )
        db.session.add(entry)
        db.session.commit()
        return entry.id
    return _add


def _register(client, username='alice', email=None, password='password'):
    res = client.post('/api/auth/register', json={
        'email': email or f'{username}@example.com',
        'password': password,
        'username': username,
    })
    assert res.status_code == 201
    return res.get_json()['user']


@pytest.fixture()
def auth_client(flask_app):
    """A test client already logged in as 'alice'."""
    test_client = flask_app.test_client()
    test_client.user = _register(test_client, 'alice')
    return test_client


@pytest.fixture()
def register():
    return _register
