import os
import sys
import pytest
from flask import g

# Ensure the repository root (containing the `trivia` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from trivia import create_app, db, socketio, _create_user
from trivia.services.game import get_services

START_MS = 1_700_000_000_000


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    ALLOWED_ORIGINS = []
    TIMER_DURATION_SEC = 90


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, now=START_MS):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds=0, ms=0):
        self.now += int(seconds * 1000) + ms
        return self.now


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)

    @application.before_request
    def forget_cached_user():
        # Requests reuse the fixture's app context, so g outlives each request
        g.pop('_login_user', None)

    with application.app_context():
        # Ensure models are imported so tables are created
        import trivia.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def services(flask_app):
    return get_services()


@pytest.fixture()
def clock(services):
    fake = FakeClock()
    services.clock = fake
    return fake


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


def make_user(email, team_name, is_admin=False, password='password'):
    account = _create_user(email, password, team_name, is_admin=is_admin)
    db.session.commit()
    return account.uid


def login(flask_app, email, password='password'):
    test_client = flask_app.test_client()
    res = test_client.post('/login', json={'email': email, 'password': password})
    assert res.status_code == 200, res.get_json()
    return test_client


@pytest.fixture()
def admin(flask_app):
    make_user('admin@trivia.local', 'Quizmaster', is_admin=True)
    return login(flask_app, 'admin@trivia.local')


@pytest.fixture()
def teams(flask_app):
    """Three participant uids in registration order: alpha, beta, gamma."""
    return [make_user(f'{name}@trivia.local', f'Team {name.title()}') for name in ('alpha', 'beta', 'gamma')]


@pytest.fixture()
def alpha(flask_app, teams):
    return login(flask_app, 'alpha@trivia.local')


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')
