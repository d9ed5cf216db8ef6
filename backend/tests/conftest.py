import os
import sys
import random
from datetime import datetime, timedelta, timezone

import pytest

# Ensure the backend root (containing the `whosaid` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from whosaid import create_app, db, socketio, EXTENSION_KEY
from whosaid.services.games.manager import GameStateManager


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_TTL_SEC = 24 * 60 * 60
    CODE_GENERATION_ATTEMPTS = 10
    CORS_ORIGINS = ['http://localhost:5173']
    RATE_LIMIT_ENABLED = False
    RATE_LIMIT_WINDOW_SEC = 60


class TickingClock:
    """Starts at the real current time and advances one second per call."""

    def __init__(self):
        self.now = datetime.now(timezone.utc)

    def __call__(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import whosaid.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def services(flask_app):
    return flask_app.extensions[EXTENSION_KEY]


@pytest.fixture()
def store(services):
    return services['store']


@pytest.fixture()
def manager(store):
    return GameStateManager(store, rng=random.Random(1234), clock=TickingClock())


@pytest.fixture()
def make_game(manager):
    """Create a lobby with a host plus ``size - 1`` joined players.

    Returns (code, [player ids in join order]).
    """
    def _make(size=3):
        session = manager.create_session('Host')
        ids = [session.host_id]
        for i in range(1, size):
            _, player = manager.join_session(session.code, f'Player{i}')
            ids.append(player.id)
        return session.code, ids
    return _make


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
