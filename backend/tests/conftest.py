import os
import random
import sys
import pytest

# Ensure the backend root (containing the `memory_matchers` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from memory_matchers import create_app, db, socketio
from memory_matchers.services.games import GameSession, ManualScheduler


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    EVALUATION_DELAY_SEC = 0.5
    CARD_FACES = []
    GRID_MODES = ['2x2', '2x3', '2x6', '3x4', '4x4', '4x5']
    CORS_ORIGINS = ['http://localhost:5173']
    TAP_DEBOUNCE_MS = 0


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start=100.0):
        self.now = start

    def advance(self, seconds):
        self.now += seconds

    def __call__(self):
        return self.now


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import memory_matchers.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def services(flask_app):
    return flask_app.extensions['memory_matchers']


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


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def make_session(clock, scheduler):
    def _make(**kwargs):
        kwargs.setdefault('rng', random.Random(7))
        kwargs.setdefault('clock', clock)
        kwargs.setdefault('scheduler', scheduler)
        return GameSession(**kwargs)
    return _make
