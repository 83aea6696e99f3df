import os
import sys
import pytest

# Ensure the backend root (containing the `rps_arena` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from rps_arena import create_app, socketio
from rps_arena.services.arena import Arena


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = []
    ROUND_DURATION_SEC = 10
    HEARTBEAT_STALE_SEC = 30
    DEFAULT_BEST_OF = 3
    ALLOWED_BEST_OF = (3, 5, 7)
    NAME_MAX_LENGTH = 20
    COLOR_MAX_LENGTH = 20
    CHAT_MAX_LENGTH = 200
    DEFAULT_NAME = 'Player'
    MAX_SILENT_EXTENSIONS = 0


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


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
def arena(clock):
    return Arena(round_duration=10, heartbeat_stale=30, clock=clock)
