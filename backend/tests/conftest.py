import os
import sys
import pytest

# Ensure the backend root (containing the `oxrooms` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from oxrooms import create_app, db, socketio, room_store
from oxrooms.config import Config


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_LOG_ROUNDS = 4
    ENFORCE_TURN_ORDER = False


@pytest.fixture()
def app():
    """Application with its tables; no app context is left pushed, as in a live server."""
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import oxrooms.models  # noqa: F401
        db.create_all()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def flask_app(app):
    """The same application with an app context held open for direct store calls."""
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def store(flask_app):
    return room_store


@pytest.fixture()
def fixed_codes(monkeypatch):
    """Make room code generation deterministic: pops codes from the returned list."""
    codes = []
    monkeypatch.setattr(room_store, 'code_factory', lambda length: codes.pop(0))
    return codes


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
def make_sio_client(flask_app):
    clients = []

    def _make():
        c = socketio.test_client(flask_app, namespace='/ws')
        clients.append(c)
        return c

    yield _make
    for c in clients:
        try:
            c.disconnect(namespace='/ws')
        except Exception:
            pass
