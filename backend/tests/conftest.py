import os
import sys
import pytest

# Ensure the backend root (containing the `roomchat` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from roomchat import create_app, db, socketio

NAMESPACE = '/ws'


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    CLIENT_URL = 'http://localhost:3000'
    CHAT_NAMESPACE = NAMESPACE
    CHAT_REQUIRE_AUTH = False
    MESSAGE_MAX_LENGTH = 50
    LOG_LEVEL = 'DEBUG'
    BCRYPT_LOG_ROUNDS = 4


class AuthRequiredConfig(TestConfig):
    CHAT_REQUIRE_AUTH = True


def _make_app(config_class):
    application = create_app(config_class)
    # Push the app context only around setup/teardown: an outer context held
    # for the whole test would make every request share one `g`, leaking the
    # Flask-Login user between HTTP requests and socket events.
    with application.app_context():
        # Ensure models are imported so tables are created
        import roomchat.models  # noqa: F401
        db.create_all()
    yield application
    with application.app_context():
        application.extensions['chat'].shutdown()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def flask_app():
    yield from _make_app(TestConfig)


@pytest.fixture()
def auth_app():
    yield from _make_app(AuthRequiredConfig)


@pytest.fixture()
def app_ctx(flask_app):
    """App context for tests that touch the database outside a request."""
    with flask_app.app_context():
        yield flask_app


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def chat(flask_app, app_ctx):
    return flask_app.extensions['chat']


@pytest.fixture()
def connect(flask_app):
    """Factory for Socket.IO test clients on the chat namespace."""
    clients = []

    def _connect(flask_test_client=None):
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_test_client,
            namespace=NAMESPACE,
        )
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected(NAMESPACE):
                test_client.disconnect(namespace=NAMESPACE)
        except Exception:
            pass


@pytest.fixture()
def sio_client(connect, flask_app):
    return connect(flask_test_client=flask_app.test_client())


@pytest.fixture()
def events():
    """Drain a client's received events and return the payloads named ``name``."""
    def _events(test_client, name):
        received = test_client.get_received(NAMESPACE)
        return [pkt['args'][0] if pkt['args'] else None for pkt in received if pkt['name'] == name]
    return _events
