"""Pytest shared fixtures for the relation engine."""
import os
import pathlib
import sys

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports (authz.flask_app builds an app on import)
os.environ.setdefault("DEMO_MODE", "true")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("TRUSTED_PROXY_SECRET", "test-proxy-secret")
os.environ.setdefault("RPC_SERVICE_TOKEN", "test-service-token")
os.environ.setdefault("ADMIN_ROLES", "super-admin")

import pytest

from authz.config.settings import AppConfig
from authz.extensions import db
from authz.flask_app import create_app

PROXY_SECRET = "test-proxy-secret"
SERVICE_TOKEN = "test-service-token"
ADMIN_ROLE = "super-admin"


def make_config(**overrides) -> AppConfig:
    base = dict(
        demo_mode=True,
        database_url="sqlite:///:memory:",
        admin_roles=[ADMIN_ROLE],
        manage_permissions={
            "user-role": ["user-role:manage"],
            "role-permission": ["role-permission:manage"],
            "service-visible-role": [],
        },
        trusted_proxy_secret=PROXY_SECRET,
        rpc_service_token=SERVICE_TOKEN,
        log_level="DEBUG",
    )
    base.update(overrides)
    return AppConfig(**base)


@pytest.fixture
def config_factory():
    return make_config


@pytest.fixture
def app():
    """Fresh application with its own in-memory database."""
    application = create_app(make_config())
    application.config["TESTING"] = True
    yield application
    with application.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def client(app):
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def engine(app):
    """The app's AuthzEngine with an app context pushed for direct calls."""
    with app.app_context():
        yield app.extensions["authz"]
        db.session.remove()


@pytest.fixture
def seed(app):
    """Insert ``(left, right)`` pairs into a domain outside any request."""
    def _seed(domain: str, *pairs):
        with app.app_context():
            service = app.extensions["authz"].service(domain)
            for left, right in pairs:
                service.assign(left, right)
    return _seed


@pytest.fixture
def caller():
    """Headers the identity gateway sends for a verified user."""
    def _headers(user_id: str) -> dict:
        return {"X-Proxy-Secret": PROXY_SECRET, "X-Trusted-User-Id": user_id}
    return _headers


@pytest.fixture
def admin_headers(seed, caller):
    seed("user-role", ("root", ADMIN_ROLE))
    return caller("root")


@pytest.fixture
def rpc(client):
    """Send one message pattern to /rpc and return the response."""
    def _call(pattern: str, data=None, token: str = SERVICE_TOKEN):
        return client.post(
            "/rpc",
            json={"pattern": pattern, "data": data if data is not None else {}},
            headers={"X-Service-Token": token},
        )
    return _call
