"""
Pytest configuration for login_server. In-memory SQLite and cheap bcrypt so tests stay fast and
don't touch the filesystem; each app gets a disposable signing key and the development directory.
"""
import os

# In-memory SQLite; database.py uses StaticPool so all connections share the same DB
os.environ["AUTH_DATABASE_URL"] = "sqlite:///:memory:"
os.environ["OAUTH_BCRYPT_ROUNDS"] = "4"
os.environ.pop("OAUTH_DIRECTORY_BACKEND", None)
os.environ.pop("OAUTH_AUDIT_ENDPOINT", None)

import pytest
from fastapi.testclient import TestClient

from login_server.database import init_db
from login_server.keys import SigningKeyProvider
from login_server.main import create_app
from login_server.seed import build_static_directory

TEST_ISSUER = "https://login.test"


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def key_provider():
    return SigningKeyProvider.generate()


@pytest.fixture(scope="session")
def directory():
    return build_static_directory(rounds=4)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app(key_provider, directory, clock):
    init_db()
    return create_app(key_provider=key_provider, directory=directory, issuer=TEST_ISSUER, clock=clock)


@pytest.fixture
def client(app):
    return TestClient(app)
