"""
Pytest configuration for dummy_service. Tokens come from an in-process login server key, so no
network is involved; the login server pieces use in-memory SQLite and cheap bcrypt.
"""
import os

os.environ["AUTH_DATABASE_URL"] = "sqlite:///:memory:"
os.environ["OAUTH_BCRYPT_ROUNDS"] = "4"

import pytest

from login_server.keys import KeyPublisher, SigningKeyProvider
from login_server.tokens import TokenIssuer


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def signing_keys():
    return SigningKeyProvider.generate()


@pytest.fixture
def publisher(signing_keys):
    return KeyPublisher(signing_keys)


@pytest.fixture
def token_issuer(signing_keys):
    return TokenIssuer(signing_keys)


@pytest.fixture
def wall_clock():
    return FakeClock()
