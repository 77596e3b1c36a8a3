"""
Login server and both dummy APIs together: tokens from POST /token, keys fetched from the JWKS endpoint.
"""
import pytest
from fastapi.testclient import TestClient

from dummy_service.main import create_app as create_dummy_app
from dummy_service.validator import KeyCache, LocalKeySource, RemoteKeySource, TokenValidator
from login_server.database import init_db
from login_server.directory import GrantType
from login_server.grants import GrantRequest
from login_server.main import create_app as create_login_app
from login_server.seed import build_static_directory

ISSUER = "https://login.test"
JWKS_URI = f"{ISSUER}/.well-known/openid-configuration/jwks"


@pytest.fixture(scope="module")
def directory():
    return build_static_directory(rounds=4)


@pytest.fixture
def login(signing_keys, directory):
    init_db()
    return TestClient(create_login_app(key_provider=signing_keys, directory=directory, issuer=ISSUER))


@pytest.fixture
def apis(login, monkeypatch):
    # JWKS requests go to the in-process login server
    monkeypatch.setattr("dummy_service.validator.httpx.get", lambda url, timeout: login.get(url))

    def make(audience, name):
        validator = TokenValidator(KeyCache(RemoteKeySource(JWKS_URI)), issuer=ISSUER)
        return TestClient(create_dummy_app(validator=validator, audience=audience, service_name=name))

    return make("dummy1", "DummyMicroservice1"), make("dummy2", "DummyMicroservice2")


def _token(login, client_id, data):
    r = login.post("/token", data=data, auth=(client_id, "secret"))
    return r.status_code, r.json()


def _call(api, token):
    return api.get("/api/dummy", headers={"Authorization": f"Bearer {token}"})


def test_discovery_points_at_token_and_jwks(login):
    doc = login.get("/.well-known/openid-configuration").json()
    assert doc["token_endpoint"] == f"{ISSUER}/token"
    assert doc["jwks_uri"] == JWKS_URI


def test_client_credentials_reaches_both_apis(login, apis):
    dummy1, dummy2 = apis
    status, body = _token(
        login, "clientCredentialsClient", {"grant_type": "client_credentials", "scope": "dummy1 dummy2"}
    )
    assert status == 200
    r1 = _call(dummy1, body["access_token"])
    r2 = _call(dummy2, body["access_token"])
    assert (r1.status_code, r1.json()) == (200, "Hello from DummyMicroservice1!")
    assert (r2.status_code, r2.json()) == (200, "Hello from DummyMicroservice2!")


def test_user_token_only_reaches_dummy1(login, apis):
    dummy1, dummy2 = apis
    status, body = _token(
        login,
        "resourceOwnerClient",
        {"grant_type": "password", "username": "bob", "password": "bob", "scope": "dummy1"},
    )
    assert status == 200
    assert _call(dummy1, body["access_token"]).status_code == 200
    assert _call(dummy2, body["access_token"]).status_code == 401

    claims = dummy1.get("/api/dummy/claims", headers={"Authorization": f"Bearer {body['access_token']}"}).json()
    assert claims["sub"] == "2"
    assert claims["client_id"] == "resourceOwnerClient"


def test_user_cannot_request_dummy2(login):
    status, body = _token(
        login,
        "resourceOwnerClient",
        {"grant_type": "password", "username": "alice", "password": "alice", "scope": "dummy2"},
    )
    assert status == 400
    assert body["error"] == "invalid_scope"


def test_bad_password_gets_no_token(login):
    status, body = _token(
        login,
        "resourceOwnerClient",
        {"grant_type": "password", "username": "alice", "password": "wrong", "scope": "dummy1"},
    )
    assert status == 400
    assert body["error"] == "invalid_grant"
    assert "access_token" not in body


@pytest.mark.parametrize(
    "request_",
    [
        GrantRequest(GrantType.CLIENT_CREDENTIALS, "clientCredentialsClient", "secret", scope="dummy1 dummy2"),
        GrantRequest(GrantType.CLIENT_CREDENTIALS, "clientCredentialsClient", "secret"),
        GrantRequest(GrantType.PASSWORD, "resourceOwnerClient", "secret", username="bob", password="bob"),
    ],
)
def test_granted_claims_survive_validation(login, request_):
    state = login.app.state
    issued = state.grant_processor.process(request_)
    validator = TokenValidator(KeyCache(LocalKeySource(state.key_publisher.jwks)), issuer=ISSUER)
    assert validator.validate(issued.access_token, "dummy1") == issued.claims
