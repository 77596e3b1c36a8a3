"""
App startup without injected collaborators: the signing key and directory come from configuration.
"""
from unittest.mock import patch

from fastapi.testclient import TestClient

from login_server.directory import SqlDirectory
from login_server.main import create_app


def _token(c):
    return c.post(
        "/token",
        data={
            "grant_type": "client_credentials",
            "client_id": "clientCredentialsClient",
            "client_secret": "secret",
            "scope": "dummy1",
        },
    )


def test_startup_with_static_directory(tmp_path):
    key_path = tmp_path / "signing.pem"
    with patch("login_server.main.SIGNING_KEY_PATH", str(key_path)):
        app = create_app(issuer="https://login.test")
        with TestClient(app) as c:
            assert _token(c).status_code == 200
            kid = c.get("/.well-known/jwks.json").json()["keys"][0]["kid"]
    assert key_path.exists()
    assert kid == app.state.key_provider.key_id


def test_startup_with_sql_directory(tmp_path):
    with (
        patch("login_server.main.SIGNING_KEY_PATH", str(tmp_path / "signing.pem")),
        patch("login_server.main.DIRECTORY_BACKEND", "sql"),
    ):
        app = create_app(issuer="https://login.test")
        with TestClient(app) as c:
            assert _token(c).status_code == 200
            r = c.get("/.well-known/openid-configuration")
            assert r.json()["scopes_supported"] == ["dummy1", "dummy2"]
    assert isinstance(app.state.directory, SqlDirectory)
