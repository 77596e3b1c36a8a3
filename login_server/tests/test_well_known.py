"""
Discovery document and JWKS endpoints.
"""
from login_server.keys import jwk_thumbprint


def test_openid_configuration(client):
    r = client.get("/.well-known/openid-configuration")
    assert r.status_code == 200
    data = r.json()
    assert data["issuer"] == "https://login.test"
    assert data["token_endpoint"] == "https://login.test/token"
    assert data["jwks_uri"] == "https://login.test/.well-known/openid-configuration/jwks"
    assert set(data["grant_types_supported"]) == {"client_credentials", "password"}
    assert data["scopes_supported"] == ["dummy1", "dummy2"]


def test_jwks_publishes_signing_key(client, key_provider):
    r = client.get("/.well-known/openid-configuration/jwks")
    assert r.status_code == 200
    keys = r.json()["keys"]
    assert len(keys) == 1
    key = keys[0]
    assert key["kty"] == "RSA"
    assert key["alg"] == "RS256"
    assert key["use"] == "sig"
    assert key["kid"] == key_provider.key_id
    assert key["kid"] == jwk_thumbprint(key_provider.signing_key.public_key())
    assert "d" not in key


def test_jwks_alias(client):
    a = client.get("/.well-known/openid-configuration/jwks").json()
    b = client.get("/.well-known/jwks.json").json()
    assert a == b
