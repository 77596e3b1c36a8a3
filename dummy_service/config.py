"""
Dummy service (protected API) configuration.
Issuer, JWKS URI and audience are public identifiers, not secrets.
One code base serves both dummy APIs; run the second with OAUTH_API_AUDIENCE=dummy2.
"""
import os

# Login server (issuer): where signing keys come from and the expected "iss"
ISSUER = os.environ.get("OAUTH_ISSUER", "http://127.0.0.1:5000").rstrip("/")

# Published key set of the login server
JWKS_URI = os.environ.get("OAUTH_JWKS_URI", f"{ISSUER}/.well-known/openid-configuration/jwks")

# This API's audience: access tokens must list it in "aud"
API_AUDIENCE = os.environ.get("OAUTH_API_AUDIENCE", "dummy1")

# Name used in the greeting returned by GET /api/dummy
SERVICE_NAME = os.environ.get("DUMMY_SERVICE_NAME", "DummyMicroservice1")

PORT = int(os.environ.get("DUMMY_SERVICE_PORT", "5001"))

# How long a fetched public key is trusted before it is fetched again (seconds)
KEY_CACHE_TTL = int(os.environ.get("OAUTH_KEY_CACHE_TTL", "86400"))

# Upper bound for one JWKS fetch (seconds); a slower publisher surfaces as key_not_found
JWKS_TIMEOUT = float(os.environ.get("OAUTH_JWKS_TIMEOUT", "5"))
