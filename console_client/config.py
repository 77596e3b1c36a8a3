"""
Console client configuration: where the login server and the two dummy APIs live.
"""
import os

ISSUER = os.environ.get("OAUTH_ISSUER", "http://127.0.0.1:5000").rstrip("/")

DUMMY1_URL = os.environ.get("DUMMY1_URL", "http://127.0.0.1:5001/api/dummy")
DUMMY2_URL = os.environ.get("DUMMY2_URL", "http://127.0.0.1:5002/api/dummy")

# Client registrations at the login server (development values from login_server/seed.py)
CLIENT_CREDENTIALS_CLIENT_ID = os.environ.get("OAUTH_CC_CLIENT_ID", "clientCredentialsClient")
CLIENT_CREDENTIALS_SECRET = os.environ.get("OAUTH_CC_CLIENT_SECRET", "secret")
CLIENT_CREDENTIALS_SCOPE = os.environ.get("OAUTH_CC_SCOPE", "dummy1 dummy2")

RESOURCE_OWNER_CLIENT_ID = os.environ.get("OAUTH_RO_CLIENT_ID", "resourceOwnerClient")
RESOURCE_OWNER_SECRET = os.environ.get("OAUTH_RO_CLIENT_SECRET", "secret")
RESOURCE_OWNER_SCOPE = os.environ.get("OAUTH_RO_SCOPE", "dummy1")

HTTP_TIMEOUT = float(os.environ.get("CONSOLE_HTTP_TIMEOUT", "10"))
