"""
Login server configuration. Values come from the environment with development defaults.
No secrets in this file; client secrets and user passwords live in the credential directory.
"""
import os

# Issuer URL (public identifier, also the "iss" claim of every access token)
ISSUER = os.environ.get("OAUTH_ISSUER", "http://127.0.0.1:5000").rstrip("/")

# Access token lifetime (seconds)
ACCESS_TOKEN_EXPIRES = int(os.environ.get("OAUTH_ACCESS_TOKEN_EXPIRES", "3600"))

# Path to RSA private key PEM file for signing tokens. If the file is missing, a key is generated and saved there.
SIGNING_KEY_PATH = os.environ.get("OAUTH_SIGNING_KEY_PATH", ".login_signing_key.pem")
# Optional previous key: published in JWKS so tokens it signed still verify; never used for new tokens.
SIGNING_KEY_PREVIOUS_PATH = os.environ.get("OAUTH_SIGNING_KEY_PREVIOUS_PATH", "").strip() or None

# SQLite for development (audit log, and the directory when OAUTH_DIRECTORY_BACKEND=sql)
DATABASE_URL = os.environ.get("AUTH_DATABASE_URL", "sqlite:///./login_server.db")

# "static": in-memory directory from seed.py; "sql": read clients/users/APIs from DATABASE_URL
DIRECTORY_BACKEND = os.environ.get("OAUTH_DIRECTORY_BACKEND", "static").strip().lower()

# bcrypt cost factor for client secrets and user passwords hashed by seed.py
BCRYPT_ROUNDS = int(os.environ.get("OAUTH_BCRYPT_ROUNDS", "12"))

# Rate limiting for POST /token: per-IP, per minute. 0 disables.
RATE_LIMIT_TOKEN_PER_MINUTE = int(os.environ.get("OAUTH_RATE_LIMIT_TOKEN_PER_MINUTE", "60"))

# GET /audit lists recent token events. Off unless explicitly enabled (operator/dev use only).
AUDIT_ENDPOINT_ENABLED = os.environ.get("OAUTH_AUDIT_ENDPOINT", "").strip().lower() in ("1", "true", "yes")
