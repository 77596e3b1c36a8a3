"""
Blocking HTTP helpers for the console clients: discovery, token requests, bearer calls.
Every call is sequential; there is nothing to schedule.
"""
import logging
from dataclasses import dataclass
from urllib.parse import quote_plus

import httpx

from console_client.config import HTTP_TIMEOUT

logger = logging.getLogger(__name__)


class DiscoveryError(Exception):
    pass


@dataclass
class TokenResponse:
    status_code: int
    body: dict

    @property
    def is_error(self) -> bool:
        return self.status_code != 200 or "error" in self.body or not self.body.get("access_token")

    @property
    def access_token(self) -> str | None:
        return self.body.get("access_token")

    @property
    def error(self) -> str | None:
        return self.body.get("error")


def discover(issuer: str) -> dict:
    """Fetch the discovery document and check it belongs to issuer. Raises DiscoveryError."""
    url = f"{issuer.rstrip('/')}/.well-known/openid-configuration"
    try:
        r = httpx.get(url, timeout=HTTP_TIMEOUT)
    except httpx.HTTPError as e:
        raise DiscoveryError(f"Error connecting to {url}: {e}") from e
    if r.status_code != 200:
        raise DiscoveryError(f"Discovery endpoint returned {r.status_code}")
    try:
        doc = r.json()
    except ValueError as e:
        raise DiscoveryError("Discovery document is not JSON") from e
    if doc.get("issuer") != issuer.rstrip("/"):
        raise DiscoveryError(f"Issuer mismatch: {doc.get('issuer')!r}")
    if not doc.get("token_endpoint"):
        raise DiscoveryError("Discovery document has no token_endpoint")
    return doc


def _post_token(token_endpoint: str, client_id: str, client_secret: str, data: dict) -> TokenResponse:
    # client_secret_basic: both parts are form-urlencoded before base64 (RFC 6749 §2.3.1)
    try:
        r = httpx.post(
            token_endpoint,
            data=data,
            auth=(quote_plus(client_id), quote_plus(client_secret)),
            timeout=HTTP_TIMEOUT,
        )
    except httpx.HTTPError as e:
        logger.warning("Token request to %s failed: %s", token_endpoint, e)
        return TokenResponse(
            status_code=0,
            body={"error": "server_unreachable", "error_description": f"Error connecting to {token_endpoint}: {e}"},
        )
    try:
        body = r.json()
    except ValueError:
        body = {"error": "invalid_response"}
    if not isinstance(body, dict):
        body = {"error": "invalid_response"}
    return TokenResponse(status_code=r.status_code, body=body)


def request_client_credentials_token(
    token_endpoint: str, client_id: str, client_secret: str, scope: str
) -> TokenResponse:
    return _post_token(
        token_endpoint,
        client_id,
        client_secret,
        {"grant_type": "client_credentials", "scope": scope},
    )


def request_password_token(
    token_endpoint: str,
    client_id: str,
    client_secret: str,
    username: str,
    password: str,
    scope: str,
) -> TokenResponse:
    return _post_token(
        token_endpoint,
        client_id,
        client_secret,
        {"grant_type": "password", "username": username, "password": password, "scope": scope},
    )


def call_api(url: str, access_token: str) -> httpx.Response:
    return httpx.get(url, headers={"Authorization": f"Bearer {access_token}"}, timeout=HTTP_TIMEOUT)
