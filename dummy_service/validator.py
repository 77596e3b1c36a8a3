"""
Access token validation for protected APIs.

TokenValidator checks an RS256 access token issued by the login server: it resolves the signing key
by the token's kid through a KeyCache, verifies the signature, then expiry, issuer, audience and
scope. Every failure is raised as TokenValidationError with one of four kinds; PyJWT and httpx
exceptions never escape.

KeyCache holds public keys fetched from the login server's key set. Reads are lock-free. A miss (or
a TTL-expired entry) starts one fetch per kid: concurrent callers for the same kid wait on the same
Future instead of fetching again. A fetch that fails or outlives the timeout is key_not_found.
"""
import json
import logging
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Callable, Protocol

import httpx
import jwt
from jwt.utils import base64url_decode

from login_server.tokens import TokenClaims

logger = logging.getLogger(__name__)

INVALID_SIGNATURE = "invalid_signature"
EXPIRED_TOKEN = "expired_token"
INVALID_TOKEN = "invalid_token"
KEY_NOT_FOUND = "key_not_found"

ALGORITHM = "RS256"


class TokenValidationError(Exception):
    def __init__(self, kind: str, description: str):
        super().__init__(f"{kind}: {description}")
        self.kind = kind
        self.description = description


class KeyFetchError(Exception):
    """The key set could not be fetched or parsed."""


class KeySource(Protocol):
    def fetch(self) -> dict:
        """Return the publisher's JWK Set ({"keys": [...]})."""
        ...


class RemoteKeySource:
    """Fetch the JWK Set over HTTP with a bounded timeout."""

    def __init__(self, jwks_uri: str, timeout: float = 5.0):
        self.jwks_uri = jwks_uri
        self.timeout = timeout

    def fetch(self) -> dict:
        r = httpx.get(self.jwks_uri, timeout=self.timeout)
        r.raise_for_status()
        return r.json()


class LocalKeySource:
    """Key set from an in-process publisher (e.g. login_server.keys.KeyPublisher.jwks)."""

    def __init__(self, get_jwks: Callable[[], dict]):
        self._get_jwks = get_jwks

    def fetch(self) -> dict:
        return self._get_jwks()


@dataclass(frozen=True)
class CachedKey:
    key: Any
    fetched_at: float


class KeyCache:
    def __init__(
        self,
        source: KeySource,
        *,
        ttl: float = 86400,
        fetch_timeout: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._source = source
        self._ttl = ttl
        self._fetch_timeout = fetch_timeout
        self._clock = clock
        self._entries: dict[str, CachedKey] = {}
        self._inflight: dict[str, Future] = {}
        self._lock = threading.Lock()

    def _fresh(self, entry: CachedKey | None) -> bool:
        return entry is not None and (self._clock() - entry.fetched_at) < self._ttl

    def get(self, kid: str) -> Any:
        """Return the public key for kid, fetching the key set if needed. Raises TokenValidationError."""
        entry = self._entries.get(kid)
        if self._fresh(entry):
            return entry.key
        return self._refresh(kid)

    def _refresh(self, kid: str) -> Any:
        with self._lock:
            entry = self._entries.get(kid)
            if self._fresh(entry):
                return entry.key
            future = self._inflight.get(kid)
            leader = future is None
            if leader:
                future = Future()
                self._inflight[kid] = future

        if leader:
            try:
                keys = self._fetch()
            except KeyFetchError as e:
                future.set_exception(e)
            else:
                now = self._clock()
                with self._lock:
                    for key_id, key in keys.items():
                        self._entries[key_id] = CachedKey(key=key, fetched_at=now)
                future.set_result(keys.get(kid))
            finally:
                if not future.done():
                    future.set_exception(KeyFetchError("key set fetch aborted"))
                with self._lock:
                    self._inflight.pop(kid, None)

        try:
            key = future.result(timeout=self._fetch_timeout)
        except FutureTimeoutError:
            logger.warning("Timed out waiting for key set fetch (kid=%s)", kid)
            raise TokenValidationError(KEY_NOT_FOUND, "Signing key could not be resolved") from None
        except KeyFetchError as e:
            logger.warning("Key set fetch failed (kid=%s): %s", kid, e)
            raise TokenValidationError(KEY_NOT_FOUND, "Signing key could not be resolved") from None
        if key is None:
            logger.info("Unknown signing key kid=%s", kid)
            raise TokenValidationError(KEY_NOT_FOUND, "Unknown signing key")
        return key

    def _fetch(self) -> dict[str, Any]:
        try:
            jwks = self._source.fetch()
            if not isinstance(jwks, dict):
                raise ValueError("key set is not a JSON object")
            key_set = jwt.PyJWKSet.from_dict(jwks)
        except (httpx.HTTPError, ValueError, jwt.PyJWKSetError, jwt.PyJWKError) as e:
            raise KeyFetchError(str(e)) from e
        return {k.key_id: k.key for k in key_set.keys if k.key_id}

    def invalidate(self, kid: str | None = None) -> None:
        with self._lock:
            if kid is None:
                self._entries.clear()
            else:
                self._entries.pop(kid, None)


def _unverified_header(token: str) -> dict:
    """
    Decode only the JOSE header segment. The payload and signature are left to jwt.decode, so any
    damage there is reported by the signature check.
    """
    if token.count(".") < 2:
        raise TokenValidationError(INVALID_TOKEN, "Malformed token")
    try:
        header = json.loads(base64url_decode(token.split(".", 1)[0]))
    except ValueError:
        # binascii.Error, UnicodeDecodeError and JSONDecodeError are all ValueErrors
        raise TokenValidationError(INVALID_TOKEN, "Malformed token") from None
    if not isinstance(header, dict):
        raise TokenValidationError(INVALID_TOKEN, "Malformed token")
    return header


class TokenValidator:
    def __init__(
        self,
        key_cache: KeyCache,
        *,
        issuer: str,
        clock: Callable[[], float] = time.time,
        leeway: int = 0,
    ):
        self._keys = key_cache
        self._issuer = issuer.rstrip("/")
        self._clock = clock
        self._leeway = leeway

    def validate(self, token: str, required_audience: str, required_scope: str | None = None) -> TokenClaims:
        """
        Verify token and return its claims, or raise TokenValidationError.
        required_scope is checked against the "scope" claim when given.
        """
        header = _unverified_header(token)
        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise TokenValidationError(INVALID_TOKEN, "Token has no key identifier")
        if header.get("alg") != ALGORITHM:
            raise TokenValidationError(INVALID_TOKEN, "Unsupported signing algorithm")

        public_key = self._keys.get(kid)

        try:
            payload = jwt.decode(
                token,
                public_key,
                algorithms=[ALGORITHM],
                # Time, issuer and audience are checked below against this validator's clock and config
                options={
                    "verify_signature": True,
                    "verify_exp": False,
                    "verify_nbf": False,
                    "verify_iat": False,
                    "verify_aud": False,
                    "verify_iss": False,
                },
            )
        except jwt.DecodeError:
            # InvalidSignatureError, or a payload/signature segment that no longer decodes
            raise TokenValidationError(INVALID_SIGNATURE, "Signature verification failed") from None
        except jwt.InvalidTokenError as e:
            logger.debug("Token rejected after signature check: %s", e)
            raise TokenValidationError(INVALID_TOKEN, "Token verification failed") from None

        try:
            claims = TokenClaims.from_payload(payload)
        except ValueError as e:
            logger.debug("Token claims invalid: %s", e)
            raise TokenValidationError(INVALID_TOKEN, "Token claims invalid") from None

        if claims.expires_at <= self._clock() - self._leeway:
            raise TokenValidationError(EXPIRED_TOKEN, "Token expired")
        if claims.issuer != self._issuer:
            raise TokenValidationError(INVALID_TOKEN, "Invalid issuer")
        if required_audience not in claims.audience:
            raise TokenValidationError(INVALID_TOKEN, "Insufficient audience")
        if required_scope is not None and required_scope not in claims.scopes:
            raise TokenValidationError(INVALID_TOKEN, "Insufficient scope")
        return claims
