"""
Access token claims and issuance.

TokenClaims is the fixed claim record carried by every access token. The TokenIssuer serializes it
in a fixed member order (aud sorted, scope sorted) and signs it as an RS256 JWS whose header carries
the signing key's kid, so a verifier can resolve the public key from the published key set.
"""
import logging
from dataclasses import dataclass

import jwt

from login_server.keys import SIGNING_ALGORITHM, SigningKeyProvider

logger = logging.getLogger(__name__)

TOKEN_TYPE_HEADER = "at+jwt"


def _as_string_set(value, claim: str) -> frozenset[str]:
    """Normalize a space-delimited string or list claim to a set of strings."""
    if isinstance(value, str):
        return frozenset(value.split())
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return frozenset(value)
    raise ValueError(f"'{claim}' claim must be a string or a list of strings")


def _as_int(payload: dict, claim: str) -> int:
    value = payload.get(claim)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{claim}' claim missing or not numeric")
    return int(value)


@dataclass(frozen=True)
class TokenClaims:
    issuer: str
    subject: str | None  # set only for resource owner password grants
    audience: frozenset[str]
    scopes: frozenset[str]
    issued_at: int
    expires_at: int
    client_id: str | None = None

    def to_payload(self) -> dict:
        payload: dict = {"iss": self.issuer}
        if self.subject is not None:
            payload["sub"] = self.subject
        payload["aud"] = sorted(self.audience)
        if self.client_id is not None:
            payload["client_id"] = self.client_id
        payload["scope"] = " ".join(sorted(self.scopes))
        payload["iat"] = self.issued_at
        payload["exp"] = self.expires_at
        return payload

    @classmethod
    def from_payload(cls, payload: dict) -> "TokenClaims":
        """Parse a decoded JWT payload. Raises ValueError if a required claim is missing or mistyped."""
        issuer = payload.get("iss")
        if not isinstance(issuer, str) or not issuer:
            raise ValueError("'iss' claim missing")
        subject = payload.get("sub")
        if subject is not None and not isinstance(subject, str):
            raise ValueError("'sub' claim must be a string")
        if "aud" not in payload:
            raise ValueError("'aud' claim missing")
        client_id = payload.get("client_id")
        if client_id is not None and not isinstance(client_id, str):
            raise ValueError("'client_id' claim must be a string")
        return cls(
            issuer=issuer,
            subject=subject,
            audience=_as_string_set(payload["aud"], "aud"),
            scopes=_as_string_set(payload.get("scope", ""), "scope"),
            issued_at=_as_int(payload, "iat"),
            expires_at=_as_int(payload, "exp"),
            client_id=client_id,
        )


@dataclass(frozen=True)
class IssuedToken:
    access_token: str
    key_id: str
    claims: TokenClaims

    @property
    def expires_in(self) -> int:
        return self.claims.expires_at - self.claims.issued_at

    @property
    def scope(self) -> str:
        return " ".join(sorted(self.claims.scopes))


class TokenIssuer:
    """Signs claim records with the provider's current key."""

    def __init__(self, key_provider: SigningKeyProvider):
        self._keys = key_provider

    def issue(self, claims: TokenClaims) -> IssuedToken:
        kid = self._keys.key_id
        token = jwt.encode(
            claims.to_payload(),
            self._keys.signing_key,
            algorithm=SIGNING_ALGORITHM,
            headers={"kid": kid, "typ": TOKEN_TYPE_HEADER},
        )
        logger.debug("Issued access token kid=%s client_id=%s exp=%s", kid, claims.client_id, claims.expires_at)
        return IssuedToken(access_token=token, key_id=kid, claims=claims)
