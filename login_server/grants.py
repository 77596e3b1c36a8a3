"""
Grant processing for the token endpoint: client_credentials and password (resource owner) grants.

The processor checks the request against the credential directory, negotiates scope, and hands a
claim record to the TokenIssuer. It holds no per-request state: tokens are self-contained and
short-lived, so there is no session or replay tracking.

Audience decision: one token per grant. Its "aud" claim is the set of granted scopes (each scope
names one API resource), and a resource server accepts the token when its own name is in "aud".
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable

from login_server.directory import CredentialDirectory, GrantType, verify_client_secret
from login_server.tokens import IssuedToken, TokenClaims, TokenIssuer

logger = logging.getLogger(__name__)

INVALID_CLIENT = "invalid_client"
UNAUTHORIZED_CLIENT = "unauthorized_client"
INVALID_GRANT = "invalid_grant"
INVALID_SCOPE = "invalid_scope"
INVALID_REQUEST = "invalid_request"
UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"


class GrantError(Exception):
    """
    A rejected grant request. error and description are safe to return to the caller;
    reason is the internal cause (e.g. unknown_client vs bad_secret) for logs and audit only.
    """

    def __init__(self, error: str, description: str, *, reason: str | None = None):
        super().__init__(f"{error}: {description}")
        self.error = error
        self.description = description
        self.reason = reason or error

    @property
    def status_code(self) -> int:
        return 401 if self.error == INVALID_CLIENT else 400

    def to_dict(self) -> dict:
        return {"error": self.error, "error_description": self.description}


@dataclass(frozen=True)
class GrantRequest:
    grant_type: GrantType
    client_id: str
    client_secret: str | None
    scope: str = ""
    username: str | None = None
    password: str | None = None

    @property
    def requested_scopes(self) -> frozenset[str]:
        return frozenset(s for s in self.scope.split() if s)


def parse_grant_type(value: str | None) -> GrantType:
    try:
        return GrantType((value or "").strip())
    except ValueError:
        raise GrantError(
            UNSUPPORTED_GRANT_TYPE,
            "Only client_credentials and password grants are supported",
        ) from None


class GrantProcessor:
    def __init__(
        self,
        directory: CredentialDirectory,
        issuer: TokenIssuer,
        *,
        issuer_id: str,
        access_token_ttl: int,
        clock: Callable[[], float] = time.time,
    ):
        self._directory = directory
        self._issuer = issuer
        self._issuer_id = issuer_id
        self._ttl = access_token_ttl
        self._clock = clock

    def process(self, request: GrantRequest) -> IssuedToken:
        """Validate the grant and issue a token, or raise GrantError."""
        client = self._directory.find_client(request.client_id)
        if not verify_client_secret(client, request.client_secret):
            reason = "unknown_client" if client is None else "bad_secret"
            raise GrantError(INVALID_CLIENT, "Invalid client credentials", reason=reason)

        if request.grant_type not in client.allowed_grant_types:
            raise GrantError(
                UNAUTHORIZED_CLIENT,
                f"Client is not authorized for the {request.grant_type.value} grant",
            )

        subject = None
        if request.grant_type is GrantType.PASSWORD:
            if not request.username or request.password is None:
                raise GrantError(INVALID_REQUEST, "username and password are required for the password grant")
            user = self._directory.find_user(request.username, request.password)
            if user is None:
                raise GrantError(INVALID_GRANT, "Invalid username or password", reason="bad_user_credentials")
            subject = user.subject_id

        granted = self._negotiate_scope(request.requested_scopes, client.allowed_scopes)

        now = int(self._clock())
        claims = TokenClaims(
            issuer=self._issuer_id,
            subject=subject,
            audience=granted,
            scopes=granted,
            issued_at=now,
            expires_at=now + self._ttl,
            client_id=client.client_id,
        )
        return self._issuer.issue(claims)

    @staticmethod
    def _negotiate_scope(requested: frozenset[str], allowed: frozenset[str]) -> frozenset[str]:
        """
        All requested scopes must be allowed; the request is rejected rather than downgraded.
        No requested scope means every scope the client is allowed.
        """
        if not requested:
            if not allowed:
                raise GrantError(INVALID_SCOPE, "Client has no scopes to grant")
            return allowed
        invalid = requested - allowed
        if invalid:
            raise GrantError(INVALID_SCOPE, f"Invalid scope(s): {', '.join(sorted(invalid))}")
        return requested
