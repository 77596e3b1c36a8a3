"""
Bearer token dependencies for the dummy service.
Any failure is a 401 with a generic body; the validation kind is only logged.
"""
import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from dummy_service.validator import TokenValidationError, TokenValidator
from login_server.tokens import TokenClaims

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _unauthorized(error: str | None = None) -> HTTPException:
    challenge = f'Bearer error="{error}"' if error else "Bearer"
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": challenge},
    )


def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """Extract Bearer token from Authorization header. Raises 401 if missing or not Bearer."""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise _unauthorized()
    return credentials.credentials


def get_validator(request: Request) -> TokenValidator:
    return request.app.state.validator


def require_access(audience: str, scope: str | None = None):
    """Dependency factory: valid token for this audience (and scope, if given) -> claims."""

    def _check(
        token: Annotated[str, Depends(get_bearer_token)],
        validator: Annotated[TokenValidator, Depends(get_validator)],
    ) -> TokenClaims:
        try:
            return validator.validate(token, audience, scope)
        except TokenValidationError as e:
            logger.info("Rejected bearer token for audience=%s: %s", audience, e.kind)
            raise _unauthorized("invalid_token") from None

    return Depends(_check)
