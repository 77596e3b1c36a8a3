"""
Token endpoint (POST /token): client_credentials and password grants.
Errors use the RFC 6749 §5.2 body ({"error", "error_description"}); see main.grant_error_handler.
"""
import logging

from fastapi import APIRouter, Depends, Form, HTTPException, Request, Response
from sqlalchemy.orm import Session

from login_server.audit import (
    EVENT_TOKEN_DENIED,
    EVENT_TOKEN_ISSUED,
    OUTCOME_FAIL,
    OUTCOME_SUCCESS,
    get_client_ip,
    log_audit,
)
from login_server.client_auth import get_client_credentials_from_request
from login_server.config import RATE_LIMIT_TOKEN_PER_MINUTE
from login_server.database import get_db
from login_server.grants import INVALID_CLIENT, GrantError, GrantRequest, parse_grant_type

logger = logging.getLogger(__name__)
router = APIRouter()


def _enforce_rate_limit(request: Request) -> None:
    limiter = request.app.state.rate_limiter
    ip = get_client_ip(request) or "unknown"
    allowed, retry_after = limiter.check_and_consume(f"token:{ip}", RATE_LIMIT_TOKEN_PER_MINUTE)
    if not allowed:
        logger.warning("Token rate limit exceeded for ip=%s", ip)
        raise HTTPException(
            status_code=429,
            detail={"error": "slow_down", "error_description": "Too many token requests"},
            headers={"Retry-After": str(retry_after)},
        )


@router.post("/token")
def token(
    request: Request,
    response: Response,
    grant_type: str | None = Form(None),
    client_id: str | None = Form(None),
    client_secret: str | None = Form(None),
    username: str | None = Form(None),
    password: str | None = Form(None),
    scope: str = Form(""),
    db: Session = Depends(get_db),
):
    """
    client_credentials: authenticate the client, grant the requested (allowed) scopes.
    password: additionally authenticate the resource owner; the token carries their subject id.
    """
    _enforce_rate_limit(request)

    cid, secret = get_client_credentials_from_request(request, client_id, client_secret)
    ip = get_client_ip(request)
    try:
        parsed_grant_type = parse_grant_type(grant_type)
        if not cid:
            raise GrantError(INVALID_CLIENT, "Invalid client credentials", reason="missing_client_id")
        issued = request.app.state.grant_processor.process(
            GrantRequest(
                grant_type=parsed_grant_type,
                client_id=cid,
                client_secret=secret,
                scope=scope or "",
                username=username,
                password=password,
            )
        )
    except GrantError as e:
        log_audit(
            db,
            EVENT_TOKEN_DENIED,
            grant_type=(grant_type or "")[:64] or None,
            client_id=cid,
            ip=ip,
            outcome=OUTCOME_FAIL,
            reason=e.reason,
        )
        raise

    log_audit(
        db,
        EVENT_TOKEN_ISSUED,
        grant_type=parsed_grant_type.value,
        client_id=cid,
        subject=issued.claims.subject,
        ip=ip,
        outcome=OUTCOME_SUCCESS,
    )
    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"
    return {
        "access_token": issued.access_token,
        "token_type": "Bearer",
        "expires_in": issued.expires_in,
        "scope": issued.scope,
    }
