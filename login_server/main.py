"""
Login server (OAuth2 authorization server).
POST /token (client_credentials, password), discovery and JWKS, audit log.
Port 5000 by default.

The signing key provider and the credential directory are explicit objects stored on app.state.
create_app() accepts them ready-made (tests pass a disposable key and a small directory); otherwise
they are loaded at startup from configuration.
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from login_server.audit import router as audit_router
from login_server.config import (
    ACCESS_TOKEN_EXPIRES,
    AUDIT_ENDPOINT_ENABLED,
    DIRECTORY_BACKEND,
    ISSUER,
    SIGNING_KEY_PATH,
    SIGNING_KEY_PREVIOUS_PATH,
)
from login_server.database import SessionLocal, init_db
from login_server.directory import CredentialDirectory, SqlDirectory
from login_server.grants import GrantError, GrantProcessor
from login_server.keys import KeyPublisher, SigningKeyProvider
from login_server.rate_limit import SlidingWindowLimiter
from login_server.seed import build_static_directory, seed_database
from login_server.token_endpoint import router as token_router
from login_server.tokens import TokenIssuer
from login_server.well_known import router as well_known_router

logger = logging.getLogger(__name__)


def _default_directory() -> CredentialDirectory:
    if DIRECTORY_BACKEND == "sql":
        db = SessionLocal()
        try:
            seed_database(db)
        finally:
            db.close()
        return SqlDirectory(SessionLocal)
    if DIRECTORY_BACKEND != "static":
        logger.warning("Unknown OAUTH_DIRECTORY_BACKEND=%r; using static directory", DIRECTORY_BACKEND)
    return build_static_directory()


def _configure(
    app: FastAPI,
    key_provider: SigningKeyProvider,
    directory: CredentialDirectory,
    *,
    access_token_ttl: int,
    clock: Callable[[], float],
) -> None:
    app.state.key_provider = key_provider
    app.state.directory = directory
    app.state.key_publisher = KeyPublisher(key_provider)
    app.state.grant_processor = GrantProcessor(
        directory,
        TokenIssuer(key_provider),
        issuer_id=app.state.issuer,
        access_token_ttl=access_token_ttl,
        clock=clock,
    )
    logger.info("Login server ready: issuer=%s kid=%s", app.state.issuer, key_provider.key_id)


async def grant_error_handler(request: Request, exc: GrantError) -> JSONResponse:
    """Render a rejected grant as the RFC 6749 §5.2 error body. No internal reason is exposed."""
    headers = {"Cache-Control": "no-store", "Pragma": "no-cache"}
    if exc.status_code == 401:
        headers["WWW-Authenticate"] = 'Basic realm="token"'
    return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=headers)


def create_app(
    *,
    key_provider: SigningKeyProvider | None = None,
    directory: CredentialDirectory | None = None,
    issuer: str = ISSUER,
    access_token_ttl: int = ACCESS_TOKEN_EXPIRES,
    clock: Callable[[], float] = time.time,
    expose_audit: bool = AUDIT_ENDPOINT_ENABLED,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create tables; load signing key and directory from config unless they were injected."""
        init_db()
        if getattr(app.state, "grant_processor", None) is None:
            _configure(
                app,
                key_provider or SigningKeyProvider.load_or_create(SIGNING_KEY_PATH, SIGNING_KEY_PREVIOUS_PATH),
                directory or _default_directory(),
                access_token_ttl=access_token_ttl,
                clock=clock,
            )
        yield

    app = FastAPI(title="Login Server", version="1.0.0", lifespan=lifespan)
    app.state.issuer = issuer.rstrip("/")
    app.state.grant_processor = None
    app.state.rate_limiter = SlidingWindowLimiter()
    if key_provider is not None and directory is not None:
        _configure(app, key_provider, directory, access_token_ttl=access_token_ttl, clock=clock)

    app.add_exception_handler(GrantError, grant_error_handler)
    app.include_router(token_router, tags=["token"])
    app.include_router(well_known_router, tags=["well-known"])
    if expose_audit:
        app.include_router(audit_router)

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "ok", "service": "login_server"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "login_server.main:app",
        host="127.0.0.1",
        port=5000,
        reload=True,
    )
