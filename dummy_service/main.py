"""
Dummy service (protected API). Accepts access tokens whose "aud" includes this API's audience.
GET /api/dummy returns a greeting; GET /api/dummy/claims echoes the caller's identity from the token.
Port 5001 by default; run a second instance as dummy2 on 5002.
"""
from fastapi import FastAPI

from dummy_service.auth import require_access
from dummy_service.config import API_AUDIENCE, ISSUER, JWKS_TIMEOUT, JWKS_URI, KEY_CACHE_TTL, PORT, SERVICE_NAME
from dummy_service.validator import KeyCache, RemoteKeySource, TokenValidator
from login_server.tokens import TokenClaims


def build_validator() -> TokenValidator:
    """Validator backed by the login server's published key set."""
    cache = KeyCache(
        RemoteKeySource(JWKS_URI, timeout=JWKS_TIMEOUT),
        ttl=KEY_CACHE_TTL,
        fetch_timeout=JWKS_TIMEOUT,
    )
    return TokenValidator(cache, issuer=ISSUER)


def create_app(
    *,
    validator: TokenValidator | None = None,
    audience: str = API_AUDIENCE,
    service_name: str = SERVICE_NAME,
) -> FastAPI:
    app = FastAPI(title=service_name, version="1.0.0")
    app.state.validator = validator or build_validator()
    RequireAccess = require_access(audience)

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "ok", "service": service_name, "audience": audience}

    @app.get("/api/dummy")
    def dummy(claims: TokenClaims = RequireAccess):
        """Requires a token issued for this API's audience."""
        return f"Hello from {service_name}!"

    @app.get("/api/dummy/claims")
    def dummy_claims(claims: TokenClaims = RequireAccess):
        """Identity the token grants: subject (password grant only), client and scopes."""
        return {
            "sub": claims.subject,
            "client_id": claims.client_id,
            "scope": " ".join(sorted(claims.scopes)),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "dummy_service.main:app",
        host="127.0.0.1",
        port=PORT,
        reload=True,
    )
