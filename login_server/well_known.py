"""
Well-known endpoints: OpenID Connect discovery and the JSON Web Key Set.
"""
from fastapi import APIRouter, Request

from login_server.directory import GrantType
from login_server.keys import SIGNING_ALGORITHM

router = APIRouter()

JWKS_PATH = "/.well-known/openid-configuration/jwks"


@router.get(JWKS_PATH)
@router.get("/.well-known/jwks.json")
def jwks_json(request: Request):
    """JSON Web Key Set for token signature verification."""
    return request.app.state.key_publisher.jwks()


@router.get("/.well-known/openid-configuration")
def openid_configuration(request: Request):
    """OpenID Connect discovery document."""
    issuer = request.app.state.issuer
    resources = request.app.state.directory.list_api_resources()
    return {
        "issuer": issuer,
        "token_endpoint": f"{issuer}/token",
        "jwks_uri": f"{issuer}{JWKS_PATH}",
        "grant_types_supported": [g.value for g in GrantType],
        "scopes_supported": sorted(r.name for r in resources),
        "token_endpoint_auth_methods_supported": ["client_secret_basic", "client_secret_post"],
        "id_token_signing_alg_values_supported": [SIGNING_ALGORITHM],
        "subject_types_supported": ["public"],
    }
