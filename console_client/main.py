"""
Console clients for the login server.

  python -m console_client.main client   # client_credentials, scope "dummy1 dummy2"
  python -m console_client.main user     # password grant as a prompted user, scope "dummy1"

Each run: discover -> request token -> call dummy API 1 -> call dummy API 2.
"""
import json
import logging

import click
import httpx

from console_client import config
from console_client.client import (
    DiscoveryError,
    TokenResponse,
    call_api,
    discover,
    request_client_credentials_token,
    request_password_token,
)

logger = logging.getLogger(__name__)


def _call_services(access_token: str) -> None:
    for label, url in (("Microservice1", config.DUMMY1_URL), ("Microservice2", config.DUMMY2_URL)):
        click.echo(f"Response from {label}: ", nl=False)
        try:
            r = call_api(url, access_token)
        except httpx.HTTPError as e:
            click.echo(f"unreachable ({e.__class__.__name__})")
            continue
        if r.status_code != 200:
            click.echo(r.status_code)
        else:
            click.echo(r.text)


def _finish(token_response: TokenResponse) -> None:
    click.echo(json.dumps(token_response.body, indent=2))
    if token_response.is_error:
        raise SystemExit(1)
    _call_services(token_response.access_token)


def _discover_or_exit() -> dict:
    try:
        disco = discover(config.ISSUER)
    except DiscoveryError as e:
        click.echo(str(e), err=True)
        raise SystemExit(1)
    logger.debug("Using token endpoint %s", disco["token_endpoint"])
    return disco


@click.group()
@click.option("--verbose", is_flag=True, help="Log HTTP activity.")
def cli(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@cli.command()
def client():
    """Machine-to-machine access with the client_credentials grant."""
    disco = _discover_or_exit()
    _finish(
        request_client_credentials_token(
            disco["token_endpoint"],
            config.CLIENT_CREDENTIALS_CLIENT_ID,
            config.CLIENT_CREDENTIALS_SECRET,
            config.CLIENT_CREDENTIALS_SCOPE,
        )
    )


@cli.command()
@click.option("--username", prompt="Username")
@click.option("--password", prompt="Password", hide_input=True)
def user(username: str, password: str):
    """User access with the resource owner password grant."""
    disco = _discover_or_exit()
    _finish(
        request_password_token(
            disco["token_endpoint"],
            config.RESOURCE_OWNER_CLIENT_ID,
            config.RESOURCE_OWNER_SECRET,
            username,
            password,
            config.RESOURCE_OWNER_SCOPE,
        )
    )


if __name__ == "__main__":
    cli()
