from dataclasses import dataclass
from typing import Any

import click
import httpx

from withings_oauth.cli.utils import (
    configure_logging,
    output_error,
    output_result,
    run_async_cli,
)
from withings_oauth.client import OAuth2Client
from withings_oauth.config import load_withings_config
from withings_oauth.contracts import ProviderError
from withings_oauth.providers.withings import create_withings_client

_HANDLED_ERRORS = (ProviderError, ValueError, OSError, httpx.HTTPError)


@dataclass
class _CliState:
    config_path: str | None
    json_output: bool
    debug: bool

    def client(self) -> OAuth2Client:
        return create_withings_client(load_withings_config(self.config_path))


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Path to the YAML config (defaults to $WITHINGS_OAUTH_CONFIG or WITHINGS_* variables)",
)
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, json_output: bool, debug: bool) -> None:
    """Withings OAuth2 helper.

    \b
    Examples:
        withings-oauth authorize-url --prompt consent
        withings-oauth exchange <code>
        withings-oauth refresh <refresh-token>
        withings-oauth resource-owner <access-token>
        withings-oauth revoke <access-token>
    """
    configure_logging(debug=debug)
    ctx.obj = _CliState(config_path=config_path, json_output=json_output, debug=debug)


@cli.command(name="authorize-url")
@click.option("--scope", "scopes", multiple=True, help="Scope to request (repeatable)")
@click.option("--state", help="State value (random when omitted)")
@click.option("--prompt", help="Withings prompt parameter")
@click.pass_obj
def authorize_url(state_obj: _CliState, scopes: tuple[str, ...], state: str | None, prompt: str | None) -> None:
    """Print the URL the user must visit to grant access."""
    try:
        options: dict[str, Any] = {}
        if scopes:
            options["scope"] = list(scopes)
        if state:
            options["state"] = state
        if prompt:
            options["prompt"] = prompt
        request = state_obj.client().get_authorization_url(**options)
        result = {"url": request.url, "state": request.state}
        if request.code_verifier:
            result["code_verifier"] = request.code_verifier
        output_result(result, state_obj.json_output)
    except _HANDLED_ERRORS as e:
        output_error(e, state_obj.json_output, state_obj.debug)


@cli.command(name="exchange")
@click.argument("code")
@click.option("--code-verifier", help="PKCE code verifier returned by authorize-url")
@click.pass_obj
def exchange(state_obj: _CliState, code: str, code_verifier: str | None) -> None:
    """Exchange an authorization code for tokens."""
    try:
        options: dict[str, Any] = {"code": code}
        if code_verifier:
            options["code_verifier"] = code_verifier
        token = run_async_cli(
            state_obj.client().get_access_token("authorization_code", **options)
        )
        output_result(token.to_dict(), state_obj.json_output)
    except _HANDLED_ERRORS as e:
        output_error(e, state_obj.json_output, state_obj.debug)


@cli.command(name="refresh")
@click.argument("refresh_token")
@click.pass_obj
def refresh(state_obj: _CliState, refresh_token: str) -> None:
    """Trade a refresh token for a new access token."""
    try:
        token = run_async_cli(
            state_obj.client().get_access_token("refresh_token", refresh_token=refresh_token)
        )
        output_result(token.to_dict(), state_obj.json_output)
    except _HANDLED_ERRORS as e:
        output_error(e, state_obj.json_output, state_obj.debug)


@cli.command(name="resource-owner")
@click.argument("access_token")
@click.pass_obj
def resource_owner(state_obj: _CliState, access_token: str) -> None:
    """Show the resource owner details for an access token."""
    try:
        owner = run_async_cli(state_obj.client().get_resource_owner(access_token))
        output_result({"id": owner.id, "details": owner.to_dict()}, state_obj.json_output)
    except _HANDLED_ERRORS as e:
        output_error(e, state_obj.json_output, state_obj.debug)


@cli.command(name="revoke")
@click.argument("access_token")
@click.pass_obj
def revoke(state_obj: _CliState, access_token: str) -> None:
    """Revoke an access token."""
    try:
        response = run_async_cli(state_obj.client().revoke(access_token))
        output_result(
            {"status_code": response.status_code, "body": response.text}, state_obj.json_output
        )
    except _HANDLED_ERRORS as e:
        output_error(e, state_obj.json_output, state_obj.debug)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
