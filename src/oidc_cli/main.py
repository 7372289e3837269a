"""
Main entry point for the oidc-cli command.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import typer
from dotenv import load_dotenv

from oidc_cli import __version__
from oidc_cli.app import configure_logging
from oidc_cli.clients.types import TokenResult
from oidc_cli.errors import ConfigError, FlowCancelled, OidcError
from oidc_cli.files import write_private_text
from oidc_cli.flow import LoginFlow
from oidc_cli.profiles import Profile, ProfileStore
from oidc_cli.settings import get_settings
from oidc_cli.ui import ConsoleUI, format_tokens, format_tokens_json

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="oidc-cli",
    help="Obtain OAuth 2.0 / OpenID Connect tokens with the Authorization Code + PKCE flow.",
    no_args_is_help=True,
    add_completion=False,
)


@contextmanager
def _cli_errors() -> Iterator[None]:
    try:
        yield
    except (FlowCancelled, KeyboardInterrupt):
        typer.echo("Operation cancelled by user", err=True)
        raise typer.Exit(code=0) from None
    except OidcError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def _quiet(ctx: typer.Context) -> bool:
    return bool(ctx.obj and ctx.obj.get("quiet"))


def _ui(ctx: typer.Context) -> ConsoleUI:
    return ConsoleUI(quiet=_quiet(ctx))


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"oidc-cli {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress informational messages."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
    ),
) -> None:
    s = get_settings()
    level = "debug" if verbose else s.logging.level
    configure_logging(as_json=s.logging.as_json, log_level=level)
    ctx.obj = {"quiet": quiet}


def _select_profile(store: ProfileStore, name: Optional[str], ui: ConsoleUI) -> str:
    if name:
        return name
    names = store.list()
    if not names:
        raise ConfigError("No profiles configured. Create one with 'oidc-cli create NAME'.")
    only = store.single()
    if only:
        return only
    return ui.select("Select a profile:", names)


def _write_tokens(path: Path, token: TokenResult) -> None:
    try:
        write_private_text(path, format_tokens_json(token) + "\n")
    except OSError as exc:
        raise OidcError(f"Failed to write tokens to {path}: {exc}") from exc


@app.command()
def login(
    ctx: typer.Context,
    profile: Optional[str] = typer.Argument(None, help="Profile to log in with."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Override the loopback callback port (0 picks a free one)."),
    json_output: bool = typer.Option(False, "--json", help="Print tokens as JSON (implied by --quiet)."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write tokens as JSON to FILE."),
    browser_token: bool = typer.Option(
        False, "--browser-token", help="Hand the access token to the browser success page."
    ),
) -> None:
    """Run the authorization code flow and print the resulting tokens."""
    ui = _ui(ctx)
    with _cli_errors():
        store = ProfileStore()
        name = _select_profile(store, profile, ui)
        selected = store.get(name)
        ui.display(f"Using profile: {name}")
        logger.debug("starting login", extra={"profile": name})

        flow = LoginFlow(
            selected,
            ui=ui,
            port=port,
            expose_token=True if browser_token else None,
        )
        token = asyncio.run(flow.run())

        if output is not None:
            _write_tokens(output, token)
            ui.display(f"Tokens written to {output}")
        elif json_output or _quiet(ctx):
            typer.echo(format_tokens_json(token))
        else:
            typer.echo(format_tokens(token))


@app.command("list")
def list_profiles() -> None:
    """List stored profiles."""
    with _cli_errors():
        store = ProfileStore()
        names = store.list()
        if not names:
            typer.echo("No profiles configured.", err=True)
            return
        for name in names:
            p = store.get(name)
            source = p.discovery_uri or p.authorization_endpoint
            typer.echo(f"{name}\t{p.client_id}\t{source}")


@app.command()
def create(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Profile name."),
    client_id: str = typer.Option(..., "--client-id", help="OAuth client identifier."),
    client_secret: Optional[str] = typer.Option(None, "--client-secret", help="Client secret for confidential clients."),
    redirect_uri: str = typer.Option("http://localhost:8080/callback", "--redirect-uri"),
    scope: str = typer.Option("openid profile email", "--scope"),
    discovery_uri: Optional[str] = typer.Option(None, "--discovery-uri"),
    authorization_endpoint: Optional[str] = typer.Option(None, "--authorization-endpoint"),
    token_endpoint: Optional[str] = typer.Option(None, "--token-endpoint"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing profile."),
) -> None:
    """Create a profile from command line options."""
    ui = _ui(ctx)
    with _cli_errors():
        profile = Profile(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            scope=scope,
            discovery_uri=discovery_uri,
            authorization_endpoint=authorization_endpoint,
            token_endpoint=token_endpoint,
        )
        store = ProfileStore()
        store.add(name, profile, overwrite=force)
        ui.display(f"Profile '{name}' saved to {store.path}")


def _prompt_profile_changes(current: Profile) -> Dict[str, Any]:
    typer.echo("Press Enter to keep the current value.", err=True)
    try:
        changes: Dict[str, Any] = {
            "client_id": typer.prompt("Client ID", default=current.client_id, err=True),
            "client_secret": typer.prompt(
                "Client Secret (optional)",
                default=current.client_secret or "",
                show_default=False,
                hide_input=True,
                err=True,
            ),
            "redirect_uri": typer.prompt("Redirect URI", default=current.redirect_uri, err=True),
            "scope": typer.prompt("Scope", default=current.scope, err=True),
        }
        if current.discovery_uri:
            changes["discovery_uri"] = typer.prompt("Discovery URI", default=current.discovery_uri, err=True)
        else:
            changes["authorization_endpoint"] = typer.prompt(
                "Authorization Endpoint", default=current.authorization_endpoint or "", err=True
            )
            changes["token_endpoint"] = typer.prompt(
                "Token Endpoint", default=current.token_endpoint or "", err=True
            )
    except typer.Abort:
        raise FlowCancelled() from None
    return changes


@app.command()
def edit(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Profile name."),
    client_id: Optional[str] = typer.Option(None, "--client-id"),
    client_secret: Optional[str] = typer.Option(None, "--client-secret", help="Pass an empty value to clear."),
    redirect_uri: Optional[str] = typer.Option(None, "--redirect-uri"),
    scope: Optional[str] = typer.Option(None, "--scope"),
    discovery_uri: Optional[str] = typer.Option(None, "--discovery-uri"),
    authorization_endpoint: Optional[str] = typer.Option(None, "--authorization-endpoint"),
    token_endpoint: Optional[str] = typer.Option(None, "--token-endpoint"),
) -> None:
    """Edit a profile. Without options, prompts for each field."""
    ui = _ui(ctx)
    with _cli_errors():
        store = ProfileStore()
        current = store.get(name)
        options = {
            "client_id": client_id,
            "client_secret": client_secret,
            "redirect_uri": redirect_uri,
            "scope": scope,
            "discovery_uri": discovery_uri,
            "authorization_endpoint": authorization_endpoint,
            "token_endpoint": token_endpoint,
        }
        changes = {key: value for key, value in options.items() if value is not None}
        if not changes:
            changes = _prompt_profile_changes(current)

        store.update(name, Profile.model_validate({**current.model_dump(), **changes}))
        ui.display(f"Profile '{name}' updated")


@app.command()
def delete(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Profile name."),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation."),
) -> None:
    """Delete a profile."""
    ui = _ui(ctx)
    with _cli_errors():
        store = ProfileStore()
        store.get(name)
        if not force and not typer.confirm(f"Delete profile '{name}'?", err=True):
            raise FlowCancelled()
        store.remove(name)
        ui.display(f"Profile '{name}' deleted")


@app.command()
def rename(
    ctx: typer.Context,
    old_name: str = typer.Argument(...),
    new_name: str = typer.Argument(...),
) -> None:
    """Rename a profile."""
    ui = _ui(ctx)
    with _cli_errors():
        ProfileStore().rename(old_name, new_name)
        ui.display(f"Profile '{old_name}' renamed to '{new_name}'")


@app.command("export")
def export_profiles(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Destination file."),
    names: Optional[List[str]] = typer.Argument(None, help="Profiles to export (default: all)."),
) -> None:
    """Export profiles to a JSON file."""
    ui = _ui(ctx)
    with _cli_errors():
        exported = ProfileStore().export(file, names)
        ui.display(f"Exported {len(exported)} profile(s) to {file}")


@app.command("import")
def import_profiles(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="File produced by 'oidc-cli export'."),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace profiles that already exist."),
) -> None:
    """Import profiles from a JSON file."""
    ui = _ui(ctx)
    with _cli_errors():
        imported = ProfileStore().import_(file, overwrite=overwrite)
        ui.display(f"Imported {len(imported)} profile(s): {', '.join(imported)}")


def main() -> None:
    """Console script entry point."""
    # Load environment variables from a .env file if present
    load_dotenv()
    app()


if __name__ == "__main__":
    main()
