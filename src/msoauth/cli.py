"""Command-line interface for msoauth.

Each invocation performs one transition of a profile's credential:

Usage:
    msoauth --print-token --profile work   # print a usable access token
    msoauth --refresh                       # force a refresh
    msoauth --login                         # start device login
    msoauth --clear-token                   # delete the stored token
    msoauth                                 # refresh, or log in if that fails

Only the access token is written to stdout; everything else goes to stderr.
"""

from __future__ import annotations

import sys
from datetime import datetime

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from msoauth import __version__
from msoauth.auth.exchange import TokenExchangeClient
from msoauth.auth.lifecycle import TokenLifecycle
from msoauth.auth.models import Credential, DeviceAuthorizationSession
from msoauth.auth.token_store import TokenStore
from msoauth.config import (
    DEFAULT_PROFILE,
    get_config_path,
    get_token_dir,
    load_profile,
    validate_config_file,
)
from msoauth.core.errors import (
    ConfigLoadError,
    ConfigValidationError,
    MsOAuthError,
    ProfileNotFoundError,
)
from msoauth.core.logging import bind_profile, configure_logging, get_logger

logger = get_logger(__name__)
console = Console(stderr=True)


def display_device_prompt(session: DeviceAuthorizationSession) -> None:
    """Show the verification URL and user code for device login."""
    panel_content = (
        f"To sign in, open a browser and go to:\n\n"
        f"  [bold blue]{session.verification_uri}[/bold blue]\n\n"
        f"Enter this code: [bold green]{session.user_code}[/bold green]\n\n"
        f"Waiting for authentication..."
    )

    console.print()
    console.print(
        Panel(
            panel_content,
            title="Microsoft Authentication Required",
            border_style="bright_blue",
        )
    )
    console.print()


def _describe(credential: Credential) -> str:
    if credential.expires_at is None:
        return "expiry unknown"
    expires = datetime.fromtimestamp(credential.expires_at).strftime("%Y-%m-%d %H:%M:%S")
    return f"valid until {expires}"


def _build_lifecycle(profile: str) -> TokenLifecycle:
    """Resolve config for a profile and wire up the lifecycle.

    Prints actionable error messages and calls sys.exit(1) on config failure.
    """
    try:
        profile_config = load_profile(profile)
    except (ConfigLoadError, ConfigValidationError) as e:
        console.print(f"[red]Config error:[/red] {escape(str(e))}")
        sys.exit(1)
    except ProfileNotFoundError as e:
        console.print(f"[red]Profile error:[/red] {escape(str(e))}")
        sys.exit(1)

    return TokenLifecycle(
        config=profile_config,
        profile=profile,
        store=TokenStore(get_token_dir()),
        client=TokenExchangeClient(),
        on_prompt=display_device_prompt,
    )


def _run(
    lifecycle: TokenLifecycle,
    print_token: bool,
    force_refresh: bool,
    login: bool,
    clear_token: bool,
) -> None:
    if clear_token:
        if lifecycle.clear():
            console.print(f"[green]✓[/green] Token cleared for profile '{lifecycle.profile}'")
        else:
            console.print(f"No stored token for profile '{lifecycle.profile}'")
        return

    if print_token:
        click.echo(lifecycle.get_token())
        return

    if force_refresh:
        credential = lifecycle.force_refresh()
        console.print(f"[green]✓[/green] Token refreshed ({_describe(credential)})")
        return

    if login:
        credential = lifecycle.login()
        console.print(f"[green]✓[/green] Signed in ({_describe(credential)})")
        return

    credential = lifecycle.refresh_or_login()
    console.print(f"[green]✓[/green] Token ready ({_describe(credential)})")


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--print-token", is_flag=True, help="Print current access token (refresh if needed)")
@click.option("--refresh", "force_refresh", is_flag=True, help="Force a token refresh")
@click.option("--login", is_flag=True, help="Start device login flow")
@click.option("--clear-token", is_flag=True, help="Delete saved token file")
@click.option(
    "--validate-config",
    is_flag=True,
    help="Check the config file and list its profiles",
)
@click.option(
    "--profile",
    "-p",
    default=DEFAULT_PROFILE,
    show_default=True,
    envvar="MSOAUTH_PROFILE",
    help="Profile name",
)
@click.option("--debug/--no-debug", default=False, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON")
@click.version_option(__version__, prog_name="msoauth")
def cli(
    print_token: bool,
    force_refresh: bool,
    login: bool,
    clear_token: bool,
    validate_config: bool,
    profile: str,
    debug: bool,
    json_logs: bool,
) -> None:
    """Obtain and cache OAuth2 access tokens via device-code login."""
    configure_logging(log_level="DEBUG" if debug else "WARNING", json_output=json_logs)

    if validate_config:
        config_path = get_config_path()
        console.print(f"Validating config: [cyan]{escape(str(config_path))}[/cyan]")
        is_valid, message = validate_config_file(config_path)
        if is_valid:
            console.print(f"\n[green]✓[/green] {message}")
            sys.exit(0)
        console.print(f"\n[red]✗[/red] {escape(message)}")
        sys.exit(1)

    lifecycle = _build_lifecycle(profile)
    bind_profile(profile)
    logger.debug(
        "Starting",
        print_token=print_token,
        refresh=force_refresh,
        login=login,
        clear_token=clear_token,
    )

    try:
        _run(lifecycle, print_token, force_refresh, login, clear_token)
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled.[/yellow]")
        sys.exit(130)
    except MsOAuthError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)
    finally:
        bind_profile(None)


def main() -> None:
    """Console script entry point."""
    cli()
