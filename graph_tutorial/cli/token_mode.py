"""Token mode: sign in with a device code and print the delegated access token."""

import asyncio
from datetime import datetime, timezone
from pathlib import Path

import typer
from rich.markup import escape

from graph_tutorial.errors import AuthenticationFailure, InvalidConfiguration
from graph_tutorial.operations import graph_ops

from .shared import console, create_session, logger


def token(
    settings: Path | None = typer.Option(None, "--settings", "-s", help="JSON settings file (clientId, tenantId, graphUserScopes)"),
    preview: bool = typer.Option(False, "--preview", help="Only print the first characters of the token"),
) -> None:
    """Acquire a token for the configured scopes (cached, refreshed or via device code) and print it."""
    log = logger.bind(command="token")
    log.info("token.start")
    try:
        session = create_session(settings_path=settings)
        access_token = asyncio.run(graph_ops.get_access_token(session))
    except (InvalidConfiguration, AuthenticationFailure) as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        log.error("token.fail", error=str(e), error_type=type(e).__name__)
        raise typer.Exit(1)

    value = access_token.token
    expires = datetime.fromtimestamp(access_token.expires_on, tz=timezone.utc)
    console.print(f"User token: {escape(value[:16] + '...' if preview else value)}")
    console.print(f"[dim]Expires: {expires.isoformat()}[/dim]")
    log.info("token.complete", expires_on=access_token.expires_on)
