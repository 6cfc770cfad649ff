"""Validate settings: load JSON file / environment, print summary table."""

from pathlib import Path

import typer
from rich.markup import escape
from rich.table import Table

from graph_tutorial.config import TOKEN_CACHE_ENABLED, TOKEN_CACHE_PATH, load_settings
from graph_tutorial.errors import InvalidConfiguration

from .shared import console, logger


def validate_config(
    settings: Path | None = typer.Option(None, "--settings", "-s", help="JSON settings file (clientId, tenantId, graphUserScopes)"),
) -> None:
    """Load settings, report problems, print a summary table."""
    log = logger.bind(command="validate-config")
    log.info("validate_config.start")

    try:
        loaded = load_settings(settings)
    except InvalidConfiguration as e:
        console.print(f"[red]Config error: {escape(str(e))}[/red]")
        log.error("validate_config.fail", error=str(e))
        raise typer.Exit(1) from e

    table = Table(title="Graph settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Client ID", escape(loaded.client_id))
    table.add_row("Tenant ID", escape(loaded.tenant_id))
    table.add_row("Scopes", escape(", ".join(loaded.graph_user_scopes)))
    table.add_row("Token cache", escape(str(TOKEN_CACHE_PATH)) if TOKEN_CACHE_ENABLED else "disabled")
    console.print(table)
    console.print(f"[green]Config valid. {len(loaded.graph_user_scopes)} scopes.[/green]")
    log.info("validate_config.ok", scopes=len(loaded.graph_user_scopes))
