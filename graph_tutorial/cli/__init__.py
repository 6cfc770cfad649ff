"""CLI commands: one module per mode (menu, token, validate-config)."""

import typer
from typer import Typer

from graph_tutorial.cli import menu_mode, token_mode, validate_config as validate_config_module
from graph_tutorial.utils.logger import configure_logging

app = Typer(help="Microsoft Graph device code tutorial client")


@app.callback()
def main_options(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Echo debug logs (including MSAL and HTTP) to stderr"),
) -> None:
    if verbose:
        configure_logging(verbose=True)


def register_commands() -> None:
    """Register all CLI commands on the global app."""
    app.command()(menu_mode.menu)
    app.command()(token_mode.token)
    app.command(name="validate-config")(validate_config_module.validate_config)


register_commands()
