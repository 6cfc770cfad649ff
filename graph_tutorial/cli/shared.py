"""Shared CLI helpers: console, logger, device code prompt, session construction."""

import threading
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from graph_tutorial.auth import CredentialStore, DeviceCodeChallenge
from graph_tutorial.config import load_settings
from graph_tutorial.remote import LocalGraphMock, RemoteSession
from graph_tutorial.utils.logger import get_logger

console = Console()
logger = get_logger("graph_tutorial.cli")


async def console_device_prompt(challenge: DeviceCodeChallenge, cancel: threading.Event) -> None:
    """Show the verification URL and code; sign-in continues in the browser."""
    message = challenge.message or (
        f"To sign in, use a web browser to open the page {challenge.verification_url} "
        f"and enter the code {challenge.user_code} to authenticate."
    )
    console.print(f"\n[bold]Sign-in required[/bold]: {escape(message)}")
    console.print(f"[dim]The code expires at {challenge.expires_at:%H:%M:%S} UTC.[/dim]\n")
    logger.info("cli.device_prompt_shown", verification_url=challenge.verification_url)


def create_session(settings_path: Path | None = None, offline_dir: Path | None = None) -> RemoteSession:
    """Initialize auth from settings and return a session; offline_dir uses the local mock instead.

    Raises InvalidConfiguration for missing or malformed settings.
    """
    if offline_dir is not None:
        logger.info("cli.offline_session", offline_dir=str(offline_dir))
        return RemoteSession.offline(LocalGraphMock(offline_dir))
    settings = load_settings(settings_path)
    store = CredentialStore()
    store.initialize(settings, console_device_prompt)
    return RemoteSession(store)
