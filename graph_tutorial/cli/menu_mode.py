"""Menu mode: interactive loop over the Graph operations (profile, mail, OneDrive)."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from graph_tutorial.errors import InvalidConfiguration
from graph_tutorial.operations import Dispatcher, OperationRegistry
from graph_tutorial.operations import graph_ops
from graph_tutorial.remote import RemoteSession
from graph_tutorial.utils.logger import bind_context, clear_context

from .shared import console, create_session, logger


def build_menu(session: RemoteSession, out: Console | None = None) -> OperationRegistry:
    """Registry of menu entries; each action renders the result of one graph_ops call."""
    out = out or console

    async def goodbye() -> None:
        out.print("Goodbye...")

    async def display_access_token() -> None:
        token = await graph_ops.get_access_token(session)
        out.print(f"User token: {escape(token.token)}")

    async def greet_user() -> None:
        profile = await graph_ops.who_am_i(session)
        out.print(f"Hello, {escape(profile.displayName or '')}!")
        out.print(f"Email: {escape(profile.mail_or_upn or '')}")

    async def show_inbox() -> None:
        messages = await graph_ops.list_inbox(session)
        table = Table(title="Inbox (newest first)")
        table.add_column("Received", style="cyan")
        table.add_column("From", style="yellow")
        table.add_column("Status", style="dim")
        table.add_column("Subject", style="white")
        for m in messages:
            received = m.receivedDateTime.astimezone().strftime("%Y-%m-%d %H:%M") if m.receivedDateTime else ""
            table.add_row(received, escape(m.sender_name), "Read" if m.isRead else "Unread", escape(m.subject))
        out.print(table)

    async def send_test_mail() -> None:
        recipient = await graph_ops.send_mail_to_self(session)
        out.print(f"[green]Mail sent to {escape(recipient)}.[/green]")

    async def show_root_children() -> None:
        for item in await graph_ops.list_drive_root_children(session):
            out.print(escape(item.name + ("/" if item.isFolder else "")))

    async def upload_small() -> None:
        item = await graph_ops.upload_small_file(session)
        out.print(f"[green]Uploaded {escape(item.name)}.[/green]")

    async def delete_small() -> None:
        await graph_ops.delete_file(session)
        out.print("[green]Deleted.[/green]")

    async def download_small() -> None:
        local_path = await graph_ops.download_file(session)
        out.print(f"Download complete! Saved to {escape(str(local_path))}")

    async def upload_large() -> None:
        result = await graph_ops.upload_large_file(
            session,
            on_progress=lambda sent, total: out.print(f"Uploaded {sent} bytes of {total} bytes"),
        )
        if result.succeeded:
            out.print(f"[green]Upload complete, item ID: {escape(result.item_id or '')}[/green]")
        else:
            out.print(f"[red]Upload failed: {escape(result.error or 'unknown error')}[/red]")

    async def create_link() -> None:
        link = await graph_ops.create_shareable_link(session)
        out.print("Link created successfully")
        out.print(escape(link.webUrl))

    operations = [
        (1, "Display access token", display_access_token),
        (2, "Who am I", greet_user),
        (3, "List my inbox", show_inbox),
        (4, "Send mail", send_test_mail),
        (5, "OneDrive Root Children", show_root_children),
        (6, "OneDrive Root Upload", upload_small),
        (7, "OneDrive Root Delete", delete_small),
        (8, "OneDrive Root Download", download_small),
        (9, "OneDrive Root Upload Large Files", upload_large),
        (10, "OneDrive Create Link", create_link),
    ]
    registry = OperationRegistry()
    registry.add_exit("Exit", goodbye)
    for key, label, action in operations:
        registry.add(key, label, action)
    return registry


def menu(
    settings: Path | None = typer.Option(None, "--settings", "-s", help="JSON settings file (clientId, tenantId, graphUserScopes)"),
    offline: Path | None = typer.Option(None, "--offline", "-o", help="Run against a local folder instead of Microsoft Graph"),
) -> None:
    """Sign in with a device code and pick Graph operations from a menu until Exit."""
    log = logger.bind(command="menu", offline=bool(offline))
    log.info("menu.start")
    try:
        session = create_session(settings_path=settings, offline_dir=offline)
    except InvalidConfiguration as e:
        console.print(f"[red]Config error: {escape(str(e))}[/red]")
        log.error("menu.config_error", error=str(e))
        raise typer.Exit(1)

    async def run_menu() -> int:
        try:
            return await Dispatcher(build_menu(session), console=console).run()
        finally:
            await session.aclose()

    bind_context(command="menu")
    try:
        executed = asyncio.run(run_menu())
        log.info("menu.complete", executed=executed)
    except KeyboardInterrupt:
        console.print("\n[dim]Goodbye...[/dim]")
        log.info("menu.interrupted")
    finally:
        clear_context()
