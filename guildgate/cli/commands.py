"""guildgate CLI — Typer-based command-line interface."""

from __future__ import annotations

import asyncio
from functools import partial
from typing import Awaitable, Callable, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from guildgate import __version__
from guildgate.core.connection import ConnectionManager
from guildgate.core.errors import GuildGateError

T = TypeVar("T")

app = typer.Typer(
    name="guildgate",
    help="guildgate - HTTP gateway for Discord profile, guild and member lookups",
    no_args_is_help=True,
)

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"guildgate v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=_version_callback, is_eager=True
    ),
) -> None:
    """guildgate - HTTP gateway for Discord profile, guild and member lookups."""


def _run_with_connection(call: Callable[[ConnectionManager], Awaitable[T]]) -> T:
    """Open a Discord connection, run ``call`` with it, always close it."""
    from guildgate.core.config.loader import load_config
    from guildgate.core.platform.discord import create_discord_client

    config = load_config()

    async def _main() -> T:
        connection = ConnectionManager(
            config.discord.bot_token,
            partial(create_discord_client, max_ratelimit_timeout=config.discord.max_ratelimit_timeout_s),
            ready_timeout=config.discord.ready_timeout_s,
        )
        try:
            return await call(connection)
        finally:
            await connection.close()

    try:
        return asyncio.run(_main())
    except GuildGateError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)


# ════════════════════════════════════════════════════════════
# run — start API server
# ════════════════════════════════════════════════════════════


@app.command()
def run(
    port: int | None = typer.Option(None, "--port", "-p", help="Port number (default: server.port)"),
    host: str | None = typer.Option(None, "--host", "-h", help="Host address (default: server.host)"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
) -> None:
    """Start the API server (uvicorn)."""
    import uvicorn

    from guildgate.core.config.loader import load_config

    config = load_config()
    host = host or config.server.host
    port = port or config.server.port

    console.print(f"[green]Starting guildgate API on {host}:{port}[/green]")
    uvicorn.run("guildgate.api.app:app", host=host, port=port, reload=reload)


# ════════════════════════════════════════════════════════════
# status — config summary
# ════════════════════════════════════════════════════════════


@app.command()
def status() -> None:
    """Show the effective configuration (secrets masked)."""
    from guildgate.core.config.loader import load_config

    config = load_config()

    table = Table(title="guildgate status")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Version", __version__)
    table.add_row("Environment", config.server.environment)
    table.add_row("Listen", f"{config.server.host}:{config.server.port}")
    table.add_row("Bot token", "configured" if config.has_token else "[red]missing[/red]")
    table.add_row("CORS origins", ", ".join(config.server.cors_origins) or "-")
    if config.rate_limit.enabled:
        table.add_row(
            "Rate limit",
            f"{config.rate_limit.max_requests} / {config.rate_limit.window_ms} ms",
        )
    else:
        table.add_row("Rate limit", "disabled")

    console.print(table)


# ════════════════════════════════════════════════════════════
# Discord queries — same services as the HTTP routes
# ════════════════════════════════════════════════════════════


@app.command()
def lookup(
    username: str = typer.Argument(help="Username, display name, nickname or user id"),
) -> None:
    """Look up one user's profile."""
    from guildgate.services import ProfileService

    user = _run_with_connection(lambda conn: ProfileService(conn).lookup_by_username(username))
    if user is None:
        console.print(f"[yellow]User not found:[/yellow] {username}")
        raise typer.Exit(1)

    table = Table(title=f"Profile: {user.username}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Username", user.username)
    table.add_row("Display name", user.display_name)
    table.add_row("Status", user.status)
    table.add_row("Activity", f"{user.activity.type}: {user.activity.name}" if user.activity else "-")
    table.add_row("Avatar", user.avatar_url or "-")
    console.print(table)


@app.command()
def guilds() -> None:
    """List guilds the bot can access."""
    from guildgate.services import GuildService

    result = _run_with_connection(lambda conn: GuildService(conn).list_guilds())
    if not result.guilds:
        console.print("[dim]The bot is not in any guild.[/dim]")
        return

    table = Table(title=f"Guilds ({result.guilds_count})")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="blue")
    table.add_column("Members", style="yellow")
    table.add_column("Error", style="red")

    for g in result.guilds:
        table.add_row(g.id, g.name, str(g.member_count), g.error or "")

    console.print(table)


@app.command()
def members() -> None:
    """List members of every guild the bot can access."""
    from guildgate.services import MemberService

    result = _run_with_connection(lambda conn: MemberService(conn).list_members())
    if not result.users:
        console.print("[dim]No members found.[/dim]")
        return

    table = Table(title=f"Members ({result.count})")
    table.add_column("Username", style="cyan")
    table.add_column("Display name", style="blue")
    table.add_column("Guild", style="yellow")
    table.add_column("Status", style="green")

    for m in result.users:
        table.add_row(m.username, m.display_name, m.guild_name, m.status)

    console.print(table)
