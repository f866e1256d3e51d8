"""CLI entry point for kv-cookie-sessions.

Invoked as::

    kv-cookie-sessions [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m kv_cookie_sessions.cli.main

Commands
--------
- version       — Show version information
- generate-key  — Print a random hex key for the settings file
- session       — Inspect or delete a session given its cookie
- store         — Store maintenance
"""
from __future__ import annotations

import json
import sys
from typing import Any, Callable

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from kv_cookie_sessions.codec.base import DecodeError, decode_multi
from kv_cookie_sessions.codec.securecookie import generate_random_key
from kv_cookie_sessions.config import SessionSettings, build_manager, build_store, load_settings
from kv_cookie_sessions.session.manager import SessionManager
from kv_cookie_sessions.session.state import Session
from kv_cookie_sessions.store.base import StoreError

console = Console()


def _load_settings_or_exit(config_path: str) -> SessionSettings:
    try:
        settings = load_settings(config_path)
    except ValidationError as exc:
        console.print(f"[red]Invalid settings in {config_path}:[/red]\n{escape(str(exc))}")
        sys.exit(1)
    if settings.store.backend == "memory":
        # A fresh process never sees another process's in-memory entries.
        console.print(
            "[red]The memory backend is private to one process; "
            "configure a sqlite or redis store.[/red]"
        )
        sys.exit(1)
    return settings


def _config_option(func: Callable[..., Any]) -> Callable[..., Any]:
    return click.option(
        "--config",
        "config_path",
        required=True,
        type=click.Path(exists=True, dir_okay=False),
        help="YAML settings file.",
    )(func)


def _resolve_session(manager: SessionManager, name: str, cookie: str) -> Session:
    """Decode ``cookie`` into a bare session carrying only its identifier."""
    try:
        identifier = decode_multi(name, cookie, manager.codecs)
    except DecodeError as exc:
        console.print(f"[red]Cookie rejected:[/red] {escape(str(exc))}")
        sys.exit(1)
    if not isinstance(identifier, str) or not identifier:
        console.print("[red]Cookie does not carry a session identifier.[/red]")
        sys.exit(1)
    return Session(name=name, identifier=identifier)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="kv-cookie-sessions")
def cli() -> None:
    """Cookie-identified sessions over a key-value store"""


@cli.command(name="version")
def version_command() -> None:
    """Show version information."""
    from kv_cookie_sessions import __version__

    console.print(f"[bold]kv-cookie-sessions[/bold] v{__version__}")


@cli.command(name="generate-key")
@click.option(
    "--length",
    default=32,
    show_default=True,
    type=click.IntRange(min=16),
    help="Key length in bytes.",
)
def generate_key_command(length: int) -> None:
    """Print a random key, hex-encoded, for use in key_pairs."""
    click.echo(generate_random_key(length).hex())


# ---------------------------------------------------------------------------
# session command group
# ---------------------------------------------------------------------------


@cli.group(name="session")
def session_group() -> None:
    """Session inspection commands."""


@session_group.command(name="inspect")
@click.argument("name")
@click.argument("cookie")
@_config_option
@click.option("--json-output", is_flag=True, help="Output raw JSON instead of a table.")
def session_inspect(name: str, cookie: str, config_path: str, json_output: bool) -> None:
    """Decode COOKIE for session NAME and show its stored values."""
    manager = build_manager(_load_settings_or_exit(config_path))
    session = _resolve_session(manager, name, cookie)
    try:
        found = manager.load(session)
    except (DecodeError, StoreError) as exc:
        console.print(f"[red]Could not load session {name!r}:[/red] {escape(str(exc))}")
        sys.exit(1)
    if not found:
        console.print(f"[yellow]No stored values for session {name!r}.[/yellow]")
        return

    if json_output:
        click.echo(json.dumps(session.values, indent=2, sort_keys=True, default=str))
        return

    table = Table(title=f"Session {name}")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in sorted(session.values.items()):
        table.add_row(escape(str(key)), escape(json.dumps(value, default=str)))
    console.print(table)


@session_group.command(name="delete")
@click.argument("name")
@click.argument("cookie")
@_config_option
def session_delete(name: str, cookie: str, config_path: str) -> None:
    """Delete the stored values behind COOKIE for session NAME."""
    manager = build_manager(_load_settings_or_exit(config_path))
    session = _resolve_session(manager, name, cookie)
    try:
        manager.erase(session)
    except StoreError as exc:
        console.print(f"[red]Could not delete session {name!r}:[/red] {escape(str(exc))}")
        sys.exit(1)
    console.print(f"[green]Session deleted:[/green] {name}")


# ---------------------------------------------------------------------------
# store command group
# ---------------------------------------------------------------------------


@cli.group(name="store")
def store_group() -> None:
    """Store maintenance commands."""


@store_group.command(name="purge")
@_config_option
def store_purge(config_path: str) -> None:
    """Remove expired entries from stores without server-side expiry."""
    settings = _load_settings_or_exit(config_path)
    store = build_store(settings.store)
    purge = getattr(store, "purge_expired", None)
    if purge is None:
        console.print(
            f"[yellow]The {settings.store.backend} backend expires entries itself.[/yellow]"
        )
        return
    try:
        removed = purge()
    except StoreError as exc:
        console.print(f"[red]Purge failed:[/red] {escape(str(exc))}")
        sys.exit(1)
    console.print(f"[green]Purged {removed} expired entries.[/green]")


if __name__ == "__main__":
    cli()
