"""Rich-powered tables for events, targets and the player registry."""
from __future__ import annotations

from dataclasses import asdict
from typing import Iterable

from rich import box
from rich.console import Console
from rich.table import Table

from ..config import Configuration
from ..parsers.base import Event, EventKind
from ..registry.players import PlayerIdentity

_console = Console()

_KIND_STYLE = {
    EventKind.SERVER_STARTED: "green",
    EventKind.SERVER_STOPPED: "red",
    EventKind.PLAYER_CONNECTED: "cyan",
    EventKind.PLAYER_DISCONNECTED: "yellow",
    EventKind.BACKUP_COMPLETE: "magenta",
    EventKind.REALM_STORY: "bold blue",
}


def event_fields(event: Event) -> dict[str, object]:
    """Event attributes except the kind tag (and the raw line, which is long)."""
    data = asdict(event)
    data.pop("kind", None)
    data.pop("raw_line", None)
    return data


def print_events_table(
    events: list[tuple[int, Event]],
    title: str = "Events",
    max_rows: int = 200,
    console: Console | None = None,
) -> None:
    """Render (line number, event) pairs as a Rich table."""
    out = console or _console
    if not events:
        out.print("[yellow]No events recognized.[/yellow]")
        return

    table = Table(title=title, box=box.ROUNDED, show_lines=False)
    table.add_column("Line", justify="right", style="dim", width=6)
    table.add_column("Kind")
    table.add_column("Fields", overflow="fold", max_width=80)

    for lineno, event in events[:max_rows]:
        fields = ", ".join(f"{k}={v}" for k, v in event_fields(event).items())
        table.add_row(str(lineno), event.kind.value, fields, style=_KIND_STYLE.get(event.kind, ""))

    out.print(table)
    if len(events) > max_rows:
        out.print(f"[dim]... and {len(events) - max_rows} more events[/dim]")


def print_targets_table(config: Configuration, console: Console | None = None) -> None:
    """Show each webhook target, whether it is enabled and which kinds it sends."""
    out = console or _console
    table = Table(title="Webhook targets", box=box.SIMPLE_HEAVY)
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("Enabled", justify="center")
    table.add_column("Events", overflow="fold")
    table.add_column("Welcome", justify="center")

    for target in config.targets:
        kinds = ", ".join(k.value for k in target.events.enabled_kinds()) or "-"
        table.add_row(
            target.id,
            target.type or "-",
            "[green]yes[/green]" if target.enabled else "[red]no (missing URL)[/red]",
            kinds,
            "yes" if target.events.welcome_message else "-",
        )

    out.print(table)
    sources = ", ".join(config.sources)
    out.print(f"[dim]Sources: {sources}[/dim]")


def print_players_table(players: Iterable[PlayerIdentity], console: Console | None = None) -> None:
    out = console or _console
    rows = list(players)
    if not rows:
        out.print("[yellow]No players registered.[/yellow]")
        return
    table = Table(title="Players", box=box.SIMPLE_HEAVY)
    table.add_column("#", style="dim", width=4)
    table.add_column("Name")
    table.add_column("XUID", style="cyan")
    for rank, player in enumerate(rows, start=1):
        table.add_row(str(rank), player.name, player.id)
    out.print(table)
    out.print(f"[dim]{len(rows)} players[/dim]")
