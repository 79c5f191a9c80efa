"""mc-webhook CLI entry point.

Commands:
    mc-webhook run                     Watch the configured servers and post events
    mc-webhook classify <file>         Show the events recognized in a captured log
    mc-webhook check-config            Validate config.yml and list its targets
    mc-webhook players                 List the player registry
    mc-webhook render <template>       Render a message template offline
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.logging import RichHandler

from .alerts.deferred import DeferredCommands
from .alerts.dispatch import DispatchEngine
from .alerts.templates import render as render_template
from .alerts.webhook import WebhookClient
from .config import ConfigError, Settings, load_config
from .parsers.bedrock import BedrockClassifier
from .registry.players import PlayerRegistry
from .registry.stores import JsonFileStore, PlayerStore, RedisStore, StoreError
from .stream.control import ConsoleRouter
from .stream.sources import open_source
from .stream.worker import StreamWorker
from .visualization.tables import (
    event_fields,
    print_events_table,
    print_players_table,
    print_targets_table,
)

console = Console()
err_console = Console(stderr=True)

# ── Helpers ─────────────────────────────────────────────────────────────────


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _fail(message: str) -> NoReturn:
    err_console.print(f"[red]{message}[/red]")
    sys.exit(1)


def _open_store(settings: Settings, players_file: str | None = None) -> PlayerStore:
    if settings.redis_url:
        return RedisStore(settings.redis_url, key=settings.redis_key)
    return JsonFileStore(players_file or settings.players_file)


def _load_registry(settings: Settings, players_file: str | None = None) -> PlayerRegistry:
    try:
        registry = PlayerRegistry(_open_store(settings, players_file))
        registry.load()
    except StoreError as exc:
        _fail(f"Failed to load player registry: {exc}")
    return registry


# ── CLI root ─────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version="1.0.0", prog_name="mc-webhook")
@click.option("--log-level", default=None, help="Override MCWEBHOOK_LOG_LEVEL (DEBUG, INFO, ...).")
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """mc-webhook: Bedrock server console events to webhooks."""
    settings = Settings()
    _configure_logging(log_level or settings.log_level)
    ctx.obj = settings


# ── run ──────────────────────────────────────────────────────────────────────


@main.command()
@click.option("--config", "-c", "config_file", default=None, help="Config file (default: MCWEBHOOK_CONFIG_FILE).")
@click.option("--players", "-p", "players_file", default=None, help="Player registry file (default: MCWEBHOOK_PLAYERS_FILE).")
@click.pass_obj
def run(settings: Settings, config_file: str | None, players_file: str | None) -> None:
    """Attach to the configured servers and dispatch their events.

    One worker runs per server (primary, plus backup when configured).
    Type ``exit`` to stop every worker, or ``@<source> exit`` to stop one.

    \b
    Examples:
      mc-webhook run
      mc-webhook run --config /etc/mc-webhook/config.yml
      MCWEBHOOK_ATTACH_COMMAND="docker attach {source}" mc-webhook run
    """
    try:
        config = load_config(config_file or settings.config_file)
    except ConfigError as exc:
        _fail(f"Failed to load configuration: {exc}")
    registry = _load_registry(settings, players_file)

    deferred = DeferredCommands()
    engine = DispatchEngine(
        config,
        registry,
        WebhookClient(timeout=settings.http_timeout),
        scheduler=deferred.schedule,
        welcome_delay=settings.welcome_delay,
        unknown_player=settings.unknown_player,
    )
    classifier = BedrockClassifier()
    router = ConsoleRouter()

    workers = [
        StreamWorker(
            open_source(source_id, settings.attach_command, settings.tail_interval),
            classifier,
            engine,
            control=router.register(source_id),
        )
        for source_id in config.sources
    ]
    for worker in workers:
        worker.start()
    router.start()

    try:
        for worker in workers:
            while worker.alive:
                worker.join(timeout=0.5)
            router.unregister(worker.source_id)
    except KeyboardInterrupt:
        err_console.print("\n[dim]Stopping…[/dim]")
        for worker in workers:
            worker.stop()
        for worker in workers:
            worker.join()
    finally:
        deferred.cancel_all()


# ── classify ─────────────────────────────────────────────────────────────────


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output", "-o", "output_fmt", default="table",
    type=click.Choice(["table", "json"], case_sensitive=False),
    help="Output format.",
    show_default=True,
)
@click.option("--limit", "-n", default=0, type=int, help="Max events to display (0 = all).")
def classify(file: Path, output_fmt: str, limit: int) -> None:
    """Classify every line of a captured server log.

    \b
    Examples:
      mc-webhook classify bedrock_server.log
      mc-webhook classify bedrock_server.log --output json
    """
    classifier = BedrockClassifier()
    events = []
    for lineno, event in classifier.classify_file(str(file)):
        events.append((lineno, event))
        if limit and len(events) >= limit:
            break

    if output_fmt == "json":
        for lineno, event in events:
            click.echo(json.dumps({"line": lineno, "kind": event.kind.value, **event_fields(event)}))
        err_console.print(f"[dim]{len(events)} events in {file}[/dim]")
        return

    print_events_table(events, title=file.name, console=console)
    console.print(f"[dim]{len(events)} events in {file.name}[/dim]")


# ── check-config ─────────────────────────────────────────────────────────────


@main.command("check-config")
@click.option("--config", "-c", "config_file", default=None, help="Config file (default: MCWEBHOOK_CONFIG_FILE).")
@click.pass_obj
def check_config(settings: Settings, config_file: str | None) -> None:
    """Validate the config file and list its webhook targets."""
    path = config_file or settings.config_file
    try:
        config = load_config(path)
    except ConfigError as exc:
        _fail(str(exc))
    print_targets_table(config, console=console)
    console.print(f"[green]{path} is valid.[/green]")


# ── players ──────────────────────────────────────────────────────────────────


@main.command()
@click.option("--players", "-p", "players_file", default=None, help="Player registry file (default: MCWEBHOOK_PLAYERS_FILE).")
@click.pass_obj
def players(settings: Settings, players_file: str | None) -> None:
    """List every registered player."""
    registry = _load_registry(settings, players_file)
    print_players_table(registry.players, console=console)


# ── render ───────────────────────────────────────────────────────────────────


@main.command()
@click.argument("template")
@click.option("--var", "-v", "variables", multiple=True, help="Substitution as key=value (repeatable).")
def render(template: str, variables: tuple[str, ...]) -> None:
    """Render a message template the way a webhook post would.

    \b
    Examples:
      mc-webhook render "Welcome %playerName%!" -v playerName=Steve
    """
    values: dict[str, str] = {}
    for item in variables:
        key, sep, value = item.partition("=")
        if not sep:
            raise click.BadParameter(f"Expected key=value, got {item!r}", param_hint="--var")
        values[key.strip()] = value
    click.echo(render_template(template, values))


if __name__ == "__main__":
    main()
