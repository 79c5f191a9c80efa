"""Dispatch engine: fan classified events out to every configured webhook."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..config import Configuration, NotificationTarget
from ..parsers.base import (
    AchievementBatch,
    BackupCompleted,
    Event,
    EventKind,
    PlayerConnected,
    PlayerDisconnected,
)
from ..registry.players import PlayerIdentity, PlayerRegistry
from .channels import CommandSink, DeliveryError, WebhookTransport
from .deferred import Scheduler, run_now
from .realm_story import describe
from .templates import render

logger = logging.getLogger(__name__)


@dataclass
class Rendered:
    """What one target wants sent for one event.

    Attributes:
        webhook:   Text for the target's webhook ('' = nothing).
        commands:  Console commands to write back to the source, in order.
        delayed:   Console commands to write after the welcome delay.
    """

    webhook: str = ""
    commands: list[str] = field(default_factory=list)
    delayed: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.webhook or self.commands or self.delayed)


class DispatchEngine:
    """Render and deliver one event to every enabled target.

    Targets are independent: a skipped or failing target never affects the
    others. Delivery failures are logged against the target and not retried.

    Usage::

        engine = DispatchEngine(config, registry, WebhookClient())
        for line in source.lines():
            event = classifier.classify(line)
            if event is not None:
                engine.dispatch(event, source)
    """

    def __init__(
        self,
        config: Configuration,
        registry: PlayerRegistry,
        webhook: WebhookTransport,
        *,
        scheduler: Scheduler = run_now,
        welcome_delay: float = 6.0,
        unknown_player: str = "Unknown player",
    ) -> None:
        self._config = config
        self._registry = registry
        self._webhook = webhook
        self._schedule = scheduler
        self._welcome_delay = welcome_delay
        self._unknown_player = unknown_player

    def dispatch(self, event: Event, source: CommandSink) -> list[str]:
        """Deliver event to all targets.

        Returns the ids of targets that had something to send.
        """
        if isinstance(event, PlayerConnected):
            self._registry.record_if_new(PlayerIdentity(name=event.name, id=event.id))

        notified: list[str] = []
        for target in self._config.targets:
            if not target.enabled:
                logger.warning("Skipping webhook '%s': missing URL.", target.id)
                continue
            rendered = self.render_for(target, event, source.source_id)
            if not rendered:
                continue
            notified.append(target.id)
            self._deliver(target, rendered, source)
        return notified

    def render_for(self, target: NotificationTarget, event: Event, source_id: str = "") -> Rendered:
        """Render event for a single target without sending anything."""
        if isinstance(event, AchievementBatch):
            if not target.achievements_enabled:
                return Rendered()
            return self._render_story(event)

        template = target.events.template_for(event.kind)
        if not template:
            return Rendered()

        variables = self._variables(event, source_id)
        rendered = Rendered(webhook=render(template, variables))
        if event.kind is EventKind.PLAYER_CONNECTED:
            welcome = render(target.events.welcome_message, variables)
            if welcome:
                rendered.delayed.append(welcome)
        return rendered

    def _variables(self, event: Event, source_id: str) -> dict[str, str]:
        variables = {"source": source_id}
        if isinstance(event, PlayerConnected):
            variables["playerName"] = event.name
            variables["xuid"] = event.id
        elif isinstance(event, PlayerDisconnected):
            variables["playerName"] = event.name
        elif isinstance(event, BackupCompleted):
            variables["filename"] = event.filename
        return variables

    def _render_story(self, event: AchievementBatch) -> Rendered:
        webhook_lines: list[str] = []
        commands: list[str] = []
        for xuid in event.subject_ids:
            name = self._registry.lookup_name(xuid) or self._unknown_player
            unit = describe(event.story_event, name, event.raw_line)
            webhook_lines.append(unit.webhook_text)
            commands.extend(unit.commands)
        return Rendered(webhook="\n".join(webhook_lines), commands=commands)

    def _deliver(self, target: NotificationTarget, rendered: Rendered, source: CommandSink) -> None:
        if rendered.webhook:
            logger.info("[Webhook:%s] Sending: %s", target.id, rendered.webhook)
            try:
                self._webhook.post(target.url, rendered.webhook)
            except DeliveryError as exc:
                logger.warning("[Webhook:%s] Delivery failed: %s", target.id, exc)

        if rendered.commands:
            self._write(target, source, "\n".join(rendered.commands))

        for command in rendered.delayed:
            self._schedule(
                self._welcome_delay,
                lambda command=command: self._write(target, source, command),
            )

    def _write(self, target: NotificationTarget, source: CommandSink, command: str) -> None:
        logger.info("[Webhook:%s] Sending to %s: %s", target.id, source.source_id, command)
        try:
            source.write_line(command)
        except DeliveryError as exc:
            logger.warning("[Webhook:%s] Failed to write to %s: %s", target.id, source.source_id, exc)
