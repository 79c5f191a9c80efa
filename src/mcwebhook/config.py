"""Configuration: runtime settings from the environment, targets from YAML.

Runtime settings (paths, delays, timeouts) come from ``MCWEBHOOK_*``
environment variables or a ``.env`` file. The notification targets and their
message templates come from the YAML config file::

    mc-webhook:
      image-names: bedrock-server
      backup-image-names: bedrock-backup
      webhooks:
        discord:
          type: discord
          url: https://discord.com/api/webhooks/...
          events:
            PLAYER_CONNECTED: "%playerName% joined"
            WELCOME_MESSAGE: "say Welcome %playerName%!"
            BACKUP_COMPLETE: "Backup done: %filename%"
            REALM_STORY: true
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .parsers.base import EventKind

logger = logging.getLogger(__name__)

ROOT_KEY = "mc-webhook"


class ConfigError(Exception):
    """The configuration file is missing, unreadable or invalid."""


class Settings(BaseSettings):
    """mc-webhook runtime settings, loaded from env vars / .env file."""

    config_file: str = Field(default="config.yml", description="YAML file with webhook targets")
    players_file: str = Field(default="players.json", description="Player registry JSON file")
    redis_url: str = Field(default="", description="Keep the player registry in Redis instead of a file")
    redis_key: str = Field(default="mcwebhook:players", description="Redis key holding the registry")
    welcome_delay: float = Field(default=6.0, description="Seconds to wait before sending a welcome message")
    http_timeout: float = Field(default=5.0, description="Webhook request timeout in seconds")
    unknown_player: str = Field(default="Unknown player", description="Name used for unregistered XUIDs")
    attach_command: str = Field(
        default="docker attach --sig-proxy=false {source}",
        description="Command attached to a server's console; {source} is the source id",
    )
    tail_interval: float = Field(default=0.25, description="Poll interval for file: sources")
    log_level: str = Field(default="INFO", description="Logging level")

    model_config = SettingsConfigDict(env_prefix="MCWEBHOOK_", env_file=".env", extra="ignore")


class EventTemplates(BaseModel):
    """Per-target message templates keyed by event kind.

    An empty template switches that kind off for the target.
    ``WELCOME_MESSAGE`` is a console command sent back to the server after a
    player connects; ``REALM_STORY`` toggles Realms Story broadcasts.
    """

    server_started: str = Field(default="", alias="SERVER_STARTED")
    server_stopped: str = Field(default="", alias="SERVER_STOPPED")
    player_connected: str = Field(default="", alias="PLAYER_CONNECTED")
    welcome_message: str = Field(default="", alias="WELCOME_MESSAGE")
    player_disconnected: str = Field(default="", alias="PLAYER_DISCONNECTED")
    backup_complete: str = Field(default="", alias="BACKUP_COMPLETE")
    realm_story: bool = Field(default=False, alias="REALM_STORY")

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    @field_validator(
        "server_started",
        "server_stopped",
        "player_connected",
        "welcome_message",
        "player_disconnected",
        "backup_complete",
        mode="before",
    )
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("realm_story", mode="before")
    @classmethod
    def _none_is_false(cls, value: Any) -> Any:
        return False if value is None else value

    def template_for(self, kind: EventKind) -> str:
        """Return the webhook template for kind ('' when switched off).

        REALM_STORY has no template; its messages are generated per player.
        """
        return {
            EventKind.SERVER_STARTED: self.server_started,
            EventKind.SERVER_STOPPED: self.server_stopped,
            EventKind.PLAYER_CONNECTED: self.player_connected,
            EventKind.PLAYER_DISCONNECTED: self.player_disconnected,
            EventKind.BACKUP_COMPLETE: self.backup_complete,
        }.get(kind, "")

    def enabled_kinds(self) -> list[EventKind]:
        kinds = [k for k in EventKind if k is not EventKind.REALM_STORY and self.template_for(k)]
        if self.realm_story:
            kinds.append(EventKind.REALM_STORY)
        return kinds


class NotificationTarget(BaseModel):
    """A webhook destination. An empty url disables it entirely."""

    id: str
    type: str = "discord"
    url: str = ""
    events: EventTemplates = Field(default_factory=EventTemplates)

    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("url", "type", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("events", mode="before")
    @classmethod
    def _none_is_default(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    @property
    def achievements_enabled(self) -> bool:
        return self.events.realm_story


class Configuration(BaseModel):
    """Immutable snapshot of the YAML config, shared by all workers."""

    primary_source: str = Field(alias="image-names")
    backup_source: str = Field(default="", alias="backup-image-names")
    webhooks: dict[str, NotificationTarget] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    @field_validator("backup_source", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("primary_source")
    @classmethod
    def _primary_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("image-names must name the primary server")
        return value.strip()

    @model_validator(mode="before")
    @classmethod
    def _name_targets(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        webhooks = data.get("webhooks")
        if webhooks is None:
            return {**data, "webhooks": {}}
        if isinstance(webhooks, dict):
            named = {}
            for name, raw in webhooks.items():
                raw = {} if raw is None else raw
                named[str(name)] = {**raw, "id": str(name)} if isinstance(raw, dict) else raw
            return {**data, "webhooks": named}
        return data

    @property
    def targets(self) -> list[NotificationTarget]:
        return list(self.webhooks.values())

    @property
    def sources(self) -> list[str]:
        """Source ids to watch: the primary, then the backup if configured."""
        return [s for s in (self.primary_source, self.backup_source) if s]

    @classmethod
    def from_dict(cls, data: Any) -> "Configuration":
        if not isinstance(data, dict) or not isinstance(data.get(ROOT_KEY), dict):
            raise ConfigError(f"Config must contain a '{ROOT_KEY}' mapping")
        try:
            return cls.model_validate(data[ROOT_KEY])
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc


def load_config(path: str | Path) -> Configuration:
    """Read and validate the YAML config file.

    Raises:
        ConfigError: The file is missing, is not valid YAML, or fails
                     validation.
    """
    path = Path(path)
    logger.info("Loading configuration from %s", path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {path} is not valid YAML: {exc}") from exc
    config = Configuration.from_dict(data)
    logger.info(
        "Configuration loaded: %d webhook(s), sources %s",
        len(config.webhooks),
        ", ".join(config.sources),
    )
    return config
