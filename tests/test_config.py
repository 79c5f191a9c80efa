"""Tests for configuration loading and runtime settings."""
from __future__ import annotations

from pathlib import Path

import pytest

from mcwebhook.config import ConfigError, Configuration, Settings, load_config
from mcwebhook.parsers.base import EventKind

SAMPLE = """\
mc-webhook:
  image-names: bedrock-server
  backup-image-names: bedrock-backup
  webhooks:
    discord:
      type: discord
      url: https://discord.example/hook
      events:
        SERVER_STARTED: "Server is up"
        PLAYER_CONNECTED: "%playerName% joined"
        WELCOME_MESSAGE: "say Welcome %playerName%!"
        PLAYER_DISCONNECTED:
        REALM_STORY: true
    muted:
      url: ""
      events:
        SERVER_STARTED: "up"
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yml"
    path.write_text(text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# load_config
# ---------------------------------------------------------------------------

class TestLoadConfig:
    def test_loads_sample(self, tmp_path: Path) -> None:
        config = load_config(_write(tmp_path, SAMPLE))
        assert config.primary_source == "bedrock-server"
        assert config.backup_source == "bedrock-backup"
        assert config.sources == ["bedrock-server", "bedrock-backup"]
        assert [t.id for t in config.targets] == ["discord", "muted"]

    def test_target_fields(self, tmp_path: Path) -> None:
        discord = load_config(_write(tmp_path, SAMPLE)).webhooks["discord"]
        assert discord.enabled
        assert discord.achievements_enabled
        assert discord.events.template_for(EventKind.PLAYER_CONNECTED) == "%playerName% joined"
        assert discord.events.welcome_message == "say Welcome %playerName%!"

    def test_null_template_is_off(self, tmp_path: Path) -> None:
        discord = load_config(_write(tmp_path, SAMPLE)).webhooks["discord"]
        assert discord.events.template_for(EventKind.PLAYER_DISCONNECTED) == ""
        assert discord.events.template_for(EventKind.BACKUP_COMPLETE) == ""

    def test_enabled_kinds(self, tmp_path: Path) -> None:
        discord = load_config(_write(tmp_path, SAMPLE)).webhooks["discord"]
        assert discord.events.enabled_kinds() == [
            EventKind.SERVER_STARTED,
            EventKind.PLAYER_CONNECTED,
            EventKind.REALM_STORY,
        ]

    def test_empty_url_disables_target(self, tmp_path: Path) -> None:
        muted = load_config(_write(tmp_path, SAMPLE)).webhooks["muted"]
        assert not muted.enabled
        assert not muted.achievements_enabled

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not valid YAML"):
            load_config(_write(tmp_path, "mc-webhook: [unclosed\n"))

    def test_missing_root_key(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="'mc-webhook'"):
            load_config(_write(tmp_path, "webhooks: {}\n"))

    def test_empty_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, ""))


# ---------------------------------------------------------------------------
# Configuration.from_dict
# ---------------------------------------------------------------------------

class TestConfiguration:
    def test_primary_source_required(self) -> None:
        with pytest.raises(ConfigError, match="Invalid configuration"):
            Configuration.from_dict({"mc-webhook": {"webhooks": {}}})

    def test_blank_primary_source_rejected(self) -> None:
        with pytest.raises(ConfigError):
            Configuration.from_dict({"mc-webhook": {"image-names": "  "}})

    def test_backup_is_optional(self) -> None:
        config = Configuration.from_dict({"mc-webhook": {"image-names": "bedrock", "backup-image-names": None}})
        assert config.sources == ["bedrock"]
        assert config.targets == []

    def test_target_with_no_body(self) -> None:
        config = Configuration.from_dict({"mc-webhook": {"image-names": "bedrock", "webhooks": {"empty": None}}})
        target = config.webhooks["empty"]
        assert target.id == "empty"
        assert not target.enabled
        assert target.events.enabled_kinds() == []

    def test_unknown_keys_ignored(self) -> None:
        config = Configuration.from_dict({
            "mc-webhook": {
                "image-names": "bedrock",
                "colour": "blue",
                "webhooks": {"d": {"url": "https://x", "events": {"SOMETHING_NEW": "hi"}}},
            },
        })
        assert config.webhooks["d"].events.enabled_kinds() == []

    def test_is_immutable(self) -> None:
        config = Configuration.from_dict({"mc-webhook": {"image-names": "bedrock"}})
        with pytest.raises(Exception):
            config.primary_source = "other"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.chdir(tmp_path)
        settings = Settings()
        assert settings.welcome_delay == 6.0
        assert settings.unknown_player == "Unknown player"
        assert settings.attach_command == "docker attach --sig-proxy=false {source}"

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("MCWEBHOOK_WELCOME_DELAY", "1.5")
        monkeypatch.setenv("MCWEBHOOK_PLAYERS_FILE", "/data/players.json")
        settings = Settings()
        assert settings.welcome_delay == 1.5
        assert settings.players_file == "/data/players.json"
