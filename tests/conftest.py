"""Shared pytest fixtures for mc-webhook tests."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

import pytest

from mcwebhook.alerts.channels import DeliveryError
from mcwebhook.config import Configuration
from mcwebhook.registry.players import PlayerRegistry
from mcwebhook.registry.stores import JsonFileStore


class RecordingWebhook:
    """WebhookTransport that remembers every post."""

    def __init__(self, fail_urls: set[str] | None = None) -> None:
        self.posts: list[tuple[str, str]] = []
        self._fail_urls = fail_urls or set()

    def post(self, url: str, content: str) -> None:
        if url in self._fail_urls:
            raise DeliveryError(f"refused: {url}")
        self.posts.append((url, content))


class FakeSource:
    """In-memory LineSource: replays lines, records written commands."""

    def __init__(self, source_id: str = "bedrock", lines: list[str] | None = None, fail_writes: bool = False) -> None:
        self._source_id = source_id
        self._lines = list(lines or [])
        self._fail_writes = fail_writes
        self.written: list[str] = []
        self.opened = False
        self.closed = False

    @property
    def source_id(self) -> str:
        return self._source_id

    def open(self) -> None:
        self.opened = True

    def lines(self) -> Iterator[str]:
        for line in self._lines:
            if self.closed:
                return
            yield line

    def write_line(self, command: str) -> None:
        if self._fail_writes:
            raise DeliveryError("broken pipe")
        self.written.append(command)

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def webhook() -> RecordingWebhook:
    return RecordingWebhook()


@pytest.fixture()
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture()
def registry(tmp_path: Path) -> PlayerRegistry:
    reg = PlayerRegistry(JsonFileStore(str(tmp_path / "players.json")))
    reg.load()
    return reg


@pytest.fixture()
def make_config():
    """Return a factory building a Configuration from the YAML-shaped dict."""

    def _make(webhooks: dict[str, Any], backup: str = "") -> Configuration:
        return Configuration.from_dict(
            {
                "mc-webhook": {
                    "image-names": "bedrock",
                    "backup-image-names": backup,
                    "webhooks": webhooks,
                }
            }
        )

    return _make


@pytest.fixture()
def bedrock_log_lines() -> list[str]:
    return [
        "[2024-05-01 10:00:00:000 INFO] Starting Server",
        "[2024-05-01 10:00:02:000 INFO] Server started.",
        "[2024-05-01 10:01:00:000 INFO] Player connected: Steve, xuid: 2535400000000001",
        "[2024-05-01 10:01:05:000 INFO] Player Spawned: Steve xuid: 2535400000000001, pfid: a1b2c3d4",
        "[2024-05-01 10:05:00:000 INFO] Realms Story event: FirstDiamondFound, xuids: [2535400000000001]",
        "[2024-05-01 10:30:00:000 INFO] Player disconnected: Steve, xuid: 2535400000000001, pfid: a1b2c3d4",
        "[2024-05-01 11:00:00:000 INFO] Backed up as: world_2024.mcworld",
        "[2024-05-01 12:00:00:000 INFO] Stopping server...",
    ]
