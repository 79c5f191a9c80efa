"""Bedrock Dedicated Server console line classifier.

Each recognizer is guarded by a literal marker so unrelated console output
short-circuits on a substring test before any regex runs. Recognizers are
tried in a fixed order and the first marker that matches decides the line:

  1. ``Server started.``
  2. ``Stopping server``
  3. ``Player Spawned``
  4. ``Player disconnected``
  5. ``Backed up as:``
  6. ``Realms Story`` (but never our own ``tellraw`` echo)

A line whose marker matches but whose fields cannot be extracted yields no
event and a warning.
"""
from __future__ import annotations

import logging
import re
from typing import Callable, Iterator

from .base import (
    AchievementBatch,
    BackupCompleted,
    Event,
    PlayerConnected,
    PlayerDisconnected,
    ServerStarted,
    ServerStopped,
)

logger = logging.getLogger(__name__)

SERVER_STARTED_MARKER = "Server started."
SERVER_STOPPED_MARKER = "Stopping server"
PLAYER_SPAWNED_MARKER = "Player Spawned"
PLAYER_DISCONNECTED_MARKER = "Player disconnected"
BACKUP_MARKER = "Backed up as:"
REALM_STORY_MARKER = "Realms Story"
# The server echoes commands written to its stdin; our broadcasts carry this.
ECHO_MARKER = "tellraw"

_SPAWNED_RE = re.compile(r"Player Spawned: (?P<name>.+?) xuid: (?P<xuid>\d+),\s*pfid:")
_DISCONNECTED_RE = re.compile(r"Player disconnected: (?P<name>[^,]+),")
_BACKUP_RE = re.compile(r"Backed up as: (?P<filename>.*?\.mcworld)")
_REALM_STORY_RE = re.compile(r"event:\s*(?P<event>\w+),\s*xuids:\s*\[\s*(?P<xuids>[0-9,\s]+)\s*\]")

Recognizer = Callable[[str], "Event | None"]


def _server_started(line: str) -> Event | None:
    return ServerStarted()


def _server_stopped(line: str) -> Event | None:
    return ServerStopped()


def _player_connected(line: str) -> Event | None:
    m = _SPAWNED_RE.search(line)
    if m is None:
        return None
    return PlayerConnected(name=m.group("name"), id=m.group("xuid"))


def _player_disconnected(line: str) -> Event | None:
    m = _DISCONNECTED_RE.search(line)
    if m is None:
        return None
    return PlayerDisconnected(name=m.group("name"))


def _backup_completed(line: str) -> Event | None:
    m = _BACKUP_RE.search(line)
    if m is None:
        return None
    return BackupCompleted(filename=m.group("filename"))


def _realm_story(line: str) -> Event | None:
    m = _REALM_STORY_RE.search(line)
    if m is None:
        return None
    xuids = tuple(x.strip() for x in m.group("xuids").split(",") if x.strip())
    if not xuids:
        return None
    return AchievementBatch(story_event=m.group("event"), subject_ids=xuids, raw_line=line)


class BedrockClassifier:
    """Turn one console line into at most one typed Event.

    Usage::

        classifier = BedrockClassifier()
        event = classifier.classify("[INFO] Backed up as: world.mcworld")
        # BackupCompleted(filename='world.mcworld')
    """

    def __init__(self) -> None:
        # (name, guard, recognizer) in priority order
        self._recognizers: list[tuple[str, Callable[[str], bool], Recognizer]] = [
            ("server-started", lambda l: SERVER_STARTED_MARKER in l, _server_started),
            ("server-stopped", lambda l: SERVER_STOPPED_MARKER in l, _server_stopped),
            ("player-connected", lambda l: PLAYER_SPAWNED_MARKER in l, _player_connected),
            ("player-disconnected", lambda l: PLAYER_DISCONNECTED_MARKER in l, _player_disconnected),
            ("backup-completed", lambda l: BACKUP_MARKER in l, _backup_completed),
            (
                "realm-story",
                lambda l: REALM_STORY_MARKER in l and ECHO_MARKER not in l,
                _realm_story,
            ),
        ]

    @property
    def name(self) -> str:
        return "bedrock"

    def classify(self, line: str) -> Event | None:
        """Return the Event for line, or None when nothing is recognized."""
        for name, guard, recognize in self._recognizers:
            if not guard(line):
                continue
            event = recognize(line)
            if event is None:
                logger.warning("Malformed %s line ignored: %r", name, line)
            return event
        return None

    def classify_file(self, path: str) -> Iterator[tuple[int, Event]]:
        """Yield (line number, event) for every recognized line in a log file."""
        with open(path, encoding="utf-8", errors="replace") as f:
            for lineno, raw in enumerate(f, start=1):
                event = self.classify(raw.rstrip("\r\n"))
                if event is not None:
                    yield lineno, event


_default = BedrockClassifier()


def classify(line: str) -> Event | None:
    """Classify a single line with a shared default classifier."""
    return _default.classify(line)
