"""Typed events produced by classifying server log lines."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Protocol, Union, runtime_checkable


class EventKind(str, enum.Enum):
    """Event tags, valued by their configuration key."""

    SERVER_STARTED = "SERVER_STARTED"
    SERVER_STOPPED = "SERVER_STOPPED"
    PLAYER_CONNECTED = "PLAYER_CONNECTED"
    PLAYER_DISCONNECTED = "PLAYER_DISCONNECTED"
    BACKUP_COMPLETE = "BACKUP_COMPLETE"
    REALM_STORY = "REALM_STORY"


@dataclass(frozen=True)
class ServerStarted:
    kind: EventKind = field(default=EventKind.SERVER_STARTED, init=False)


@dataclass(frozen=True)
class ServerStopped:
    kind: EventKind = field(default=EventKind.SERVER_STOPPED, init=False)


@dataclass(frozen=True)
class PlayerConnected:
    name: str
    id: str
    kind: EventKind = field(default=EventKind.PLAYER_CONNECTED, init=False)


@dataclass(frozen=True)
class PlayerDisconnected:
    name: str
    kind: EventKind = field(default=EventKind.PLAYER_DISCONNECTED, init=False)


@dataclass(frozen=True)
class BackupCompleted:
    filename: str
    kind: EventKind = field(default=EventKind.BACKUP_COMPLETE, init=False)


@dataclass(frozen=True)
class AchievementBatch:
    """A Realms Story line naming one or more players by XUID.

    Attributes:
        story_event:  Story event token, e.g. ``FirstDiamondFound``.
        subject_ids:  XUIDs in the order the server listed them.
        raw_line:     The full log line, kept for unknown-event diagnostics
                      and for fields only some story kinds carry.
    """

    story_event: str
    subject_ids: tuple[str, ...]
    raw_line: str
    kind: EventKind = field(default=EventKind.REALM_STORY, init=False)


Event = Union[
    ServerStarted,
    ServerStopped,
    PlayerConnected,
    PlayerDisconnected,
    BackupCompleted,
    AchievementBatch,
]


@runtime_checkable
class LineClassifier(Protocol):
    """Protocol for line classifiers: one line in, at most one Event out."""

    def classify(self, line: str) -> Event | None:
        ...
