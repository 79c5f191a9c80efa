"""Thread-safe XUID -> display name registry."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from .stores import PlayerStore, StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlayerIdentity:
    name: str
    id: str


class PlayerRegistry:
    """Durable map from a player's XUID to the first display name seen for it.

    Entries are only ever appended. A player who reconnects under a new
    gamertag keeps the stored name.

    Every lookup and the insert-then-persist sequence run under one lock, so
    workers for several servers can share a single registry.

    Usage::

        registry = PlayerRegistry(JsonFileStore("players.json"))
        registry.load()
        registry.record_if_new(PlayerIdentity("Steve", "2535400000000001"))
        registry.lookup_name("2535400000000001")  # 'Steve'
    """

    def __init__(self, store: PlayerStore | None = None) -> None:
        self._store = store
        self._players: list[PlayerIdentity] = []
        self._by_id: dict[str, PlayerIdentity] = {}
        self._lock = threading.Lock()

    def load(self) -> int:
        """Replace in-memory contents with the store's. Returns the entry count.

        Raises:
            StoreError: The store exists but cannot be read or decoded.
        """
        records = self._store.load() if self._store is not None else []
        with self._lock:
            self._players = []
            self._by_id = {}
            for record in records:
                identity = PlayerIdentity(name=record["name"], id=record["xuid"])
                if identity.id in self._by_id:
                    continue
                self._players.append(identity)
                self._by_id[identity.id] = identity
            count = len(self._players)
        logger.info("Loaded %d players", count)
        return count

    def lookup_name(self, player_id: str) -> str | None:
        with self._lock:
            identity = self._by_id.get(player_id)
        return identity.name if identity is not None else None

    def record_if_new(self, identity: PlayerIdentity) -> bool:
        """Insert identity unless its id is already known.

        The full registry is persisted before returning when an insert
        happens. A failed write is logged and the in-memory entry kept.

        Returns True if the identity was inserted.
        """
        with self._lock:
            if identity.id in self._by_id:
                return False
            self._players.append(identity)
            self._by_id[identity.id] = identity
            if self._store is not None:
                try:
                    self._store.save(self._records())
                except StoreError as exc:
                    logger.error("Failed to persist player %s: %s", identity.name, exc)
        logger.info("Registered player %s (xuid %s)", identity.name, identity.id)
        return True

    def _records(self) -> list[dict[str, str]]:
        return [{"name": p.name, "xuid": p.id} for p in self._players]

    @property
    def players(self) -> list[PlayerIdentity]:
        with self._lock:
            return list(self._players)

    def __len__(self) -> int:
        with self._lock:
            return len(self._players)

    def __contains__(self, player_id: object) -> bool:
        with self._lock:
            return player_id in self._by_id
