"""Backing stores for the player registry.

A store loads and saves the registry's full contents as one blob: an
ordered list of ``{"name": ..., "xuid": ...}`` records. Two stores ship:

``JsonFileStore``
    The default. Reads ``players.json`` at startup and rewrites it
    atomically (temp file + ``os.replace``) on every save.

``RedisStore``
    Keeps the same JSON blob under a single Redis key so several hosts can
    share one registry. Enabled by setting ``MCWEBHOOK_REDIS_URL``.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any, Protocol

logger = logging.getLogger(__name__)

Record = dict[str, str]


class StoreError(Exception):
    """The registry's backing store cannot be read, written, or is corrupt."""


class PlayerStore(Protocol):
    """Protocol for registry persistence backends."""

    def load(self) -> list[Record]:
        """Return all stored records; an absent store is an empty list."""
        ...

    def save(self, records: list[Record]) -> None:
        """Replace the stored contents with records."""
        ...


def _decode(raw: str, source: str) -> list[Record]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise StoreError(f"Corrupt player registry in {source}: {exc}") from exc
    if not isinstance(data, list):
        raise StoreError(f"Player registry in {source} is not a JSON list")
    records: list[Record] = []
    for item in data:
        if not isinstance(item, dict) or "xuid" not in item:
            logger.warning("Skipping malformed registry record in %s: %r", source, item)
            continue
        records.append({"name": str(item.get("name", "")), "xuid": str(item["xuid"])})
    return records


class JsonFileStore:
    """Persist the registry as a pretty-printed JSON file."""

    def __init__(self, path: str) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def load(self) -> list[Record]:
        if not os.path.exists(self._path):
            logger.info("Player registry %s not found; starting empty", self._path)
            return []
        try:
            with open(self._path, encoding="utf-8") as f:
                raw = f.read()
        except OSError as exc:
            raise StoreError(f"Cannot read player registry {self._path}: {exc}") from exc
        if not raw.strip():
            return []
        return _decode(raw, self._path)

    def save(self, records: list[Record]) -> None:
        directory = os.path.dirname(os.path.abspath(self._path)) or "."
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", suffix=".json", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(records, f, indent=2, ensure_ascii=False)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self._path)
            finally:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
        except OSError as exc:
            raise StoreError(f"Cannot write player registry {self._path}: {exc}") from exc


class RedisStore:
    """Persist the registry blob under one Redis key.

    Args:
        url:  Redis connection URL (redis://host:port/db).
        key:  Key holding the JSON-encoded record list.
    """

    def __init__(self, url: str, key: str = "mcwebhook:players") -> None:
        self._url = url
        self._key = key
        self._client: Any = None
        self._connect()

    def _connect(self) -> None:
        import redis  # type: ignore[import-untyped]

        try:
            self._client = redis.Redis.from_url(self._url, decode_responses=True)
            self._client.ping()
        except redis.RedisError as exc:
            raise StoreError(f"Redis unavailable at {self._url}: {exc}") from exc
        logger.debug("Redis player store connected: %s", self._url)

    def load(self) -> list[Record]:
        try:
            raw = self._client.get(self._key)
        except Exception as exc:
            raise StoreError(f"Cannot read player registry key {self._key!r}: {exc}") from exc
        if raw is None:
            logger.info("Player registry key %r not found; starting empty", self._key)
            return []
        return _decode(raw, f"redis key {self._key!r}")

    def save(self, records: list[Record]) -> None:
        try:
            self._client.set(self._key, json.dumps(records, ensure_ascii=False))
        except Exception as exc:
            raise StoreError(f"Redis write failed for key {self._key!r}: {exc}") from exc
