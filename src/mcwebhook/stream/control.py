"""Operator control channels.

Each worker owns a ControlChannel. The ConsoleRouter reads the operator's
terminal and hands every line to every channel, except lines written as
``@<source-id> <text>``, which go to that source's channel only. A worker
stops when its channel delivers the literal line ``exit``; everything else
is ignored.
"""
from __future__ import annotations

import logging
import queue
import sys
import threading
from typing import TextIO

logger = logging.getLogger(__name__)

EXIT_COMMAND = "exit"

_EOF = None


class ControlChannel:
    """Per-worker queue of operator input lines."""

    def __init__(self, source_id: str) -> None:
        self._source_id = source_id
        self._queue: queue.Queue[str | None] = queue.Queue()
        self._closed = False

    @property
    def source_id(self) -> str:
        return self._source_id

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, line: str) -> None:
        if not self._closed:
            self._queue.put(line)

    def close(self) -> None:
        """Signal end of input; a waiting watcher returns without an exit."""
        self._closed = True
        self._queue.put(_EOF)

    def wait_for_exit(self) -> bool:
        """Block until ``exit`` arrives (True) or the channel closes (False)."""
        while True:
            line = self._queue.get()
            if line is _EOF:
                return False
            if line.strip() == EXIT_COMMAND:
                return True
            logger.debug("Ignoring control input for %s: %r", self._source_id, line)


class ConsoleRouter:
    """Fan operator input out to the workers' control channels.

    End of input (e.g. running without a terminal) leaves the workers
    running; it only stops the router.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdin
        self._channels: dict[str, ControlChannel] = {}
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None

    def register(self, source_id: str) -> ControlChannel:
        channel = ControlChannel(source_id)
        with self._lock:
            self._channels[source_id] = channel
        return channel

    def unregister(self, source_id: str) -> None:
        with self._lock:
            self._channels.pop(source_id, None)

    @property
    def source_ids(self) -> list[str]:
        with self._lock:
            return list(self._channels)

    def route(self, line: str) -> None:
        """Deliver one operator line to its channel(s).

        Channels closed by a finished worker are dropped first.
        """
        line = line.rstrip("\r\n")
        with self._lock:
            for source_id in [s for s, c in self._channels.items() if c.closed]:
                del self._channels[source_id]
            channels = dict(self._channels)
        if line.startswith("@"):
            source_id, _, text = line[1:].partition(" ")
            channel = channels.get(source_id)
            if channel is None:
                logger.warning("No worker for source %r", source_id)
                return
            channel.put(text)
            return
        for channel in channels.values():
            channel.put(line)

    def run(self) -> None:
        for line in self._stream:
            self.route(line)
        logger.debug("Control input closed")

    def start(self) -> threading.Thread:
        self._thread = threading.Thread(target=self.run, name="console-router", daemon=True)
        self._thread.start()
        return self._thread
