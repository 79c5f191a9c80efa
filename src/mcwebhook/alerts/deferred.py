"""Deferred command scheduling.

Welcome messages are written to the server a few seconds after a player
spawns so they arrive once the client has finished loading the world. The
wait runs on a timer thread; the console reader carries on with the next
line immediately.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)

Task = Callable[[], None]
Scheduler = Callable[[float, Task], None]


def run_now(delay: float, task: Task) -> None:
    """Scheduler that ignores the delay. Useful for offline replays and tests."""
    task()


class DeferredCommands:
    """Run tasks after a delay on daemon timer threads.

    Usage::

        deferred = DeferredCommands()
        deferred.schedule(6.0, lambda: source.write_line("say hi"))
        ...
        deferred.cancel_all()  # on shutdown
    """

    def __init__(self) -> None:
        self._timers: set[threading.Timer] = set()
        self._lock = threading.Lock()

    def schedule(self, delay: float, task: Task) -> None:
        timer: threading.Timer

        def _fire() -> None:
            with self._lock:
                self._timers.discard(timer)
            try:
                task()
            except Exception:
                logger.exception("Deferred task failed")

        timer = threading.Timer(max(delay, 0.0), _fire)
        timer.daemon = True
        with self._lock:
            self._timers.add(timer)
        timer.start()

    def cancel_all(self) -> int:
        """Cancel every task that has not fired yet. Returns how many were dropped."""
        with self._lock:
            pending = list(self._timers)
            self._timers.clear()
        for timer in pending:
            timer.cancel()
        if pending:
            logger.info("Cancelled %d pending deferred commands", len(pending))
        return len(pending)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._timers)
