"""StreamWorker: read one server's console and dispatch what it says."""
from __future__ import annotations

import enum
import logging
import threading

from ..alerts.dispatch import DispatchEngine
from ..parsers.base import LineClassifier
from .control import ControlChannel
from .sources import LineSource

logger = logging.getLogger(__name__)


class WorkerState(str, enum.Enum):
    IDLE = "idle"
    ATTACHED = "attached"
    READING = "reading"
    STOPPED = "stopped"


class StreamWorker:
    """Watch one source until it ends or the operator types ``exit``.

    Two threads per worker: the reader pulls lines, classifies them and
    dispatches events; the watcher waits on the control channel and closes
    the source on ``exit``, which ends the reader. ``run`` returns once the
    reader has been joined.

    Workers for different sources share only the dispatch engine (and
    through it the registry and configuration).
    """

    def __init__(
        self,
        source: LineSource,
        classifier: LineClassifier,
        engine: DispatchEngine,
        control: ControlChannel | None = None,
    ) -> None:
        self._source = source
        self._classifier = classifier
        self._engine = engine
        self._control = control
        self._state = WorkerState.IDLE
        self._state_lock = threading.Lock()
        self._stop_requested = threading.Event()
        self._thread: threading.Thread | None = None
        self.lines_read = 0
        self.events_dispatched = 0

    @property
    def source_id(self) -> str:
        return self._source.source_id

    @property
    def state(self) -> WorkerState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: WorkerState) -> None:
        with self._state_lock:
            self._state = state
        logger.debug("Worker %s -> %s", self.source_id, state.value)

    def run(self) -> None:
        """Attach, read until the source ends or is stopped, then detach."""
        try:
            self._source.open()
        except (ConnectionError, OSError) as exc:
            logger.error("Could not attach to %s: %s", self.source_id, exc)
            self._set_state(WorkerState.STOPPED)
            return
        self._set_state(WorkerState.ATTACHED)
        logger.info("Successfully attached to '%s'.", self.source_id)

        reader = threading.Thread(target=self._read, name=f"reader-{self.source_id}", daemon=True)
        watcher: threading.Thread | None = None
        if self._control is not None:
            watcher = threading.Thread(target=self._watch, name=f"control-{self.source_id}", daemon=True)

        self._set_state(WorkerState.READING)
        reader.start()
        if watcher is not None:
            watcher.start()

        reader.join()
        if self._control is not None:
            self._control.close()
        if watcher is not None:
            watcher.join()
        self._source.close()
        self._set_state(WorkerState.STOPPED)
        logger.info(
            "Worker for %s stopped (%d lines, %d events)",
            self.source_id,
            self.lines_read,
            self.events_dispatched,
        )

    def start(self) -> threading.Thread:
        """Run the worker on its own thread."""
        self._thread = threading.Thread(target=self.run, name=f"worker-{self.source_id}")
        self._thread.start()
        return self._thread

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def stop(self) -> None:
        """Stop reading. Safe to call from any thread, more than once."""
        if self._stop_requested.is_set():
            return
        self._stop_requested.set()
        logger.info("Exiting log reader for %s", self.source_id)
        self._source.close()

    def handle_line(self, line: str) -> None:
        """Classify one line and dispatch the resulting event, if any."""
        self.lines_read += 1
        event = self._classifier.classify(line)
        if event is None:
            return
        self.events_dispatched += 1
        self._engine.dispatch(event, self._source)

    def _read(self) -> None:
        try:
            for line in self._source.lines():
                if self._stop_requested.is_set():
                    break
                try:
                    self.handle_line(line)
                except Exception:
                    logger.exception("Failed to handle line from %s: %r", self.source_id, line)
        except (OSError, ValueError) as exc:
            if not self._stop_requested.is_set():
                logger.error("Error reading from %s: %s", self.source_id, exc)
        logger.info("Output reader for %s stopped.", self.source_id)

    def _watch(self) -> None:
        assert self._control is not None
        if self._control.wait_for_exit():
            self.stop()
