"""Line sources: where console output comes from and commands go to.

``ProcessSource``
    Runs an attach command (``docker attach --sig-proxy=false <name>`` by
    default) and talks to it over stdin/stdout.

``TailSource``
    Follows a log file on disk, like ``tail -F``. Read-only: writing a
    command raises DeliveryError.

``open_source`` picks one from a source id: ``file:<path>`` tails a file,
anything else is substituted into the attach command.
"""
from __future__ import annotations

import logging
import os
import shlex
import subprocess
import threading
from typing import IO, Iterator, Protocol, runtime_checkable

from ..alerts.channels import DeliveryError

logger = logging.getLogger(__name__)

FILE_PREFIX = "file:"


@runtime_checkable
class LineSource(Protocol):
    """A watched server: an unbounded stream of lines plus a command input."""

    @property
    def source_id(self) -> str:
        ...

    def open(self) -> None:
        ...

    def lines(self) -> Iterator[str]:
        """Yield console lines without their line terminator until the source ends."""
        ...

    def write_line(self, command: str) -> None:
        ...

    def close(self) -> None:
        """Release the source. Unblocks a reader waiting in lines()."""
        ...


class ProcessSource:
    """Console of a process reached through an attach command."""

    def __init__(self, source_id: str, command: str) -> None:
        self._source_id = source_id
        self._argv = shlex.split(command)
        self._proc: subprocess.Popen[str] | None = None
        self._write_lock = threading.Lock()

    @property
    def source_id(self) -> str:
        return self._source_id

    def open(self) -> None:
        logger.info("Attaching to %s: %s", self._source_id, " ".join(self._argv))
        try:
            self._proc = subprocess.Popen(
                self._argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as exc:
            raise ConnectionError(f"Cannot attach to {self._source_id}: {exc}") from exc

    def lines(self) -> Iterator[str]:
        proc = self._proc
        if proc is None or proc.stdout is None:
            return
        for raw in proc.stdout:
            yield raw.rstrip("\r\n")

    def write_line(self, command: str) -> None:
        stdin: IO[str] | None = self._proc.stdin if self._proc is not None else None
        if stdin is None:
            raise DeliveryError(f"Source {self._source_id} is not open")
        with self._write_lock:
            try:
                stdin.write(command + "\n")
                stdin.flush()
            except (OSError, ValueError) as exc:
                raise DeliveryError(f"Write to {self._source_id} failed: {exc}") from exc

    def close(self) -> None:
        proc, self._proc = self._proc, None
        if proc is None:
            return
        if proc.poll() is None:
            proc.terminate()
            try:
                proc.wait(timeout=5)
            except subprocess.TimeoutExpired:
                proc.kill()
                proc.wait()
        # stdout is left to the reader, which sees EOF once the process exits.
        if proc.stdin is not None:
            with self._write_lock:
                try:
                    proc.stdin.close()
                except OSError:
                    pass
        logger.info("Detached from %s", self._source_id)


class TailSource:
    """Follow a server log file from its current end.

    Rotation (the file shrinking) restarts reading from the top.
    """

    def __init__(self, source_id: str, path: str, interval: float = 0.25) -> None:
        self._source_id = source_id
        self._path = path
        self._interval = interval
        self._closed = threading.Event()
        self._offset = 0

    @property
    def source_id(self) -> str:
        return self._source_id

    def open(self) -> None:
        while not os.path.exists(self._path):
            logger.info("Waiting for %s to appear", self._path)
            if self._closed.wait(self._interval):
                return
        self._offset = os.path.getsize(self._path)
        logger.info("Tailing %s from byte %d", self._path, self._offset)

    def lines(self) -> Iterator[str]:
        pending = ""
        while not self._closed.is_set():
            try:
                size = os.path.getsize(self._path)
            except OSError:
                size = 0
            if size < self._offset:
                logger.info("%s was rotated", self._path)
                self._offset = 0
                pending = ""
            if size > self._offset:
                with open(self._path, encoding="utf-8", errors="replace") as fh:
                    fh.seek(self._offset)
                    data = fh.read()
                    self._offset = fh.tell()
                chunks = (pending + data).split("\n")
                pending = chunks.pop()
                for chunk in chunks:
                    yield chunk.rstrip("\r")
                continue
            self._closed.wait(self._interval)

    def write_line(self, command: str) -> None:
        raise DeliveryError(f"Source {self._source_id} is a log file and accepts no commands")

    def close(self) -> None:
        self._closed.set()


def open_source(source_id: str, attach_command: str, tail_interval: float = 0.25) -> LineSource:
    """Build the source for a configured source id (not yet opened)."""
    if source_id.startswith(FILE_PREFIX):
        return TailSource(source_id, source_id[len(FILE_PREFIX):], interval=tail_interval)
    return ProcessSource(source_id, attach_command.format(source=source_id))
