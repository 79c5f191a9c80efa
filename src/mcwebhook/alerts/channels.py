"""Outbound sink interfaces used by the dispatch engine."""
from __future__ import annotations

from typing import Protocol, runtime_checkable


class DeliveryError(Exception):
    """A webhook post or a source write failed."""


@runtime_checkable
class WebhookTransport(Protocol):
    """Posts one message body to a webhook URL.

    Raises DeliveryError when the request cannot be delivered.
    """

    def post(self, url: str, content: str) -> None:
        ...


@runtime_checkable
class CommandSink(Protocol):
    """The input side of a watched server process."""

    @property
    def source_id(self) -> str:
        ...

    def write_line(self, command: str) -> None:
        """Write command plus a newline. Raises DeliveryError on failure."""
        ...
