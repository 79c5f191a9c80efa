"""Webhook transport: POST ``{"content": text}`` as JSON."""
from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from typing import Any

from .channels import DeliveryError

logger = logging.getLogger(__name__)

_USER_AGENT = "mc-webhook/1.0"


class WebhookClient:
    """Post plain-text messages to Discord-style incoming webhooks.

    Example payload::

        {"content": "Steve joined the server"}

    The response body is never inspected. A non-2xx status is logged as a
    warning; a network failure or an unusable URL raises DeliveryError so the
    caller can report it against the target it belongs to.
    """

    def __init__(self, timeout: float = 5.0) -> None:
        self._timeout = timeout

    def post(self, url: str, content: str) -> None:
        if not url:
            raise DeliveryError("Webhook URL must not be empty")
        self._post(url, {"content": content})

    def _post(self, url: str, payload: dict[str, Any]) -> None:
        data = json.dumps(payload).encode()
        try:
            req = urllib.request.Request(
                url,
                data=data,
                headers={"Content-Type": "application/json", "User-Agent": _USER_AGENT},
                method="POST",
            )
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                if not 200 <= resp.status < 300:
                    logger.warning("Webhook returned non-2xx status: %s", resp.status)
        except urllib.error.HTTPError as exc:
            logger.warning("Webhook returned HTTP %s: %s", exc.code, exc.reason)
        except (OSError, ValueError) as exc:
            raise DeliveryError(f"Webhook request failed: {exc}") from exc
