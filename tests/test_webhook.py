"""Tests for the webhook transport."""
from __future__ import annotations

import json
import logging
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from mcwebhook.alerts.channels import DeliveryError, WebhookTransport
from mcwebhook.alerts.webhook import WebhookClient

URL = "https://discord.example/hook"


def _response(status: int) -> MagicMock:
    resp = MagicMock()
    resp.status = status
    resp.__enter__.return_value = resp
    return resp


class TestWebhookClient:
    def test_posts_json_content(self) -> None:
        with patch("urllib.request.urlopen", return_value=_response(204)) as mock_open:
            WebhookClient(timeout=2.0).post(URL, "Steve joined")
        req = mock_open.call_args[0][0]
        assert req.full_url == URL
        assert req.get_method() == "POST"
        assert json.loads(req.data) == {"content": "Steve joined"}
        assert req.get_header("Content-type") == "application/json"
        assert mock_open.call_args[1]["timeout"] == 2.0

    def test_non_ascii_content(self) -> None:
        with patch("urllib.request.urlopen", return_value=_response(200)) as mock_open:
            WebhookClient().post(URL, "§aSteve ✓")
        assert json.loads(mock_open.call_args[0][0].data) == {"content": "§aSteve ✓"}

    def test_non_2xx_is_logged_not_raised(self, caplog: pytest.LogCaptureFixture) -> None:
        with patch("urllib.request.urlopen", return_value=_response(302)):
            with caplog.at_level(logging.WARNING):
                WebhookClient().post(URL, "hi")
        assert "non-2xx" in caplog.text

    def test_http_error_is_logged_not_raised(self, caplog: pytest.LogCaptureFixture) -> None:
        error = urllib.error.HTTPError(URL, 429, "Too Many Requests", {}, None)  # type: ignore[arg-type]
        with patch("urllib.request.urlopen", side_effect=error):
            with caplog.at_level(logging.WARNING):
                WebhookClient().post(URL, "hi")
        assert "HTTP 429" in caplog.text

    def test_network_failure_raises(self) -> None:
        with patch("urllib.request.urlopen", side_effect=OSError("Connection refused")):
            with pytest.raises(DeliveryError, match="Connection refused"):
                WebhookClient().post(URL, "hi")

    def test_url_without_scheme_raises(self) -> None:
        with patch("urllib.request.urlopen") as mock_open:
            with pytest.raises(DeliveryError, match="unknown url type"):
                WebhookClient().post("discord.com/api/webhooks/x", "hi")
        mock_open.assert_not_called()

    def test_empty_url_raises(self) -> None:
        with patch("urllib.request.urlopen") as mock_open:
            with pytest.raises(DeliveryError):
                WebhookClient().post("", "hi")
        mock_open.assert_not_called()

    def test_satisfies_protocol(self) -> None:
        assert isinstance(WebhookClient(), WebhookTransport)
