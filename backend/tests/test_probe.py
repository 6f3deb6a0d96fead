"""HTTP probe behaviour, against a mocked session and a local HTTP server."""

from __future__ import annotations

import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import MagicMock, patch

import pytest
import requests
from modules.dispatch.probe import build_session, normalize_probe_url, probe_website
from monitors.models import TickStatus


def _response(status_code: int) -> MagicMock:
    response = MagicMock(status_code=status_code, is_redirect=False)
    response.__enter__.return_value = response
    return response


def _session_returning(status_code: int) -> MagicMock:
    session = MagicMock(max_redirects=3)
    session.get.return_value = _response(status_code)
    return session


class _ChainHandler(BaseHTTPRequestHandler):
    """``/slow/<n>`` waits then redirects down to ``/slow/0``; ``/loop/<n>`` never stops."""

    hop_delay = 0.4

    def do_GET(self):
        kind, _, hops = self.path.strip("/").partition("/")
        count = int(hops or 0)
        if kind == "slow":
            time.sleep(self.hop_delay)
            if count == 0:
                self._reply(200)
            else:
                self._reply(302, location=f"/slow/{count - 1}")
        elif kind == "loop":
            self._reply(302, location=f"/loop/{count + 1}")
        else:
            self._reply(404)

    def _reply(self, status, location=None):
        self.send_response(status)
        if location:
            self.send_header("Location", location)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def log_message(self, format, *args):
        pass


@pytest.fixture
def chain_server(monkeypatch):
    monkeypatch.setenv("NO_PROXY", "127.0.0.1,localhost")
    monkeypatch.setenv("no_proxy", "127.0.0.1,localhost")
    server = ThreadingHTTPServer(("127.0.0.1", 0), _ChainHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


@pytest.mark.parametrize(
    ("stored", "expected"),
    [
        ("example.com", "https://example.com"),
        ("example.com/health", "https://example.com/health"),
        ("  example.com ", "https://example.com"),
        ("http://example.com", "http://example.com"),
        ("https://example.com", "https://example.com"),
    ],
)
def test_normalize_probe_url(stored, expected):
    assert normalize_probe_url(stored) == expected


def test_build_session_uses_dispatch_settings(settings):
    settings.DISPATCH_MAX_REDIRECTS = 3
    settings.DISPATCH_USER_AGENT = "Mozilla/5.0 (compatible; UpTime-Monitor/1.0)"

    session = build_session()

    assert session.max_redirects == 3
    assert session.headers["User-Agent"] == "Mozilla/5.0 (compatible; UpTime-Monitor/1.0)"


def test_probe_up_response(settings):
    settings.DISPATCH_PROBE_TIMEOUT_SECONDS = 30.0
    session = _session_returning(200)

    result = probe_website("example.com", session=session)

    assert result.status == TickStatus.UP
    assert result.label == "HTTP 200"
    assert result.url == "https://example.com"
    assert isinstance(result.response_time_ms, int)
    assert result.response_time_ms >= 0
    session.get.assert_called_once()
    args, kwargs = session.get.call_args
    assert args == ("https://example.com",)
    assert 0 < kwargs["timeout"] <= 30.0
    assert kwargs["stream"] is True
    assert kwargs["allow_redirects"] is False
    session.close.assert_not_called()


def test_probe_server_error_is_down():
    result = probe_website("example.com", session=_session_returning(503))

    assert result.status == TickStatus.DOWN
    assert result.label == "Server Error 503"


def test_probe_timeout_is_down_not_raised():
    session = MagicMock(max_redirects=3)
    session.get.side_effect = requests.ConnectTimeout("timed out after 30000ms")

    result = probe_website("slow.example.com", session=session, timeout=0.5)

    assert result.status == TickStatus.DOWN
    assert result.label == "Timeout"
    assert 0 < session.get.call_args.kwargs["timeout"] <= 0.5


def test_late_answer_counts_as_timeout():
    session = MagicMock(max_redirects=3)

    def slow_get(url, **kwargs):
        time.sleep(0.3)
        return _response(200)

    session.get.side_effect = slow_get

    result = probe_website("example.com", session=session, timeout=0.1)

    assert result.status == TickStatus.DOWN
    assert result.label == "Timeout"
    assert result.response_time_ms >= 100


def test_probe_closes_the_session_it_owns():
    session = _session_returning(200)

    with patch("modules.dispatch.probe.build_session", return_value=session):
        probe_website("example.com")

    session.close.assert_called_once()


def test_probe_closes_owned_session_on_failure():
    session = MagicMock(max_redirects=3)
    session.get.side_effect = requests.ConnectionError("Connection refused")

    with patch("modules.dispatch.probe.build_session", return_value=session):
        result = probe_website("example.com")

    assert result.status == TickStatus.DOWN
    session.close.assert_called_once()


def test_redirect_chain_within_budget_is_up(settings, chain_server):
    settings.DISPATCH_MAX_REDIRECTS = 3

    result = probe_website(f"{chain_server}/slow/3", timeout=10.0)

    assert result.status == TickStatus.UP
    assert result.label == "HTTP 200"


def test_redirect_chain_past_total_budget_is_timeout(settings, chain_server):
    settings.DISPATCH_MAX_REDIRECTS = 3

    # Four requests at 0.4 s each against a 1 s budget.
    result = probe_website(f"{chain_server}/slow/3", timeout=1.0)

    assert result.status == TickStatus.DOWN
    assert result.label == "Timeout"
    assert result.response_time_ms < 2000


def test_fourth_redirect_is_too_many(settings, chain_server):
    settings.DISPATCH_MAX_REDIRECTS = 3

    result = probe_website(f"{chain_server}/loop/0", timeout=10.0)

    assert result.status == TickStatus.DOWN
    assert result.label == "Too Many Redirects"
