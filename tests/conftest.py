"""Shared test fixtures for htmlcache.

Provides reusable fixtures for a controllable store clock, isolated config
environments, origin transports, output state, and CLI invocation.  These
fixtures are automatically discovered by pytest and available to all test
modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest

from htmlcache.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Origin transports
# ---------------------------------------------------------------------------


class RecordingOrigin:
    """httpx MockTransport handler that records every request it answers.

    Args:
        handler: Builds the response for a request.  Defaults to a page that
            echoes the request path.
    """

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response] | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self._handler = handler or self._echo_page

    @staticmethod
    def _echo_page(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            text=f"<html><body>{request.url.path}</body></html>",
            headers={"content-type": "text/html; charset=utf-8"},
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def origin() -> RecordingOrigin:
    return RecordingOrigin()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME at a subdirectory of tmp_path, forces the XDG
    code path, clears every HTMLCACHE_* environment variable and changes
    the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setattr("htmlcache.config._is_xdg_platform", lambda: True)

    for var in [
        "HTMLCACHE_MAX",
        "HTMLCACHE_MAX_SIZE_MB",
        "HTMLCACHE_TTL_MS",
        "HTMLCACHE_DEBUG",
        "HTMLCACHE_CHUNK_BYTES",
        "HTMLCACHE_FETCH_TIMEOUT",
        "HTMLCACHE_SINGLE_FLIGHT",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
