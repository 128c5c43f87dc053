"""Shared test fixtures for fetchcache.

Provides a controllable clock for expiration tests, an isolated config
environment, a quiet output manager, and helpers for building a
:class:`~fetchcache.api.WebApi` backed by :class:`httpx.MockTransport`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest

from fetchcache.api import WebApi
from fetchcache.client.transport import HttpTransport
from fetchcache.output import OutputManager, reset_output, set_output


BASE_URL = "https://api.example.com"


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    Rich consoles keep a reference to the streams they were created with;
    CliRunner and capsys swap those streams per test.
    """
    yield
    reset_output()


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a colourless, quiet OutputManager (warnings and errors still print)."""
    output = OutputManager(no_color=True, quiet=True)
    set_output(output)
    return output


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG dirs at tmp_path, clear env overrides, and run in an empty project dir."""
    monkeypatch.setattr("fetchcache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("FETCHCACHE_BASE_URL", raising=False)
    monkeypatch.delenv("FETCHCACHE_TIMEOUT_MS", raising=False)
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    return tmp_path


# ---------------------------------------------------------------------------
# WebApi with a mock transport
# ---------------------------------------------------------------------------


Handler = Callable[[httpx.Request], httpx.Response]


def make_transport(handler: Handler) -> HttpTransport:
    return HttpTransport(transport=httpx.MockTransport(handler))


@pytest.fixture
def make_api(clock: FakeClock):
    """Factory building WebApi instances around a handler; all are closed after the test."""
    created: list[WebApi] = []

    def _factory(handler: Handler, **kwargs) -> WebApi:
        kwargs.setdefault("clock", clock)
        api = WebApi(BASE_URL, transport=make_transport(handler), **kwargs)
        created.append(api)
        return api

    yield _factory
    for api in created:
        api.close()
