"""Shared pytest fixtures for Copycopter client tests."""

import threading
from typing import Any, Dict, List, Optional

import pytest

import copycopter_client
from copycopter_client import i18n
from copycopter_client.config import Configuration


class FakeFetcher:
    """In-memory stand-in for :class:`copycopter_client.client.Client`.

    Each ``fetch`` pops the next scripted response; an exception
    instance is raised instead of returned. Once the script runs out
    the last payload is repeated.
    """

    def __init__(self, *responses: Any):
        self._responses: List[Any] = list(responses)
        self._last: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self.fetch_calls = 0
        self.pushed: List[Dict[str, Any]] = []
        self.push_error: Optional[Exception] = None
        self.fetch_started = threading.Event()
        self.release = threading.Event()
        self.release.set()
        self.active = 0
        self.max_active = 0

    def script(self, *responses: Any) -> None:
        with self._lock:
            self._responses.extend(responses)

    def fetch(self) -> Dict[str, Any]:
        with self._lock:
            self.fetch_calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            response = self._responses.pop(0) if self._responses else self._last
        self.fetch_started.set()
        try:
            self.release.wait(5)
            if isinstance(response, Exception):
                raise response
            self._last = response
            return dict(response)
        finally:
            with self._lock:
                self.active -= 1

    def push(self, changes) -> None:
        if self.push_error is not None:
            raise self.push_error
        self.pushed.append(dict(changes))


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def make_fetcher():
    """Factory for scripted fetchers: ``make_fetcher({"en.a": "A"}, error, ...)``."""
    return FakeFetcher


@pytest.fixture
def default_config():
    """Create a default Configuration."""
    return Configuration()


@pytest.fixture
def options(default_config):
    """A configuration snapshot with a short polling delay and caching on."""
    snapshot = default_config.to_hash()
    snapshot["polling_delay"] = 0.05
    snapshot["cache_enabled"] = True
    snapshot["api_key"] = "abc123"
    return snapshot


@pytest.fixture(autouse=True)
def reset_process_state():
    """Discard the process-wide configuration and i18n backend around each test."""
    copycopter_client.reset()
    i18n.uninstall()
    yield
    copycopter_client.reset()
    i18n.uninstall()
    i18n.registry().default_locale = i18n.DEFAULT_LOCALE
