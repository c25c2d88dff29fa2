"""Integration tests for the client stack against a local Copycopter server."""

import time

import pytest

from copycopter_client import i18n
from copycopter_client.client import Client
from copycopter_client.exceptions import HttpStatusException

from .conftest import skip_integration


def wait_until(predicate, timeout=3.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@skip_integration
class TestClientAgainstServer:
    """Wire-level behavior of Client."""

    def test_fetch_published(self, server_config, copycopter_server):
        copycopter_server.published = {"en.greeting": "Hello"}
        client = Client(server_config.to_hash())
        assert client.fetch() == {"en.greeting": "Hello"}

        request = copycopter_server.requests[0]
        assert request["path"] == "/api/v2/projects/abc123/published_blurbs"
        assert request["headers"]["X-API-Key"] == "abc123"
        assert request["headers"]["User-Agent"].startswith("Copycopter Client/")

    def test_fetch_drafts_in_development(self, server_config, copycopter_server):
        server_config.environment_name = "development"
        copycopter_server.drafts = {"en.greeting": "Draft"}
        assert Client(server_config.to_hash()).fetch() == {"en.greeting": "Draft"}

    def test_conditional_download(self, server_config, copycopter_server):
        copycopter_server.published = {"en.greeting": "Hello"}
        client = Client(server_config.to_hash())
        client.fetch()
        assert client.fetch() == {"en.greeting": "Hello"}
        assert copycopter_server.requests[1]["headers"]["If-None-Match"] == '"1"'

    def test_status_error(self, server_config, copycopter_server):
        copycopter_server.status = 503
        with pytest.raises(HttpStatusException) as exc_info:
            Client(server_config.to_hash()).fetch()
        assert exc_info.value.status_code == 503

    def test_push_and_deploy(self, server_config, copycopter_server):
        client = Client(server_config.to_hash())
        client.push({"en.greeting": "Hello"})
        client.deploy()
        assert copycopter_server.deploys == 1
        assert copycopter_server.published == {"en.greeting": "Hello"}


@skip_integration
class TestAppliedConfiguration:
    """End-to-end behavior of an applied configuration."""

    def test_translations_sync_in_background(self, server_config, copycopter_server):
        copycopter_server.published = {"en.greeting": "Hello"}
        server_config.environment_name = "production"
        server_config.cache_enabled = True
        server_config.apply()
        try:
            assert wait_until(lambda: server_config.cache.contains("en.greeting"))
            assert i18n.translate("greeting", locale="en") == "Hello"
        finally:
            server_config.shutdown()

    def test_missing_blurbs_are_uploaded(self, server_config, copycopter_server):
        server_config.environment_name = "production"
        server_config.cache_enabled = True
        server_config.apply()
        try:
            assert i18n.translate("farewell", locale="en", default="Bye") == "Bye"
            assert wait_until(lambda: "en.farewell" in copycopter_server.drafts)
        finally:
            server_config.shutdown()

    def test_test_environment_resolves_on_demand(self, server_config, copycopter_server):
        copycopter_server.published = {"greeting": "hi"}
        server_config.environment_name = "test"
        server_config.apply()
        assert server_config.sync.running is False
        assert i18n.translate("greeting", locale="en", default="fallback") == "hi"
        assert server_config.cache.get("greeting") is None

    def test_server_outage_falls_back_and_recovers(self, server_config, copycopter_server):
        copycopter_server.status = 500
        server_config.environment_name = "test"
        server_config.cache_enabled = True
        server_config.apply()
        sync = server_config.sync

        assert i18n.translate("greeting", locale="en", default="fallback") == "fallback"
        assert sync.failure_count >= 1

        copycopter_server.status = 200
        copycopter_server.published = {"en.greeting": "Hello"}
        assert sync.tick() is True
        assert sync.failure_count == 0
        assert i18n.translate("greeting", locale="en", default="fallback") == "Hello"
