"""Tests for ApiClient.

The transport is scripted, so these run on real time with the fast
pacing config (5ms spacing, 10ms retry fallback).
"""

import pytest

from paced_rest.api.client import ApiClient
from paced_rest.api.events import RateLimitedEvent
from paced_rest.api.exceptions import ConfigurationError, HttpStatusError
from paced_rest.api.transport import HttpxTransport
from paced_rest.config import PacingConfig, Settings
from tests.fixtures.api_responses import (
    ROOM,
    error,
    make_items,
    no_content,
    page,
    rate_limited,
    resource,
)
from tests.fixtures.pipeline import API_BASE, ROOMS_URL, ScriptedTransport


@pytest.fixture
def isolated_settings(monkeypatch):
    """Make the client read settings from the environment only (no .env file)."""

    def _settings() -> Settings:
        return Settings(_env_file=None)

    monkeypatch.setattr("paced_rest.api.client.get_settings", _settings)
    monkeypatch.delenv("API_TOKEN", raising=False)
    monkeypatch.delenv("API_BASE_URL", raising=False)


def make_client(
    transport: ScriptedTransport,
    config: PacingConfig,
    base_url: str | None = API_BASE,
) -> ApiClient:
    return ApiClient("test-token", base_url=base_url, transport=transport, config=config)


class TestApiClientInit:
    """Tests for client construction."""

    def test_missing_token_raises(self, isolated_settings):
        with pytest.raises(ConfigurationError, match="API_TOKEN"):
            ApiClient()

    def test_token_from_settings(self, isolated_settings, monkeypatch):
        monkeypatch.setenv("API_TOKEN", "env-token")

        client = ApiClient(transport=ScriptedTransport())

        assert client.default_headers["Authorization"] == "Bearer env-token"

    def test_base_url_from_settings(self, isolated_settings, monkeypatch):
        monkeypatch.setenv("API_BASE_URL", API_BASE)

        client = ApiClient("t", transport=ScriptedTransport())

        assert client._resolve_url("rooms", {}) == ROOMS_URL

    def test_default_headers(self, fast_pacing_config):
        client = make_client(ScriptedTransport(), fast_pacing_config)

        assert client.default_headers == {
            "Authorization": "Bearer test-token",
            "Accept": "application/json",
        }

    async def test_owns_transport_when_omitted(self, fast_pacing_config):
        client = ApiClient("t", config=fast_pacing_config)
        owned = client._owned_transport

        assert isinstance(owned, HttpxTransport)
        http = owned._http
        await client.aclose()
        assert http.is_closed

    def test_config_passed_to_scheduler(self, fast_pacing_config):
        client = make_client(ScriptedTransport(), fast_pacing_config)
        assert client.scheduler.config is fast_pacing_config


class TestUrlResolution:
    """Tests for relative paths and query building."""

    def test_relative_path_joined_to_base(self, fast_pacing_config):
        client = make_client(ScriptedTransport(), fast_pacing_config)

        assert client._resolve_url("rooms", {}) == ROOMS_URL
        assert client._resolve_url("/rooms", {}) == ROOMS_URL

    def test_absolute_url_kept(self, fast_pacing_config):
        client = make_client(ScriptedTransport(), fast_pacing_config)
        url = "https://other.example.com/things"

        assert client._resolve_url(url, {}) == url

    def test_query_appended(self, fast_pacing_config):
        client = make_client(ScriptedTransport(), fast_pacing_config)

        assert client._resolve_url("rooms", {"type": "group"}) == f"{ROOMS_URL}?type=group"
        assert (
            client._resolve_url(f"{ROOMS_URL}?type=group", {"max": 5})
            == f"{ROOMS_URL}?type=group&max=5"
        )

    def test_relative_path_without_base_raises(self, fast_pacing_config):
        client = make_client(ScriptedTransport(), fast_pacing_config, base_url=None)

        with pytest.raises(ConfigurationError, match="base URL"):
            client._resolve_url("rooms", {})


class TestRequests:
    """End-to-end calls through the scheduler."""

    async def test_get_resource(self, fast_pacing_config):
        transport = ScriptedTransport(resource(ROOM))

        async with make_client(transport, fast_pacing_config) as client:
            result = await client.get(f"rooms/{ROOM['id']}")

        assert result == ROOM
        sent = transport.calls[0]
        assert sent.method == "GET"
        assert sent.url == f"{ROOMS_URL}/{ROOM['id']}"
        assert sent.headers["Authorization"] == "Bearer test-token"
        assert sent.timeout == fast_pacing_config.request_timeout_s

    async def test_get_with_max_results_paginates(self, fast_pacing_config):
        transport = ScriptedTransport(
            page(make_items(0, 100), next_url=f"{ROOMS_URL}?cursor=2&max=100"),
            page(make_items(100, 100)),
        )

        async with make_client(transport, fast_pacing_config) as client:
            result = await client.get("rooms", params={"type": "group"}, max_results=150)

        assert result == make_items(0, 150)
        assert transport.urls[0] == f"{ROOMS_URL}?type=group&max=100"
        assert transport.calls[0].max_results == 150

    async def test_post_sends_json(self, fast_pacing_config):
        transport = ScriptedTransport(resource(ROOM))

        async with make_client(transport, fast_pacing_config) as client:
            result = await client.post("rooms", json={"title": "Project Unicorn"})

        assert result == ROOM
        assert transport.calls[0].method == "POST"
        assert transport.calls[0].body == {"title": "Project Unicorn"}

    async def test_put_sends_json(self, fast_pacing_config):
        transport = ScriptedTransport(resource(ROOM))

        async with make_client(transport, fast_pacing_config) as client:
            await client.put("rooms/1", json={"title": "Renamed"})

        assert transport.calls[0].method == "PUT"

    async def test_delete_returns_empty_mapping(self, fast_pacing_config):
        transport = ScriptedTransport(no_content())

        async with make_client(transport, fast_pacing_config) as client:
            result = await client.delete("rooms/1")

        assert result == {}

    async def test_extra_headers_override_defaults(self, fast_pacing_config):
        transport = ScriptedTransport(resource(ROOM))

        async with make_client(transport, fast_pacing_config) as client:
            await client.request("get", "rooms", headers={"Accept": "text/plain"})

        assert transport.calls[0].method == "GET"
        assert transport.calls[0].headers["Accept"] == "text/plain"

    async def test_rate_limit_event_reaches_client_listener(self, fast_pacing_config):
        transport = ScriptedTransport(rate_limited("0.01"), resource(ROOM))
        seen: list[RateLimitedEvent] = []

        async with make_client(transport, fast_pacing_config) as client:
            client.events.on_rate_limited(seen.append)
            result = await client.get("rooms/1")

        assert result == ROOM
        assert len(seen) == 1
        assert seen[0].delay == pytest.approx(0.01)
        assert seen[0].headers["Authorization"] == "Bearer test-token"

    async def test_http_error_propagates(self, fast_pacing_config):
        transport = ScriptedTransport(error(403))

        async with make_client(transport, fast_pacing_config) as client:
            with pytest.raises(HttpStatusError) as exc_info:
                await client.get("rooms")

        assert exc_info.value.status == 403


class TestExplicitCap:
    """max_results takes precedence over a cap already in the URL."""

    async def test_max_results_replaces_url_cap(self, fast_pacing_config):
        transport = ScriptedTransport(
            page(make_items(0, 100), next_url=f"{ROOMS_URL}?cursor=2&max=100"),
            page(make_items(100, 100)),
        )

        async with make_client(transport, fast_pacing_config) as client:
            result = await client.get(f"{ROOMS_URL}?max=50", max_results=150)

        assert result == make_items(0, 150)
        assert transport.urls[0] == f"{ROOMS_URL}?max=100"
        assert transport.calls[0].max_results == 150

    async def test_url_cap_matched_case_insensitively(self, fast_pacing_config):
        transport = ScriptedTransport(page(make_items(0, 10)))

        async with make_client(transport, fast_pacing_config) as client:
            await client.get("rooms?type=group&MAX=50", max_results=5)

        assert transport.urls[0] == f"{ROOMS_URL}?type=group&max=100"
        assert transport.calls[0].max_results == 5

    async def test_url_cap_kept_without_max_results(self, fast_pacing_config):
        transport = ScriptedTransport(page(make_items(0, 10)))

        async with make_client(transport, fast_pacing_config) as client:
            await client.get("rooms?max=50")

        assert transport.calls[0].max_results == 50


class TestTimeout:
    async def test_explicit_zero_timeout_is_kept(self, fast_pacing_config):
        transport = ScriptedTransport(resource(ROOM))

        async with make_client(transport, fast_pacing_config) as client:
            await client.request("GET", "rooms/1", timeout=0.0)

        assert transport.calls[0].timeout == 0.0

    async def test_default_timeout_from_config(self, fast_pacing_config):
        transport = ScriptedTransport(resource(ROOM))

        async with make_client(transport, fast_pacing_config) as client:
            await client.request("GET", "rooms/1")

        assert transport.calls[0].timeout == fast_pacing_config.request_timeout_s
