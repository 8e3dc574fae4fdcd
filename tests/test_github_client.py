"""Unit tests for GitHubClient retry and error handling."""

import asyncio
import json
import logging

import aiohttp
import pytest

from m3_mcp_server.client.github_client import (
    GitHubClient,
    GitHubRequestError,
    GitHubResponse,
)


@pytest.fixture
def sleeps(monkeypatch):
    """Record backoff delays instead of waiting."""
    delays = []
    real_sleep = asyncio.sleep

    async def fake_sleep(delay, *args, **kwargs):
        delays.append(delay)
        await real_sleep(0)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return delays


def scripted(client, monkeypatch, outcomes):
    """Make client._fetch replay outcomes (responses or exceptions) in order."""
    urls = []
    queue = list(outcomes)

    async def fake_fetch(url):
        urls.append(url)
        outcome = queue.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(client, "_fetch", fake_fetch)
    return urls


def ok(body, headers=None):
    return GitHubResponse(200, headers or {}, body)


def error(status, headers=None):
    return GitHubResponse(status, headers or {}, '{"message": "error"}')


class TestGetJson:
    """Test the retry loop."""

    @pytest.mark.asyncio
    async def test_success(self, monkeypatch, sleeps):
        client = GitHubClient()
        urls = scripted(client, monkeypatch, [ok({"sha": "abc"})])

        assert await client.get_json("/repos/flutter/flutter/commits/master") == {
            "sha": "abc"
        }
        assert urls == ["https://api.github.com/repos/flutter/flutter/commits/master"]
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_not_found_is_not_retried(self, monkeypatch, sleeps):
        client = GitHubClient()
        urls = scripted(client, monkeypatch, [error(404)])

        with pytest.raises(GitHubRequestError) as exc_info:
            await client.get_json("/repos/x/y/contents/missing")

        assert exc_info.value.status == 404
        assert len(urls) == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_server_errors_are_retried_up_to_max_retries(
        self, monkeypatch, sleeps
    ):
        client = GitHubClient(max_retries=3)
        urls = scripted(client, monkeypatch, [error(500)] * 4)

        with pytest.raises(GitHubRequestError) as exc_info:
            await client.get_json("/repos/x/y")

        assert exc_info.value.status == 500
        assert len(urls) == 4
        assert sleeps == [2.0, 4.0, 8.0]

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failure(self, monkeypatch, sleeps):
        client = GitHubClient()
        scripted(client, monkeypatch, [error(503), ok([1, 2])])

        assert await client.get_json("/x") == [1, 2]
        assert sleeps == [2.0]

    @pytest.mark.asyncio
    async def test_network_errors_are_retried(self, monkeypatch, sleeps):
        client = GitHubClient()
        scripted(
            client,
            monkeypatch,
            [
                aiohttp.ClientConnectionError("reset"),
                asyncio.TimeoutError(),
                ok("done"),
            ],
        )

        assert await client.get_json("/x") == "done"
        assert sleeps == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_network_error_without_retries(self, monkeypatch, sleeps):
        client = GitHubClient(max_retries=0)
        scripted(client, monkeypatch, [aiohttp.ClientConnectionError("reset")])

        with pytest.raises(GitHubRequestError) as exc_info:
            await client.get_json("/x")

        assert exc_info.value.status is None
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_rate_limit_waits_for_retry_after(self, monkeypatch, sleeps):
        client = GitHubClient()
        scripted(client, monkeypatch, [error(429, {"retry-after": "3"}), ok({})])

        assert await client.get_json("/x") == {}
        assert sleeps == [3]

    @pytest.mark.asyncio
    async def test_rate_limit_without_retry_after_fails(self, monkeypatch, sleeps):
        client = GitHubClient()
        urls = scripted(client, monkeypatch, [error(429)])

        with pytest.raises(GitHubRequestError) as exc_info:
            await client.get_json("/x")

        assert exc_info.value.status == 429
        assert len(urls) == 1


class TestHelpers:
    def test_backoff_is_capped(self):
        client = GitHubClient(retry_delay=2.0, max_retry_delay=15.0)

        assert [client._backoff_delay(n) for n in range(1, 6)] == [
            2.0,
            4.0,
            8.0,
            15.0,
            15.0,
        ]

    def test_token_is_sent_when_configured(self):
        headers = GitHubClient(token="ghp_secret")._prepare_headers()

        assert headers["Authorization"] == "token ghp_secret"
        assert headers["Accept"] == "application/vnd.github+json"

    def test_no_authorization_without_token(self):
        assert "Authorization" not in GitHubClient()._prepare_headers()

    def test_rate_limit_warning(self, caplog):
        client = GitHubClient()

        with caplog.at_level(logging.WARNING, logger="GitHubClient"):
            client._check_rate_limit_status(
                {"x-ratelimit-limit": "60", "x-ratelimit-remaining": "5"}
            )

        assert "rate limit warning" in caplog.text

    def test_no_warning_with_plenty_remaining(self, caplog):
        client = GitHubClient()

        with caplog.at_level(logging.WARNING, logger="GitHubClient"):
            client._check_rate_limit_status(
                {"x-ratelimit-limit": "5000", "x-ratelimit-remaining": "4900"}
            )

        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    @pytest.mark.asyncio
    async def test_close_without_session(self):
        client = GitHubClient()

        await client.close()

        assert client._session is None


class FakeResponse:
    status = 200
    headers = {"Content-Type": "text/html"}

    async def json(self, content_type=None):
        raise json.JSONDecodeError("Expecting value", "<html>", 0)

    async def text(self):
        return "<html>"

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class FakeSession:
    def get(self, url, timeout=None):
        return FakeResponse()


@pytest.mark.asyncio
async def test_non_json_success_body_is_a_request_error(monkeypatch, sleeps):
    client = GitHubClient()

    async def fake_session():
        return FakeSession()

    monkeypatch.setattr(client, "_ensure_session", fake_session)

    with pytest.raises(GitHubRequestError) as exc_info:
        await client.get_json("/repos/x/y")

    assert exc_info.value.status == 200
    assert "Invalid JSON" in str(exc_info.value)
    assert sleeps == []
