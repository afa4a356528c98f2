from __future__ import annotations

import asyncio
from typing import List

import httpx
import pytest

from devconnect.config import Settings
from devconnect.errors import InvalidReference, UpstreamFailure
from devconnect.github import NO_GITHUB_PROFILE_MESSAGE, fetch_recent_repos
from devconnect.telemetry import TelemetryEvent, clear_listeners, register_listener


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        DEVCONNECT_GITHUB_API_URL="https://github.test",
        DEVCONNECT_GITHUB_REPO_LIMIT=2,
    )


@pytest.fixture()
def events():
    recorded: List[TelemetryEvent] = []
    register_listener(recorded.append)
    yield recorded
    clear_listeners()


def _lookup(username: str, settings: Settings, handler) -> list:
    async def run() -> list:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_recent_repos(username, settings=settings, client=client)

    return asyncio.run(run())


def test_fetches_newest_repositories_first(settings: Settings, events: List[TelemetryEvent]) -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"name": "a"}, {"name": "b"}, {"name": "c"}])

    repos = _lookup("octocat", settings, handler)

    assert repos == [{"name": "a"}, {"name": "b"}]
    request = seen[0]
    assert request.url.path == "/users/octocat/repos"
    assert request.url.params["per_page"] == "2"
    assert request.url.params["sort"] == "created"
    assert request.url.params["direction"] == "desc"
    assert "client_id" not in request.url.params
    assert request.headers["user-agent"] == "devconnect"
    assert events[-1].name == "github_repos_lookup"
    assert events[-1].payload["status"] == "success"
    assert events[-1].payload["count"] == 2


def test_client_credentials_are_forwarded_when_configured() -> None:
    settings = Settings(
        DEVCONNECT_GITHUB_API_URL="https://github.test",
        DEVCONNECT_GITHUB_CLIENT_ID="id",
        DEVCONNECT_GITHUB_CLIENT_SECRET="secret",
    )
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    assert _lookup("octocat", settings, handler) == []
    assert seen[0].url.params["client_id"] == "id"
    assert seen[0].url.params["client_secret"] == "secret"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(404, json={"message": "Not Found"}),
        httpx.Response(500, text="upstream exploded"),
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"message": "not a list"}),
    ],
)
def test_unusable_upstream_answers_are_upstream_failures(settings: Settings, response: httpx.Response) -> None:
    with pytest.raises(UpstreamFailure) as excinfo:
        _lookup("ghost", settings, lambda request: response)

    assert excinfo.value.message == NO_GITHUB_PROFILE_MESSAGE
    assert excinfo.value.status_code == 404


def test_transport_errors_are_upstream_failures(settings: Settings, events: List[TelemetryEvent]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(UpstreamFailure):
        _lookup("octocat", settings, handler)

    assert events[-1].payload["status"] == "error"
    assert events[-1].payload["exception_type"] == "UpstreamFailure"


@pytest.mark.parametrize("username", ["", "-leading", "has space", "a/../../orgs", "x" * 40])
def test_malformed_usernames_are_rejected_before_any_request(settings: Settings, username: str) -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("no request expected")

    with pytest.raises(InvalidReference):
        _lookup(username, settings, handler)
