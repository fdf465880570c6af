"""Shared fixtures: a fake hosting API served through httpx.MockTransport."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from repo_to_text.github import GitHubClient
from repo_to_text.wiki import WikiClient

API = "https://api.github.com"
WIKI = "http://wiki.test"

Route = Callable[[httpx.Request], httpx.Response] | httpx.Response | dict | list | str | bytes


def refuse_connection(request: httpx.Request) -> httpx.Response:
    """Route that fails the way an unreachable host does."""
    raise httpx.ConnectError("All connection attempts failed", request=request)


class FakeServer:
    """Route table keyed by `METHOD path` (query string ignored); records requests."""

    def __init__(self) -> None:
        self.routes: dict[str, Route] = {}
        self.requests: list[httpx.Request] = []

    def add(self, key: str, route: Route) -> None:
        self.routes[key] = route

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(f"{request.method} {request.url.host}{request.url.path}")
        if route is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if callable(route):
            return route(request)
        if isinstance(route, httpx.Response):
            return route
        if isinstance(route, bytes):
            return httpx.Response(200, content=route)
        if isinstance(route, str):
            return httpx.Response(200, text=route)
        return httpx.Response(200, json=route)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def make_github(server: FakeServer) -> Callable[[], GitHubClient]:
    def _make() -> GitHubClient:
        return GitHubClient(API, http=httpx.AsyncClient(transport=server.transport()))

    return _make


@pytest.fixture
def make_wiki(server: FakeServer) -> Callable[[], WikiClient]:
    def _make() -> WikiClient:
        return WikiClient(WIKI, http=httpx.AsyncClient(transport=server.transport()))

    return _make
