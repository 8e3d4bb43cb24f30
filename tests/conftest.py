# tests/conftest.py
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from functions.orchestrator.github_client import GitHubClient
from functions.utils.settings import Settings

GITHUB_TEST_URL = "https://github.test"

Route = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def anyio_backend():
    return "asyncio"


class GitHubStub:
    """
    In-memory GitHub: routes keyed by (method, path), every request recorded.

    A route builds a fresh response per request; pass `handler` for paginated
    endpoints and transport failures.
    """

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Route] = {}
        self.calls: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def on(
        self,
        method: str,
        path: str,
        status_code: int = 200,
        json: Any = None,
        content: Optional[bytes] = None,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        if handler is None:
            if json is not None:
                handler = lambda request: httpx.Response(status_code, json=json, headers=headers)
            else:
                handler = lambda request: httpx.Response(status_code, content=content or b"", headers=headers)
        self.routes[(method, path)] = handler

    def calls_to(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.calls if r.method == method and r.url.path == path]

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(418, json={"message": f"unrouted {request.method} {request.url.path}"})
        return route(request)


@pytest.fixture
def settings() -> Settings:
    return Settings(github_api_base_url=GITHUB_TEST_URL)


@pytest.fixture
def github_stub() -> GitHubStub:
    return GitHubStub()


@pytest.fixture
def github(settings: Settings, github_stub: GitHubStub) -> GitHubClient:
    return GitHubClient(settings, transport=github_stub.transport)
