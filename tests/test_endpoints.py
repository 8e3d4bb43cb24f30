# tests/test_endpoints.py
from __future__ import annotations

from typing import Iterator

import httpx
import pytest
import requests
from fastapi.testclient import TestClient

import api  # imports app + module-level objects
from functions.orchestrator.collaborator_service import CollaboratorService
from functions.orchestrator.github_client import GitHubClient
from functions.orchestrator.team_repo_service import TeamRepoService
from functions.utils.http_client import HttpClient

COLLABORATOR = "/repos/acme/widgets/collaborators/octocat"
ROUTE = "/repository/acme/widgets/collaborators/octocat"


@pytest.fixture()
def client() -> Iterator[TestClient]:
    # entering the context runs the lifespan hooks (service marked ready)
    with TestClient(api.app) as c:
        yield c


@pytest.fixture()
def stubbed(monkeypatch: pytest.MonkeyPatch, settings, github_stub):
    github = GitHubClient(settings, transport=github_stub.transport)
    monkeypatch.setattr(api, "collaborators", CollaboratorService(settings, github))
    monkeypatch.setattr(api, "team_repos", TeamRepoService(settings, github))
    return github_stub


class _FakeSession:
    def __init__(self, status_code: int = 200, exc: Exception = None):
        self.status_code = status_code
        self.exc = exc
        self.calls: list = []

    def get(self, url: str, timeout=None):
        self.calls.append((url, timeout))
        if self.exc is not None:
            raise self.exc
        return type("Resp", (), {"status_code": self.status_code})()


def _readiness(monkeypatch: pytest.MonkeyPatch, **kwargs) -> _FakeSession:
    session = _FakeSession(**kwargs)
    monkeypatch.setattr(api, "readiness_client", HttpClient(timeout_seconds=2.5, session=session))
    return session


# ---------------------------------------------------------------------------
# probes
# ---------------------------------------------------------------------------
def test_health_ok(client: TestClient) -> None:
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["service"] == api.settings.service_name


def test_healthz_ok_and_echoes_correlation_id(client: TestClient) -> None:
    r = client.get("/healthz", headers={"X-Correlation-Id": "corr-123"})
    assert r.status_code == 200
    assert r.headers.get("X-Correlation-Id") == "corr-123"


def test_correlation_id_generated_when_absent(client: TestClient) -> None:
    r = client.get("/healthz")
    assert r.headers.get("X-Correlation-Id", "").startswith("corr_")


def test_readyz_ok_when_github_answers(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    # unauthenticated probe: 401 still proves GitHub is up
    session = _readiness(monkeypatch, status_code=401)

    r = client.get("/readyz")

    assert r.status_code == 200
    assert r.json() == {"status": "ready"}
    assert session.calls == [(api.settings.github_base_url, 2.5)]


def test_readyz_unavailable_when_github_unreachable(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    _readiness(monkeypatch, exc=requests.ConnectionError("refused"))

    r = client.get("/readyz")

    assert r.status_code == 503
    assert r.json() == {"status": "github api unreachable"}


def test_readyz_unavailable_on_github_5xx(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    _readiness(monkeypatch, status_code=502)

    r = client.get("/readyz")

    assert r.status_code == 503
    assert r.json() == {"status": "github api error"}


def test_readyz_unavailable_while_draining(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    session = _readiness(monkeypatch, status_code=200)

    api.app.state.service_state.mark_draining()

    assert client.get("/readyz").status_code == 503
    # still alive while draining
    assert client.get("/healthz").status_code == 200
    assert session.calls == []


def test_healthz_unavailable_when_stopped(client: TestClient) -> None:
    api.app.state.service_state.mark_stopped()

    r = client.get("/healthz")

    assert r.status_code == 503
    assert r.json()["status"] == "unavailable"


# ---------------------------------------------------------------------------
# collaborators
# ---------------------------------------------------------------------------
def test_get_permission_end_to_end(client: TestClient, stubbed) -> None:
    stubbed.on("GET", COLLABORATOR, status_code=204)
    stubbed.on(
        "GET",
        COLLABORATOR + "/permission",
        json={
            "permission": "write",
            "role_name": "write",
            "user": {
                "login": "octocat",
                "id": 583231,
                "html_url": "https://github.com/octocat",
                "permissions": {"admin": False, "maintain": False, "push": True, "triage": True, "pull": True},
            },
        },
    )

    r = client.get(ROUTE + "/permission", headers={"Authorization": "Bearer gh-token"})

    assert r.status_code == 200
    body = r.json()
    assert body["permission"] == "push"
    assert body["id"] == 583231
    assert body["message"] == "User is a collaborator of the repository acme/widgets with permission push"
    assert all(c.headers["Authorization"] == "Bearer gh-token" for c in stubbed.calls)


def test_get_permission_not_collaborator(client: TestClient, stubbed) -> None:
    stubbed.on("GET", COLLABORATOR, status_code=404)

    r = client.get(ROUTE + "/permission")

    assert r.status_code == 404
    assert "not a collaborator" in r.json()["message"]


def test_get_permission_unexpected_status_is_500_envelope(client: TestClient, stubbed) -> None:
    stubbed.on("GET", COLLABORATOR, status_code=401, json={"message": "Bad credentials"})

    r = client.get(ROUTE + "/permission", headers={"X-Correlation-Id": "corr-9"})

    assert r.status_code == 500
    body = r.json()
    assert body["code"] == "COLLABORATOR_STATUS_UNKNOWN"
    assert body["message"] == "unexpected status code: 401"
    assert body["correlationId"] == "corr-9"
    assert body["subErrors"] == []
    assert isinstance(body["timestamp"], int)


def test_post_invitation_sent_is_202(client: TestClient, stubbed) -> None:
    stubbed.on("PUT", COLLABORATOR, status_code=201, json={"id": 1})

    r = client.post(ROUTE, json={"permission": "push"})

    assert r.status_code == 202
    assert r.json() == {"message": "Invitation sent to user octocat for repository acme/widgets with permission push"}


def test_post_already_collaborator_is_204(client: TestClient, stubbed) -> None:
    stubbed.on("PUT", COLLABORATOR, status_code=204)

    r = client.post(ROUTE, json={"permission": "push"})

    assert r.status_code == 204
    assert r.content == b""


def test_post_missing_permission_is_400(client: TestClient, stubbed) -> None:
    r = client.post(ROUTE, json={"role": "push"})

    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "VALIDATION_FAILED"
    assert body["subErrors"][0]["field"] == "permission"
    assert stubbed.calls == []


def test_patch_missing_permission_is_400(client: TestClient, stubbed) -> None:
    r = client.patch(ROUTE, content=b"not json", headers={"Content-Type": "application/json"})

    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_FAILED"
    assert stubbed.calls == []


def test_patch_collaborator_is_200(client: TestClient, stubbed) -> None:
    stubbed.on("GET", COLLABORATOR, status_code=204)
    stubbed.on("PUT", COLLABORATOR, status_code=204)

    r = client.patch(ROUTE, json={"permission": "admin"})

    assert r.status_code == 200
    assert r.json()["message"] == "Permission updated successfully for collaborator octocat with permission admin"


def test_delete_forwarded_error_without_body(client: TestClient, stubbed) -> None:
    stubbed.on("GET", COLLABORATOR, status_code=204)
    stubbed.on("DELETE", COLLABORATOR, status_code=403)

    r = client.delete(ROUTE)

    assert r.status_code == 403
    assert r.text == "Error: 403 Forbidden"


def test_delete_transport_error_is_500_envelope(
    client: TestClient, monkeypatch: pytest.MonkeyPatch, settings
) -> None:
    def refused(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    github = GitHubClient(settings, transport=httpx.MockTransport(refused))
    monkeypatch.setattr(api, "collaborators", CollaboratorService(settings, github))

    r = client.delete(ROUTE)

    assert r.status_code == 500
    body = r.json()
    assert body["code"] == "UPSTREAM_UNREACHABLE"
    assert "connection refused" in body["message"]


# ---------------------------------------------------------------------------
# team repositories
# ---------------------------------------------------------------------------
def test_team_repo_permission(client: TestClient, stubbed) -> None:
    stubbed.on(
        "GET",
        "/orgs/acme/teams/platform/repos/acme/widgets",
        json={
            "id": 1,
            "full_name": "acme/widgets",
            "owner": {"login": "acme"},
            "role_name": "read",
            "permissions": {"pull": True},
        },
    )

    r = client.get("/teamrepository/orgs/acme/teams/platform/repos/acme/widgets")

    assert r.status_code == 200
    body = r.json()
    assert body["permission"] == "pull"
    assert body["owner"] == "acme"
    assert "permissions" not in body


def test_team_repo_throttled_answer_keeps_rate_limit_headers(client: TestClient, stubbed) -> None:
    stubbed.on(
        "GET",
        "/orgs/acme/teams/platform/repos/acme/widgets",
        status_code=403,
        json={"message": "API rate limit exceeded"},
        headers={"X-RateLimit-Remaining": "0", "Retry-After": "120"},
    )

    r = client.get("/teamrepository/orgs/acme/teams/platform/repos/acme/widgets")

    assert r.status_code == 403
    assert r.json() == {"message": "API rate limit exceeded"}
    assert r.headers["X-RateLimit-Remaining"] == "0"
    assert r.headers["Retry-After"] == "120"
    assert "X-Correlation-Id" in r.headers


def test_unknown_route_uses_error_envelope(client: TestClient) -> None:
    r = client.get("/nope")

    assert r.status_code == 404
    body = r.json()
    assert body["code"] == "HTTP_ERROR"
    assert "correlationId" in body
