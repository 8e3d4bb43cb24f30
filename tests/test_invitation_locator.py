# tests/test_invitation_locator.py
from __future__ import annotations

from typing import Dict, List

import httpx
import pytest

from functions.orchestrator.github_client import GitHubClient
from functions.orchestrator.invitation_locator import find_user_invitation, parse_invitations
from functions.utils.errors import UpstreamPayloadError, UpstreamTransportError

INVITATIONS_PATH = "/repos/acme/widgets/invitations"


def _invitation(inv_id: int, login: str, permissions: str = "read") -> Dict:
    return {
        "id": inv_id,
        "node_id": f"RI_{inv_id}",
        "invitee": {"login": login, "id": 1000 + inv_id, "html_url": f"https://github.com/{login}"},
        "inviter": {"login": "owner"},
        "permissions": permissions,
        "created_at": "2024-01-01T00:00:00Z",
        "url": f"https://api.github.com/user/repository_invitations/{inv_id}",
        "html_url": "https://github.com/acme/widgets/invitations",
        "expired": False,
    }


def _paged(pages: List[List[Dict]]):
    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        return httpx.Response(200, json=pages[page - 1] if page <= len(pages) else [])

    return handler


def _full_page(start: int, size: int = 30) -> List[Dict]:
    return [_invitation(start + i, f"someone-{start + i}") for i in range(size)]


@pytest.mark.anyio
async def test_not_found_fetches_every_page_exactly_once(github, github_stub) -> None:
    pages = [_full_page(0), _full_page(100), [_invitation(500, "last-one")]]
    github_stub.on("GET", INVITATIONS_PATH, handler=_paged(pages))

    result = await find_user_invitation(github, "acme", "widgets", "ghost", "token abc")

    assert result is None
    calls = github_stub.calls_to("GET", INVITATIONS_PATH)
    assert len(calls) == 3
    assert [int(c.url.params["page"]) for c in calls] == [1, 2, 3]
    assert all(c.url.params["per_page"] == "30" for c in calls)
    assert all(c.headers["Authorization"] == "token abc" for c in calls)


@pytest.mark.anyio
async def test_match_on_second_page_stops_the_scan(github, github_stub) -> None:
    page_two = _full_page(100)
    page_two[7] = _invitation(4242, "Octocat", permissions="write")
    pages = [_full_page(0), page_two, _full_page(200), []]
    github_stub.on("GET", INVITATIONS_PATH, handler=_paged(pages))

    result = await find_user_invitation(github, "acme", "widgets", "octocat", None)

    assert result is not None
    assert result.id == 4242
    assert result.permissions == "write"
    assert len(github_stub.calls_to("GET", INVITATIONS_PATH)) == 2


@pytest.mark.anyio
async def test_empty_first_page_is_not_found(github, github_stub) -> None:
    github_stub.on("GET", INVITATIONS_PATH, json=[])

    assert await find_user_invitation(github, "acme", "widgets", "octocat", None) is None
    assert len(github_stub.calls) == 1


@pytest.mark.anyio
async def test_custom_page_size_controls_last_page_detection(github, github_stub) -> None:
    pages = [[_invitation(1, "a"), _invitation(2, "b")], [_invitation(3, "c")]]
    github_stub.on("GET", INVITATIONS_PATH, handler=_paged(pages))

    result = await find_user_invitation(github, "acme", "widgets", "c", None, per_page=2)

    assert result is not None and result.id == 3
    assert [c.url.params["per_page"] for c in github_stub.calls] == ["2", "2"]


@pytest.mark.anyio
async def test_non_200_is_treated_as_not_found(github, github_stub) -> None:
    github_stub.on("GET", INVITATIONS_PATH, status_code=403, json={"message": "Must have admin rights"})

    assert await find_user_invitation(github, "acme", "widgets", "octocat", None) is None


@pytest.mark.anyio
async def test_transport_error_propagates(settings) -> None:
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    github = GitHubClient(settings, transport=httpx.MockTransport(boom))

    with pytest.raises(UpstreamTransportError) as ei:
        await find_user_invitation(github, "acme", "widgets", "octocat", None)
    assert "connection refused" in ei.value.message


def test_parse_invitations_rejects_unexpected_payload() -> None:
    with pytest.raises(UpstreamPayloadError):
        parse_invitations(b'{"message": "not a list"}')
    with pytest.raises(UpstreamPayloadError):
        parse_invitations(b"garbage")


def test_parse_invitations_tolerates_missing_invitee() -> None:
    [inv] = parse_invitations(b'[{"id": 9, "permissions": "read"}]')
    assert inv.invitee is None
    assert not inv.is_for("anyone")


def test_parse_invitations_treats_nulls_as_defaults() -> None:
    page = (
        b'[{"id": 1, "invitee": {"login": "someone-else", "node_id": null, "avatar_url": null},'
        b' "inviter": null, "permissions": "read", "expired": null, "created_at": null},'
        b' {"id": 2, "invitee": {"login": "octocat"}, "permissions": "write"}]'
    )

    first, second = parse_invitations(page)

    assert first.invitee is not None and first.invitee.node_id == ""
    assert first.inviter is None
    assert first.expired is False
    assert first.created_at == ""
    assert second.is_for("octocat")


def test_parse_invitations_still_requires_id_and_permissions() -> None:
    with pytest.raises(UpstreamPayloadError):
        parse_invitations(b'[{"id": null, "permissions": "read"}]')
    with pytest.raises(UpstreamPayloadError):
        parse_invitations(b'[{"id": 3}]')
