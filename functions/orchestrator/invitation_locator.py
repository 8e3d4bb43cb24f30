"""
functions/orchestrator/invitation_locator.py

WHAT THIS FILE IS FOR
---------------------
Finds the pending repository invitation of a user by scanning
GET /repos/{owner}/{repo}/invitations page by page.

SCAN RULES
----------
- Pages start at 1, page size from settings.invitations_per_page (30)
- Invitee login is matched case-insensitively
- A match returns immediately; later pages are never fetched
- A page shorter than the page size is the last one
- A non-200 answer ends the scan as "not found" (GitHub hides invitations
  from tokens without admin rights on the repository; that is not an error
  for the caller)
- A transport failure is NOT swallowed: UpstreamTransportError propagates
- A 200 page that is not a list of invitation records raises
  UpstreamPayloadError

The asymmetry between the last three rules is kept on purpose: callers
treat "cannot see invitations" as "no invitation", but must not mistake a
network outage for it.
"""

from __future__ import annotations

import json
from typing import List, Optional

import structlog
from pydantic import TypeAdapter, ValidationError

from functions.orchestrator.github_client import GitHubClient, github_path
from functions.utils.errors import UpstreamPayloadError
from schemas.github_schema import GitHubInvitation

logger = structlog.get_logger(__name__)

_INVITATION_LIST = TypeAdapter(List[GitHubInvitation])


def parse_invitations(content: bytes) -> List[GitHubInvitation]:
    try:
        return _INVITATION_LIST.validate_python(json.loads(content))
    except (ValueError, ValidationError) as exc:
        raise UpstreamPayloadError(f"failed to parse invitations page: {exc}") from exc


def find_in_page(invitations: List[GitHubInvitation], username: str) -> Optional[GitHubInvitation]:
    for invitation in invitations:
        if invitation.is_for(username):
            return invitation
    return None


async def find_user_invitation(
    github: GitHubClient,
    owner: str,
    repo: str,
    username: str,
    authorization: Optional[str],
    per_page: int = 30,
) -> Optional[GitHubInvitation]:
    logger.debug("invitation_lookup_started", owner=owner, repo=repo, username=username)

    path = github_path("repos", owner, repo, "invitations")
    page = 1

    while True:
        resp = await github.request(
            "GET",
            path,
            authorization=authorization,
            params={"per_page": per_page, "page": page},
        )

        if resp.status_code != 200:
            logger.info(
                "invitation_list_unavailable",
                owner=owner,
                repo=repo,
                page=page,
                status_code=resp.status_code,
            )
            return None

        invitations = parse_invitations(resp.content)

        invitation = find_in_page(invitations, username)
        if invitation is not None:
            logger.debug(
                "invitation_found",
                username=username,
                invitation_id=invitation.id,
                page=page,
            )
            return invitation

        if len(invitations) < per_page:
            logger.debug("invitation_not_found", username=username, pages=page)
            return None

        page += 1
