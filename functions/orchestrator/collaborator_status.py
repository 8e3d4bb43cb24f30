"""
functions/orchestrator/collaborator_status.py

Collaborator existence check.

GitHub's permission endpoint keeps answering 200 for a user that was removed
from the repository, so the permission body alone cannot be trusted. Every
collaborator operation first asks GET /repos/{owner}/{repo}/collaborators/{user}:

    204 -> COLLABORATOR
    404 -> NOT_COLLABORATOR
    any other status -> CollaboratorStatusError (answered as 500)

Transport failures surface as UpstreamTransportError from the client.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

import structlog

from functions.orchestrator.github_client import GitHubClient, github_path
from functions.utils.errors import CollaboratorStatusError

logger = structlog.get_logger(__name__)


class CollaboratorStatus(str, Enum):
    COLLABORATOR = "collaborator"
    NOT_COLLABORATOR = "not_collaborator"


def status_from_code(status_code: int) -> CollaboratorStatus:
    if status_code == 204:
        return CollaboratorStatus.COLLABORATOR
    if status_code == 404:
        return CollaboratorStatus.NOT_COLLABORATOR
    raise CollaboratorStatusError(
        f"unexpected status code: {status_code}",
        upstream_status=status_code,
    )


async def check_collaborator_status(
    github: GitHubClient,
    owner: str,
    repo: str,
    username: str,
    authorization: Optional[str],
) -> CollaboratorStatus:
    resp = await github.request(
        "GET",
        github_path("repos", owner, repo, "collaborators", username),
        authorization=authorization,
    )
    try:
        status = status_from_code(resp.status_code)
    except CollaboratorStatusError:
        logger.warning(
            "collaborator_status_unknown",
            owner=owner,
            repo=repo,
            username=username,
            status_code=resp.status_code,
        )
        raise

    logger.debug(
        "collaborator_status_resolved",
        owner=owner,
        repo=repo,
        username=username,
        status=status.value,
    )
    return status
