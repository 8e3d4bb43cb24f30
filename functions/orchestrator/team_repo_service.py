"""
functions/orchestrator/team_repo_service.py

GET /teamrepository/orgs/{org}/teams/{team_slug}/repos/{owner}/{repo}

Forwards to GET /orgs/{org}/teams/{team_slug}/repos/{owner}/{repo} with the
repository media type (without it GitHub answers an empty success), then
reshapes the repository body:

- `owner` (an object upstream) becomes the owner string from the path
- `permissions` (a boolean object upstream) is dropped
- `permission` is set from `role_name` (read -> pull, write -> push); when
  GitHub sends no `role_name`, from the dropped boolean object

Non-200 answers are forwarded as-is. A 200 body that cannot be reshaped is
returned unchanged. GitHub's rate-limit and cache headers are relayed on
every path.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog

from functions.orchestrator.github_client import GitHubClient, github_path
from functions.orchestrator.proxy_response import (
    ProxyResponse,
    forward,
    json_response,
    raw_json_response,
    relayed_headers,
)
from functions.utils.errors import NormalizationError
from functions.utils.json_fields import parse_json_object
from functions.utils.permissions import NO_PERMISSION, permission_from_flags, role_name_to_permission
from functions.utils.settings import Settings

logger = structlog.get_logger(__name__)


def reshape_team_repo_body(data: Dict[str, Any], owner: str) -> Dict[str, Any]:
    flags = data.get("permissions")
    role_name = data.get("role_name")

    out = {k: v for k, v in data.items() if k not in ("owner", "permissions")}
    out["owner"] = owner

    if isinstance(role_name, str) and role_name:
        out["permission"] = role_name_to_permission(role_name, ignore_case=True)
    elif isinstance(flags, dict):
        out["permission"] = permission_from_flags(flags)
    else:
        out["permission"] = NO_PERMISSION
    return out


class TeamRepoService:
    def __init__(self, settings: Settings, github: Optional[GitHubClient] = None) -> None:
        self.settings = settings
        self.github = github or GitHubClient(settings)

    async def get_permission(
        self,
        org: str,
        team_slug: str,
        owner: str,
        repo: str,
        authorization: Optional[str],
    ) -> ProxyResponse:
        logger.info("team_repo_get_permission", org=org, team_slug=team_slug, owner=owner, repo=repo)

        resp = await self.github.request(
            "GET",
            github_path("orgs", org, "teams", team_slug, "repos", owner, repo),
            authorization=authorization,
            accept=self.settings.team_repo_accept_header,
        )

        if resp.status_code != 200:
            logger.warning("team_repo_upstream_error", team_slug=team_slug, status_code=resp.status_code)
            return forward(resp)

        try:
            data = parse_json_object(resp.content)
        except NormalizationError as exc:
            logger.warning("team_repo_normalization_failed", team_slug=team_slug, error=str(exc))
            return raw_json_response(200, resp.content, relayed_headers(resp))

        reshaped = reshape_team_repo_body(data, owner)
        logger.debug("team_repo_permission_resolved", team_slug=team_slug, permission=reshaped["permission"])
        return json_response(200, reshaped, relayed_headers(resp))
