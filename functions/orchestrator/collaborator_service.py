"""
functions/orchestrator/collaborator_service.py

WHAT THIS FILE IS FOR
---------------------
This module implements the four collaborator operations exposed under
/repository/{owner}/{repo}/collaborators/{username}, each as one coroutine
that talks to GitHub and returns a ProxyResponse.

CALL FLOW CONTEXT
-----------------
FastAPI (api.py)
  -> CollaboratorService.<verb>()
      -> check_collaborator_status()      (GET  /repos/.../collaborators/{u})
      -> find_user_invitation()           (GET  /repos/.../invitations?page=N)
      -> GitHub write call                (PUT / PATCH / DELETE)

PROTOCOL PER VERB
-----------------
GET permission
    collaborator     -> GET .../permission, flatten user fields, derive
                        `permission` from `role_name`, add `message` -> 200
    not collaborator -> 404 (or, with enable_invitation_fallback_on_get,
                        200 with an invitation-shaped body when one is pending)

POST (add or invite)
    PUT .../collaborators/{u} with the caller's body
        201 -> 202 + message   (invitation sent, still pending)
        204 -> 204             (already a collaborator)
        else forwarded as-is

PATCH (update)
    collaborator     -> PUT with the caller's body; 204 -> 200 + message
    not collaborator -> pending invitation? PATCH /invitations/{id} with
                        {"permissions": <github vocabulary>}; 200 -> 202 + message
                        none -> 404 + message

DELETE (remove or cancel)
    collaborator     -> DELETE .../collaborators/{u}; 204 -> 200 + message
    not collaborator -> pending invitation? DELETE /invitations/{id};
                        204 -> 202 + message; none -> 404 + message

Any other GitHub status on a write call is forwarded as-is.

ERROR HANDLING RULES
--------------------
- Missing/invalid `permission` in the body -> InboundValidationError (400),
  for POST and PATCH alike
- Transport failures -> UpstreamTransportError (500), raised by GitHubClient
- Normalization failures on GET -> logged; the un-normalized GitHub body is
  returned with 200
- Nothing is retried
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog

from functions.orchestrator.collaborator_status import CollaboratorStatus, check_collaborator_status
from functions.orchestrator.github_client import GitHubClient, github_path
from functions.orchestrator.invitation_locator import find_user_invitation
from functions.orchestrator.proxy_response import (
    ProxyResponse,
    forward,
    json_response,
    message_response,
    no_content,
    raw_json_response,
)
from functions.utils.errors import InboundValidationError, NormalizationError
from functions.utils.json_fields import (
    GITHUB_USER_PERMISSION_FLATTENER,
    add_field,
    dump_json,
    parse_json_object,
    read_field,
    read_field_from_body,
)
from functions.utils.permissions import (
    correct_permission_field,
    describe,
    permission_flags,
    role_name_to_permission,
    to_invitation_request_body,
)
from functions.utils.settings import Settings
from schemas.github_schema import GitHubInvitation

logger = structlog.get_logger(__name__)

NOT_COLLABORATOR_MESSAGE = "User is not a collaborator of the repository or the user does not exist"


def read_requested_permission(body: bytes) -> Any:
    """Validate an inbound POST/PATCH body and return its `permission` value."""
    try:
        return read_field_from_body(body, "permission")
    except NormalizationError as exc:
        raise InboundValidationError(
            f"Error reading permission from request body: {exc}",
            field="permission",
        ) from exc


def normalize_permission_body(body: bytes, owner: str, repo: str) -> Dict[str, Any]:
    """
    Reshape GitHub's collaborator permission response.

    Raises NormalizationError when any step cannot be applied.
    """
    data = GITHUB_USER_PERMISSION_FLATTENER.flatten_bytes(body)
    # without a role_name GitHub's own `permission` is kept as sent
    data = correct_permission_field(data)

    permission = read_field(data, "permission")
    message = f"User is a collaborator of the repository {owner}/{repo} with permission {describe(permission)}"
    return add_field(data, "message", message)


def build_invitation_response(
    invitation: GitHubInvitation, owner: str, repo: str, api_base_url: str
) -> Dict[str, Any]:
    """
    Collaborator-shaped body for a user whose invitation is still pending.

    `role_name` keeps GitHub's invitation value; `invitee_info` carries the
    invitation details for the controller's logs.
    """
    invitee = invitation.invitee
    login = invitee.login if invitee else ""
    permission = role_name_to_permission(invitation.permissions)
    flags = permission_flags(permission)
    user_api = f"{api_base_url}/users/{login}"

    user = {
        "avatar_url": invitee.avatar_url if invitee else "",
        "events_url": f"{user_api}/events{{/privacy}}",
        "followers_url": f"{user_api}/followers",
        "following_url": f"{user_api}/following{{/other_user}}",
        "gists_url": f"{user_api}/gists{{/gist_id}}",
        "gravatar_id": "",
        "html_url": invitee.html_url if invitee else "",
        "id": invitee.id if invitee else 0,
        "login": login,
        "node_id": invitee.node_id if invitee else "",
        "organizations_url": f"{user_api}/orgs",
        "permissions": flags,
        "received_events_url": f"{user_api}/received_events",
        "repos_url": f"{user_api}/repos",
        "role_name": invitation.permissions,
        "site_admin": False,
        "starred_url": f"{user_api}/starred{{/owner}}{{/repo}}",
        "subscriptions_url": f"{user_api}/subscriptions",
        "type": invitee.type if invitee else "",
        "url": user_api,
        "user_view_type": "public",
    }

    invitee_info = {
        "invitation_status": "pending",
        "invitation_id": invitation.id,
        "invitation_url": invitation.url,
        "invitation_html_url": invitation.html_url,
        "invited_at": invitation.created_at,
        "invited_by": invitation.inviter.login if invitation.inviter else "",
        "invitation_expired": invitation.expired,
    }

    return {
        "html_url": user["html_url"],
        "id": user["id"],
        "permission": permission,
        "permissions": flags,
        "role_name": invitation.permissions,
        "user": user,
        "invitee_info": invitee_info,
        "message": (
            f"User {login} has a pending invitation to the repository {owner}/{repo} "
            f"with permission {permission}"
        ),
    }


class CollaboratorService:
    """
    Collaborator endpoints of the plugin.

    Holds no per-request state; one instance serves all requests.
    """

    def __init__(self, settings: Settings, github: Optional[GitHubClient] = None) -> None:
        self.settings = settings
        self.github = github or GitHubClient(settings)

    async def _find_invitation(
        self, owner: str, repo: str, username: str, authorization: Optional[str]
    ) -> Optional[GitHubInvitation]:
        return await find_user_invitation(
            self.github,
            owner,
            repo,
            username,
            authorization,
            per_page=self.settings.invitations_per_page,
        )

    # ------------------------------------------------------------------ #
    # GET
    # ------------------------------------------------------------------ #
    async def get_permission(
        self, owner: str, repo: str, username: str, authorization: Optional[str]
    ) -> ProxyResponse:
        logger.info("collaborator_get_permission", owner=owner, repo=repo, username=username)

        status = await check_collaborator_status(self.github, owner, repo, username, authorization)

        if status is not CollaboratorStatus.COLLABORATOR:
            if self.settings.enable_invitation_fallback_on_get:
                invitation = await self._find_invitation(owner, repo, username, authorization)
                if invitation is not None:
                    logger.info(
                        "collaborator_pending_invitation",
                        username=username,
                        invitation_id=invitation.id,
                    )
                    return json_response(
                        200, build_invitation_response(invitation, owner, repo, self.settings.github_base_url)
                    )

            logger.info("collaborator_not_found", owner=owner, repo=repo, username=username)
            return message_response(404, NOT_COLLABORATOR_MESSAGE)

        resp = await self.github.request(
            "GET",
            github_path("repos", owner, repo, "collaborators", username, "permission"),
            authorization=authorization,
        )
        if resp.status_code != 200:
            logger.warning("collaborator_permission_upstream_error", status_code=resp.status_code)
            return forward(resp)

        try:
            normalized = normalize_permission_body(resp.content, owner, repo)
        except NormalizationError as exc:
            logger.warning(
                "collaborator_permission_normalization_failed",
                username=username,
                error=str(exc),
            )
            return raw_json_response(200, resp.content)

        logger.info(
            "collaborator_permission_resolved",
            username=username,
            permission=normalized.get("permission"),
        )
        return json_response(200, normalized)

    # ------------------------------------------------------------------ #
    # POST
    # ------------------------------------------------------------------ #
    async def add(
        self, owner: str, repo: str, username: str, authorization: Optional[str], body: bytes
    ) -> ProxyResponse:
        logger.info("collaborator_add", owner=owner, repo=repo, username=username)

        permission = describe(read_requested_permission(body))

        resp = await self.github.request(
            "PUT",
            github_path("repos", owner, repo, "collaborators", username),
            authorization=authorization,
            json_body=body,
        )

        if resp.status_code == 201:
            logger.info("collaborator_invitation_sent", username=username)
            return message_response(
                202,
                f"Invitation sent to user {username} for repository {owner}/{repo} with permission {permission}",
            )

        if resp.status_code == 204:
            logger.info("collaborator_already_present", username=username)
            return no_content()

        logger.warning("collaborator_add_upstream_error", username=username, status_code=resp.status_code)
        return forward(resp)

    # ------------------------------------------------------------------ #
    # PATCH
    # ------------------------------------------------------------------ #
    async def update(
        self, owner: str, repo: str, username: str, authorization: Optional[str], body: bytes
    ) -> ProxyResponse:
        logger.info("collaborator_update", owner=owner, repo=repo, username=username)

        permission = describe(read_requested_permission(body))

        status = await check_collaborator_status(self.github, owner, repo, username, authorization)

        if status is CollaboratorStatus.COLLABORATOR:
            resp = await self.github.request(
                "PUT",
                github_path("repos", owner, repo, "collaborators", username),
                authorization=authorization,
                json_body=body,
            )
            if resp.status_code == 204:
                logger.info("collaborator_permission_updated", username=username)
                return message_response(
                    200,
                    f"Permission updated successfully for collaborator {username} with permission {permission}",
                )
            logger.warning("collaborator_update_upstream_error", username=username, status_code=resp.status_code)
            return forward(resp)

        invitation = await self._find_invitation(owner, repo, username, authorization)
        if invitation is None:
            logger.info("collaborator_or_invitation_not_found", username=username)
            return message_response(
                404, f"User {username} is not a collaborator and has no pending invitation"
            )

        # body was already validated as a JSON object above
        invitation_body = to_invitation_request_body(parse_json_object(body))
        resp = await self.github.request(
            "PATCH",
            github_path("repos", owner, repo, "invitations", invitation.id),
            authorization=authorization,
            json_body=dump_json(invitation_body),
        )
        if resp.status_code == 200:
            logger.info("invitation_permission_updated", username=username, invitation_id=invitation.id)
            return message_response(
                202,
                f"Invitation permission updated successfully for user {username} with permission {permission}",
            )

        logger.warning("invitation_update_upstream_error", username=username, status_code=resp.status_code)
        return forward(resp)

    # ------------------------------------------------------------------ #
    # DELETE
    # ------------------------------------------------------------------ #
    async def remove(
        self, owner: str, repo: str, username: str, authorization: Optional[str]
    ) -> ProxyResponse:
        logger.info("collaborator_remove", owner=owner, repo=repo, username=username)

        status = await check_collaborator_status(self.github, owner, repo, username, authorization)

        if status is CollaboratorStatus.COLLABORATOR:
            resp = await self.github.request(
                "DELETE",
                github_path("repos", owner, repo, "collaborators", username),
                authorization=authorization,
            )
            if resp.status_code == 204:
                logger.info("collaborator_removed", username=username)
                return message_response(
                    200, f"Collaborator {username} removed successfully from repository {owner}/{repo}"
                )
            logger.warning("collaborator_remove_upstream_error", username=username, status_code=resp.status_code)
            return forward(resp)

        invitation = await self._find_invitation(owner, repo, username, authorization)
        if invitation is None:
            logger.info("collaborator_or_invitation_not_found", username=username)
            return message_response(
                404, f"User {username} is not a collaborator and has no pending invitation"
            )

        resp = await self.github.request(
            "DELETE",
            github_path("repos", owner, repo, "invitations", invitation.id),
            authorization=authorization,
        )
        if resp.status_code == 204:
            logger.info("invitation_cancelled", username=username, invitation_id=invitation.id)
            return message_response(202, f"Invitation cancelled successfully for user {username}")

        logger.warning("invitation_cancel_upstream_error", username=username, status_code=resp.status_code)
        return forward(resp)
