# -------------------------------------------------------------------
# schemas/github_schema.py
#
# Typed views of the GitHub records this service reads field by field.
# Unknown keys are ignored. Only `id` and `permissions` of an invitation are
# required; any other field that is missing or JSON null takes its default,
# so one sparse record from GitHub never fails a whole page.
# -------------------------------------------------------------------

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, model_validator


class _GitHubRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _null_means_default(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        fields = cls.model_fields
        return {
            k: v
            for k, v in data.items()
            if v is not None or k not in fields or fields[k].is_required()
        }


class GitHubAccount(_GitHubRecord):
    login: str = ""
    id: int = 0
    node_id: str = ""
    avatar_url: str = ""
    html_url: str = ""
    type: str = ""


class GitHubInvitation(_GitHubRecord):
    """A pending repository invitation (GET /repos/{owner}/{repo}/invitations)."""

    id: int
    node_id: str = ""
    invitee: Optional[GitHubAccount] = None
    inviter: Optional[GitHubAccount] = None
    # single string in GitHub's vocabulary: read / write / admin / maintain / triage
    permissions: str
    created_at: str = ""
    url: str = ""
    html_url: str = ""
    expired: bool = False

    def is_for(self, username: str) -> bool:
        if self.invitee is None:
            return False
        return self.invitee.login.casefold() == username.casefold()
