# -------------------------------------------------------------------
# schemas/output_schema.py
#
# WHAT THIS FILE IS FOR
# --------------------
# This module defines the **response schemas** of the GitHub REST plugin
# as they appear in the OpenAPI document.
#
# Proxied bodies are loosely typed: they keep every root key GitHub sent
# and only add or override a few (`permission`, `html_url`, `id`,
# `permissions`, `owner`, `message`). The models below therefore allow
# extra keys and are used for documentation only; handlers build plain
# dicts.
#
# Field names are snake_case because that is what GitHub and the
# reconciliation controller both use. No camelCase conversion happens
# anywhere in this service.
# -------------------------------------------------------------------

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageResponse(BaseModel):
    """Body of every status-only answer (202 invitation sent, 200 removed, ...)."""

    message: str


class PermissionFlags(BaseModel):
    admin: bool = False
    maintain: bool = False
    push: bool = False
    triage: bool = False
    pull: bool = False


class RepoPermissionResponse(BaseModel):
    """
    GET collaborator permission.

    `permission` is always in this service's vocabulary; `role_name` is
    GitHub's original value.
    """

    model_config = ConfigDict(extra="allow")

    html_url: Optional[str] = None
    id: Optional[int] = None
    permission: str
    permissions: Optional[PermissionFlags] = None
    role_name: Optional[str] = None
    user: Optional[Dict[str, Any]] = None
    message: Optional[str] = None


class TeamRepoPermissionResponse(BaseModel):
    """GET team repository permission: GitHub's repository body, reshaped."""

    model_config = ConfigDict(extra="allow")

    owner: str
    permission: str
    role_name: Optional[str] = None


class SubErrorDetail(BaseModel):
    code: Optional[str] = None
    message: Optional[str] = None


class SubError(BaseModel):
    field: str
    errors: List[SubErrorDetail] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Standard error envelope produced by api.py exception handlers."""

    model_config = ConfigDict(populate_by_name=True)

    code: str
    message: str
    sub_errors: List[SubError] = Field(default_factory=list, alias="subErrors")
    timestamp: int
    correlation_id: str = Field(..., alias="correlationId")
