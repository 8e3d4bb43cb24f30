# -------------------------------------------------------------------
# schemas/input_schema.py
#
# WHAT THIS FILE IS FOR
# --------------------
# This module defines the **public request schema** for the write
# endpoints of the GitHub REST plugin (POST / PATCH collaborator).
#
# KEY DESIGN DECISION
# -------------------
# The raw request body is forwarded to GitHub unchanged, so handlers read
# the body bytes themselves and only check that a `permission` field is
# present (functions/utils/json_fields.read_field_from_body).
#
# This model therefore documents the contract (OpenAPI) and tolerates any
# extra keys the caller sends along.
#
# Any breaking change here is a **public API change** for the
# reconciliation controller.
# -------------------------------------------------------------------

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PermissionRequest(BaseModel):
    """
    Request payload carrying the permission to grant.

    Values: pull, push, admin, maintain, triage.
    """

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={"example": {"permission": "push"}},
    )

    permission: str = Field(
        ...,
        description="Permission to grant (`pull`, `push`, `admin`, `maintain`, `triage`)",
    )
