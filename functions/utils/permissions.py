"""
functions/utils/permissions.py

WHAT THIS FILE IS FOR
---------------------
This module holds the *single translation table* between the permission
vocabulary exposed by this service (the one the reconciliation controller
writes in its custom resources) and the vocabulary GitHub uses.

Discrepancies for a collaborator:

    'permission' here    'permission' in GitHub    'role_name' in GitHub
    pull                 read                      read
    push                 write                     write
    admin                admin                     admin
    maintain             write                     maintain
    triage               read                      triage

GitHub's own `permission` field collapses maintain/triage, so `role_name`
is the only reliable source. Invitations use the role_name vocabulary in a
single-string `permissions` field.

DIRECTIONS
----------
- role_name -> permission: read->pull, write->push, others unchanged
- permission -> invitation permissions: pull->read, push->write, others unchanged
- boolean flags -> permission: strict precedence
      admin > maintain > push > triage > pull, else "none"
  (the flag set alone cannot tell e.g. maintain from admin-less push+triage,
  so the order is fixed and must not change)

Unrecognized values always pass through unchanged.

All functions here are pure: no I/O, no logging, input never mutated.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Optional


class PermissionLevel(str, Enum):
    PULL = "pull"
    PUSH = "push"
    ADMIN = "admin"
    MAINTAIN = "maintain"
    TRIAGE = "triage"


NO_PERMISSION = "none"

ROLE_NAME_TO_PERMISSION: Dict[str, str] = {
    "read": PermissionLevel.PULL.value,
    "write": PermissionLevel.PUSH.value,
    "admin": PermissionLevel.ADMIN.value,
    "maintain": PermissionLevel.MAINTAIN.value,
    "triage": PermissionLevel.TRIAGE.value,
}

PERMISSION_TO_ROLE_NAME: Dict[str, str] = {
    PermissionLevel.PULL.value: "read",
    PermissionLevel.PUSH.value: "write",
    PermissionLevel.ADMIN.value: "admin",
    PermissionLevel.MAINTAIN.value: "maintain",
    PermissionLevel.TRIAGE.value: "triage",
}

# Highest first.
FLAG_PRECEDENCE = (
    PermissionLevel.ADMIN.value,
    PermissionLevel.MAINTAIN.value,
    PermissionLevel.PUSH.value,
    PermissionLevel.TRIAGE.value,
    PermissionLevel.PULL.value,
)

# Flags GitHub reports for a user holding exactly the given level.
_IMPLIED_FLAGS: Dict[str, tuple] = {
    "pull": ("pull",),
    "push": ("pull", "push"),
    "triage": ("pull", "triage"),
    "maintain": ("pull", "push", "triage", "maintain"),
    "admin": ("pull", "push", "triage", "maintain", "admin"),
}


def role_name_to_permission(role_name: str, ignore_case: bool = False) -> str:
    key = role_name.lower() if ignore_case else role_name
    return ROLE_NAME_TO_PERMISSION.get(key, role_name)


def permission_to_role_name(permission: str) -> str:
    return PERMISSION_TO_ROLE_NAME.get(permission, permission)


def permission_from_flags(flags: Mapping[str, Any]) -> str:
    """Pick the highest level set in a GitHub `permissions` boolean object."""
    for level in FLAG_PRECEDENCE:
        if flags.get(level) is True:
            return level
    return NO_PERMISSION


def permission_flags(permission: str) -> Dict[str, bool]:
    """Boolean `permissions` object implied by a single level."""
    granted = _IMPLIED_FLAGS.get(permission, ())
    return {level: level in granted for level in FLAG_PRECEDENCE}


def correct_permission_field(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of `data` whose root `permission` is derived from `role_name`.

    Without a string `role_name` the input is returned as-is.
    """
    role_name = data.get("role_name")
    if not isinstance(role_name, str) or not role_name:
        return data

    out = dict(data)
    out["permission"] = role_name_to_permission(role_name)
    return out


def to_invitation_request_body(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Rewrite a `{"permission": "<level>"}` body for the invitation PATCH API.

    GitHub expects `permissions` (a single string, not an object) in its own
    vocabulary, and the singular field must go. Bodies without a string
    `permission` are returned as-is.
    """
    permission = data.get("permission")
    if not isinstance(permission, str):
        return data

    out = {k: v for k, v in data.items() if k != "permission"}
    out["permissions"] = permission_to_role_name(permission)
    return out


def describe(permission: Optional[Any]) -> str:
    """Render a permission value the way messages quote it."""
    if permission is None:
        return ""
    if isinstance(permission, bool):
        return str(permission).lower()
    return str(permission)
