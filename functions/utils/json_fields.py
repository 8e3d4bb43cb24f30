"""
functions/utils/json_fields.py

WHAT THIS FILE IS FOR
---------------------
Small, pure helpers for reshaping loosely-typed JSON bodies coming from
(or going to) GitHub:

- parse_json_object: bytes -> dict, failing on anything that is not an object
- ResponseFlattener: copy nested fields to the root under new keys while
  keeping every original root key
- add_field: set one root key
- read_field / read_field_from_body: extract one root key, failing when absent

FLATTENING RULES
----------------
- Every original root key is kept unchanged
- Each mapping (source dot path, target key) writes the resolved value at the
  root; mappings are applied in order, so the last one wins on collision
- A missing key anywhere on a path, or a path that goes through a non-object,
  fails the WHOLE call. A partially flattened object is never returned.

Example:
    flattener = ResponseFlattener([FieldMapping("user.id", "id")])
    flattener.flatten({"user": {"id": 7}, "role_name": "write"})
    -> {"user": {"id": 7}, "role_name": "write", "id": 7}

WHAT THIS FILE IS NOT FOR
-------------------------
This module MUST NOT perform I/O, log, or apply GitHub vocabulary rules
(see functions/utils/permissions.py). Inputs are never mutated.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Union

from functions.utils.errors import FieldNotFoundError, InvalidJSONError, InvalidPathError

JSONBody = Union[bytes, bytearray, str]


@dataclass(frozen=True)
class FieldMapping:
    source_path: str  # e.g. "user.permissions"
    target_key: str  # e.g. "permissions"


def parse_json_object(body: JSONBody) -> Dict[str, Any]:
    try:
        data = json.loads(body)
    except (TypeError, ValueError) as exc:
        raise InvalidJSONError(f"failed to unmarshal body: {exc}") from exc

    if not isinstance(data, dict):
        raise InvalidJSONError(f"expected a JSON object, got {type(data).__name__}")
    return data


def extract_value(data: Dict[str, Any], path: str) -> Any:
    """Resolve a dot path ("user.html_url") inside nested objects."""
    if not path:
        raise FieldNotFoundError(path, path)

    parts = path.split(".")
    current: Any = data

    for part in parts[:-1]:
        if part not in current:
            raise FieldNotFoundError(part, path)
        current = current[part]
        if not isinstance(current, dict):
            raise InvalidPathError(part, path)

    last = parts[-1]
    if last not in current:
        raise FieldNotFoundError(last, path)
    return current[last]


class ResponseFlattener:
    """Bring nested fields to the root of a JSON object."""

    def __init__(self, mappings: Iterable[FieldMapping]) -> None:
        self.mappings: List[FieldMapping] = list(mappings)

    def flatten(self, data: Dict[str, Any]) -> Dict[str, Any]:
        flattened = dict(data)
        for mapping in self.mappings:
            # resolve against the original so earlier mappings cannot shadow a path
            flattened[mapping.target_key] = extract_value(data, mapping.source_path)
        return flattened

    def flatten_bytes(self, body: JSONBody) -> Dict[str, Any]:
        return self.flatten(parse_json_object(body))


# GitHub's collaborator permission response keeps the useful bits under "user".
GITHUB_USER_PERMISSION_FLATTENER = ResponseFlattener(
    [
        FieldMapping("user.permissions", "permissions"),
        FieldMapping("user.html_url", "html_url"),
        FieldMapping("user.id", "id"),
    ]
)


def add_field(data: Dict[str, Any], key: str, value: Any) -> Dict[str, Any]:
    out = dict(data)
    out[key] = value
    return out


def read_field(data: Dict[str, Any], key: str) -> Any:
    if key not in data:
        raise FieldNotFoundError(key)
    return data[key]


def read_field_from_body(body: JSONBody, key: str) -> Any:
    return read_field(parse_json_object(body), key)


def dump_json(data: Any) -> bytes:
    return json.dumps(data, separators=(",", ":")).encode("utf-8")
