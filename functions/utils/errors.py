"""
functions/utils/errors.py

Exception taxonomy for the GitHub REST plugin.

- PluginError subclasses carry an HTTP status and a machine code and are
  rendered by api.py with the standard error envelope.
- NormalizationError subclasses are raised by the pure JSON helpers and are
  never surfaced to callers: orchestrators log them and fall back to the
  un-normalized upstream body.
"""

from __future__ import annotations

from typing import Optional


class PluginError(Exception):
    """Base exception for errors answered by this service itself."""

    http_status = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"[{self.code}] {message}")


class InboundValidationError(PluginError):
    """Raised when the inbound request body is missing a required field."""

    http_status = 400
    code = "VALIDATION_FAILED"

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.field = field
        super().__init__(message)


class UpstreamTransportError(PluginError):
    """Raised when GitHub could not be reached at all (DNS, connect, timeout...)."""

    code = "UPSTREAM_UNREACHABLE"


class CollaboratorStatusError(PluginError):
    """Raised when the collaborator check answers neither 204 nor 404."""

    code = "COLLABORATOR_STATUS_UNKNOWN"

    def __init__(self, message: str, upstream_status: Optional[int] = None) -> None:
        self.upstream_status = upstream_status
        super().__init__(message)


class NormalizationError(Exception):
    """Base class for failures of the JSON reshaping helpers."""


class FieldNotFoundError(NormalizationError, KeyError):
    """A requested field is absent."""

    def __init__(self, field: str, path: Optional[str] = None) -> None:
        self.field = field
        self.path = path
        if path and path != field:
            message = f"field {field} not found in path {path}"
        else:
            message = f"field {field} not found"
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class InvalidPathError(NormalizationError):
    """A dot path traverses through a value that is not an object."""

    def __init__(self, field: str, path: str) -> None:
        self.field = field
        self.path = path
        super().__init__(f"field {field} is not an object in path {path}")


class InvalidJSONError(NormalizationError, ValueError):
    """A body is not valid JSON, or not a JSON object where one is required."""


class UpstreamPayloadError(PluginError):
    """Raised when GitHub answered 200 with a body that cannot be read."""

    code = "UPSTREAM_INVALID_PAYLOAD"
