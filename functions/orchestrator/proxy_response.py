"""
functions/orchestrator/proxy_response.py

What an orchestrator hands back to the HTTP layer: a status code, an
optional body, its media type and the upstream headers worth relaying.
api.py turns it into a Starlette Response; orchestrators never touch
FastAPI objects.

Relayed headers are GitHub's rate-limit and cache headers (`X-RateLimit-*`,
`Retry-After`, `ETag`, ...), so the controller can back off when GitHub
throttles it. Framing headers (content-length, transfer-encoding, ...) are
never copied: Starlette sets its own.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from functions.orchestrator.github_client import UpstreamResponse
from functions.utils.json_fields import dump_json

JSON_MEDIA_TYPE = "application/json"

# statuses that must not carry a body on the wire
BODYLESS_STATUSES = frozenset({204, 304})

RELAYED_HEADERS = frozenset(
    {
        "retry-after",
        "etag",
        "last-modified",
        "link",
        "x-github-request-id",
        "x-accepted-github-permissions",
    }
)
RELAYED_HEADER_PREFIXES = ("x-ratelimit-",)


@dataclass(frozen=True)
class ProxyResponse:
    status_code: int
    body: Optional[bytes] = None
    media_type: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        return json.loads(self.body) if self.body else None


def relayed_headers(upstream: UpstreamResponse) -> Dict[str, str]:
    return {
        name: value
        for name, value in upstream.headers.items()
        if name in RELAYED_HEADERS or name.startswith(RELAYED_HEADER_PREFIXES)
    }


def json_response(
    status_code: int, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None
) -> ProxyResponse:
    return ProxyResponse(
        status_code=status_code,
        body=dump_json(payload),
        media_type=JSON_MEDIA_TYPE,
        headers=dict(headers or {}),
    )


def message_response(status_code: int, message: str) -> ProxyResponse:
    return json_response(status_code, {"message": message})


def no_content() -> ProxyResponse:
    return ProxyResponse(status_code=204)


def raw_json_response(
    status_code: int, body: bytes, headers: Optional[Dict[str, str]] = None
) -> ProxyResponse:
    """Pass an un-normalized upstream body through, labelled as JSON."""
    return ProxyResponse(
        status_code=status_code,
        body=body,
        media_type=JSON_MEDIA_TYPE,
        headers=dict(headers or {}),
    )


def forward(upstream: UpstreamResponse) -> ProxyResponse:
    """
    Hand GitHub's answer to the caller as-is, relayed headers included.

    An empty upstream body is replaced with "Error: <status line>" so the
    caller always sees something.
    """
    headers = relayed_headers(upstream)
    if upstream.status_code in BODYLESS_STATUSES:
        return ProxyResponse(status_code=upstream.status_code, headers=headers)
    if upstream.content:
        return ProxyResponse(
            status_code=upstream.status_code,
            body=upstream.content,
            media_type=upstream.content_type or JSON_MEDIA_TYPE,
            headers=headers,
        )
    return ProxyResponse(
        status_code=upstream.status_code,
        body=f"Error: {upstream.status_line}".encode("utf-8"),
        media_type="text/plain; charset=utf-8",
        headers=headers,
    )
