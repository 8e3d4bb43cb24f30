"""
functions/orchestrator/github_client.py

WHAT THIS FILE IS FOR
---------------------
This module provides the asynchronous access layer to the GitHub REST API
used by every proxied endpoint.

It exists to:
- Centralize outbound GitHub calls in one place
- Forward the caller's Authorization header verbatim (never inspected,
  never logged)
- Translate transport failures (DNS, connect, timeout...) into
  UpstreamTransportError so handlers can answer 500 with the cause
- Return the raw upstream status/body untouched: interpreting GitHub's
  status codes is the orchestrators' job

WHAT THIS FILE IS NOT FOR
-------------------------
This module is NOT responsible for:
- Retries (nothing in this service retries; the controller does)
- Caching
- Response normalization

CANCELLATION
------------
Calls are plain awaits on httpx.AsyncClient. When the inbound request task
is cancelled, the in-flight upstream call is cancelled with it.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

import httpx
import structlog

from functions.utils.errors import UpstreamTransportError
from functions.utils.settings import Settings

logger = structlog.get_logger(__name__)


@dataclass
class UpstreamResponse:
    status_code: int
    content: bytes = b""
    reason: str = ""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("content-type")

    @property
    def status_line(self) -> str:
        return f"{self.status_code} {self.reason}".strip()


def github_path(*segments: Any) -> str:
    """Join path parameters into an upstream path, escaping each segment."""
    return "/" + "/".join(quote(str(s), safe="") for s in segments)


class GitHubClient:
    """
    Thin async client around the GitHub REST API.

    - Base URL and timeout come from Settings
    - `transport` lets tests plug in httpx.MockTransport
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self._base_url = settings.github_base_url
        self._timeout = settings.http_timeout_seconds
        self._transport = transport

    async def request(
        self,
        method: str,
        path: str,
        *,
        authorization: Optional[str] = None,
        json_body: Optional[bytes] = None,
        params: Optional[Mapping[str, Any]] = None,
        accept: Optional[str] = None,
    ) -> UpstreamResponse:
        """
        Perform one call to GitHub.

        `json_body` is sent as-is (already serialized). Raises
        UpstreamTransportError when no HTTP response was obtained.
        """
        url = self._base_url + path
        headers: Dict[str, str] = {}
        if authorization:
            headers["Authorization"] = authorization
        if accept:
            headers["Accept"] = accept
        if json_body:
            headers["Content-Type"] = "application/json"

        started = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.request(
                    method,
                    url,
                    headers=headers,
                    content=json_body or None,
                    params=params,
                )
        except httpx.RequestError as exc:
            logger.warning(
                "github_request_failed",
                method=method,
                path=path,
                error=str(exc),
            )
            raise UpstreamTransportError(
                f"failed to execute request {method} {url}: {exc}"
            ) from exc

        logger.debug(
            "github_request_done",
            method=method,
            path=path,
            status_code=resp.status_code,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
        )

        return UpstreamResponse(
            status_code=resp.status_code,
            content=resp.content,
            reason=resp.reason_phrase,
            headers={k.lower(): v for k, v in resp.headers.items()},
        )
