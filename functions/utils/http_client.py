"""
functions/utils/http_client.py

Blocking GitHub reachability check behind GET /readyz.

The readiness endpoint is a plain `def` route, so FastAPI runs it in its
threadpool and a blocking `requests` call is fine there. Proxied traffic
never goes through this module: it uses the async GitHubClient in
functions/orchestrator/github_client.py, which forwards the caller's
credentials. This probe sends none, so GitHub usually answers 200 on the API
root, or 401/403 on Enterprise servers that require auth. Both mean "up".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

import requests

# float, or (connect, read)
TimeoutType = Union[float, Tuple[float, float]]


@dataclass(frozen=True)
class ProbeResult:
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def reachable(self) -> bool:
        return self.status_code is not None

    @property
    def ready(self) -> bool:
        return self.reachable and 200 <= self.status_code < 500


class HttpClient:
    """requests wrapper with one fixed timeout; `session` is injectable for tests."""

    def __init__(self, timeout_seconds: TimeoutType = 5.0, session: Optional[requests.Session] = None):
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def get(self, url: str) -> requests.Response:
        # raises requests.RequestException on DNS/connect/timeout failures
        return self.session.get(url, timeout=self.timeout_seconds)

    def probe(self, url: str) -> ProbeResult:
        try:
            resp = self.get(url)
        except requests.RequestException as exc:
            return ProbeResult(error=str(exc))
        return ProbeResult(status_code=resp.status_code)
