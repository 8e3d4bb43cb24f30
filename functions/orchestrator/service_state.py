"""
functions/orchestrator/service_state.py

Process health flags for the Kubernetes probes.

One ServiceState instance is created with the application and stored on
`app.state`; the lifespan hook flips it, the /healthz and /readyz handlers
read it. There is no module-level state.
"""

from __future__ import annotations

import threading


class ServiceState:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._healthy = False
        self._ready = False

    @property
    def healthy(self) -> bool:
        with self._lock:
            return self._healthy

    @property
    def ready(self) -> bool:
        with self._lock:
            return self._ready

    def mark_started(self) -> None:
        with self._lock:
            self._healthy = True
            self._ready = True

    def mark_draining(self) -> None:
        # still alive while in-flight requests finish, but take no new traffic
        with self._lock:
            self._ready = False

    def mark_stopped(self) -> None:
        with self._lock:
            self._ready = False
            self._healthy = False
