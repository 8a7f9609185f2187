"""Request instrumentation for the Prometheus endpoint."""

from __future__ import annotations

import time
from typing import Any, Iterable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from voiceflow.telemetry import observe_request

_UNMATCHED_ROUTE = "unmatched"


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Count and time requests, labelled by route template."""

    def __init__(self, app: ASGIApp, *, excluded_paths: Iterable[str] = ("/metrics",)) -> None:
        super().__init__(app)
        self._excluded_paths = frozenset(excluded_paths)

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path in self._excluded_paths:
            return await call_next(request)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            observe_request(request.method, _route_label(request), 500, time.perf_counter() - started)
            raise

        # routing fills scope["route"] during call_next
        observe_request(
            request.method,
            _route_label(request),
            response.status_code,
            time.perf_counter() - started,
        )
        return response


def _route_label(request: Request) -> str:
    """Route template such as ``/recordings/{record_id}``; 404s share one label."""

    route: Any = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or _UNMATCHED_ROUTE


__all__ = ["TelemetryMiddleware"]
