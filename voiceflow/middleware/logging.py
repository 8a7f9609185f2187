"""Per-request console logging with a correlation id."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger = logging.getLogger("voiceflow.middleware.requests")

REQUEST_ID_HEADER = "X-Request-ID"

COLOR_RESET = "\u001b[0m"
COLOR_GREEN = "\u001b[32m"
COLOR_CYAN = "\u001b[36m"
COLOR_YELLOW = "\u001b[33m"
COLOR_RED = "\u001b[31m"


def _status_color(status: Optional[int]) -> str:
    if status is None:
        return COLOR_CYAN
    if status >= 500:
        return COLOR_RED
    if status >= 400:
        return COLOR_YELLOW
    if status >= 200:
        return COLOR_GREEN
    return COLOR_CYAN


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one colourised line per request and echo its request id.

    Uploads can be large, so the declared ``Content-Length`` is logged
    alongside the timing; the body itself is never read here.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()
        entry: dict[str, Any] = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "bytes_in": request.headers.get("content-length"),
            "client_ip": request.client.host if request.client else None,
        }

        try:
            response = await call_next(request)
        except Exception as exc:
            entry["status"] = 500
            entry["duration_ms"] = _elapsed_ms(started)
            entry["error"] = repr(exc)
            logger.exception(_format_line(entry))
            raise

        entry["status"] = response.status_code
        entry["duration_ms"] = _elapsed_ms(started)
        logger.info(_format_line(entry))
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _format_line(entry: dict[str, Any]) -> str:
    message = ", ".join(
        f"{name}={value if value is not None else '-'}" for name, value in entry.items()
    )
    return f"{_status_color(entry.get('status'))}{message}{COLOR_RESET}"


__all__ = ["REQUEST_ID_HEADER", "RequestLoggingMiddleware"]
