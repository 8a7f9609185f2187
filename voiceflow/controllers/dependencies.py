"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from voiceflow.context import ServiceContext, build_service_context


def get_services(request: Request) -> ServiceContext:
    """Return the app's service context, building it on first use."""

    services = getattr(request.app.state, "services", None)
    if services is None:
        services = build_service_context()
        request.app.state.services = services
    return services


ServicesDep = Annotated[ServiceContext, Depends(get_services)]


__all__ = ["ServicesDep", "get_services"]
