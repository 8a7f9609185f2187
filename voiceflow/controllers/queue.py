"""Offline mutation queue status and connectivity endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status

from voiceflow.controllers.dependencies import ServicesDep
from voiceflow.services.offline_queue import QueueStoreError, ReplayReport
from voiceflow.views import (
    ConnectivityResponse,
    ConnectivityUpdate,
    QueuedOperationView,
    QueueStatus,
    ReplayReportView,
)

router = APIRouter(prefix="/queue", tags=["queue"])

logger = logging.getLogger(__name__)


def _report_view(report: ReplayReport) -> ReplayReportView:
    return ReplayReportView(
        replayed=report.replayed,
        retained=report.retained,
        dropped=report.dropped,
        skipped=report.skipped,
    )


@router.get("", response_model=QueueStatus)
async def queue_status(services: ServicesDep) -> QueueStatus:
    queue = services.offline_queue
    try:
        operations = await queue.pending()
    except QueueStoreError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    return QueueStatus(
        online=queue.online,
        replaying=queue.replaying,
        pending=len(operations),
        dropped_total=queue.dropped_total,
        operations=[QueuedOperationView(**op.model_dump(mode="json")) for op in operations],
    )


@router.post("/connectivity", response_model=ConnectivityResponse)
async def update_connectivity(
    payload: ConnectivityUpdate,
    services: ServicesDep,
) -> ConnectivityResponse:
    """Report connectivity; coming back online replays the queue once."""

    report = await services.offline_queue.set_online(payload.online)
    logger.info("Connectivity set online=%s", payload.online)
    return ConnectivityResponse(
        online=services.offline_queue.online,
        replay=_report_view(report) if report is not None else None,
    )


@router.post("/replay", response_model=ReplayReportView)
async def replay_queue(services: ServicesDep) -> ReplayReportView:
    report = await services.offline_queue.replay()
    return _report_view(report)
