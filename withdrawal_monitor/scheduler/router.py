"""
Poll scheduler API routes.

Provides endpoints to run a cycle on demand, start/stop the schedule and
read status and metrics.
"""

from fastapi import APIRouter, HTTPException, status
from typing import Dict, Any, Optional
from pydantic import BaseModel, Field
import logging

from withdrawal_monitor.core.services import get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/poller", tags=["poller"])


class PollTriggerResponse(BaseModel):
    """Response for manual poll trigger."""

    run_id: str
    status: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class PollerControlResponse(BaseModel):
    running: bool
    message: str


class MetricsResponse(BaseModel):
    """Response for metrics endpoint."""

    aggregate: Dict[str, Any]
    success_rate: float
    recent_runs: list[Dict[str, Any]]


@router.post("/poll", response_model=PollTriggerResponse)
async def trigger_poll():
    """
    Run a single poll cycle immediately, regardless of the schedule.

    If a cycle is already running the request is answered with status
    ``skipped``; it is not queued.
    """
    scheduler = get_services().scheduler
    try:
        result = await scheduler.poll_once()
    except Exception as e:
        logger.error(f"Manual poll failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Poll failed: {str(e)}",
        )

    if result["status"] == "skipped":
        message = "Poll skipped: a cycle is already running"
    else:
        message = "Poll completed"

    return PollTriggerResponse(
        run_id=result["run_id"],
        status=result["status"],
        message=message,
        details=result,
    )


@router.get("/status")
async def get_status() -> Dict[str, Any]:
    return get_services().scheduler.get_status()


@router.get("/metrics", response_model=MetricsResponse)
async def get_metrics(hours: Optional[int] = None):
    """
    Aggregate metrics for poll cycles.

    Args:
        hours: Limit to last N hours (omit for all history)
    """
    return get_services().scheduler.get_metrics(hours=hours)


@router.post("/start", response_model=PollerControlResponse)
async def start_poller():
    scheduler = get_services().scheduler
    if scheduler.is_running:
        return PollerControlResponse(running=True, message="Poller already running")
    await scheduler.start()
    return PollerControlResponse(running=True, message="Poller started")


@router.post("/stop", response_model=PollerControlResponse)
async def stop_poller():
    scheduler = get_services().scheduler
    if not scheduler.is_running:
        return PollerControlResponse(running=False, message="Poller is not running")
    await scheduler.stop()
    return PollerControlResponse(running=False, message="Poller stopped")
