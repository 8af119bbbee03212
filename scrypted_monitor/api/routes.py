"""Health endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Health check endpoint.

    Returns:
        Status, timestamp in ISO8601 format, store backend and timer count
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    service = getattr(request.app.state, "task_service", None)
    if service is None:
        health_status["status"] = "starting"
        return health_status

    health_status["config_store"] = getattr(service.store, "backend", "unknown")
    health_status["active_timers"] = len(service.reconciler.active_timers)
    return health_status
