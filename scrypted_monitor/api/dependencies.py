"""FastAPI dependencies."""

from fastapi import HTTPException, Request, status

from scrypted_monitor.services.task_service import TaskService


def get_task_service(request: Request) -> TaskService:
    """Task service created by the application lifespan."""
    service = getattr(request.app.state, "task_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Task service is not running",
        )
    return service
