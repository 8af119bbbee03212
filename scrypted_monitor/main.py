"""FastAPI application initialization."""

from contextlib import asynccontextmanager
from uuid import uuid4

from dotenv import load_dotenv

# Load environment variables before anything else
load_dotenv()

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from scrypted_monitor import __version__
from scrypted_monitor.api.middleware import CorrelationIdMiddleware
from scrypted_monitor.api.routes import router
from scrypted_monitor.api.tasks import router as tasks_router
from scrypted_monitor.config import get_settings
from scrypted_monitor.services.home_assistant_service import HomeAssistantService
from scrypted_monitor.services.host_bridge_service import HostBridgeClient
from scrypted_monitor.services.logging_service import configure_logging
from scrypted_monitor.services.notification_service import WebhookNotificationService
from scrypted_monitor.services.package_registry_service import PackageRegistryService
from scrypted_monitor.services.storage_service import close_redis, create_config_store
from scrypted_monitor.services.task_service import TaskService


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    settings = get_settings()
    configure_logging(settings.log_level)
    logger = structlog.get_logger(__name__)

    store = await create_config_store()
    host_bridge = HostBridgeClient()
    home_assistant = HomeAssistantService()
    package_registry = PackageRegistryService()
    notifier = WebhookNotificationService()

    task_service = TaskService(
        store=store,
        registry=host_bridge,
        diagnostics=host_bridge,
        home_assistant=home_assistant,
        package_registry=package_registry,
        notifier=notifier,
        host=host_bridge,
    )
    task_service.start()
    app.state.task_service = task_service

    logger.info(
        "application_started",
        config_store=store.backend,
        timezone=settings.timezone,
        log_level=settings.log_level,
    )

    yield

    # Shutdown
    app.state.task_service = None
    try:
        await task_service.stop()
    except Exception as e:
        logger.warning("task_service_stop_failed", error=str(e))

    for client in (host_bridge, home_assistant, package_registry, notifier):
        try:
            await client.close()
        except Exception as e:
            logger.debug("http_client_close_failed", error=str(e))

    try:
        await close_redis()
    except Exception as e:
        logger.debug("redis_close_failed", error=str(e))

    logger.info("application_shutdown")


app = FastAPI(
    title="Scrypted Monitor",
    description="Scheduled maintenance and reporting tasks for Scrypted",
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors with a 400 and the correlation ID."""
    correlation_id = getattr(request.state, "correlation_id", None) or str(uuid4())
    logger = structlog.get_logger()

    errors = exc.errors()
    if errors:
        first_error = errors[0]
        field = ".".join(str(loc) for loc in first_error.get("loc", ["unknown"]))
        message = first_error.get("msg", "Validation failed")
        detail = f"Field '{field}': {message}"
    else:
        detail = "Request validation failed"

    logger.warning(
        "validation_error",
        correlation_id=correlation_id,
        detail=detail,
    )

    return JSONResponse(
        status_code=400,
        content={
            "error": "Validation error",
            "detail": detail,
            "correlation_id": correlation_id,
        },
        headers={"X-Correlation-Id": correlation_id},
    )


# Correlation ID middleware for request tracking and observability
app.add_middleware(CorrelationIdMiddleware)

app.include_router(tasks_router)
app.include_router(router)
