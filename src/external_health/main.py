"""FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
import structlog

from . import __description__, __version__
from .api.error_handlers import (
    general_exception_handler,
    invalid_config_exception_handler,
    service_not_registered_handler,
    storage_exception_handler,
    unexpected_exception_handler,
    validation_exception_handler,
)
from .api.health import router as health_router
from .config.settings import ApplicationSettings, get_settings
from .domain.exceptions import (
    HealthMonitorException,
    InvalidServiceConfigException,
    ServiceNotRegisteredException,
    StorageException,
)
from .health.factory import create_monitor
from .health.monitor import ExternalHealthMonitor
from .observability.logging import CorrelationIDMiddleware, configure_from_settings
from .resilience.storage import RedisStore

logger = structlog.get_logger()


def create_app(
    settings: ApplicationSettings | None = None,
    monitor: ExternalHealthMonitor | None = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Application settings; loaded from the environment if omitted
        monitor: Pre-built monitor; built from settings at startup if omitted

    Returns:
        Configured application
    """
    if settings is None:
        load_dotenv()
        settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        observability = settings.observability
        configure_from_settings(
            observability.log_level.value,
            observability.log_format,
            observability.log_file,
        )

        owns_monitor = app.state.health_monitor is None
        if owns_monitor:
            app.state.health_monitor = create_monitor(settings)
        health_monitor: ExternalHealthMonitor = app.state.health_monitor

        if isinstance(health_monitor.store, RedisStore):
            await health_monitor.store.connect()

        logger.info(
            "Starting external health monitor",
            version=__version__,
            environment=settings.environment.value,
            services=len(health_monitor.get_registered_services()),
        )
        try:
            yield
        finally:
            if owns_monitor:
                await health_monitor.close()
                app.state.health_monitor = None
            logger.info("External health monitor stopped")

    app = FastAPI(
        title=settings.app_name,
        description=__description__,
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.health_monitor = monitor

    # Add middleware
    app.middleware("http")(CorrelationIDMiddleware())

    # Add exception handlers
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(
        ServiceNotRegisteredException, service_not_registered_handler
    )
    app.add_exception_handler(
        InvalidServiceConfigException, invalid_config_exception_handler
    )
    app.add_exception_handler(StorageException, storage_exception_handler)
    app.add_exception_handler(HealthMonitorException, general_exception_handler)
    app.add_exception_handler(Exception, unexpected_exception_handler)

    # Include API routers
    app.include_router(health_router)

    return app
