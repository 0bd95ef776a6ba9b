"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires all services against the booking API, registers routers,
and logs the upstream status on startup.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from backend.controllers.admin_controller import router as admin_router
from backend.controllers.booking_controller import router as booking_router
from backend.domain.constraints import policy_from_settings, validate_booking_policy
from backend.repository.booking_api_repository import BookingApiRepository
from backend.services.auth_service import AuthService
from backend.services.availability_service import AvailabilityService
from backend.services.booking_service import BookingWorkflowService
from backend.services.daily_overview_service import DailyOverviewService
from backend.services.history_service import HistoryService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import configure_logging, get_logger


logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[BookingApiRepository] = None,
) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Every service shares one repository and is exposed via app.state, so
    tests can pass a fake repository in place of the HTTP client.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    validate_booking_policy(policy_from_settings(settings))

    # --- Repository (one HTTP session to the booking API) ---
    repository = repository or BookingApiRepository(settings)

    # --- Services (business logic, no direct HTTP access) ---
    availability_service = AvailabilityService(repository=repository, settings=settings)
    booking_service = BookingWorkflowService(repository=repository, settings=settings)
    daily_overview_service = DailyOverviewService(repository=repository, settings=settings)
    history_service = HistoryService(repository=repository, settings=settings)
    auth_service = AuthService(repository=repository, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Log upstream reachability, then release the HTTP session on shutdown."""
        _startup(app)
        yield
        app.state.repository.close()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(booking_router)
    app.include_router(admin_router)

    # --- Inject services into app.state for dependency resolution ---
    app.state.settings = settings
    app.state.repository = repository
    app.state.availability_service = availability_service
    app.state.booking_service = booking_service
    app.state.daily_overview_service = daily_overview_service
    app.state.history_service = history_service
    app.state.auth_service = auth_service

    return app


def _startup(app: FastAPI) -> None:
    """
    Startup never blocks on the booking API: an unreachable upstream is
    logged and requests answer 503 until it comes back.
    """
    settings: Settings = app.state.settings
    repository = app.state.repository

    logger.info("Startup: booking API at %s", settings.booking_api_base_url)
    if repository.ping():
        logger.info("Startup: booking API reachable")
    else:
        logger.warning("Startup: booking API not reachable yet, serving anyway")

    logger.info("Startup complete (timezone %s)", settings.booking_timezone)


# Module-level app object for uvicorn
app = create_app()
