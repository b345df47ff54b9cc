"""
Flood Rescue AI - FastAPI Application Entry Point

Citizens report flood emergencies, an AI worker scores the risk, rescue
officers claim and close cases, and evacuation centers track occupancy.

DESIGN PRINCIPLES:
- AI enriches cases, it never moves them through the lifecycle
- Every lifecycle write is conditional on the state it was decided from
- Shelters never refuse entry because of a software cap
- Triage failures never take the HTTP service down

Usage:
    uvicorn flood_rescue.main:app --host 0.0.0.0 --port 8000
"""

from typing import Optional
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flood_rescue.config.firebase import Stores, build_stores
from flood_rescue.core.errors import (
    CaseNotFound,
    CenterNotFound,
    InvalidTransition,
    StoreUnavailable,
    TransitionConflict,
)
from flood_rescue.core.settings import Settings, settings as default_settings
from flood_rescue.routes import cases, centers, health
from flood_rescue.services.ai.base import GenerativeModelClient
from flood_rescue.services.ai.selector import build_model_client, candidates_for
from flood_rescue.services.capacity_ledger import CapacityLedger
from flood_rescue.services.case_service import CaseService
from flood_rescue.services.claim_coordinator import ClaimCoordinator
from flood_rescue.services.triage_worker import TriageWorker

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CaseNotFound)
    @app.exception_handler(CenterNotFound)
    async def not_found_handler(request: Request, exc: Exception):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(InvalidTransition)
    async def invalid_transition_handler(request: Request, exc: InvalidTransition):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "detail": str(exc),
                "outcome": "already_handled",
                "action": exc.action,
                "current_status": exc.current_status,
                "is_black_case": exc.is_black_case,
            },
        )

    @app.exception_handler(TransitionConflict)
    async def conflict_handler(request: Request, exc: TransitionConflict):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": str(exc), "outcome": "conflict", "action": exc.action},
        )

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
        logger.error(f"Store unavailable on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": f"Database unavailable: {exc}"},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": exc.errors()},
        )

    # Global exception handler to catch everything else
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"🔥 Unhandled exception on {request.method} {request.url.path}: {exc}",
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": f"Internal server error: {str(exc)}"},
        )


def create_app(
    settings: Optional[Settings] = None,
    stores: Optional[Stores] = None,
    model_client: Optional[GenerativeModelClient] = None,
    triage_in_background: bool = True,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: configuration (defaults to environment/.env)
        stores: pre-built store handles; built from settings on startup if omitted
        model_client: model backend for triage; built from settings if omitted
        triage_in_background: run model probing on a background thread
    """
    settings = settings or default_settings
    configure_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Flood emergency reporting, AI triage and rescue coordination",
        debug=settings.DEBUG,
    )
    app.state.settings = settings
    app.state.stores = None
    app.state.triage_worker = None

    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def startup_event():
        """
        Wire stores and services, then start the triage worker.
        """
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

        try:
            app_stores = stores or build_stores(settings)
        except RuntimeError as e:
            logger.error(f"Store initialization failed: {e}")
            logger.error("   The app will start but database operations will return 503.")
            return

        app.state.stores = app_stores
        app.state.case_service = CaseService(app_stores.cases, settings.CRITICAL_RISK_SCORE)
        app.state.claim_coordinator = ClaimCoordinator(app_stores.cases)
        app.state.capacity_ledger = CapacityLedger(app_stores.centers)

        if not settings.TRIAGE_ENABLED:
            logger.info("⚠️ Triage disabled (TRIAGE_ENABLED=false)")
            return

        try:
            client = model_client or build_model_client(settings)
        except ValueError as e:
            logger.error(f"❌ Triage not started: {e}")
            return

        worker = TriageWorker(
            app_stores.cases,
            client,
            candidates_for(client, settings),
            max_workers=settings.TRIAGE_MAX_WORKERS,
        )
        app.state.triage_worker = worker
        if triage_in_background:
            worker.start_in_background()
        else:
            worker.start()

    @app.on_event("shutdown")
    def shutdown_event():
        logger.info(f"Shutting down {settings.APP_NAME}")
        worker = app.state.triage_worker
        if worker is not None:
            worker.stop()

    app.include_router(health.router)
    app.include_router(cases.router)
    app.include_router(centers.router)

    @app.get("/")
    def root():
        """
        Root endpoint - API information.
        """
        return {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "running",
            "docs": "/docs",
            "health": "/health",
            "triage": "/health/triage",
        }

    return app


app = create_app()
