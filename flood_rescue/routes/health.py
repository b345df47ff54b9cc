"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and triage worker status.
The process keeps answering here even when triage is halted.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Request

from flood_rescue.core.errors import StoreUnavailable

router = APIRouter(prefix="/health", tags=["Health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
def health_check(request: Request):
    """
    Basic health check endpoint.
    Returns 200 if service is running.
    """
    settings = request.app.state.settings
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": _now(),
    }


@router.get("/db")
def database_health(request: Request):
    """
    Store connectivity check.
    Performs a lightweight read against the case collection.
    """
    stores = getattr(request.app.state, "stores", None)
    if stores is None:
        raise HTTPException(status_code=503, detail="Store not initialized")
    try:
        stores.cases.ping()
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=f"Database connection failed: {e}")
    return {
        "status": "healthy",
        "database": type(stores.cases).__name__,
        "connected": True,
        "timestamp": _now(),
    }


@router.get("/triage")
def triage_health(request: Request):
    """
    Triage worker state. `model_unavailable` means no model answered the
    startup probe: cases are still accepted, but none will be scored.
    """
    worker = getattr(request.app.state, "triage_worker", None)
    if worker is None:
        return {"state": "disabled", "model": None, "timestamp": _now()}
    status = worker.status()
    status["timestamp"] = _now()
    return status
