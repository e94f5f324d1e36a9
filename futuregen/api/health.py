"""Health check endpoints."""

from datetime import datetime, timezone
from fastapi import APIRouter, Request

from .. import __version__

router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@router.get("/")
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": _now(),
        "service": "futuregen",
        "version": __version__,
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """Ready once a credential is configured; calls fail fast without one."""
    config = request.app.state.config
    return {
        "ready": config.has_credential,
        "credential_present": config.has_credential,
        "default_model": config.default_model.value,
        "timestamp": _now(),
    }
