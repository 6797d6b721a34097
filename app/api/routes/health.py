"""
Health Check Endpoints

Provides health, readiness, and liveness probes for monitoring,
load balancers, and Kubernetes.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.config import settings
from app.core.scheduling.services import get_service_resolver
from app.infra.meevo import get_meevo_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])

VERSION = "2.1.0"

FEATURES = [
    "dynamic active employee roster (1-hour cache)",
    "concurrent multi-stylist availability",
    "multi-service group availability",
    "back-to-back slot finder",
    "same-stylist back-to-back finder",
    "time preference filter",
    "formatted date fields",
    "overlapping discovery windows to bypass the per-call opening cap",
]

# Track application start time for uptime calculation
_start_time: Optional[datetime] = None


def set_start_time() -> None:
    """Set application start time. Called once on startup."""
    global _start_time
    _start_time = datetime.now(timezone.utc)


def get_uptime_seconds() -> Optional[float]:
    """Get application uptime in seconds."""
    if _start_time is None:
        return None
    return (datetime.now(timezone.utc) - _start_time).total_seconds()


class HealthResponse(BaseModel):
    """Basic health check response."""
    status: str
    timestamp: datetime
    version: str
    environment: str


class ReadyResponse(BaseModel):
    """Readiness check response with dependency status."""
    status: str
    timestamp: datetime
    checks: dict[str, str]


class LiveResponse(BaseModel):
    """Liveness check response."""
    status: str
    timestamp: datetime
    uptime_seconds: Optional[float] = None


class DetailedHealthResponse(BaseModel):
    """Detailed health check with all system info."""
    status: str
    timestamp: datetime
    version: str
    environment: str
    uptime_seconds: Optional[float]
    checks: dict[str, str]
    features: list[str]
    config: dict[str, str]


async def _upstream_checks() -> dict[str, str]:
    checks = {"credentials": "ok" if settings.has_credentials else "missing"}
    if settings.has_credentials:
        token_ok = await get_meevo_client().check_health()
        checks["meevo_token"] = "ok" if token_ok else "failed"
    return checks


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns 200 if the application is running. Does not check dependencies.",
)
async def health() -> HealthResponse:
    """
    Basic health check.

    Always returns 200 if the application is running.
    Use /health/ready for dependency checks.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=VERSION,
        environment=settings.app_env,
    )


@router.get(
    "/ready",
    response_model=ReadyResponse,
    summary="Readiness probe",
    description="Checks Meevo credentials and token acquisition. Returns 503 if either fails.",
    responses={
        200: {"description": "Upstream is reachable"},
        503: {"description": "Credentials missing or token request failed"},
    },
)
async def ready() -> ReadyResponse:
    """
    Readiness probe for load balancers and Kubernetes.

    Returns 503 unless a Meevo access token can be obtained.
    """
    checks = await _upstream_checks()
    all_ok = all(v == "ok" for v in checks.values())
    if not all_ok:
        logger.warning(f"Readiness check failed: {checks}")

    response = ReadyResponse(
        status="ready" if all_ok else "not_ready",
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )

    if not all_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(mode="json"),
        )

    return response


@router.get(
    "/live",
    response_model=LiveResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    description="Returns 200 if the process is alive. Used for container restart decisions.",
)
async def live() -> LiveResponse:
    """Liveness probe for Kubernetes."""
    return LiveResponse(
        status="alive",
        timestamp=datetime.now(timezone.utc),
        uptime_seconds=get_uptime_seconds(),
    )


@router.get(
    "/detailed",
    response_model=DetailedHealthResponse,
    summary="Detailed health check",
    description="Returns detailed system health. Only available in development.",
    include_in_schema=settings.is_development,
)
async def detailed() -> DetailedHealthResponse:
    """
    Detailed health check with system info.

    Only available in development mode for debugging.
    """
    if not settings.is_development:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Not found",
        )

    checks = await _upstream_checks()

    # Safe config info (no secrets)
    config = {
        "app_name": settings.app_name,
        "environment": settings.app_env,
        "location_id": settings.meevo_location_id,
        "timezone": settings.location_timezone,
        "discovery_day": f"{settings.discovery_day_start}-{settings.discovery_day_end}",
        "exhaustive_assignment": str(settings.exhaustive_assignment),
        "service_aliases": ", ".join(sorted(get_service_resolver().aliases)),
    }

    all_ok = all(v == "ok" for v in checks.values())

    return DetailedHealthResponse(
        status="healthy" if all_ok else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=VERSION,
        environment=settings.app_env,
        uptime_seconds=get_uptime_seconds(),
        checks=checks,
        features=FEATURES,
        config=config,
    )
