"""Health and readiness endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel

from wolpertinger.bridges.store import RegistryStore
from wolpertinger.core.dependencies import get_registry_store
from wolpertinger.core.errors import get_request_id

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok"] = "ok"


class ReadinessCheck(BaseModel):
    """Individual readiness check result."""

    status: Literal["ok", "degraded", "down"]
    message: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    status: Literal["ok", "degraded", "down"]
    checks: dict[str, ReadinessCheck]
    generation: int
    bridges: int
    request_id: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Simple health check endpoint. Returns 200 if the API is running.",
)
async def health_check() -> HealthResponse:
    """Health check endpoint - just checks if the process is alive."""
    return HealthResponse(status="ok")


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    description="Reports whether a bridge registry is published and whether the last refresh worked.",
)
async def readiness_check(
    request: Request,
    store: RegistryStore = Depends(get_registry_store),
) -> ReadinessResponse:
    """Readiness check endpoint - checks the registry and its refresh task."""
    checks: dict[str, ReadinessCheck] = {}
    overall_status: Literal["ok", "degraded", "down"] = "ok"

    generation, registry = store.snapshot_with_generation()
    if generation > 0:
        checks["registry"] = ReadinessCheck(status="ok")
    else:
        checks["registry"] = ReadinessCheck(status="down", message="No registry published")
        overall_status = "down"

    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        checks["refresh"] = ReadinessCheck(status="ok", message="Not enabled")
    elif scheduler.last_error is not None:
        checks["refresh"] = ReadinessCheck(status="degraded", message=str(scheduler.last_error))
        if overall_status == "ok":
            overall_status = "degraded"
    else:
        checks["refresh"] = ReadinessCheck(status="ok")

    return ReadinessResponse(
        status=overall_status,
        checks=checks,
        generation=generation,
        bridges=len(registry),
        request_id=get_request_id(request),
    )
