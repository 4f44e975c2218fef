"""API router - includes all endpoints."""

from fastapi import APIRouter

from wolpertinger.api.v1.endpoints import health, probe

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(health.router, prefix="", tags=["Health"])
api_router.include_router(probe.router, prefix="", tags=["Probe"])
