"""Bridge fetch endpoint for measurement probes."""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from wolpertinger.bridges.distributor import Distributor, ProbeRequest
from wolpertinger.core.dependencies import get_distributor, get_probe_request
from wolpertinger.schemas.probe import ProbeResponse, serialize_endpoint

router = APIRouter(tags=["Probe"])

BANNER = "Beware the Wolpertinger."


@router.get("/", response_class=PlainTextResponse, summary="Service banner")
async def index() -> str:
    """Static banner so monitoring can tell the service is alive."""
    return BANNER + "\n"


@router.get(
    "/fetch",
    response_model=ProbeResponse,
    summary="Fetch bridges to probe",
    description="Returns up to a handful of unallocated bridges keyed by external identifier.",
)
def fetch_bridges(
    probe: ProbeRequest = Depends(get_probe_request),
    distributor: Distributor = Depends(get_distributor),
) -> ProbeResponse:
    """Hand a probe a small set of bridges to test."""
    endpoints = distributor.select(probe)
    return {endpoint_id: serialize_endpoint(endpoint) for endpoint_id, endpoint in endpoints.items()}
