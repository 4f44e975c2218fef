"""FastAPI dependencies for probe authentication and registry access."""

from typing import Annotated

from fastapi import Depends, Header, Request

from wolpertinger.bridges.distributor import Distributor, ProbeRequest
from wolpertinger.bridges.store import RegistryStore
from wolpertinger.core.app_exceptions import bad_request, unauthorized
from wolpertinger.core.config import Settings
from wolpertinger.core.logging import get_logger
from wolpertinger.core.security import find_token_owner

logger = get_logger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry_store(request: Request) -> RegistryStore:
    return request.app.state.registry_store


def get_distributor(request: Request) -> Distributor:
    return request.app.state.distributor


def extract_bearer_token(authorization: str | None) -> str:
    """Pull the token out of an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        raise bad_request("request has no 'Authorization' HTTP header")
    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer":
        raise bad_request("authorization header contains no bearer token")
    token = token.strip()
    if not token:
        raise bad_request("authorization header contains an empty bearer token")
    return token


def extract_probe_request(request: Request) -> ProbeRequest:
    """
    Read ``id``, ``type`` and ``country_code`` from the query string.

    ``id`` must be present but may be empty; ``type`` and ``country_code``
    must appear exactly once.
    """
    params = request.query_params

    ids = params.getlist("id")
    if not ids:
        raise bad_request("key 'id' not found in request", {"field": "id"})

    single = {}
    for key in ("type", "country_code"):
        values = params.getlist(key)
        if not values:
            raise bad_request(f"key '{key}' not found in request", {"field": key})
        if len(values) != 1:
            raise bad_request(f"need exactly one '{key}' key", {"field": key})
        single[key] = values[0]

    return ProbeRequest(client_id=ids[0], probe_type=single["type"], country_code=single["country_code"])


def get_probe_request(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
    settings: Settings = Depends(get_settings),
) -> ProbeRequest:
    """Dependency to get an authenticated probe request."""
    token = extract_bearer_token(authorization)
    probe = extract_probe_request(request)

    owner = find_token_owner(token, settings.API_TOKENS)
    if owner is None:
        logger.warning(
            "Received request with invalid authentication token",
            extra={"client_id": probe.client_id, "probe_type": probe.probe_type},
        )
        raise unauthorized("invalid authentication token")

    logger.info(
        "Authenticated probe request",
        extra={"organisation": owner.organisation, "client_id": probe.client_id},
    )
    return probe
