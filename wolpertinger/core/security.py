"""Security utilities: API token generation and lookup."""

import base64
import secrets
from collections.abc import Iterable

from wolpertinger.core.config import ApiToken

AUTH_TOKEN_SIZE = 32


def generate_api_token() -> str:
    """Create a new random authentication token (base64 of 32 random bytes)."""
    return base64.b64encode(secrets.token_bytes(AUTH_TOKEN_SIZE)).decode("ascii")


def find_token_owner(token: str, api_tokens: Iterable[ApiToken]) -> ApiToken | None:
    """Return the configured token entry matching ``token``, compared in constant time."""
    match = None
    for candidate in api_tokens:
        if secrets.compare_digest(candidate.token.encode("utf-8"), token.encode("utf-8")):
            match = candidate
    return match
