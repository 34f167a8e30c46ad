"""Account-level resources: identity and team membership.

Neither endpoint is paginated here; each is a single request.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from core.domain.models import Team, User
from core.errors import InvalidCredential, UpstreamUnavailable

logger = logging.getLogger(__name__)

USER_PATH = "/v2/user"
TEAMS_PATH = "/v1/teams"

_UNAUTHORIZED = (401, 403)


async def fetch_user(client: httpx.AsyncClient) -> User:
    """Return the authenticated account.

    - 401/403 -> `InvalidCredential`.
    - Any other failure -> `UpstreamUnavailable`.
    """

    try:
        response = await client.get(USER_PATH)
    except httpx.HTTPError as exc:
        raise UpstreamUnavailable("Failed to fetch user") from exc

    if response.status_code in _UNAUTHORIZED:
        raise InvalidCredential("Invalid API token")
    if not response.is_success:
        raise UpstreamUnavailable(f"Failed to fetch user (HTTP {response.status_code})")

    try:
        payload = response.json()
        return User.model_validate(payload.get("user") if isinstance(payload, dict) else None)
    except (ValueError, ValidationError) as exc:
        raise UpstreamUnavailable("Failed to fetch user (unexpected payload)") from exc


async def fetch_teams(client: httpx.AsyncClient) -> list[Team]:
    try:
        response = await client.get(TEAMS_PATH)
    except httpx.HTTPError as exc:
        raise UpstreamUnavailable("Failed to fetch teams") from exc

    if not response.is_success:
        raise UpstreamUnavailable(f"Failed to fetch teams (HTTP {response.status_code})")

    try:
        payload = response.json()
        raw_teams = (payload.get("teams") if isinstance(payload, dict) else None) or []
        teams = [Team.model_validate(t) for t in raw_teams]
    except (ValueError, ValidationError, TypeError) as exc:
        raise UpstreamUnavailable("Failed to fetch teams (unexpected payload)") from exc

    logger.debug("Fetched %d team(s)", len(teams))
    return teams
