"""Project listing (paginated)."""

from __future__ import annotations

import httpx
from pydantic import ValidationError

from adapters.vercel_api.pagination import fetch_all_pages
from core.domain.models import Project
from core.errors import FetchFailed

PROJECTS_PATH = "/v10/projects"


async def fetch_projects(client: httpx.AsyncClient) -> list[Project]:
    """Every project owned by the account, in listing order, without deployments."""

    raw = await fetch_all_pages(client, PROJECTS_PATH, collection="projects")
    try:
        return [Project.model_validate(item) for item in raw]
    except ValidationError as exc:
        raise FetchFailed(
            "Failed to fetch projects (unexpected payload)",
            endpoint=PROJECTS_PATH,
        ) from exc
