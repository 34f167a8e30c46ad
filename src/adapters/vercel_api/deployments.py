"""Project-scoped deployment listing (paginated)."""

from __future__ import annotations

import httpx
from pydantic import ValidationError

from adapters.vercel_api.pagination import fetch_all_pages
from core.domain.models import Deployment
from core.errors import FetchFailed

DEPLOYMENTS_PATH = "/v6/deployments"


async def fetch_deployments(
    client: httpx.AsyncClient,
    project_id: str,
    *,
    page_size: int = 100,
) -> list[Deployment]:
    """All deployments of one project, in server order."""

    raw = await fetch_all_pages(
        client,
        DEPLOYMENTS_PATH,
        collection="deployments",
        params={"projectId": project_id, "limit": page_size},
    )
    try:
        return [Deployment.model_validate(item) for item in raw]
    except ValidationError as exc:
        raise FetchFailed(
            f"Failed to fetch deployments for project {project_id} (unexpected payload)",
            endpoint=DEPLOYMENTS_PATH,
        ) from exc


def count_failed(deployments: list[Deployment]) -> int:
    return sum(1 for d in deployments if d.failed)
