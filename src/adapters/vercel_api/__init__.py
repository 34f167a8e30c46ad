"""Upstream deployment-platform API adapters.

Each module covers one resource collection; all of them share the
`httpx.AsyncClient` built by `adapters.http_client`.
"""

from adapters.vercel_api.account import fetch_teams, fetch_user
from adapters.vercel_api.deployments import count_failed, fetch_deployments
from adapters.vercel_api.pagination import fetch_all_pages
from adapters.vercel_api.projects import fetch_projects

__all__ = [
    "count_failed",
    "fetch_all_pages",
    "fetch_deployments",
    "fetch_projects",
    "fetch_teams",
    "fetch_user",
]
