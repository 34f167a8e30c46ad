"""Cursor pagination for upstream listing endpoints.

Contract of a listing response:

    {"<collection>": [...], "pagination": {"next": <cursor> | null, ...}}

The next page is requested against the same endpoint with `until=<cursor>`.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from core.errors import FetchFailed

logger = logging.getLogger(__name__)

CURSOR_PARAM = "until"


def _next_cursor(payload: dict[str, Any]) -> Any:
    pagination = payload.get("pagination")
    if not isinstance(pagination, dict):
        return None
    return pagination.get("next")


async def fetch_all_pages(
    client: httpx.AsyncClient,
    path: str,
    *,
    collection: str,
    params: dict[str, Any] | None = None,
) -> list[dict[str, Any]]:
    """Follow the cursor until exhausted and return every item in server order.

    - Pages are requested strictly one after another.
    - There is no page cap: the loop ends only when `pagination.next` is null
      or absent.
    - Any failure raises `FetchFailed`; items gathered so far are dropped.
    """

    query: dict[str, Any] = dict(params or {})
    results: list[dict[str, Any]] = []
    pages = 0

    while True:
        try:
            response = await client.get(path, params=query)
        except httpx.HTTPError as exc:
            raise FetchFailed(f"Failed to fetch {collection}", endpoint=path) from exc

        if not response.is_success:
            raise FetchFailed(
                f"Failed to fetch {collection} (HTTP {response.status_code})",
                endpoint=path,
                upstream_status=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchFailed(
                f"Failed to fetch {collection} (invalid JSON)",
                endpoint=path,
                upstream_status=response.status_code,
            ) from exc

        items = payload.get(collection) if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise FetchFailed(
                f"Failed to fetch {collection} (unexpected payload)",
                endpoint=path,
                upstream_status=response.status_code,
            )

        results.extend(items)
        pages += 1

        cursor = _next_cursor(payload)
        if cursor is None:
            break
        # Only the cursor changes between requests.
        query[CURSOR_PARAM] = cursor

    logger.debug("Fetched %d %s across %d page(s) from %s", len(results), collection, pages, path)
    return results
