"""Shared fixtures: a fake upstream API (httpx.MockTransport) and a temp SQLite store."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import httpx
import pytest

from adapters.stats_store import StatsStore
from core.config import AppSettings
from core.domain.models import LeaderboardEntry, StatisticsRecord
from core.errors import PersistenceFailed

API_BASE = "https://api.test"
TOKEN = "tok_test_123"

# 2024-01-01 is a Monday.
MONDAY = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def make_deployment(uid: str, state: str = "READY", created: datetime = MONDAY) -> dict[str, Any]:
    return {
        "uid": uid,
        "name": "app",
        "url": f"{uid}.vercel.app",
        "state": state,
        "readyState": state,
        "createdAt": epoch_ms(created),
        "created": epoch_ms(created),
        "target": "production",
    }


def make_project(project_id: str, name: str, updated: datetime = MONDAY) -> dict[str, Any]:
    return {"id": project_id, "name": name, "updatedAt": epoch_ms(updated), "framework": "nextjs"}


class FakeVercelApi:
    """In-memory stand-in for the upstream REST API.

    Listings are split into pages; the cursor is the index of the next page.
    """

    def __init__(self) -> None:
        self.user: dict[str, Any] = {
            "id": "usr_1",
            "email": "alice@example.com",
            "name": "Alice",
            "username": "alice",
        }
        self.user_status = 200
        self.teams: list[dict[str, Any]] = [{"id": "team_1", "name": "Acme", "slug": "acme"}]
        self.teams_status = 200
        self.project_pages: list[list[dict[str, Any]]] = [[]]
        self.projects_status = 200
        self.deployment_pages: dict[str, list[list[dict[str, Any]]]] = {}
        self.deployment_status: dict[str, int] = {}
        self.requests: list[httpx.Request] = []

    def set_projects(self, projects: list[dict[str, Any]], page_size: int = 20) -> None:
        self.project_pages = [
            projects[i : i + page_size] for i in range(0, len(projects), page_size)
        ] or [[]]

    def set_deployments(self, project_id: str, deployments: list[dict[str, Any]], page_size: int = 100) -> None:
        self.deployment_pages[project_id] = [
            deployments[i : i + page_size] for i in range(0, len(deployments), page_size)
        ] or [[]]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/v2/user":
            if self.user_status != 200:
                return httpx.Response(self.user_status, json={"error": {"code": "forbidden"}})
            return httpx.Response(200, json={"user": self.user})

        if path == "/v1/teams":
            if self.teams_status != 200:
                return httpx.Response(self.teams_status, json={"error": {"code": "internal"}})
            return httpx.Response(200, json={"teams": self.teams, "pagination": {"next": None}})

        if path == "/v10/projects":
            if self.projects_status != 200:
                return httpx.Response(self.projects_status)
            return self._page(request, self.project_pages, "projects")

        if path == "/v6/deployments":
            project_id = request.url.params["projectId"]
            status = self.deployment_status.get(project_id, 200)
            if status != 200:
                return httpx.Response(status, json={"error": {"code": "internal"}})
            return self._page(request, self.deployment_pages.get(project_id, [[]]), "deployments")

        return httpx.Response(404)

    @staticmethod
    def _page(request: httpx.Request, pages: list[list[dict[str, Any]]], collection: str) -> httpx.Response:
        cursor = request.url.params.get("until")
        index = 0 if cursor is None else int(cursor)
        next_cursor = index + 1 if index + 1 < len(pages) else None
        return httpx.Response(
            200,
            json={
                collection: pages[index],
                "pagination": {"count": len(pages[index]), "next": next_cursor, "prev": None},
            },
        )


class RecordingStore:
    """StatsSink double that remembers every upsert."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.records: list[StatisticsRecord] = []

    async def upsert_stats(self, record: StatisticsRecord) -> None:
        if self.fail:
            raise PersistenceFailed("Failed to save stats")
        self.records.append(record)

    async def leaderboard(self, limit: int = 100) -> list[LeaderboardEntry]:
        return [LeaderboardEntry(**r.model_dump()) for r in self.records[:limit]]


@pytest.fixture
def fake_api() -> FakeVercelApi:
    return FakeVercelApi()


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        _env_file=None,
        api_base_url=API_BASE,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'stats.db'}",
        enrichment_max_concurrency=4,
    )


@pytest.fixture
async def store(settings: AppSettings):
    backend = await StatsStore.from_settings(settings).initialize()
    yield backend
    await backend.close()
