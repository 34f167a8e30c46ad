"""Verceipts HTTP API (FastAPI).

Run with: uvicorn web.app:app --reload

The stats store is created once in the lifespan, kept on `app.state` and
disposed on shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from adapters.stats_store import StatsStore
from core.config import AppSettings
from core.domain.models import LeaderboardEntry, StatisticsRecord
from core.errors import PersistenceFailed, VerceiptsError
from core.logging import setup_logging
from core.services.account_pipeline import generate_receipt, save_account_stats
from core.services.view_filter import SortDirection, SortKey, ViewOptions, apply_view

logger = logging.getLogger(__name__)


class ReceiptRequest(BaseModel):
    token: str = Field(default="", description="Bearer token for the upstream API.")
    save_stats: bool = Field(default=False, description="Upsert the stats to the leaderboard.")
    sort_key: SortKey = SortKey.DEPLOYMENTS
    direction: SortDirection = SortDirection.DESC
    max_visible: int | None = Field(default=None, ge=0)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: AppSettings = app.state.settings
    store: StatsStore | None = None
    try:
        store = await StatsStore.from_settings(settings).initialize()
    except PersistenceFailed as exc:
        # Receipts still work; saving reports a warning.
        logger.error("Stats store unavailable: %s", exc.message)
    app.state.store = store
    yield
    if store is not None:
        await store.close()


def create_app(settings: AppSettings | None = None) -> FastAPI:
    settings = settings or AppSettings()
    setup_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Verceipts API",
        version="0.1.0",
        description="Deployment statistics rendered as receipts",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = None
    app.state.transport = None

    @app.exception_handler(VerceiptsError)
    async def verceipts_error_handler(request: Request, exc: VerceiptsError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.error_type.value, "message": exc.message},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "store": "ready" if app.state.store is not None else "unavailable"}

    @app.post("/receipt")
    async def receipt(body: ReceiptRequest, request: Request) -> dict[str, Any]:
        state = request.app.state
        result = await generate_receipt(
            body.token,
            settings=state.settings,
            store=state.store,
            save_stats=body.save_stats,
            transport=state.transport,
        )
        view = apply_view(
            result.snapshot.projects,
            ViewOptions(sort_key=body.sort_key, direction=body.direction, max_visible=body.max_visible),
        )
        return {
            "transaction_id": result.transaction_id,
            "generated_at": result.generated_at.isoformat(),
            "snapshot": result.snapshot.model_dump(mode="json"),
            "summary": result.summary.model_dump(mode="json"),
            "view": asdict(view),
            "saved": result.saved,
            "warnings": result.warnings,
        }

    @app.post("/stats", status_code=201)
    async def save_stats(record: StatisticsRecord, request: Request) -> dict[str, str]:
        store = request.app.state.store
        if store is None:
            raise PersistenceFailed("Stats store is not available")
        await save_account_stats(store, record)
        return {"status": "saved", "email": record.email}

    @app.get("/leaderboard", response_model=list[LeaderboardEntry])
    async def leaderboard(
        request: Request,
        limit: int | None = Query(default=None, ge=1, le=1000),
    ) -> list[LeaderboardEntry]:
        state = request.app.state
        if state.store is None:
            raise PersistenceFailed("Stats store is not available")
        return await state.store.leaderboard(limit or state.settings.leaderboard_limit)

    return app


app = create_app()
