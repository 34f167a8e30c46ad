"""Leaderboard persistence (SQLAlchemy async).

`StatsStore` is created once at process start, handed to whoever needs it,
and disposed explicitly with `close()`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from core.config import AppSettings
from core.domain.models import LeaderboardEntry, StatisticsRecord
from core.errors import PersistenceFailed

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class VercelStats(Base):
    """One leaderboard row per account email. Saves overwrite; no history."""

    __tablename__ = "vercel_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    total_projects: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_deployments: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    total_teams: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    most_active_project: Mapped[str] = mapped_column(String(255), nullable=False, default="N/A")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


# Driver errors (missing DBAPI module, refused connection) are not wrapped by SQLAlchemy.
_STORE_ERRORS = (SQLAlchemyError, OSError, ImportError)

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class StatsStore:
    """Keyed upsert and leaderboard reads over `vercel_stats`.

    Methods:
        initialize(): build the engine and create missing tables.
        upsert_stats(record): create or fully overwrite the row for `record.email`.
        get_stats(email): one row or None.
        leaderboard(limit): rows by total deployments, most recent first on ties.
        close(): dispose the engine.
    """

    def __init__(self, database_url: str, *, echo: bool = False) -> None:
        self.database_url = database_url
        self.echo = echo
        self.engine: AsyncEngine | None = None
        self.async_session: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "StatsStore":
        return cls(settings.database_url, echo=settings.database_echo)

    async def initialize(self) -> "StatsStore":
        try:
            self.engine = create_async_engine(self.database_url, echo=self.echo)
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            self.async_session = async_sessionmaker(
                self.engine, class_=AsyncSession, expire_on_commit=False
            )
        except _STORE_ERRORS as exc:
            logger.error("Failed to initialize database: %s", exc)
            await self.close()
            raise PersistenceFailed("Failed to initialize database") from exc

        logger.info("Stats store ready (%s)", self.engine.url.get_backend_name())
        return self

    def _engine(self) -> AsyncEngine:
        if self.engine is None:
            raise PersistenceFailed("Stats store is not initialized")
        return self.engine

    def _sessions(self) -> async_sessionmaker[AsyncSession]:
        if self.async_session is None:
            raise PersistenceFailed("Stats store is not initialized")
        return self.async_session

    async def upsert_stats(self, record: StatisticsRecord) -> None:
        sessions = self._sessions()
        dialect = self._engine().dialect.name
        insert = _INSERTS.get(dialect)
        if insert is None:
            raise PersistenceFailed(f"Unsupported database dialect: {dialect}")

        now = _utcnow()
        values = record.model_dump()
        stmt = insert(VercelStats).values(**values, created_at=now, updated_at=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=[VercelStats.email],
            set_={
                **{k: v for k, v in values.items() if k != "email"},
                "updated_at": now,
            },
        )

        try:
            async with sessions() as session:
                async with session.begin():
                    await session.execute(stmt)
        except _STORE_ERRORS as exc:
            logger.error("Error saving stats: %s", exc)
            raise PersistenceFailed("Failed to save stats") from exc

    async def get_stats(self, email: str) -> LeaderboardEntry | None:
        sessions = self._sessions()
        try:
            async with sessions() as session:
                row = await session.scalar(select(VercelStats).where(VercelStats.email == email))
        except _STORE_ERRORS as exc:
            logger.error("Error reading stats: %s", exc)
            raise PersistenceFailed("Failed to read stats") from exc
        return LeaderboardEntry.model_validate(row) if row is not None else None

    async def leaderboard(self, limit: int = 100) -> list[LeaderboardEntry]:
        sessions = self._sessions()
        query = (
            select(VercelStats)
            .order_by(VercelStats.total_deployments.desc(), VercelStats.updated_at.desc())
            .limit(limit)
        )
        try:
            async with sessions() as session:
                rows = (await session.scalars(query)).all()
        except _STORE_ERRORS as exc:
            logger.error("Error reading leaderboard: %s", exc)
            raise PersistenceFailed("Failed to read leaderboard") from exc
        return [LeaderboardEntry.model_validate(row) for row in rows]

    async def ping(self) -> None:
        """Round-trip a trivial query (used by `doctor`)."""

        sessions = self._sessions()
        try:
            async with sessions() as session:
                await session.scalar(select(1))
        except _STORE_ERRORS as exc:
            raise PersistenceFailed("Database is unreachable") from exc

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self.async_session = None
