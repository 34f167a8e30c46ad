"""Persistence contracts.

A structural contract (Protocol): the core depends on "something that can
upsert a statistics record", not on SQLAlchemy.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import LeaderboardEntry, StatisticsRecord


@runtime_checkable
class StatsSink(Protocol):
    """Keyed upsert of leaderboard statistics.

    Rules:
    - `upsert_stats` creates the row for `record.email` or fully overwrites it.
    - Failures surface as `core.errors.PersistenceFailed`.
    """

    async def upsert_stats(self, record: StatisticsRecord) -> None:
        ...

    async def leaderboard(self, limit: int = 100) -> list[LeaderboardEntry]:
        ...
