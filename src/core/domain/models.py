"""Domain models (Pydantic v2).

- Pure data: the domain does not know about HTTP, SQL or the CLI.
- Upstream payload names (`uid`, `readyState`, `createdAt`...) are accepted
  through validation aliases; Python code uses snake_case field names.
- Everything built during one pipeline run is frozen once constructed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic.config import ConfigDict


def _epoch_millis_to_datetime(value: Any) -> Any:
    """Upstream timestamps are epoch milliseconds; ISO strings pass through."""

    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return value


class DeploymentState(str, Enum):
    """Closed set of deployment states reported upstream."""

    BUILDING = "BUILDING"
    ERROR = "ERROR"
    INITIALIZING = "INITIALIZING"
    QUEUED = "QUEUED"
    READY = "READY"
    CANCELED = "CANCELED"
    DELETED = "DELETED"


# A deployment in this state counts as failed.
FAILED_STATE = DeploymentState.ERROR


class User(BaseModel):
    """Authenticated account identity (read-only for the whole pipeline)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str = Field(
        ...,
        validation_alias=AliasChoices("id", "uid"),
        description="Account identifier.",
    )
    email: str = Field(..., description="Account email (leaderboard key).")
    name: str | None = Field(default=None, description="Display name.")
    username: str = Field(..., description="Account handle.")


class Team(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str = Field(...)
    name: str = Field(...)
    slug: str | None = Field(default=None)


class Deployment(BaseModel):
    """A deployment event attached to one project."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str = Field(
        ...,
        validation_alias=AliasChoices("id", "uid"),
    )
    status: DeploymentState = Field(
        ...,
        validation_alias=AliasChoices("status", "readyState", "state"),
        description="Deployment state; `ERROR` means failed.",
    )
    created_at: datetime = Field(
        ...,
        validation_alias=AliasChoices("created_at", "createdAt", "created"),
        description="Creation time (UTC).",
    )
    url: str | None = Field(default=None)
    target: str | None = Field(default=None)

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, value: Any) -> Any:
        return _epoch_millis_to_datetime(value)

    @property
    def failed(self) -> bool:
        return self.status is FAILED_STATE


class Project(BaseModel):
    """A project plus the deployments collected during enrichment."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str = Field(...)
    name: str = Field(...)
    updated_at: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("updated_at", "updatedAt"),
    )
    deployments: tuple[Deployment, ...] = Field(
        default=(),
        description="All deployments of the project, in server order.",
    )
    failed_deployment_count: int = Field(
        default=0,
        ge=0,
        description="Number of deployments whose state is `ERROR`.",
    )
    enrichment_failed: bool = Field(
        default=False,
        description="True when deployments could not be fetched (partial mode only).",
    )

    @field_validator("updated_at", mode="before")
    @classmethod
    def parse_updated_at(cls, value: Any) -> Any:
        return _epoch_millis_to_datetime(value)

    @property
    def deployment_count(self) -> int:
        return len(self.deployments)

    def latest_activity(self) -> datetime | None:
        """Newest deployment timestamp, falling back to `updated_at`."""

        if self.deployments:
            return max(d.created_at for d in self.deployments)
        return self.updated_at


class AccountSnapshot(BaseModel):
    """Terminal value of the aggregation pipeline."""

    model_config = ConfigDict(frozen=True)

    user: User
    projects: tuple[Project, ...] = Field(default=())
    teams: tuple[Team, ...] = Field(default=())


class ReceiptSummary(BaseModel):
    """Statistics derived from an `AccountSnapshot`."""

    model_config = ConfigDict(frozen=True)

    total_projects: int
    total_deployments: int
    average_deployments_per_project: str
    most_active_project: str | None
    total_failed_deployments: int
    failed_rate: str
    project_with_most_failures: str | None
    most_active_day_of_week: str | None
    total_teams: int


class StatisticsRecord(BaseModel):
    """Flattened leaderboard row, keyed by email."""

    model_config = ConfigDict(from_attributes=True)

    email: str = Field(..., min_length=1, max_length=320)
    username: str = Field(..., min_length=1, max_length=255)
    total_projects: int = Field(default=0, ge=0)
    total_deployments: int = Field(default=0, ge=0)
    total_teams: int = Field(default=0, ge=0)
    most_active_project: str = Field(default="N/A", max_length=255)


class LeaderboardEntry(StatisticsRecord):
    """A stored record plus its bookkeeping timestamps."""

    created_at: datetime | None = None
    updated_at: datetime | None = None
