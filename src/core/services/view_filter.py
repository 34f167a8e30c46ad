"""Display ordering for the receipt's project lines.

The whole list is sorted first, then truncated; when `max_visible` cuts the
list, the hidden tail collapses into one `OverflowLine`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Sequence

from core.domain.models import Project

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class SortKey(str, Enum):
    NAME = "name"
    RECENCY = "recency"
    DEPLOYMENTS = "deployments"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class ViewOptions:
    """How the receipt lists projects."""

    sort_key: SortKey = SortKey.DEPLOYMENTS
    direction: SortDirection = SortDirection.DESC
    max_visible: int | None = None

    def __post_init__(self) -> None:
        if self.max_visible is not None and self.max_visible < 0:
            raise ValueError("max_visible must be >= 0")


@dataclass(frozen=True)
class ProjectLine:
    name: str
    deployments: int
    failed: int = 0


@dataclass(frozen=True)
class OverflowLine:
    """Synthetic line standing for the projects that were not shown."""

    hidden_count: int
    hidden_deployments: int

    @property
    def label(self) -> str:
        noun = "project" if self.hidden_count == 1 else "projects"
        return f"+{self.hidden_count} more {noun}"


@dataclass(frozen=True)
class ProjectView:
    lines: tuple[ProjectLine, ...]
    overflow: OverflowLine | None = None


def _as_utc(value: datetime | None) -> datetime:
    if value is None:
        return _OLDEST
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _sort_value(project: Project, key: SortKey) -> object:
    if key is SortKey.NAME:
        return project.name.casefold()
    if key is SortKey.RECENCY:
        return _as_utc(project.latest_activity())
    return project.deployment_count


def sort_projects(projects: Sequence[Project], key: SortKey, direction: SortDirection) -> list[Project]:
    """Stable full sort: equal keys keep their listing order in both directions."""

    reverse = direction is SortDirection.DESC
    # sorted(reverse=True) keeps equal elements in their original order.
    return sorted(projects, key=lambda p: _sort_value(p, key), reverse=reverse)


def apply_view(projects: Sequence[Project], options: ViewOptions | None = None) -> ProjectView:
    options = options or ViewOptions()
    ordered = sort_projects(projects, options.sort_key, options.direction)

    if options.max_visible is None or len(ordered) <= options.max_visible:
        visible, hidden = ordered, []
    else:
        visible, hidden = ordered[: options.max_visible], ordered[options.max_visible :]

    lines = tuple(
        ProjectLine(name=p.name, deployments=p.deployment_count, failed=p.failed_deployment_count)
        for p in visible
    )
    overflow = None
    if hidden:
        overflow = OverflowLine(
            hidden_count=len(hidden),
            hidden_deployments=sum(p.deployment_count for p in hidden),
        )
    return ProjectView(lines=lines, overflow=overflow)
