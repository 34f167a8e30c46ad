"""Receipt statistics.

Pure functions over an `AccountSnapshot`: deterministic, no I/O.

Tie-break rule for every "most ..." helper: the first project in listing
order wins (strict `>` comparison while scanning).
"""

from __future__ import annotations

from typing import Callable, Iterable, Sequence

from core.domain.models import AccountSnapshot, Project, ReceiptSummary, StatisticsRecord

WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

NOT_AVAILABLE = "N/A"


def _first_max(projects: Sequence[Project], key: Callable[[Project], int]) -> Project | None:
    best: Project | None = None
    best_value = 0
    for project in projects:
        value = key(project)
        if best is None or value > best_value:
            best = project
            best_value = value
    return best


def total_deployments(projects: Sequence[Project]) -> int:
    return sum(p.deployment_count for p in projects)


def average_deployments_per_project(projects: Sequence[Project]) -> str:
    """Two decimals; exactly "0" for an account without projects."""

    if not projects:
        return "0"
    return f"{total_deployments(projects) / len(projects):.2f}"


def most_active_project(projects: Sequence[Project]) -> Project | None:
    return _first_max(projects, lambda p: p.deployment_count)


def total_failed_deployments(projects: Sequence[Project]) -> int:
    return sum(p.failed_deployment_count for p in projects)


def failed_rate(projects: Sequence[Project]) -> str:
    """Percentage of failed deployments, two decimals; "0.00" when there are none."""

    total = total_deployments(projects)
    if total == 0:
        return "0.00"
    return f"{total_failed_deployments(projects) / total * 100:.2f}"


def project_with_most_failures(projects: Sequence[Project]) -> Project | None:
    return _first_max(projects, lambda p: p.failed_deployment_count)


def most_active_day_of_week(projects: Iterable[Project]) -> str | None:
    """Weekday (UTC) with the most deployments across all projects.

    Ties go to the weekday that entered the count map first.
    """

    counts: dict[str, int] = {}
    for project in projects:
        for deployment in project.deployments:
            day = WEEKDAY_NAMES[deployment.created_at.weekday()]
            counts[day] = counts.get(day, 0) + 1

    best_day: str | None = None
    best_count = 0
    for day, count in counts.items():
        if count > best_count:
            best_day = day
            best_count = count
    return best_day


def summarize(snapshot: AccountSnapshot) -> ReceiptSummary:
    projects = snapshot.projects
    most_active = most_active_project(projects)
    most_failures = project_with_most_failures(projects)
    return ReceiptSummary(
        total_projects=len(projects),
        total_deployments=total_deployments(projects),
        average_deployments_per_project=average_deployments_per_project(projects),
        most_active_project=most_active.name if most_active else None,
        total_failed_deployments=total_failed_deployments(projects),
        failed_rate=failed_rate(projects),
        project_with_most_failures=most_failures.name if most_failures else None,
        most_active_day_of_week=most_active_day_of_week(projects),
        total_teams=len(snapshot.teams),
    )


def build_statistics_record(snapshot: AccountSnapshot) -> StatisticsRecord:
    """Flatten a snapshot into the leaderboard row for its account email."""

    most_active = most_active_project(snapshot.projects)
    return StatisticsRecord(
        email=snapshot.user.email,
        username=snapshot.user.username,
        total_projects=len(snapshot.projects),
        total_deployments=total_deployments(snapshot.projects),
        total_teams=len(snapshot.teams),
        most_active_project=most_active.name if most_active else NOT_AVAILABLE,
    )
