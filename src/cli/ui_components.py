"""CLI UI components (Rich).

Keeps command logic apart from visual details; the receipt and leaderboard
renderers are shared by several commands.
"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from rich.align import Align
from rich.console import Console, Group
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from core.domain.models import LeaderboardEntry
from core.services.account_pipeline import PipelineResult
from core.services.view_filter import ProjectView


def print_banner(console: Console) -> None:
    """Welcome banner (skipped in non-interactive modes)."""

    title = Text("Verceipts", style="bold white")
    subtitle = Text("Your deployment history, itemized", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="white", padding=(1, 4)))


def mask_email(email: str) -> str:
    local, sep, domain = email.partition("@")
    if not sep:
        return "*" * len(email)
    return f"{local[:1]}***@{domain}"


def _kv_table(rows: Sequence[tuple[str, str]], *, bold: bool = False) -> Table:
    table = Table.grid(expand=True)
    table.add_column(ratio=1)
    table.add_column(justify="right", no_wrap=True)
    style = "bold" if bold else None
    for key, value in rows:
        table.add_row(Text(key, style=style), Text(value, style=style))
    return table


def build_receipt_panel(
    result: PipelineResult,
    view: ProjectView,
    *,
    hide_email: bool = False,
) -> Panel:
    """Render a pipeline result as a monospace receipt."""

    snapshot = result.snapshot
    summary = result.summary
    user = snapshot.user
    local_time: datetime = result.generated_at.astimezone()

    header = Text(justify="center")
    header.append("VERCEL RECEIPT\n", style="bold")
    header.append(f"Generated for: {user.name or user.username}\n")
    header.append(f"Email: {mask_email(user.email) if hide_email else user.email}\n")
    header.append(f"Username: {user.username}")

    meta = _kv_table(
        [
            ("Date", local_time.strftime("%Y-%m-%d")),
            ("Time", local_time.strftime("%H:%M:%S")),
            ("Transaction ID", result.transaction_id),
        ]
    )

    projects = Table(expand=True, box=None, show_edge=False, pad_edge=False)
    projects.add_column("Project", no_wrap=True, overflow="ellipsis", ratio=1)
    projects.add_column("Deployments", justify="right", no_wrap=True)
    for line in view.lines:
        projects.add_row(line.name, str(line.deployments))
    if view.overflow is not None:
        projects.add_row(
            Text(view.overflow.label, style="italic"),
            str(view.overflow.hidden_deployments),
        )

    totals = _kv_table(
        [
            ("Total Projects Owned", str(summary.total_projects)),
            ("Total Deployments", str(summary.total_deployments)),
            ("Average Deployments/Project", summary.average_deployments_per_project),
            ("Most Active Project", summary.most_active_project or "N/A"),
            ("Failed Deployments", f"{summary.total_failed_deployments} ({summary.failed_rate}%)"),
            ("Most Failures", summary.project_with_most_failures or "N/A"),
            ("Busiest Day", summary.most_active_day_of_week or "N/A"),
        ],
        bold=True,
    )

    teams = Table.grid(expand=True)
    teams.add_column()
    for team in snapshot.teams:
        teams.add_row(team.name)

    footer = Text(justify="center")
    footer.append("Thank you for using Vercel!\n", style="bold")
    footer.append("verceipts.vercel.app\n", style="underline blue")
    footer.append("Printed on recycled paper", style="dim")

    body = Group(
        header,
        Rule(style="dim", characters="-"),
        meta,
        Rule(style="dim", characters="-"),
        projects,
        Rule(style="dim", characters="-"),
        totals,
        Rule(style="dim", characters="-"),
        Text("Teams", style="bold"),
        teams,
        _kv_table([("Total Teams", str(summary.total_teams))], bold=True),
        Rule(style="dim", characters="-"),
        footer,
    )
    return Panel(body, width=48, border_style="white", style="black on white")


def build_leaderboard_table(entries: Sequence[LeaderboardEntry]) -> Table:
    table = Table(title="Verceipts Leaderboard")
    table.add_column("Rank", justify="right", style="bold")
    table.add_column("Username", style="cyan")
    table.add_column("Projects", justify="right")
    table.add_column("Deployments", justify="right", style="green")
    table.add_column("Teams", justify="right")
    table.add_column("Most Active Project", style="magenta")
    table.add_column("Last Updated", style="dim")
    for rank, entry in enumerate(entries, start=1):
        updated = entry.updated_at.strftime("%Y-%m-%d %H:%M") if entry.updated_at else "-"
        table.add_row(
            str(rank),
            entry.username,
            str(entry.total_projects),
            str(entry.total_deployments),
            str(entry.total_teams),
            entry.most_active_project,
            updated,
        )
    return table
