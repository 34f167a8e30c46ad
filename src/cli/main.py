"""Verceipts command line."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from adapters.json_exporter import export_receipt_json
from adapters.stats_store import StatsStore
from cli import doctor
from cli.ui_components import build_leaderboard_table, build_receipt_panel, print_banner
from core.config import AppSettings
from core.errors import PersistenceFailed, VerceiptsError
from core.logging import setup_logging
from core.services.account_pipeline import PipelineHooks, PipelineResult, generate_receipt
from core.services.view_filter import SortDirection, SortKey, ViewOptions, apply_view

app = typer.Typer(no_args_is_help=True, help="Turn your deployment history into a receipt.")
app.add_typer(doctor.app, name="doctor")

_console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    settings = AppSettings()
    setup_logging("DEBUG" if verbose else settings.log_level, settings.log_format)


async def _run_receipt(
    *,
    settings: AppSettings,
    token: str,
    save: bool,
) -> PipelineResult:
    hooks = PipelineHooks(warning=lambda msg: _console.print(f"[yellow]Warning:[/yellow] {msg}"))

    store: StatsStore | None = None
    if save:
        try:
            store = await StatsStore.from_settings(settings).initialize()
        except PersistenceFailed as exc:
            _console.print(f"[yellow]Warning:[/yellow] {exc.message}")
            store = None

    try:
        return await generate_receipt(
            token,
            settings=settings,
            store=store,
            save_stats=save,
            hooks=hooks,
        )
    finally:
        if store is not None:
            await store.close()


@app.command()
def receipt(
    token: str = typer.Option(
        ...,
        "--token",
        "-t",
        envvar="VERCEIPTS_TOKEN",
        prompt="API token",
        hide_input=True,
        help="Bearer token for the deployment platform (full account scope).",
    ),
    save: bool = typer.Option(False, "--save", help="Save my stats to the public leaderboard."),
    sort: SortKey = typer.Option(SortKey.DEPLOYMENTS, "--sort", help="Project ordering."),
    direction: SortDirection = typer.Option(SortDirection.DESC, "--direction"),
    max_projects: Optional[int] = typer.Option(
        None, "--max-projects", min=0, help="Collapse projects beyond this count into one line."
    ),
    hide_email: bool = typer.Option(False, "--hide-email", help="Mask the email on the receipt."),
    partial: Optional[bool] = typer.Option(
        None,
        "--partial/--strict",
        help="Keep projects whose deployments failed to load instead of aborting.",
    ),
    json_path: Optional[Path] = typer.Option(None, "--json", help="Also write the receipt as JSON."),
    no_banner: bool = typer.Option(False, "--no-banner"),
) -> None:
    """Fetch account statistics and print a receipt."""

    settings = AppSettings()
    if partial is not None:
        settings = settings.model_copy(update={"partial_enrichment": partial})

    if not no_banner:
        print_banner(_console)

    try:
        with _console.status("Fetching projects and deployments..."):
            result = asyncio.run(_run_receipt(settings=settings, token=token, save=save))
    except VerceiptsError as exc:
        _console.print(f"[red]{exc.message}[/red]")
        raise typer.Exit(code=1) from exc

    view = apply_view(
        result.snapshot.projects,
        ViewOptions(sort_key=sort, direction=direction, max_visible=max_projects),
    )
    _console.print(build_receipt_panel(result, view, hide_email=hide_email))

    if save and result.saved:
        _console.print("[green]Stats saved to the leaderboard.[/green]")

    if json_path is not None:
        out = export_receipt_json(
            snapshot=result.snapshot,
            summary=result.summary,
            output_path=json_path,
            transaction_id=result.transaction_id,
        )
        _console.print(f"[green]JSON written to:[/green] {out}")


@app.command()
def leaderboard(
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Rows to show."),
) -> None:
    """Show the saved statistics, most deployments first."""

    settings = AppSettings()

    async def _load():
        store = await StatsStore.from_settings(settings).initialize()
        try:
            return await store.leaderboard(limit or settings.leaderboard_limit)
        finally:
            await store.close()

    try:
        entries = asyncio.run(_load())
    except VerceiptsError as exc:
        _console.print(f"[red]{exc.message}[/red]")
        raise typer.Exit(code=1) from exc

    if not entries:
        _console.print("[dim]No stats saved yet.[/dim]")
        return
    _console.print(build_leaderboard_table(entries))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
