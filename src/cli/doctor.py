"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from adapters.stats_store import StatsStore
from core.config import AppSettings, get_user_env_file, write_user_env_vars
from core.errors import PersistenceFailed

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get("/v2/user")
    except Exception as exc:
        return False, str(exc)
    # Without a token the API answers 401/403, which still proves it is reachable.
    return True, f"HTTP {response.status_code}"


async def _check_database(settings: AppSettings) -> tuple[bool, str]:
    store = StatsStore.from_settings(settings)
    try:
        await store.initialize()
        await store.ping()
        return True, "OK"
    except PersistenceFailed as exc:
        cause = exc.__cause__
        return False, f"{exc.message}: {cause}" if cause else exc.message
    finally:
        await store.close()


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="Verceipts Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    table.add_row("API base_url", "OK", settings.api_base_url)
    table.add_row("User config", "OK" if get_user_env_file().exists() else "OPTIONAL", str(get_user_env_file()))
    table.add_row(
        "Enrichment",
        "OK",
        f"concurrency={settings.enrichment_max_concurrency} "
        f"mode={'partial' if settings.partial_enrichment else 'strict'}",
    )

    ok_http, detail_http = asyncio.run(_check_http(settings))
    table.add_row("HTTP connectivity", "OK" if ok_http else "FAIL", detail_http)

    ok_db, detail_db = asyncio.run(_check_database(settings))
    table.add_row("Database", "OK" if ok_db else "FAIL", detail_db)

    _console.print(table)

    if not ok_db:
        _console.print(
            "\n[yellow]Note:[/yellow] receipts still work without a database; only `--save` "
            "and `leaderboard` need it. Run `doctor setup-db` to point at another database."
        )


@app.command(name="setup-db")
def setup_db() -> None:
    """Interactive storage setup (stored in the user config .env)."""

    settings = AppSettings()

    database_url = typer.prompt(
        "Database URL",
        default=settings.database_url,
        show_default=True,
    ).strip()
    api_base_url = typer.prompt(
        "API base URL",
        default=settings.api_base_url,
        show_default=True,
    ).strip()

    if not database_url or not api_base_url:
        raise typer.BadParameter("database URL and API base URL are required")

    env_path = write_user_env_vars(
        {
            "VERCEIPTS_DATABASE_URL": database_url,
            "VERCEIPTS_API_BASE_URL": api_base_url,
        }
    )

    _console.print(f"[green]Saved config to:[/green] {env_path}")
