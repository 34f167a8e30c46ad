"""Account aggregation pipeline.

Flow of one run (all network I/O shares a single `httpx.AsyncClient`):

1. identity, projects and teams are fetched concurrently;
2. the project branch pages through the listing, then enriches every
   project with its deployments (concurrently, bounded by a semaphore);
3. the three results are merged into an immutable `AccountSnapshot`;
4. optionally, a flattened `StatisticsRecord` is upserted (best-effort).

Entry points for callers: `fetch_account_snapshot`, `save_account_stats`
and `generate_receipt`, which chains them.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Sequence, cast

import httpx
from pydantic import ValidationError

from adapters.http_client import build_async_client
from adapters.vercel_api import count_failed, fetch_deployments, fetch_projects, fetch_teams, fetch_user
from core.config import AppSettings
from core.domain.models import AccountSnapshot, Deployment, Project, ReceiptSummary, StatisticsRecord, Team, User
from core.errors import InvalidCredential, PersistenceFailed, UpstreamUnavailable, VerceiptsError
from core.interfaces.stats_sink import StatsSink
from core.services.statistics import build_statistics_record, summarize

logger = logging.getLogger(__name__)

_TRANSACTION_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def new_transaction_id() -> str:
    """`TRX-` followed by 9 random base-36 characters."""

    return "TRX-" + "".join(secrets.choice(_TRANSACTION_ALPHABET) for _ in range(9))


@dataclass
class PipelineHooks:
    """Optional callbacks for UI layers."""

    warning: Callable[[str], None] | None = None


@dataclass
class EnrichmentOutcome:
    """Result of enriching one project: deployments on success, a reason on failure."""

    project: Project
    deployments: list[Deployment] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PipelineResult:
    """Output of `generate_receipt`."""

    snapshot: AccountSnapshot
    summary: ReceiptSummary
    saved: bool = False
    warnings: list[str] = field(default_factory=list)
    transaction_id: str = field(default_factory=new_transaction_id)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def require_token(token: str | None) -> str:
    """Presence is the only check made on the credential."""

    cleaned = (token or "").strip()
    if not cleaned:
        raise InvalidCredential("API token is required")
    return cleaned


async def enrich_projects(
    client: httpx.AsyncClient,
    projects: Sequence[Project],
    *,
    page_size: int = 100,
    max_concurrency: int = 10,
) -> list[EnrichmentOutcome]:
    """Fetch the deployments of every project; one outcome per project, in input order.

    A failing project never cancels its siblings: its outcome carries the reason.
    """

    sem = asyncio.Semaphore(max(1, max_concurrency))

    async def enrich_one(project: Project) -> EnrichmentOutcome:
        async with sem:
            try:
                deployments = await fetch_deployments(client, project.id, page_size=page_size)
            except UpstreamUnavailable as exc:
                logger.warning("Enrichment failed for project %s: %s", project.name, exc.message)
                return EnrichmentOutcome(project=project, error=exc.message)
        return EnrichmentOutcome(project=project, deployments=deployments)

    return list(await asyncio.gather(*(enrich_one(p) for p in projects)))


def join_outcomes(
    outcomes: Sequence[EnrichmentOutcome],
    *,
    partial: bool = False,
) -> tuple[list[Project], list[str]]:
    """Merge enrichment outcomes back into projects.

    - strict (default): any failed outcome raises `UpstreamUnavailable`.
    - partial: failed projects are kept with no deployments and
      `enrichment_failed=True`; each failure becomes a warning.
    """

    failures = [o for o in outcomes if not o.ok]
    if failures and not partial:
        names = ", ".join(o.project.name for o in failures)
        raise UpstreamUnavailable(
            f"Failed to fetch deployments for {len(failures)} project(s): {names}"
        )

    warnings = [f"Deployments unavailable for {o.project.name}: {o.error}" for o in failures]
    projects: list[Project] = []
    for outcome in outcomes:
        if outcome.ok:
            deployments = outcome.deployments or []
            projects.append(
                outcome.project.model_copy(
                    update={
                        "deployments": tuple(deployments),
                        "failed_deployment_count": count_failed(deployments),
                    }
                )
            )
        else:
            projects.append(
                outcome.project.model_copy(
                    update={"deployments": (), "failed_deployment_count": 0, "enrichment_failed": True}
                )
            )
    return projects, warnings


async def collect_projects(
    client: httpx.AsyncClient,
    settings: AppSettings,
) -> tuple[list[Project], list[str]]:
    projects = await fetch_projects(client)
    logger.info("Enriching %d project(s)", len(projects))
    outcomes = await enrich_projects(
        client,
        projects,
        page_size=settings.deployments_page_size,
        max_concurrency=settings.enrichment_max_concurrency,
    )
    return join_outcomes(outcomes, partial=settings.partial_enrichment)


def _as_verceipts_error(exc: BaseException) -> VerceiptsError:
    if isinstance(exc, VerceiptsError):
        return exc
    return VerceiptsError(str(exc) or exc.__class__.__name__)


async def _aggregate(
    token: str,
    *,
    settings: AppSettings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[AccountSnapshot, list[str]]:
    token = require_token(token)

    async with build_async_client(settings, token=token, transport=transport) as client:
        user_res, projects_res, teams_res = await asyncio.gather(
            fetch_user(client),
            collect_projects(client, settings),
            fetch_teams(client),
            return_exceptions=True,
        )

    # Identity first: a rejected token is reported as such even if the
    # other branches failed too.
    for res in (user_res, projects_res, teams_res):
        if isinstance(res, BaseException):
            if not isinstance(res, Exception):
                raise res
            error = _as_verceipts_error(res)
            logger.error("Aggregation failed: %s", error.message)
            if error is res:
                raise error
            raise error from res

    user = cast(User, user_res)
    projects, warnings = cast("tuple[list[Project], list[str]]", projects_res)
    teams = cast("list[Team]", teams_res)
    snapshot = AccountSnapshot(user=user, projects=tuple(projects), teams=tuple(teams))
    logger.info(
        "Aggregated %d project(s) and %d team(s) for %s",
        len(snapshot.projects),
        len(snapshot.teams),
        snapshot.user.username,
    )
    return snapshot, warnings


async def fetch_account_snapshot(
    token: str,
    *,
    settings: AppSettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    hooks: PipelineHooks | None = None,
) -> AccountSnapshot:
    """Complete `AccountSnapshot` for `token`, or a classified `VerceiptsError`."""

    hooks = hooks or PipelineHooks()
    snapshot, warnings = await _aggregate(token, settings=settings or AppSettings(), transport=transport)
    if hooks.warning:
        for message in warnings:
            hooks.warning(message)
    return snapshot


async def save_account_stats(store: StatsSink, record: StatisticsRecord) -> None:
    """Upsert `record`; every failure surfaces as `PersistenceFailed`."""

    try:
        await store.upsert_stats(record)
    except PersistenceFailed:
        raise
    except Exception as exc:
        logger.exception("Error saving stats")
        raise PersistenceFailed("Failed to save stats") from exc
    logger.info("Saved stats for %s", record.username)


async def generate_receipt(
    token: str,
    *,
    settings: AppSettings | None = None,
    store: StatsSink | None = None,
    save_stats: bool = False,
    transport: httpx.AsyncBaseTransport | None = None,
    hooks: PipelineHooks | None = None,
) -> PipelineResult:
    """Fetch, summarize and (optionally) save.

    Saving is best-effort: a persistence failure is reported as a warning and
    the receipt is still returned.
    """

    hooks = hooks or PipelineHooks()
    settings = settings or AppSettings()

    snapshot, warnings = await _aggregate(token, settings=settings, transport=transport)
    result = PipelineResult(snapshot=snapshot, summary=summarize(snapshot), warnings=warnings)

    if save_stats:
        if store is None:
            result.warnings.append("Stats store not configured; stats were not saved.")
        else:
            try:
                await save_account_stats(store, build_statistics_record(snapshot))
                result.saved = True
            except ValidationError as exc:
                logger.warning("Stats record rejected: %s", exc)
                result.warnings.append("Account data is incomplete; stats were not saved.")
            except PersistenceFailed as exc:
                result.warnings.append(exc.message)

    if hooks.warning:
        for message in result.warnings:
            hooks.warning(message)
    return result
