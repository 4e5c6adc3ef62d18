"""FastAPI service for report submission, thresholds and alerts.

Endpoints:
  POST   /evaluate                  — stateless threshold check
  POST   /projects                  — create a project (+ default latency measure)
  POST   /reports                   — store a report and return any alerts it raised
  GET    /projects/{slug}/{branches|testbeds|benchmarks|measures}
  GET    /projects/{slug}/thresholds
  POST   /projects/{slug}/thresholds
  PATCH  /thresholds/{id}
  DELETE /thresholds/{id}
  GET    /projects/{slug}/alerts    — optional ?status=active|dismissed|resolved
  POST   /alerts/{id}/dismiss
  POST   /alerts/{id}/resolve

The ingestor (store + cache) lives on app.state. With DRIFTWATCH_DATABASE_URL
set it is built in the lifespan from an asyncpg pool; otherwise the app
serves from an in-memory store.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from enum import StrEnum

import asyncpg
from fastapi import APIRouter, FastAPI, HTTPException, Request

from driftwatch.cache import TTLCache
from driftwatch.errors import (
    AlreadyExistsError,
    DriftwatchError,
    InvalidThresholdError,
    InvalidTransitionError,
    NonFiniteValueError,
    NotFoundError,
)
from driftwatch.evaluator import evaluate
from driftwatch.ingest import ReportIngestor
from driftwatch.models import (
    Alert,
    AlertStatus,
    CreateProjectRequest,
    CreateReportRequest,
    CreateThresholdRequest,
    DriftwatchConfig,
    EvaluateRequest,
    EvaluateResponse,
    NamedEntity,
    Project,
    ReportResult,
    Threshold,
    UpdateThresholdRequest,
)
from driftwatch.storage import (
    EntityKind,
    MemoryReportStore,
    PostgresReportStore,
    ReportStore,
)

logger = logging.getLogger("driftwatch.api")

router = APIRouter()


class EntityCollection(StrEnum):
    BRANCHES = "branches"
    TESTBEDS = "testbeds"
    BENCHMARKS = "benchmarks"
    MEASURES = "measures"


_ENTITY_KINDS: dict[EntityCollection, EntityKind] = {
    EntityCollection.BRANCHES: "branch",
    EntityCollection.TESTBEDS: "testbed",
    EntityCollection.BENCHMARKS: "benchmark",
    EntityCollection.MEASURES: "measure",
}

_ERROR_STATUS: dict[type[DriftwatchError], int] = {
    NotFoundError: 404,
    InvalidThresholdError: 400,
    AlreadyExistsError: 409,
    InvalidTransitionError: 409,
    NonFiniteValueError: 422,
}


def _http_error(exc: DriftwatchError) -> HTTPException:
    for error_type, status_code in _ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def _get_ingestor(request: Request) -> ReportIngestor:
    ingestor = getattr(request.app.state, "ingestor", None)
    if ingestor is None:
        raise HTTPException(status_code=503, detail="Report store not configured")
    return ingestor


def _build_ingestor(store: ReportStore, config: DriftwatchConfig) -> ReportIngestor:
    return ReportIngestor(
        store=store,
        cache=TTLCache(ttl_sec=config.cache.ttl_sec, max_entries=config.cache.max_entries),
        default_min_sample_size=config.default_min_sample_size,
    )


# =============================================================================
# ENDPOINTS
# =============================================================================


@router.post("/evaluate")
async def evaluate_threshold(request: EvaluateRequest) -> EvaluateResponse:
    """Evaluate one value against a baseline without touching storage."""
    try:
        violation = evaluate(request.config, request.new_value, request.baseline_values)
    except NonFiniteValueError as exc:
        raise _http_error(exc) from exc
    return EvaluateResponse(violation=violation)


@router.post("/projects", status_code=201)
async def create_project(body: CreateProjectRequest, request: Request) -> Project:
    ingestor = _get_ingestor(request)
    try:
        return await ingestor.create_project(body)
    except DriftwatchError as exc:
        raise _http_error(exc) from exc


@router.post("/reports", status_code=201)
async def create_report(body: CreateReportRequest, request: Request) -> ReportResult:
    """Store a report and return the alerts it raised."""
    ingestor = _get_ingestor(request)
    try:
        return await ingestor.ingest(body)
    except DriftwatchError as exc:
        raise _http_error(exc) from exc


@router.get("/projects/{slug}/thresholds")
async def list_thresholds(slug: str, request: Request) -> list[Threshold]:
    ingestor = _get_ingestor(request)
    try:
        return await ingestor.list_thresholds(slug)
    except DriftwatchError as exc:
        raise _http_error(exc) from exc


@router.post("/projects/{slug}/thresholds", status_code=201)
async def create_threshold(
    slug: str, body: CreateThresholdRequest, request: Request
) -> Threshold:
    ingestor = _get_ingestor(request)
    try:
        return await ingestor.create_threshold(slug, body)
    except DriftwatchError as exc:
        raise _http_error(exc) from exc


@router.patch("/thresholds/{threshold_id}")
async def update_threshold(
    threshold_id: str, body: UpdateThresholdRequest, request: Request
) -> Threshold:
    ingestor = _get_ingestor(request)
    try:
        return await ingestor.update_threshold(threshold_id, body)
    except DriftwatchError as exc:
        raise _http_error(exc) from exc


@router.delete("/thresholds/{threshold_id}", status_code=204)
async def delete_threshold(threshold_id: str, request: Request) -> None:
    ingestor = _get_ingestor(request)
    try:
        await ingestor.delete_threshold(threshold_id)
    except DriftwatchError as exc:
        raise _http_error(exc) from exc


@router.get("/projects/{slug}/alerts")
async def list_alerts(
    slug: str, request: Request, status: AlertStatus | None = None
) -> list[Alert]:
    """Alerts for a project, newest first."""
    ingestor = _get_ingestor(request)
    try:
        return await ingestor.list_alerts(slug, status=status)
    except DriftwatchError as exc:
        raise _http_error(exc) from exc


# Declared after the fixed /projects/{slug}/... routes so they match first.
@router.get("/projects/{slug}/{kind}")
async def list_entities(slug: str, kind: EntityCollection, request: Request) -> list[NamedEntity]:
    """Branches, testbeds, benchmarks or measures recorded for a project."""
    ingestor = _get_ingestor(request)
    try:
        return await ingestor.list_entities(slug, _ENTITY_KINDS[kind])
    except DriftwatchError as exc:
        raise _http_error(exc) from exc


@router.post("/alerts/{alert_id}/dismiss")
async def dismiss_alert(alert_id: str, request: Request) -> Alert:
    ingestor = _get_ingestor(request)
    try:
        return await ingestor.dismiss_alert(alert_id)
    except DriftwatchError as exc:
        raise _http_error(exc) from exc


@router.post("/alerts/{alert_id}/resolve")
async def resolve_alert(alert_id: str, request: Request) -> Alert:
    ingestor = _get_ingestor(request)
    try:
        return await ingestor.resolve_alert(alert_id)
    except DriftwatchError as exc:
        raise _http_error(exc) from exc


# =============================================================================
# FASTAPI APPLICATION
# =============================================================================


def create_app(
    config: DriftwatchConfig | None = None,
    *,
    store: ReportStore | None = None,
) -> FastAPI:
    """Build the application.

    An explicit store wins; otherwise a database pool is opened at startup
    when database_url is set, and an in-memory store is used when it is not.
    """
    if config is None:
        config = DriftwatchConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        pool: asyncpg.Pool | None = None
        if app.state.ingestor is None and config.database_url:
            try:
                pool = await asyncpg.create_pool(
                    dsn=config.database_url,
                    min_size=config.pool.min_size,
                    max_size=config.pool.max_size,
                )
                app.state.ingestor = _build_ingestor(PostgresReportStore(pool=pool), config)
                logger.info("Connected report store to PostgreSQL")
            except (OSError, asyncpg.PostgresError):
                logger.exception("Failed to create database pool")
        try:
            yield
        finally:
            if pool is not None:
                await pool.close()
                app.state.ingestor = None

    app = FastAPI(
        title="Driftwatch API",
        description="Benchmark tracking with threshold-based regression alerts.",
        version="0.1.0",
        lifespan=lifespan,
    )

    if store is None and not config.database_url:
        logger.warning("DRIFTWATCH_DATABASE_URL not set, using in-memory report store")
        store = MemoryReportStore()
    app.state.ingestor = _build_ingestor(store, config) if store is not None else None

    app.include_router(router)
    return app
