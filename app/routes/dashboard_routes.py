from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.analytics.periods import Period
from app.core.clock import Clock
from app.database import get_db
from app.dependencies import get_blob_store, get_clock, get_identity
from app.models.identity import Identity
from app.models.ledger_entry import EntryKind
from app.schemas.common_schemas import ApiResponse
from app.schemas.ledger_schemas import EntryResponse
from app.schemas.reporting_schemas import (
    ChartPointResponse,
    ComparisonResponse,
    InsightsResponse,
    RankingResponse,
    StatsResponse,
    SummaryResponse,
)
from app.services.ledger_service import LedgerService
from app.services.reporting_service import (
    DEFAULT_COMPARISON_DAYS,
    DEFAULT_RANKING_LIMIT,
    MAX_COMPARISON_DAYS,
    MAX_RANKING_LIMIT,
    ReportingService,
    export_filename,
)
from app.storage.blob_store import BlobStore
from app.utils.pagination import build_meta, parse_pagination

router = APIRouter()


def get_reporting_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> ReportingService:
    return ReportingService(db, clock)


@router.get("/stats", response_model=ApiResponse[StatsResponse])
def stats(
    tenant_id: Optional[int] = Query(None, description="Honored for SUPER_ADMIN only"),
    identity: Identity = Depends(get_identity),
    service: ReportingService = Depends(get_reporting_service),
):
    """Entity counts in scope and today's income/expense totals"""
    return ApiResponse(data=service.stats(identity, tenant_id))


@router.get("/feed", response_model=ApiResponse[list[EntryResponse]])
def feed(
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    tenant_id: Optional[int] = Query(None),
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Newest active entries first"""
    page_request = parse_pagination(page, limit)
    entries, total = ReportingService(db, clock).feed(identity, page_request, tenant_id)
    ledger = LedgerService(db, clock, blob_store)
    return ApiResponse(
        data=[ledger.to_response(entry) for entry in entries],
        meta=build_meta(total, page_request),
    )


@router.get("/chart", response_model=ApiResponse[list[ChartPointResponse]])
def chart(
    period: Period = Query(Period.MONTH),
    tenant_id: Optional[int] = Query(None),
    identity: Identity = Depends(get_identity),
    service: ReportingService = Depends(get_reporting_service),
):
    """
    Income and expense per bucket.

    - week/month: one point per day of the window
    - year: one point per month over the trailing twelve months, capped at 24 buckets
    """
    return ApiResponse(data=service.chart(identity, period, tenant_id))


@router.get("/rankings", response_model=ApiResponse[list[RankingResponse]])
def rankings(
    kind: EntryKind = Query(EntryKind.EXPENSE),
    limit: int = Query(DEFAULT_RANKING_LIMIT, ge=1, le=MAX_RANKING_LIMIT),
    tenant_id: Optional[int] = Query(None),
    identity: Identity = Depends(get_identity),
    service: ReportingService = Depends(get_reporting_service),
):
    """Top line items by total value"""
    return ApiResponse(data=service.rankings(identity, kind, limit, tenant_id))


@router.get("/summary", response_model=ApiResponse[SummaryResponse])
def summary(
    period: Period = Query(Period.MONTH),
    tenant_id: Optional[int] = Query(None),
    identity: Identity = Depends(get_identity),
    service: ReportingService = Depends(get_reporting_service),
):
    """Totals for the window, growth against the previous window, per-tenant breakdown"""
    return ApiResponse(data=service.summary(identity, period, tenant_id))


@router.get("/comparison", response_model=ApiResponse[ComparisonResponse])
def comparison(
    days: int = Query(DEFAULT_COMPARISON_DAYS, ge=1, le=MAX_COMPARISON_DAYS),
    identity: Identity = Depends(get_identity),
    service: ReportingService = Depends(get_reporting_service),
):
    """
    Activity of every tenant over the last `days` days.

    - **Requires SUPER_ADMIN**
    """
    return ApiResponse(data=service.comparison(identity, days))


@router.get("/export")
def export(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None, description="Inclusive, whole day"),
    tenant_id: Optional[int] = Query(None),
    identity: Identity = Depends(get_identity),
    service: ReportingService = Depends(get_reporting_service),
    clock: Clock = Depends(get_clock),
):
    """CSV download of active entries, newest transaction first"""
    content = service.export(identity, tenant_id, start_date, end_date)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(clock.now())}"'},
    )


@router.get("/insights", response_model=ApiResponse[InsightsResponse])
def insights(
    tenant_id: Optional[int] = Query(None),
    identity: Identity = Depends(get_identity),
    service: ReportingService = Depends(get_reporting_service),
):
    """Busiest day and hour, ticket size distribution and recommendations"""
    return ApiResponse(data=service.insights(identity, tenant_id))
