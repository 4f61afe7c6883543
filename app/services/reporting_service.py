"""
Reporting views over the ledger.

Each view resolves the effective tenant scope through the access policy
first, reads active entries only, and hands plain records to the
aggregation engine.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session

from app.analytics import engine, insights
from app.analytics.export import ExportRow, render_csv
from app.analytics.periods import Period, previous_window, resolve_window, start_of_day
from app.core import access_policy
from app.core.access_policy import Action
from app.core.clock import Clock
from app.models.identity import Identity
from app.models.ledger_entry import EntryKind, LedgerEntry
from app.repositories.ledger_repository import LedgerRepository, RecordScope
from app.repositories.tenant_repository import TenantRepository
from app.repositories.user_repository import UserRepository
from app.schemas.reporting_schemas import (
    ChartPointResponse,
    ComparisonResponse,
    ComparisonTotals,
    GrowthResponse,
    Heatmap,
    InsightsResponse,
    OverallSummary,
    PreviousSummary,
    RankingResponse,
    StatsResponse,
    SummaryResponse,
    TenantActivityResponse,
    TenantBreakdown,
    TicketDistributionResponse,
    TicketSizeResponse,
    TimePatternsResponse,
    TodayStats,
)
from app.services.ledger_service import day_range
from app.utils.pagination import PageRequest

logger = logging.getLogger(__name__)

DEFAULT_RANKING_LIMIT = 5
MAX_RANKING_LIMIT = 20
DEFAULT_COMPARISON_DAYS = 30
MAX_COMPARISON_DAYS = 365


def scope_label(tenant_filter: Optional[int]) -> str:
    return "Global" if tenant_filter is None else "Organization"


class ReportingService:
    """Named analytics views: stats, feed, chart, rankings, summary, comparison, export, insights"""

    def __init__(self, db: Session, clock: Clock):
        self.db = db
        self.clock = clock
        self.ledger_repo = LedgerRepository(db)
        self.tenant_repo = TenantRepository(db)
        self.user_repo = UserRepository(db)

    def stats(self, identity: Identity, tenant_id: Optional[int] = None) -> StatsResponse:
        """Head counts in scope plus today's totals (entries created since midnight UTC)"""
        tenant_filter = access_policy.effective_tenant_filter(identity, tenant_id)
        now = self.clock.now()
        today = engine.summarize(
            self.ledger_repo.records_created_since(
                RecordScope.ACTIVE_ONLY, tenant_filter, start_of_day(now)
            )
        )
        return StatsResponse(
            scope=scope_label(tenant_filter),
            total_tenants=self.tenant_repo.count() if tenant_filter is None else 1,
            total_users=self.user_repo.count(tenant_filter),
            total_entries=self.ledger_repo.count(RecordScope.ACTIVE_ONLY, tenant_filter),
            today=TodayStats(
                date=now.date(),
                entries_created=today.entry_count,
                total_income=today.total_income,
                total_expense=today.total_expense,
                net_change=today.net_balance,
            ),
        )

    def feed(
        self, identity: Identity, page: PageRequest, tenant_id: Optional[int] = None
    ) -> tuple[list[LedgerEntry], int]:
        """Active entries, newest first"""
        return self.ledger_repo.get_with_filters(
            scope=RecordScope.ACTIVE_ONLY,
            tenant_id=access_policy.effective_tenant_filter(identity, tenant_id),
            limit=page.limit,
            offset=page.offset,
        )

    def chart(
        self, identity: Identity, period: Period = Period.MONTH, tenant_id: Optional[int] = None
    ) -> list[ChartPointResponse]:
        tenant_filter = access_policy.effective_tenant_filter(identity, tenant_id)
        window = resolve_window(period, self.clock.now())
        records = self.ledger_repo.entry_records(
            RecordScope.ACTIVE_ONLY, tenant_filter, window.start, window.end
        )
        return [
            ChartPointResponse(
                period=point.period, income=point.income, expense=point.expense, net=point.net
            )
            for point in engine.build_chart_series(records, period, window)
        ]

    def rankings(
        self,
        identity: Identity,
        kind: EntryKind = EntryKind.EXPENSE,
        limit: int = DEFAULT_RANKING_LIMIT,
        tenant_id: Optional[int] = None,
    ) -> list[RankingResponse]:
        """Top line items by summed subtotal, over all time"""
        tenant_filter = access_policy.effective_tenant_filter(identity, tenant_id)
        limit = min(MAX_RANKING_LIMIT, max(1, limit))
        items = self.ledger_repo.item_records(RecordScope.ACTIVE_ONLY, tenant_filter, kind)
        return [
            RankingResponse(
                name=ranking.name,
                value=ranking.value,
                count=ranking.count,
                avg_price=ranking.avg_price,
            )
            for ranking in engine.rank_items(items, limit)
        ]

    def summary(
        self, identity: Identity, period: Period = Period.MONTH, tenant_id: Optional[int] = None
    ) -> SummaryResponse:
        """Totals for the current window, growth against the previous one, per-tenant breakdown"""
        tenant_filter = access_policy.effective_tenant_filter(identity, tenant_id)
        window = resolve_window(period, self.clock.now())
        prev_window = previous_window(window)

        records = self.ledger_repo.entry_records(
            RecordScope.ACTIVE_ONLY, tenant_filter, window.start, window.end
        )
        previous_records = self.ledger_repo.entry_records(
            RecordScope.ACTIVE_ONLY, tenant_filter, prev_window.start, prev_window.end
        )
        current = engine.summarize(records)
        previous = engine.summarize(previous_records)
        growth = engine.growth_between(current, previous)

        breakdown = []
        for tenant_id_key, totals in engine.breakdown_by_tenant(records).items():
            tenant = self.tenant_repo.get_by_id(tenant_id_key)
            breakdown.append(
                TenantBreakdown(
                    id=tenant_id_key,
                    name=tenant.name if tenant else "",
                    slug=tenant.slug if tenant else "",
                    total_income=totals.total_income,
                    total_expense=totals.total_expense,
                    net_balance=totals.net_balance,
                    log_count=totals.entry_count,
                )
            )

        return SummaryResponse(
            period=period,
            start_date=window.start,
            end_date=window.end,
            scope=scope_label(tenant_filter),
            overall=OverallSummary(
                total_income=current.total_income,
                total_expense=current.total_expense,
                net_balance=current.net_balance,
                profit_margin=current.profit_margin,
                total_logs=current.entry_count,
                growth=GrowthResponse(
                    income=growth.income,
                    expense=growth.expense,
                    net_balance=growth.net_balance,
                ),
            ),
            previous=PreviousSummary(
                start_date=prev_window.start,
                end_date=prev_window.end,
                total_income=previous.total_income,
                total_expense=previous.total_expense,
                net_balance=previous.net_balance,
            ),
            breakdown=breakdown,
        )

    def comparison(self, identity: Identity, days: int = DEFAULT_COMPARISON_DAYS) -> ComparisonResponse:
        """
        Activity of every tenant over the last `days` days (SUPER_ADMIN only).

        Raises:
            ForbiddenException: For any other role, whatever the tenant scope
        """
        access_policy.require(identity, Action.VIEW_COMPARISON)
        days = min(MAX_COMPARISON_DAYS, max(1, days))
        now = self.clock.now()

        tenants = self.tenant_repo.get_all()
        activities = engine.compare_tenant_activity(
            [tenant.id for tenant in tenants],
            self.ledger_repo.creation_times_since(RecordScope.ACTIVE_ONLY, now - timedelta(days=days)),
            now,
        )
        by_id = {tenant.id: tenant for tenant in tenants}
        rows = [
            TenantActivityResponse(
                tenant_id=activity.tenant_id,
                tenant_name=by_id[activity.tenant_id].name,
                tenant_slug=by_id[activity.tenant_id].slug,
                is_center=by_id[activity.tenant_id].is_center,
                log_count=activity.entry_count,
                last_activity=activity.last_activity,
                status=activity.status,
                days_since_last_activity=activity.days_since_last_activity,
            )
            for activity in activities
        ]
        active = sum(1 for row in rows if row.status == "ACTIVE")
        return ComparisonResponse(
            period=f"Last {days} days",
            tenants=rows,
            summary=ComparisonTotals(
                total_tenants=len(rows),
                active_tenants=active,
                inactive_tenants=len(rows) - active,
            ),
        )

    def export(
        self,
        identity: Identity,
        tenant_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> str:
        """CSV of active entries by transaction date, newest first; end_date counts in full"""
        tenant_filter = access_policy.effective_tenant_filter(identity, tenant_id)
        occurred_from, occurred_before = day_range(start_date, end_date)
        entries = self.ledger_repo.for_export(
            RecordScope.ACTIVE_ONLY, tenant_filter, occurred_from, occurred_before
        )
        logger.info(
            "User %s exported %d entries (scope %s)",
            identity.user_id, len(entries), scope_label(tenant_filter),
        )
        return render_csv(
            ExportRow(
                date=entry.transaction_at or entry.created_at,
                kind=entry.kind.value,
                amount=entry.total_amount,
                description=entry.description,
                author=entry.author.name,
                tenant_slug=entry.tenant.slug,
            )
            for entry in entries
        )

    def insights(self, identity: Identity, tenant_id: Optional[int] = None) -> InsightsResponse:
        """Time-of-week patterns and ticket sizes of active INCOME entries"""
        tenant_filter = access_policy.effective_tenant_filter(identity, tenant_id)
        income = [
            record
            for record in self.ledger_repo.entry_records(RecordScope.ACTIVE_ONLY, tenant_filter)
            if record.kind is EntryKind.INCOME
        ]
        patterns = insights.time_patterns(record.created_at for record in income)
        tickets = insights.ticket_size_stats(record.amount for record in income)

        return InsightsResponse(
            time_patterns=TimePatternsResponse(
                busiest_day=patterns.busiest_day,
                busiest_hour=patterns.busiest_hour,
                heatmap=Heatmap(days=patterns.day_counts, hours=patterns.hour_counts),
            ),
            ticket_size=TicketSizeResponse(
                average=tickets.average,
                median=tickets.median,
                min=tickets.min,
                max=tickets.max,
                distribution=TicketDistributionResponse(
                    small=tickets.distribution.small,
                    medium=tickets.distribution.medium,
                    large=tickets.distribution.large,
                ),
            ),
            recommendations=insights.generate_recommendations(patterns, tickets),
        )


def export_filename(now: datetime) -> str:
    return f"report-{now.date().isoformat()}.csv"
