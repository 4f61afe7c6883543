from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel

from app.analytics.periods import Period


class TodayStats(BaseModel):
    date: date
    entries_created: int
    total_income: float
    total_expense: float
    net_change: float


class StatsResponse(BaseModel):
    scope: str
    total_tenants: int
    total_users: int
    total_entries: int
    today: TodayStats


class ChartPointResponse(BaseModel):
    period: str
    income: float
    expense: float
    net: float


class RankingResponse(BaseModel):
    name: str
    value: float
    count: float
    avg_price: float


class GrowthResponse(BaseModel):
    income: float
    expense: float
    net_balance: float


class OverallSummary(BaseModel):
    total_income: float
    total_expense: float
    net_balance: float
    profit_margin: float
    total_logs: int
    growth: GrowthResponse


class PreviousSummary(BaseModel):
    start_date: datetime
    end_date: datetime
    total_income: float
    total_expense: float
    net_balance: float


class TenantBreakdown(BaseModel):
    id: int
    name: str
    slug: str
    total_income: float
    total_expense: float
    net_balance: float
    log_count: int


class SummaryResponse(BaseModel):
    period: Period
    start_date: datetime
    end_date: datetime
    scope: str
    overall: OverallSummary
    previous: PreviousSummary
    breakdown: list[TenantBreakdown]


class TenantActivityResponse(BaseModel):
    tenant_id: int
    tenant_name: str
    tenant_slug: str
    is_center: bool
    log_count: int
    last_activity: Optional[datetime]
    status: str
    days_since_last_activity: Optional[int]


class ComparisonTotals(BaseModel):
    total_tenants: int
    active_tenants: int
    inactive_tenants: int


class ComparisonResponse(BaseModel):
    period: str
    tenants: list[TenantActivityResponse]
    summary: ComparisonTotals


class Heatmap(BaseModel):
    days: list[int]
    hours: list[int]


class TimePatternsResponse(BaseModel):
    busiest_day: str
    busiest_hour: str
    heatmap: Heatmap


class TicketDistributionResponse(BaseModel):
    small: int
    medium: int
    large: int


class TicketSizeResponse(BaseModel):
    average: float
    median: float
    min: float
    max: float
    distribution: TicketDistributionResponse


class InsightsResponse(BaseModel):
    time_patterns: TimePatternsResponse
    ticket_size: TicketSizeResponse
    recommendations: list[str]
