"""
Aggregation engine.

Pure reductions over ledger records that were already filtered to an
effective tenant scope, to active (non-archived) rows and, where relevant,
to a time window. Empty inputs and zero denominators resolve to zeros,
never to exceptions.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Sequence

from app.analytics.periods import (
    Period,
    Window,
    chart_bucket_keys,
    day_label,
    month_key,
)
from app.models.ledger_entry import EntryKind

ZERO = Decimal("0")
MS_PER_DAY = 86_400_000


@dataclass(frozen=True)
class EntryRecord:
    """The columns of a ledger entry the engine reads."""

    tenant_id: int
    kind: EntryKind
    amount: Decimal
    created_at: datetime
    transaction_at: datetime | None = None

    @property
    def occurred_at(self) -> datetime:
        return self.transaction_at or self.created_at


@dataclass(frozen=True)
class ItemRecord:
    """A line item joined to its parent entry."""

    name: str
    quantity: Decimal
    unit_price: Decimal
    subtotal: Decimal


@dataclass
class PeriodTotals:
    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO
    entry_count: int = 0

    @property
    def net_balance(self) -> Decimal:
        return self.total_income - self.total_expense

    @property
    def profit_margin(self) -> float:
        return profit_margin(self.total_income, self.total_expense)

    def add(self, record: EntryRecord) -> None:
        if record.kind is EntryKind.INCOME:
            self.total_income += record.amount
        else:
            self.total_expense += record.amount
        self.entry_count += 1


@dataclass(frozen=True)
class Growth:
    income: float
    expense: float
    net_balance: float


@dataclass(frozen=True)
class ChartPoint:
    period: str
    income: Decimal
    expense: Decimal

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


@dataclass(frozen=True)
class ItemRanking:
    name: str
    value: Decimal
    count: Decimal
    avg_price: Decimal


@dataclass(frozen=True)
class TenantActivity:
    tenant_id: int
    entry_count: int
    last_activity: datetime | None
    days_since_last_activity: int | None

    @property
    def status(self) -> str:
        return "ACTIVE" if self.entry_count > 0 else "INACTIVE"


@dataclass
class _ItemGroup:
    value: Decimal = ZERO
    count: Decimal = ZERO
    price_sum: Decimal = ZERO
    lines: int = 0
    order: int = 0


def summarize(records: Iterable[EntryRecord]) -> PeriodTotals:
    totals = PeriodTotals()
    for record in records:
        totals.add(record)
    return totals


def profit_margin(total_income: Decimal, total_expense: Decimal) -> float:
    if total_income > 0:
        return float((total_income - total_expense) / total_income * 100)
    return 0.0


def calculate_growth(current: Decimal | float, previous: Decimal | float) -> float:
    """
    Percentage change from previous to current.

    previous == 0 gives 100 when current grew above zero and 0 otherwise.
    The denominator is |previous| so a shrinking loss reads as growth.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return float((current - previous) / abs(previous) * 100)


def growth_between(current: PeriodTotals, previous: PeriodTotals) -> Growth:
    return Growth(
        income=calculate_growth(current.total_income, previous.total_income),
        expense=calculate_growth(current.total_expense, previous.total_expense),
        net_balance=calculate_growth(current.net_balance, previous.net_balance),
    )


def breakdown_by_tenant(records: Iterable[EntryRecord]) -> dict[int, PeriodTotals]:
    """Totals per tenant, only for tenants that have at least one record."""
    groups: dict[int, PeriodTotals] = {}
    for record in records:
        groups.setdefault(record.tenant_id, PeriodTotals()).add(record)
    return groups


def build_chart_series(
    records: Iterable[EntryRecord], period: Period, window: Window
) -> list[ChartPoint]:
    """
    Income/expense per bucket across the window.

    Every bucket starts at zero so quiet days or months still show up.
    Records are placed by transaction time, falling back to creation time,
    and records landing outside every bucket are dropped. Rows are sorted
    by label: "DD" for week/month (so two months can share a label) and
    "YYYY-MM" for year.
    """
    keys = chart_bucket_keys(period, window)
    buckets: dict[object, list[Decimal]] = {key: [ZERO, ZERO] for key in keys}

    for record in records:
        moment = record.occurred_at
        key = month_key(moment) if period is Period.YEAR else moment.date()
        bucket = buckets.get(key)
        if bucket is None:
            continue
        if record.kind is EntryKind.INCOME:
            bucket[0] += record.amount
        else:
            bucket[1] += record.amount

    points = [
        ChartPoint(
            period=key if isinstance(key, str) else day_label(key),
            income=income,
            expense=expense,
        )
        for key, (income, expense) in buckets.items()
    ]
    points.sort(key=lambda point: point.period)
    return points


def rank_items(items: Iterable[ItemRecord], limit: int) -> list[ItemRanking]:
    """Line items grouped by name, largest summed subtotal first."""
    groups: dict[str, _ItemGroup] = {}
    for item in items:
        group = groups.get(item.name)
        if group is None:
            group = groups[item.name] = _ItemGroup(order=len(groups))
        group.value += item.subtotal
        group.count += item.quantity
        group.price_sum += item.unit_price
        group.lines += 1

    ranked = sorted(groups.items(), key=lambda kv: (-kv[1].value, kv[1].order))
    return [
        ItemRanking(
            name=name,
            value=group.value,
            count=group.count,
            avg_price=group.price_sum / group.lines,
        )
        for name, group in ranked[:limit]
    ]


def compare_tenant_activity(
    tenant_ids: Sequence[int],
    created_ats: Iterable[tuple[int, datetime]],
    now: datetime,
) -> list[TenantActivity]:
    """
    Activity per tenant from (tenant_id, created_at) pairs inside the window.

    Tenants without any pair are reported INACTIVE with no last activity.
    Result is ordered by entry count, busiest first, keeping input order on ties.
    """
    counts: dict[int, int] = defaultdict(int)
    latest: dict[int, datetime] = {}
    for tenant_id, created_at in created_ats:
        counts[tenant_id] += 1
        if tenant_id not in latest or created_at > latest[tenant_id]:
            latest[tenant_id] = created_at

    activities = []
    for tenant_id in tenant_ids:
        last = latest.get(tenant_id)
        days_since = None
        if last is not None:
            elapsed_ms = (now - last).total_seconds() * 1000
            days_since = int(elapsed_ms // MS_PER_DAY)
        activities.append(
            TenantActivity(
                tenant_id=tenant_id,
                entry_count=counts.get(tenant_id, 0),
                last_activity=last,
                days_since_last_activity=days_since,
            )
        )
    activities.sort(key=lambda activity: -activity.entry_count)
    return activities
