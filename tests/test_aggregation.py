"""Unit tests for the aggregation engine."""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from app.analytics import engine
from app.analytics.engine import EntryRecord, ItemRecord
from app.analytics.periods import Period, Window, resolve_window
from app.models.ledger_entry import EntryKind

NOW = datetime(2026, 3, 18, 10, 0, 0)


def record(kind: EntryKind, amount: str, tenant_id: int = 1, at: datetime = NOW, transaction_at=None):
    return EntryRecord(
        tenant_id=tenant_id,
        kind=kind,
        amount=Decimal(amount),
        created_at=at,
        transaction_at=transaction_at,
    )


class TestSummarize:
    def test_totals_and_net(self):
        totals = engine.summarize(
            [
                record(EntryKind.INCOME, "1000.00"),
                record(EntryKind.INCOME, "500.00"),
                record(EntryKind.EXPENSE, "300.00"),
            ]
        )
        assert totals.total_income == Decimal("1500.00")
        assert totals.total_expense == Decimal("300.00")
        assert totals.net_balance == Decimal("1200.00")
        assert totals.entry_count == 3
        assert totals.profit_margin == pytest.approx(80.0)

    def test_empty_input_is_all_zero(self):
        totals = engine.summarize([])
        assert totals.total_income == 0
        assert totals.net_balance == 0
        assert totals.profit_margin == 0.0

    def test_margin_without_income_is_zero(self):
        totals = engine.summarize([record(EntryKind.EXPENSE, "50.00")])
        assert totals.profit_margin == 0.0

    def test_cents_do_not_drift(self):
        totals = engine.summarize([record(EntryKind.INCOME, "0.10") for _ in range(3)])
        assert totals.total_income == Decimal("0.30")


class TestGrowth:
    @pytest.mark.parametrize(
        "current, previous, expected",
        [
            (150, 100, 50.0),
            (50, 100, -50.0),
            (10, 0, 100.0),
            (0, 0, 0.0),
            (-5, 0, 0.0),
            (-50, -100, 50.0),
        ],
    )
    def test_calculate_growth(self, current, previous, expected):
        assert engine.calculate_growth(Decimal(current), Decimal(previous)) == pytest.approx(expected)


def test_breakdown_only_lists_tenants_with_records():
    groups = engine.breakdown_by_tenant(
        [
            record(EntryKind.INCOME, "100", tenant_id=2),
            record(EntryKind.EXPENSE, "40", tenant_id=2),
            record(EntryKind.INCOME, "10", tenant_id=3),
        ]
    )
    assert set(groups) == {2, 3}
    assert groups[2].net_balance == Decimal("60")
    assert groups[3].entry_count == 1


class TestChartSeries:
    def test_month_series_has_a_zero_point_per_day(self):
        window = resolve_window(Period.MONTH, NOW)
        points = engine.build_chart_series([], Period.MONTH, window)
        assert [p.period for p in points] == [f"{d:02d}" for d in range(1, 19)]
        assert all(p.income == 0 and p.expense == 0 for p in points)

    def test_records_land_in_their_transaction_day(self):
        window = resolve_window(Period.MONTH, NOW)
        points = engine.build_chart_series(
            [
                record(EntryKind.INCOME, "200", at=NOW, transaction_at=datetime(2026, 3, 5, 9)),
                record(EntryKind.EXPENSE, "80", at=datetime(2026, 3, 5, 18)),
                record(EntryKind.INCOME, "999", at=datetime(2026, 2, 27)),
            ],
            Period.MONTH,
            window,
        )
        by_label = {p.period: p for p in points}
        assert by_label["05"].income == Decimal("200")
        assert by_label["05"].expense == Decimal("80")
        assert by_label["05"].net == Decimal("120")
        assert sum(p.income for p in points) == Decimal("200")

    def test_week_labels_are_sorted_lexicographically_across_months(self):
        now = datetime(2026, 4, 2, 12)
        window = resolve_window(Period.WEEK, now)
        labels = [p.period for p in engine.build_chart_series([], Period.WEEK, window)]
        assert labels == ["01", "02", "27", "28", "29", "30", "31"]

    def test_year_series_groups_by_month(self):
        window = resolve_window(Period.YEAR, NOW)
        points = engine.build_chart_series(
            [
                record(EntryKind.INCOME, "10", at=datetime(2025, 4, 3)),
                record(EntryKind.INCOME, "15", at=datetime(2025, 4, 28)),
                record(EntryKind.EXPENSE, "5", at=datetime(2026, 3, 1)),
            ],
            Period.YEAR,
            window,
        )
        assert len(points) == 12
        assert points[0].period == "2025-04"
        assert points[0].income == Decimal("25")
        assert points[-1].expense == Decimal("5")


class TestRankItems:
    def test_groups_by_name_and_sorts_by_value(self):
        items = [
            ItemRecord("Coffee", Decimal("2"), Decimal("3.00"), Decimal("6.00")),
            ItemRecord("Cake", Decimal("1"), Decimal("10.00"), Decimal("10.00")),
            ItemRecord("Coffee", Decimal("3"), Decimal("4.00"), Decimal("12.00")),
        ]
        ranked = engine.rank_items(items, limit=5)
        assert [r.name for r in ranked] == ["Coffee", "Cake"]
        coffee = ranked[0]
        assert coffee.value == Decimal("18.00")
        assert coffee.count == Decimal("5")
        assert coffee.avg_price == Decimal("3.50")

    def test_limit_and_tie_order(self):
        items = [
            ItemRecord("B", Decimal("1"), Decimal("5"), Decimal("5")),
            ItemRecord("A", Decimal("1"), Decimal("5"), Decimal("5")),
            ItemRecord("C", Decimal("1"), Decimal("1"), Decimal("1")),
        ]
        ranked = engine.rank_items(items, limit=2)
        assert [r.name for r in ranked] == ["B", "A"]

    def test_no_items_no_rankings(self):
        assert engine.rank_items([], limit=5) == []


class TestTenantActivity:
    def test_inactive_tenants_are_listed_last(self):
        activities = engine.compare_tenant_activity(
            [1, 2, 3],
            [
                (2, NOW - timedelta(days=3, hours=1)),
                (2, NOW - timedelta(hours=5)),
                (3, NOW - timedelta(days=10)),
            ],
            NOW,
        )
        assert [a.tenant_id for a in activities] == [2, 3, 1]
        busiest, quiet, idle = activities
        assert busiest.entry_count == 2
        assert busiest.last_activity == NOW - timedelta(hours=5)
        assert busiest.days_since_last_activity == 0
        assert busiest.status == "ACTIVE"
        assert quiet.days_since_last_activity == 10
        assert idle.status == "INACTIVE"
        assert idle.last_activity is None
        assert idle.days_since_last_activity is None


def test_window_end_is_inclusive_for_chart_placement():
    window = Window(start=datetime(2026, 3, 12), end=NOW)
    points = engine.build_chart_series(
        [record(EntryKind.INCOME, "1", at=NOW)], Period.WEEK, window
    )
    assert points[-1].income == Decimal("1")
