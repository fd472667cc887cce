"""Revenue summary and the record screens' filters."""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from cue_pos.services.models import (
    Order,
    OrderItem,
    RetailSale,
    SessionRecord,
)
from cue_pos.services.reports import (
    build_summary,
    days_remaining_in_month,
    filter_orders,
    filter_sessions,
    in_period,
    records_total,
)

NOW = datetime(2024, 3, 15, 18, 0)


def _record(rid, start, minutes, amount, table="Table 1", status="completed"):
    return SessionRecord(
        id=rid,
        table_id="table-1",
        table_name=table,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        session_type="open",
        hourly_rate=Decimal("15"),
        total_amount=Decimal(amount),
        status=status,
    )


def _sale(sid, item_id, name, qty, unit, ts, order_id=None):
    unit = Decimal(unit)
    return RetailSale(sid, item_id, name, qty, unit, unit * qty, ts, order_id)


class TestBuildSummary:
    def test_today_and_lifetime_totals(self):
        sessions = [
            _record("s1", NOW - timedelta(hours=2), 60, "15.00"),
            _record("s2", NOW - timedelta(days=1), 30, "7.50"),
        ]
        sales = [
            _sale("r1", "item-1", "Coca-Cola", 2, "3.50", NOW - timedelta(hours=1)),
            _sale("r2", "item-4", "Chips", 1, "2.50", NOW - timedelta(days=3)),
        ]
        summary = build_summary(sessions, sales, now=NOW)

        assert summary.today_table_revenue == Decimal("15.00")
        assert summary.today_retail_revenue == Decimal("7.00")
        assert summary.today_total == Decimal("22.00")
        assert summary.total_revenue == Decimal("32.00")
        assert (summary.today_sessions, summary.total_sessions) == (1, 2)
        assert (summary.today_transactions, summary.total_transactions) == (1, 2)
        assert summary.avg_duration_mins == 45

    def test_voided_sessions_and_orders_are_excluded(self):
        sessions = [
            _record("s1", NOW, 60, "15.00"),
            _record("s2", NOW, 60, "99.00", status="voided"),
        ]
        orders = [Order("o1", [], NOW, status="voided"), Order("o2", [], NOW)]
        sales = [
            _sale("r1", "item-1", "Coca-Cola", 1, "3.50", NOW, "o1"),
            _sale("r2", "item-1", "Coca-Cola", 1, "3.50", NOW, "o2"),
        ]
        summary = build_summary(sessions, sales, orders, now=NOW)

        assert summary.total_table_revenue == Decimal("15.00")
        assert summary.total_retail_revenue == Decimal("3.50")
        assert summary.total_sessions == 1

    def test_best_sellers_ranked_by_quantity(self):
        sales = [
            _sale("r1", "a", "Chips", 1, "2.50", NOW),
            _sale("r2", "b", "Water", 4, "2.00", NOW),
            _sale("r3", "a", "Chips", 2, "2.50", NOW),
            _sale("r4", "c", "Candy", 3, "1.50", NOW),
        ]
        best = build_summary([], sales, now=NOW).best_sellers

        assert [(b.name, b.quantity) for b in best] == [("Water", 4), ("Chips", 3), ("Candy", 3)]
        assert best[1].revenue == Decimal("7.50")

    def test_best_sellers_capped_at_five(self):
        sales = [_sale(f"r{i}", f"i{i}", f"Item {i}", i + 1, "1", NOW) for i in range(7)]
        assert len(build_summary([], sales, now=NOW).best_sellers) == 5

    def test_daily_window_covers_last_seven_days(self):
        sessions = [
            _record("s1", NOW - timedelta(days=2), 60, "15.00"),
            _record("s2", NOW - timedelta(days=9), 60, "15.00"),
        ]
        daily = build_summary(sessions, [], now=NOW).daily

        assert len(daily) == 7
        assert daily[-1].day == NOW.date()
        assert daily[0].day == NOW.date() - timedelta(days=6)
        assert daily[4].tables == Decimal("15.00")
        assert sum(d.total for d in daily) == Decimal("15.00")
        assert daily[-1].label == "Fri, Mar 15"

    def test_no_finished_sessions_means_zero_average(self):
        assert build_summary([], [], now=NOW).avg_duration_mins == 0

    def test_average_ignores_records_without_end_time(self):
        unfinished = SessionRecord.from_dict(
            {"id": "s0", "startTime": (NOW - timedelta(hours=1)).isoformat(), "hourlyRate": 15, "totalAmount": 15}
        )
        sessions = [unfinished, _record("s1", NOW - timedelta(hours=2), 60, "15.00")]
        summary = build_summary(sessions, [], now=NOW)
        assert summary.avg_duration_mins == 60
        assert summary.total_sessions == 2

    def test_as_dict_formats_money(self):
        data = build_summary([_record("s1", NOW, 60, "1234.5")], [], now=NOW).as_dict("₱")
        assert data["today_total"] == "₱1,234.50"
        assert len(data["daily"]) == 7


class TestPeriods:
    @pytest.mark.parametrize(
        "ts, period, expected",
        [
            (NOW.replace(hour=1), "today", True),
            (NOW - timedelta(days=1), "today", False),
            (NOW - timedelta(days=1), "yesterday", True),
            (NOW - timedelta(days=6), "week", True),
            (NOW - timedelta(days=8), "week", False),
            (NOW - timedelta(days=29), "month", True),
            (datetime(2024, 2, 29, 23, 0), "last_month", True),
            (datetime(2024, 3, 1, 0, 0), "last_month", False),
            (datetime(2001, 1, 1), "all", True),
        ],
    )
    def test_in_period(self, ts, period, expected):
        assert in_period(ts, period, NOW) is expected

    def test_unknown_period(self):
        with pytest.raises(ValueError):
            in_period(NOW, "fortnight", NOW)


class TestRecordScreens:
    def test_filter_sessions_newest_first_with_search(self):
        sessions = [
            _record("s1", NOW - timedelta(hours=3), 30, "7.50", table="Table 1"),
            _record("s2", NOW - timedelta(hours=2), 30, "7.50", table="VIP Room"),
            _record("s3", NOW - timedelta(hours=1), 30, "7.50", table="Table 2"),
            _record("s4", NOW - timedelta(days=2), 30, "7.50", table="Table 3"),
        ]
        assert [s.id for s in filter_sessions(sessions, now=NOW)] == ["s3", "s2", "s1"]
        assert [s.id for s in filter_sessions(sessions, "table", now=NOW)] == ["s3", "s1"]
        assert [s.id for s in filter_sessions(sessions, period="all", now=NOW)] == ["s4", "s3", "s2", "s1"]

    def test_filter_orders_searches_items_and_notes(self):
        orders = [
            Order("o1", [OrderItem("item-4", "Chips", 1, Decimal("2.50"))], NOW, notes=""),
            Order("o2", [OrderItem("item-1", "Coca-Cola", 1, Decimal("3.50"))], NOW, notes="table 3"),
        ]
        assert [o.id for o in filter_orders(orders, "chips", now=NOW)] == ["o1"]
        assert [o.id for o in filter_orders(orders, "TABLE 3", now=NOW)] == ["o2"]

    def test_records_total_skips_voided(self):
        sessions = [_record("s1", NOW, 60, "15.00"), _record("s2", NOW, 60, "5.00", status="voided")]
        assert records_total(sessions) == Decimal("15.00")

    @pytest.mark.parametrize(
        "day, left",
        [(date(2024, 2, 10), 19), (date(2023, 2, 28), 0), (date(2024, 12, 1), 30)],
    )
    def test_days_remaining_in_month(self, day, left):
        assert days_remaining_in_month(day) == left
