"""Revenue summaries and record screens for Cue POS.

Everything here folds over the ledger lists without changing them. Voided
sessions, and sales that belong to a voided order, stay in the raw lists for
audit but never count towards revenue.
"""
from __future__ import annotations

import calendar
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from ..core.money import fmt_money, to_money
from .models import Order, RetailSale, SessionRecord

PERIODS = ("today", "yesterday", "week", "month", "last_month", "all")
BEST_SELLER_LIMIT = 5
DAILY_WINDOW = 7

_ZERO = Decimal("0")


@dataclass(slots=True)
class BestSeller:
    item_id: str
    name: str
    quantity: int = 0
    revenue: Decimal = _ZERO


@dataclass(slots=True)
class DailyRevenue:
    day: date
    tables: Decimal = _ZERO
    retail: Decimal = _ZERO

    @property
    def total(self) -> Decimal:
        return self.tables + self.retail

    @property
    def label(self) -> str:
        return f"{self.day:%a}, {self.day:%b} {self.day.day}"


@dataclass(slots=True)
class RevenueSummary:
    day: date
    today_table_revenue: Decimal
    today_retail_revenue: Decimal
    total_table_revenue: Decimal
    total_retail_revenue: Decimal
    today_sessions: int
    total_sessions: int
    today_transactions: int
    total_transactions: int
    avg_duration_mins: int
    best_sellers: List[BestSeller] = field(default_factory=list)
    daily: List[DailyRevenue] = field(default_factory=list)

    @property
    def today_total(self) -> Decimal:
        return self.today_table_revenue + self.today_retail_revenue

    @property
    def total_revenue(self) -> Decimal:
        return self.total_table_revenue + self.total_retail_revenue

    def as_dict(self, currency: str = "₱") -> Dict[str, object]:
        return {
            "day": self.day.isoformat(),
            "today_table_revenue": fmt_money(self.today_table_revenue, currency),
            "today_retail_revenue": fmt_money(self.today_retail_revenue, currency),
            "today_total": fmt_money(self.today_total, currency),
            "total_table_revenue": fmt_money(self.total_table_revenue, currency),
            "total_retail_revenue": fmt_money(self.total_retail_revenue, currency),
            "total_revenue": fmt_money(self.total_revenue, currency),
            "today_sessions": self.today_sessions,
            "total_sessions": self.total_sessions,
            "today_transactions": self.today_transactions,
            "total_transactions": self.total_transactions,
            "avg_duration_mins": self.avg_duration_mins,
            "best_sellers": [
                {"name": b.name, "quantity": b.quantity, "revenue": fmt_money(b.revenue, currency)}
                for b in self.best_sellers
            ],
            "daily": [
                {
                    "day": d.label,
                    "tables": fmt_money(d.tables, currency),
                    "retail": fmt_money(d.retail, currency),
                    "total": fmt_money(d.total, currency),
                }
                for d in self.daily
            ],
        }


def billable_sessions(sessions: Iterable[SessionRecord]) -> List[SessionRecord]:
    return [s for s in sessions if not s.is_voided]


def billable_sales(
    retail_sales: Iterable[RetailSale], orders: Iterable[Order] = ()
) -> List[RetailSale]:
    voided = {o.id for o in orders if o.is_voided}
    return [s for s in retail_sales if not (s.order_id and s.order_id in voided)]


def _sum(values: Iterable[Decimal]) -> Decimal:
    return to_money(sum(values, _ZERO))


def _best_sellers(sales: Sequence[RetailSale]) -> List[BestSeller]:
    by_item: Dict[str, BestSeller] = {}
    for sale in sales:
        entry = by_item.get(sale.item_id)
        if entry is None:
            entry = by_item[sale.item_id] = BestSeller(sale.item_id, sale.item_name)
        entry.quantity += sale.quantity
        entry.revenue = to_money(entry.revenue + sale.total_price)
    # sorted() is stable, so equal quantities keep first-sold order
    ranked = sorted(by_item.values(), key=lambda b: b.quantity, reverse=True)
    return ranked[:BEST_SELLER_LIMIT]


def _daily(
    sessions: Sequence[SessionRecord], sales: Sequence[RetailSale], today: date
) -> List[DailyRevenue]:
    days = [DailyRevenue(today - timedelta(days=i)) for i in range(DAILY_WINDOW - 1, -1, -1)]
    by_day = {d.day: d for d in days}
    for s in sessions:
        bucket = by_day.get(s.start_time.date())
        if bucket is not None:
            bucket.tables = to_money(bucket.tables + s.total_amount)
    for s in sales:
        bucket = by_day.get(s.timestamp.date())
        if bucket is not None:
            bucket.retail = to_money(bucket.retail + s.total_price)
    return days


def build_summary(
    sessions: Iterable[SessionRecord],
    retail_sales: Iterable[RetailSale],
    orders: Iterable[Order] = (),
    now: Optional[datetime] = None,
) -> RevenueSummary:
    reference = now or datetime.now()
    today = reference.date()
    live_sessions = billable_sessions(sessions)
    live_sales = billable_sales(retail_sales, orders)

    today_sessions = [s for s in live_sessions if s.start_time.date() == today]
    today_sales = [s for s in live_sales if s.timestamp.date() == today]

    finished = [s for s in live_sessions if s.end_time is not None]
    if finished:
        avg_ms = sum(s.duration_ms for s in finished) / len(finished)
        avg_mins = int(math.floor(avg_ms / 60_000 + 0.5))
    else:
        avg_mins = 0

    return RevenueSummary(
        day=today,
        today_table_revenue=_sum(s.total_amount for s in today_sessions),
        today_retail_revenue=_sum(s.total_price for s in today_sales),
        total_table_revenue=_sum(s.total_amount for s in live_sessions),
        total_retail_revenue=_sum(s.total_price for s in live_sales),
        today_sessions=len(today_sessions),
        total_sessions=len(live_sessions),
        today_transactions=len(today_sales),
        total_transactions=len(live_sales),
        avg_duration_mins=avg_mins,
        best_sellers=_best_sellers(live_sales),
        daily=_daily(live_sessions, live_sales, today),
    )


# ----- record screens -----
def _previous_month(today: date) -> tuple[date, date]:
    first_this = today.replace(day=1)
    last_prev = first_this - timedelta(days=1)
    return last_prev.replace(day=1), last_prev


def in_period(ts: datetime, period: str, now: datetime) -> bool:
    if period == "all":
        return True
    if period == "today":
        return ts.date() == now.date()
    if period == "yesterday":
        return ts.date() == now.date() - timedelta(days=1)
    if period == "week":
        return ts >= now - timedelta(days=7)
    if period == "month":
        return ts >= now - timedelta(days=30)
    if period == "last_month":
        start, end = _previous_month(now.date())
        return start <= ts.date() <= end
    raise ValueError(f"unknown period {period!r}")


def filter_sessions(
    sessions: Iterable[SessionRecord],
    search: str = "",
    period: str = "today",
    now: Optional[datetime] = None,
) -> List[SessionRecord]:
    """Newest first, matching table name and the start day."""
    reference = now or datetime.now()
    needle = (search or "").strip().lower()
    out = []
    for s in reversed(list(sessions)):
        if needle and needle not in s.table_name.lower():
            continue
        if not in_period(s.start_time, period, reference):
            continue
        out.append(s)
    return out


def filter_orders(
    orders: Iterable[Order],
    search: str = "",
    period: str = "all",
    now: Optional[datetime] = None,
) -> List[Order]:
    reference = now or datetime.now()
    needle = (search or "").strip().lower()
    out = []
    for o in reversed(list(orders)):
        if needle and not (
            needle in o.id.lower()
            or needle in (o.notes or "").lower()
            or any(needle in line.item_name.lower() for line in o.items)
        ):
            continue
        if not in_period(o.timestamp, period, reference):
            continue
        out.append(o)
    return out


def records_total(sessions: Iterable[SessionRecord]) -> Decimal:
    return _sum(s.total_amount for s in billable_sessions(sessions))


def days_remaining_in_month(today: Optional[date] = None) -> int:
    day = today or date.today()
    last = calendar.monthrange(day.year, day.month)[1]
    return last - day.day
