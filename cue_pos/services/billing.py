"""Time based billing for table sessions.

Open sessions are billed per started quarter hour; fixed sessions are a flat
fee for the declared number of hours no matter when the players stop. The
same frozen elapsed value is used for the closing display and for the
invoice, so :func:`calculate_amount` must stay a pure function.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..core.money import to_decimal, to_money
from .models import SESSION_FIXED, TableSession

MS_PER_HOUR = 3_600_000
MS_PER_QUARTER = MS_PER_HOUR // 4


def billable_quarters(elapsed_ms: int) -> int:
    """Number of started quarter hours in *elapsed_ms* (ceil)."""
    elapsed = max(0, int(elapsed_ms or 0))
    return -(-elapsed // MS_PER_QUARTER)


def calculate_amount(
    elapsed_ms: int,
    session_type: str,
    fixed_duration=None,
    hourly_rate=0,
) -> Decimal:
    rate = to_decimal(hourly_rate)
    if session_type == SESSION_FIXED and fixed_duration:
        return to_money(to_decimal(fixed_duration) * rate)
    hours = Decimal(billable_quarters(elapsed_ms)) / Decimal(4)
    return to_money(hours * rate)


def elapsed_ms(start: datetime, now: Optional[datetime] = None) -> int:
    reference = now or datetime.now()
    delta = reference - start
    return max(0, int(delta.total_seconds() * 1000))


def estimate_amount(elapsed: int, hourly_rate) -> Decimal:
    """Linear running estimate shown on a tile while the clock runs."""
    hours = Decimal(max(0, int(elapsed or 0))) / Decimal(MS_PER_HOUR)
    return to_money(hours * to_decimal(hourly_rate))


def is_overtime(session: TableSession, elapsed: int) -> bool:
    """True once a fixed session has run past its declared duration."""
    if session.session_type != SESSION_FIXED or not session.fixed_duration:
        return False
    limit_ms = to_decimal(session.fixed_duration) * MS_PER_HOUR
    return Decimal(elapsed) >= limit_ms


def format_duration(ms: int) -> str:
    total_seconds = max(0, int(ms or 0)) // 1000
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_span(start: datetime, end: Optional[datetime]) -> str:
    if end is None:
        return "-"
    ms = elapsed_ms(start, end)
    hours = ms // MS_PER_HOUR
    minutes = (ms % MS_PER_HOUR) // 60_000
    return f"{hours}h {minutes}m"
