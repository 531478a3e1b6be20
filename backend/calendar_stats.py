"""
Calendar aggregation of trade results.

Trades are bucketed by the calendar day of their journal timestamp (as
stored, no timezone conversion).  Weeks are the Sunday-first rows of a month
grid, so the first and last week of a month are usually partial.
"""
from __future__ import annotations

from datetime import date
from typing import Dict, List, Sequence

import pandas as pd

from analytics import r_multiple, trade_logs
from models import CalendarMonth, DayStats, HistoryLog, WeekStats


def _daily_frame(logs: Sequence[HistoryLog]) -> pd.DataFrame:
    trades = trade_logs(logs)
    return pd.DataFrame(
        {
            "day": pd.to_datetime([t.date.date() for t in trades]),
            "pnl": [t.results.total_net_profit for t in trades],
            "win": [t.results.total_net_profit > 0 for t in trades],
            "r": [r_multiple(t) for t in trades],
        }
    )


def calendar_month(logs: Sequence[HistoryLog], year: int, month: int) -> CalendarMonth:
    """Per-day and per-week trade totals for one month."""
    first = pd.Timestamp(year=year, month=month, day=1)
    frame = _daily_frame(logs)
    in_month = frame[(frame["day"].dt.year == year) & (frame["day"].dt.month == month)]

    by_day: Dict[int, dict] = (
        in_month.groupby(in_month["day"].dt.day)
        .agg(pnl=("pnl", "sum"), trades=("pnl", "size"), wins=("win", "sum"), total_r=("r", "sum"))
        .to_dict("index")
    )

    days: List[DayStats] = []
    for d in range(1, first.days_in_month + 1):
        row = by_day.get(d)
        days.append(
            DayStats(
                date=date(year, month, d),
                pnl=float(row["pnl"]) if row else 0.0,
                trades=int(row["trades"]) if row else 0,
                wins=int(row["wins"]) if row else 0,
                total_r=float(row["total_r"]) if row else 0.0,
                has_trades=row is not None,
            )
        )

    # Blank cells before the 1st in a Sunday-first grid.
    lead = (first.dayofweek + 1) % 7
    n_weeks = (lead + len(days) - 1) // 7 + 1
    weeks = [WeekStats(week_number=i + 1, pnl=0.0, trades=0, days_traded=0) for i in range(n_weeks)]
    for day in days:
        if not day.has_trades:
            continue
        week = weeks[(lead + day.date.day - 1) // 7]
        week.pnl += day.pnl
        week.trades += day.trades
        week.days_traded += 1

    return CalendarMonth(
        year=year,
        month=month,
        days=days,
        weeks=weeks,
        total_pnl=sum(d.pnl for d in days),
        active_days=sum(1 for d in days if d.has_trades),
    )
