"""
Performance analytics over a session journal.

Metrics are computed from trade entries only; the equity curve replays the
whole journal, transfers included, in chronological order.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

import numpy as np
from scipy import stats

from calculator import round_half_up
from config import settings
from models import (
    AnalyticsMetrics,
    ChartDataPoint,
    HistoricalStats,
    HistoryLog,
    MonteCarloParams,
    SessionSummary,
    TradeLog,
    TransferLog,
)

logger = logging.getLogger(__name__)

# Below this the P&L series is treated as having no dispersion at all.
_MIN_STD = 1e-12


def _instant(when: datetime) -> datetime:
    # Naive timestamps are read as UTC so they order against aware ones.
    if when.tzinfo is None:
        return when.replace(tzinfo=timezone.utc)
    return when


def sort_logs(logs: Sequence[HistoryLog]) -> List[HistoryLog]:
    """Oldest first; entries sharing a timestamp keep their given order."""
    return sorted(logs, key=lambda log: _instant(log.date))


def filter_logs(logs: Sequence[HistoryLog], asset: Optional[str]) -> List[HistoryLog]:
    """Keep trades on ``asset`` plus every transfer. ``None`` or ``"ALL"`` keeps everything."""
    if not asset or asset == "ALL":
        return list(logs)
    return [log for log in logs if not isinstance(log, TradeLog) or log.input.asset == asset]


def trade_logs(logs: Sequence[HistoryLog]) -> List[TradeLog]:
    return [log for log in sort_logs(logs) if isinstance(log, TradeLog)]


def r_multiple(log: TradeLog) -> float:
    """Net profit as a multiple of the cash initially risked (risk 0 counts as 1)."""
    risk = log.results.initial_risk_amount if log.results.initial_risk_amount > 0 else 1.0
    return log.results.total_net_profit / risk


def compute_metrics(logs: Sequence[HistoryLog], initial_balance: float = 0.0) -> AnalyticsMetrics:
    """
    Compute summary statistics for the trades in ``logs``.

    Args:
        logs:            Journal entries; transfers are ignored.
        initial_balance: Session starting balance, used only to express the
                         max drawdown as a percentage.

    Returns:
        AnalyticsMetrics; all zeros when there are no trades.
    """
    trades = trade_logs(logs)
    n = len(trades)
    if n == 0:
        return AnalyticsMetrics()

    pnl = np.array([t.results.total_net_profit for t in trades], dtype=np.float64)

    # Break-even trades count against the win rate.
    wins = pnl[pnl > 0]
    losses = pnl[pnl <= 0]

    gross_win = float(np.sum(wins))
    gross_loss = float(np.sum(np.abs(losses)))
    net_profit = float(np.sum(pnl))

    average_win = gross_win / len(wins) if len(wins) else 0.0
    average_loss = gross_loss / len(losses) if len(losses) else 0.0
    expectancy = net_profit / n

    # ── Max drawdown ─────────────────────────────────────────────────────────────
    # Fold over cumulative trade P&L only, starting flat at zero.
    running: np.ndarray = np.cumsum(pnl)
    peak: np.ndarray = np.maximum.accumulate(np.maximum(running, 0.0))
    drawdown: np.ndarray = peak - running
    base: np.ndarray = initial_balance + peak
    drawdown_pct = np.divide(
        drawdown * 100, base, out=np.zeros_like(drawdown), where=base > 0
    )

    # ── Dispersion ────────────────────────────────────────────────────────────────
    std_pnl = float(np.std(pnl))
    has_spread = std_pnl > _MIN_STD
    sharpe = expectancy / std_pnl if has_spread else 0.0
    skewness = float(stats.skew(pnl)) if n > 2 and has_spread else 0.0

    return AnalyticsMetrics(
        net_profit=net_profit,
        win_rate=len(wins) / n * 100,
        profit_factor=gross_win / gross_loss if gross_loss > 0 else gross_win,
        max_drawdown=max(float(np.max(drawdown)), 0.0),
        max_drawdown_percent=max(float(np.max(drawdown_pct)), 0.0),
        total_trades=n,
        winning_trades=int(len(wins)),
        losing_trades=int(len(losses)),
        average_win=average_win,
        average_loss=average_loss,
        expectancy=expectancy,
        largest_win=float(np.max(wins)) if len(wins) else 0.0,
        largest_loss=float(np.min(losses)) if len(losses) else 0.0,
        sharpe_ratio=sharpe,
        risk_reward_ratio=average_win / average_loss if average_loss > 0 else average_win,
        skewness=skewness,
    )


def compute_equity_curve(logs: Sequence[HistoryLog], initial_balance: float) -> List[ChartDataPoint]:
    """
    Replay the journal into one chart sample per entry.

    Deposits and withdrawals move the high-water mark by the same amount as
    the balance, so a withdrawal never shows up as a trading drawdown.  This
    is a deliberate simplification in place of time-weighted returns.

    Args:
        logs:            Journal entries in any order.
        initial_balance: Session starting balance.

    Returns:
        Samples in chronological order, starting with the pre-trade state.
    """
    balance = initial_balance
    peak = initial_balance
    trade_count = 0
    cumulative_net = 0.0
    cumulative_r = 0.0

    def gain_pct() -> float:
        return cumulative_net / initial_balance * 100 if initial_balance > 0 else 0.0

    def sample(kind, log=None, trade_net=0.0) -> ChartDataPoint:
        drawdown = peak - balance
        return ChartDataPoint(
            trade_number=trade_count,
            kind=kind,
            date=log.date if log is not None else None,
            balance=balance,
            drawdown=drawdown,
            drawdown_percent=drawdown / peak * 100 if peak > 0 else 0.0,
            trade_net_profit=trade_net,
            cumulative_net_profit=cumulative_net,
            cumulative_percentage_gain=gain_pct(),
            cumulative_r=cumulative_r,
        )

    points = [sample("START")]

    for log in sort_logs(logs):
        if isinstance(log, TradeLog):
            profit = log.results.total_net_profit
            trade_count += 1
            balance += profit
            cumulative_net += profit
            cumulative_r += r_multiple(log)
            peak = max(peak, balance)
            points.append(sample("TRADE", log, profit))
        elif isinstance(log, TransferLog):
            balance += log.signed_amount
            peak += log.signed_amount
            points.append(sample(log.type, log))

    logger.debug("Equity curve: %d samples from %d logs", len(points), len(logs))
    return points


def session_summary(logs: Sequence[HistoryLog], initial_balance: float) -> SessionSummary:
    """
    Headline figures for a session card.

    Balance and drawdown come from the transfer-adjusted equity curve, so a
    withdrawal lowers the balance without counting as a drawdown.
    """
    points = compute_equity_curve(logs, initial_balance)
    metrics = compute_metrics(logs, initial_balance)
    last = points[-1]

    return SessionSummary(
        initial_balance=initial_balance,
        balance=last.balance,
        net_profit=last.cumulative_net_profit,
        total_percentage_gain=last.cumulative_percentage_gain,
        total_trades=metrics.total_trades,
        win_rate=metrics.win_rate,
        profit_factor=metrics.profit_factor,
        average_rr=metrics.risk_reward_ratio,
        max_drawdown=max(p.drawdown for p in points),
        max_drawdown_percent=max(p.drawdown_percent for p in points),
    )


# ── Monte Carlo seeding ─────────────────────────────────────────────────────────

def historical_stats(logs: Sequence[HistoryLog]) -> HistoricalStats:
    """
    Win rate and average win/loss sizes of the journal's trades.

    Break-even trades count as wins here, matching the simulator's two-outcome
    model.  An empty journal yields neutral defaults (50 %, 100 / 100).
    """
    trades = trade_logs(logs)
    if not trades:
        return HistoricalStats(win_rate=50.0, avg_win=100.0, avg_loss=100.0, count=0)

    pnl = np.array([t.results.total_net_profit for t in trades], dtype=np.float64)
    wins = pnl[pnl >= 0]
    losses = pnl[pnl < 0]

    return HistoricalStats(
        win_rate=len(wins) / len(pnl) * 100,
        avg_win=float(np.mean(wins)) if len(wins) else 0.0,
        avg_loss=float(np.mean(np.abs(losses))) if len(losses) else 0.0,
        count=len(pnl),
    )


def monte_carlo_defaults(logs: Sequence[HistoryLog], start_balance: float) -> MonteCarloParams:
    """Simulation parameters pre-filled from the journal's history."""
    hist = historical_stats(logs)
    return MonteCarloParams(
        start_balance=start_balance,
        num_simulations=settings.DEFAULT_SIMULATIONS,
        num_trades=hist.count if hist.count > 0 else settings.DEFAULT_TRADES,
        win_rate=round_half_up(hist.win_rate, 1),
        avg_win=round_half_up(hist.avg_win, 2),
        avg_loss=round_half_up(hist.avg_loss, 2),
        risk_per_trade_type="percent",
        risk_per_trade=1.0,
        seed=settings.MONTE_CARLO_SEED,
    )
