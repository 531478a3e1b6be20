"""
Vectorised forward Monte Carlo simulation from win/loss statistics.

Methodology
-----------
For each simulation:
    1. Draw ``num_trades`` independent win/loss outcomes, each a win with
       probability ``win_rate`` %.
    2. Settle each outcome either as a fixed cash amount (historical average
       win / loss) or as a fraction of the current balance (risk % scaled by
       the average win/loss R-multiple), so that percent mode compounds.
    3. Record the full equity trail.  A trial that hits zero is not stopped;
       it counts as ruined if its final balance is at or below zero.

All simulations advance together as rows of one NumPy array: fixed mode is a
single cumulative sum, percent mode loops over trade steps only.

Aggregate percentiles use ``floor(n × p)`` indexing into the sorted values,
not interpolation.
"""
from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np

from models import (
    MonteCarloParams,
    MonteCarloResponse,
    SimulationBands,
    SimulationResult,
    SimulationStats,
)

logger = logging.getLogger(__name__)


def _percentile_index(n: int, pct: float) -> int:
    return min(int(math.floor(n * pct)), n - 1)


def _pick(sorted_values: np.ndarray, pct: float) -> float:
    return float(sorted_values[_percentile_index(len(sorted_values), pct)])


def _simulate_paths(params: MonteCarloParams, rng: np.random.Generator) -> np.ndarray:
    """Return equity paths of shape (num_simulations, num_trades + 1), start balance first."""
    n_sims, n_trades = params.num_simulations, params.num_trades
    wins: np.ndarray = rng.random((n_sims, n_trades)) * 100 < params.win_rate
    start = np.full((n_sims, 1), params.start_balance, dtype=np.float64)

    if params.risk_per_trade_type == "fixed":
        pnl = np.where(wins, params.avg_win, -abs(params.avg_loss))
        return np.cumsum(np.hstack([start, pnl]), axis=1)

    r_multiple = params.avg_win / abs(params.avg_loss) if params.avg_loss != 0 else 1.0
    risk_fraction = params.risk_per_trade / 100

    paths = np.empty((n_sims, n_trades + 1), dtype=np.float64)
    paths[:, 0] = params.start_balance
    balance = paths[:, 0].copy()
    for step in range(n_trades):
        risk = balance * risk_fraction
        balance = balance + np.where(wins[:, step], risk * r_multiple, -risk)
        paths[:, step + 1] = balance
    return paths


def run_monte_carlo(
    params: MonteCarloParams,
    rng: Optional[np.random.Generator] = None,
) -> MonteCarloResponse:
    """
    Run ``params.num_simulations`` independent trials and summarise them.

    Args:
        params: Simulation parameters.
        rng:    Random source.  Defaults to ``np.random.default_rng(params.seed)``.

    Returns:
        Per-trial equity trails, aggregate statistics and percentile bands.

    Raises:
        ValueError: If ``num_simulations`` is not positive.
    """
    n_sims = params.num_simulations
    if n_sims <= 0:
        raise ValueError("num_simulations must be at least 1.")

    if rng is None:
        rng = np.random.default_rng(params.seed)

    paths = _simulate_paths(params, rng)

    # ── Per-simulation drawdown ───────────────────────────────────────────────────
    running_max: np.ndarray = np.maximum.accumulate(paths, axis=1)
    drawdowns: np.ndarray = running_max - paths
    drawdowns_pct: np.ndarray = np.divide(
        drawdowns * 100, running_max, out=np.zeros_like(drawdowns), where=running_max > 0
    )
    max_dd: np.ndarray = np.max(drawdowns, axis=1)
    max_dd_pct: np.ndarray = np.max(drawdowns_pct, axis=1)
    final_balances: np.ndarray = paths[:, -1]

    # ── Summary statistics ────────────────────────────────────────────────────────
    sorted_finals = np.sort(final_balances)
    sorted_dd = np.sort(max_dd_pct)
    ruined = int(np.count_nonzero(final_balances <= 0))

    stats = SimulationStats(
        median_balance=_pick(sorted_finals, 0.5),
        p05_balance=_pick(sorted_finals, 0.05),
        p95_balance=_pick(sorted_finals, 0.95),
        median_drawdown=_pick(sorted_dd, 0.5),
        max_drawdown_p95=_pick(sorted_dd, 0.95),
        ruin_probability=ruined / n_sims * 100,
    )

    # ── Percentile bands along the path axis ──────────────────────────────────────
    by_step = np.sort(paths, axis=0)
    bands = SimulationBands(
        p05_path=by_step[_percentile_index(n_sims, 0.05)].tolist(),
        median_path=by_step[_percentile_index(n_sims, 0.5)].tolist(),
        p95_path=by_step[_percentile_index(n_sims, 0.95)].tolist(),
    )

    results = [
        SimulationResult(
            equity_curve=path,
            final_balance=float(final),
            max_drawdown=float(dd),
            max_drawdown_percent=float(dd_pct),
        )
        for path, final, dd, dd_pct in zip(paths.tolist(), final_balances, max_dd, max_dd_pct)
    ]

    logger.debug(
        "Monte Carlo: %d sims × %d trades, median=%.2f ruin=%.1f%%",
        n_sims, params.num_trades, stats.median_balance, stats.ruin_probability,
    )

    return MonteCarloResponse(results=results, stats=stats, bands=bands)
