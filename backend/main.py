"""
Trade Journal Risk Engine API — FastAPI backend.

Endpoints
---------
GET  /health                 Health check.
POST /calculate              Size a trade and settle its partial exits.
POST /analytics              Metrics, session summary and equity curve for a journal.
POST /analytics/calendar     Day / week totals for one month.
POST /monte-carlo            Forward Monte Carlo from win/loss statistics.
POST /monte-carlo/defaults   Simulation parameters seeded from a journal.
POST /replay                 Re-run a journal under different risk settings.

Every handler is a thin wrapper over a pure function; no state is kept
between requests.
"""
from __future__ import annotations

import logging
from typing import Dict

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from analytics import (
    compute_equity_curve,
    compute_metrics,
    filter_logs,
    monte_carlo_defaults,
    session_summary,
)
from calculator import calculate_trade
from calendar_stats import calendar_month
from config import settings
from models import (
    AnalyticsRequest,
    AnalyticsResponse,
    CalculateRequest,
    CalculationResult,
    CalendarMonth,
    CalendarRequest,
    DefaultsRequest,
    MonteCarloParams,
    MonteCarloResponse,
    ReplayRequest,
    ReplayResponse,
)
from monte_carlo import run_monte_carlo
from replay import replay_history

logging.basicConfig(level=settings.LOG_LEVEL, format="%(levelname)s  %(name)s  %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Position sizing, journal analytics and Monte Carlo risk simulation for trading journals.",
    version=settings.APP_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Routes ─────────────────────────────────────────────────────────────────────────

@app.get("/health")
def health() -> Dict[str, str]:
    """Simple liveness probe."""
    return {"status": "ok"}


@app.post("/calculate", response_model=CalculationResult)
def calculate(request: CalculateRequest) -> CalculationResult:
    """
    Compute lot size, risk and per-exit P&L for a trade ticket.

    Degenerate tickets (no stop distance, no risk) return zero lots rather
    than an error so the form can be recalculated on every keystroke.
    """
    return calculate_trade(request.input, request.exits)


@app.post("/analytics", response_model=AnalyticsResponse)
def analytics(request: AnalyticsRequest) -> AnalyticsResponse:
    """Summary metrics and the drawdown-adjusted equity curve for a journal slice."""
    logs = filter_logs(request.logs, request.asset)
    logger.info("Analytics over %d of %d logs (asset=%s)", len(logs), len(request.logs), request.asset or "ALL")

    return AnalyticsResponse(
        metrics=compute_metrics(logs, request.initial_balance),
        summary=session_summary(logs, request.initial_balance),
        equity_curve=compute_equity_curve(logs, request.initial_balance),
    )


@app.post("/analytics/calendar", response_model=CalendarMonth)
def calendar(request: CalendarRequest) -> CalendarMonth:
    return calendar_month(request.logs, request.year, request.month)


@app.post("/monte-carlo", response_model=MonteCarloResponse)
def monte_carlo(params: MonteCarloParams) -> MonteCarloResponse:
    """
    Run the forward simulation.

    The whole batch is computed or rejected; there are no partial results.
    """
    cells = params.num_simulations * max(params.num_trades, 1)
    if cells > settings.MAX_SIMULATION_CELLS:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Simulation too large: {params.num_simulations} × {params.num_trades} exceeds "
                f"{settings.MAX_SIMULATION_CELLS} steps."
            ),
        )

    logger.info(
        "Starting MC: %d simulations, %d trades, start_balance=%.0f, mode=%s",
        params.num_simulations,
        params.num_trades,
        params.start_balance,
        params.risk_per_trade_type,
    )

    try:
        result = run_monte_carlo(params)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    logger.info("Simulation complete — ruin probability %.1f%%.", result.stats.ruin_probability)
    return result


@app.post("/monte-carlo/defaults", response_model=MonteCarloParams)
def monte_carlo_params(request: DefaultsRequest) -> MonteCarloParams:
    """Pre-fill simulation parameters from the journal's historical win/loss profile."""
    return monte_carlo_defaults(request.logs, request.start_balance)


@app.post("/replay", response_model=ReplayResponse)
def replay(request: ReplayRequest) -> ReplayResponse:
    """Recalculate every trade with substituted risk and report the resulting performance."""
    logs = replay_history(request.logs, request.initial_balance, request.config)
    return ReplayResponse(
        logs=logs,
        metrics=compute_metrics(logs, request.initial_balance),
        equity_curve=compute_equity_curve(logs, request.initial_balance),
    )
