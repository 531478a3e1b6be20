"""
Pydantic data models for the trade journal risk engine.
"""
from __future__ import annotations

from datetime import date as Date, datetime
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

AssetType = Literal["EURUSD", "GBPUSD", "XAUUSD", "USDJPY", "USDCAD", "USDCHF"]
RiskMode = Literal["percent", "cash"]


class AssetConfig(BaseModel):
    """Static contract specification for one tradable instrument."""
    model_config = ConfigDict(frozen=True)

    symbol: AssetType
    pip_value: float          # per standard lot; numerator of pip_value / price when not USD quoted
    commission: float         # round turn, per lot
    quote_currency: str
    pip_multiplier: float     # raw price difference -> pips


# ── Position calculator ─────────────────────────────────────────────────────────

class TradeInput(BaseModel):
    """A proposed trade as entered on the ticket."""
    entry_price: float
    stop_loss_price: float
    account_balance: float
    risk_mode: RiskMode = "percent"
    initial_risk_percent: float = 0.0
    risk_cash_amount: float = 0.0
    asset: AssetType = "EURUSD"
    timestamp: Optional[datetime] = None

    @property
    def is_long(self) -> bool:
        # Direction is never stored: swapping entry and stop flips the side.
        return self.entry_price > self.stop_loss_price

    @property
    def direction(self) -> Literal["long", "short"]:
        return "long" if self.is_long else "short"


class Exit(BaseModel):
    """A partial close, sized against the volume still open when it is applied."""
    id: str
    price: Optional[float] = None
    pips: Optional[float] = None     # manual pip count, used only when price is missing
    percent_to_close: float = Field(ge=0, le=100)


class ExitResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    exit_id: str
    lots_closed: float
    pips_captured: float
    gross_profit: float
    commission: float
    net_profit: float
    percent_closed_of_remaining: float
    remaining_lots: float


class CalculationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    initial_risk_amount: float
    initial_lots: float
    sl_pips: float
    exits: List[ExitResult]
    total_net_profit: float
    remaining_lots: float
    final_account_balance: float


# ── Journal ────────────────────────────────────────────────────────────────────

class Session(BaseModel):
    id: str
    name: str
    initial_balance: float
    currency: str = "USD"
    created_at: datetime


class TradeLog(BaseModel):
    """A journal entry for a calculated trade."""
    type: Literal["TRADE"] = "TRADE"
    id: str
    date: datetime
    input: TradeInput
    exits: List[Exit] = []       # the partial closes the results were settled with
    results: CalculationResult
    tags: List[str] = []
    attachments: List[str] = []


class TransferLog(BaseModel):
    """A cash movement into or out of the account."""
    type: Literal["WITHDRAWAL", "DEPOSIT"]
    id: str
    date: datetime
    amount: float = Field(ge=0)
    resulting_balance: float
    note: Optional[str] = None

    @property
    def signed_amount(self) -> float:
        return self.amount if self.type == "DEPOSIT" else -self.amount


HistoryLog = Annotated[Union[TradeLog, TransferLog], Field(discriminator="type")]


# ── Analytics ──────────────────────────────────────────────────────────────────

class ChartDataPoint(BaseModel):
    """One equity-curve sample, emitted per journal entry."""
    trade_number: int
    kind: Literal["START", "TRADE", "DEPOSIT", "WITHDRAWAL"]
    date: Optional[datetime] = None
    balance: float
    drawdown: float
    drawdown_percent: float
    trade_net_profit: float
    cumulative_net_profit: float
    cumulative_percentage_gain: float
    cumulative_r: float


class AnalyticsMetrics(BaseModel):
    net_profit: float = 0.0
    win_rate: float = 0.0                # percent
    profit_factor: float = 0.0           # gross win when there are no losses
    max_drawdown: float = 0.0
    max_drawdown_percent: float = 0.0
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    average_win: float = 0.0
    average_loss: float = 0.0            # absolute value
    expectancy: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    sharpe_ratio: float = 0.0            # per-trade expectancy / stddev
    risk_reward_ratio: float = 0.0
    skewness: float = 0.0


class SessionSummary(BaseModel):
    """Balance-level view of a session, transfers included."""
    initial_balance: float
    balance: float
    net_profit: float                    # trading P&L only
    total_percentage_gain: float
    total_trades: int
    win_rate: float
    profit_factor: float
    average_rr: float
    max_drawdown: float                  # withdrawal-adjusted
    max_drawdown_percent: float


class HistoricalStats(BaseModel):
    """Win/loss statistics used to seed a forward simulation."""
    win_rate: float
    avg_win: float
    avg_loss: float
    count: int


class DayStats(BaseModel):
    date: Date
    pnl: float
    trades: int
    wins: int
    total_r: float
    has_trades: bool


class WeekStats(BaseModel):
    week_number: int
    pnl: float
    trades: int
    days_traded: int


class CalendarMonth(BaseModel):
    year: int
    month: int
    days: List[DayStats]
    weeks: List[WeekStats]
    total_pnl: float
    active_days: int


# ── Risk replay ─────────────────────────────────────────────────────────────────

class RiskOverride(BaseModel):
    """Replace every trade's risk with one setting."""
    type: Literal["static"] = "static"
    value: float = Field(gt=0)
    unit: RiskMode = "percent"


class RiskMapping(BaseModel):
    """Replace each distinct historical risk setting (keyed ``p_1``, ``c_100``) with a new value."""
    type: Literal["mapping"] = "mapping"
    mapping: Dict[str, float]


ReplayConfig = Annotated[Union[RiskOverride, RiskMapping], Field(discriminator="type")]


# ── Monte Carlo ────────────────────────────────────────────────────────────────

class MonteCarloParams(BaseModel):
    start_balance: float
    num_simulations: int = Field(50, gt=0)
    num_trades: int = Field(50, ge=0)
    win_rate: float = Field(50.0, ge=0, le=100)
    avg_win: float = 100.0
    avg_loss: float = 100.0
    risk_per_trade_type: Literal["percent", "fixed"] = "percent"
    risk_per_trade: float = 1.0      # percent of balance, or cash in fixed mode
    seed: Optional[int] = None


class SimulationResult(BaseModel):
    equity_curve: List[float]
    final_balance: float
    max_drawdown: float
    max_drawdown_percent: float


class SimulationStats(BaseModel):
    median_balance: float
    p05_balance: float
    p95_balance: float
    median_drawdown: float
    max_drawdown_p95: float
    ruin_probability: float      # percent of trials ending at or below zero


class SimulationBands(BaseModel):
    """Fan-chart data: per-step percentile bands across all trials."""
    p05_path: List[float]
    median_path: List[float]
    p95_path: List[float]


class MonteCarloResponse(BaseModel):
    results: List[SimulationResult]
    stats: SimulationStats
    bands: SimulationBands


# ── API payloads ───────────────────────────────────────────────────────────────

class CalculateRequest(BaseModel):
    input: TradeInput
    exits: List[Exit] = []


class AnalyticsRequest(BaseModel):
    logs: List[HistoryLog]
    initial_balance: float = 0.0
    asset: Optional[str] = None


class AnalyticsResponse(BaseModel):
    metrics: AnalyticsMetrics
    summary: SessionSummary
    equity_curve: List[ChartDataPoint]


class CalendarRequest(BaseModel):
    logs: List[HistoryLog]
    year: int
    month: int = Field(ge=1, le=12)


class DefaultsRequest(BaseModel):
    logs: List[HistoryLog]
    start_balance: float


class ReplayRequest(BaseModel):
    logs: List[HistoryLog]
    initial_balance: float
    config: ReplayConfig


class ReplayResponse(BaseModel):
    logs: List[HistoryLog]
    metrics: AnalyticsMetrics
    equity_curve: List[ChartDataPoint]
