"""
Risk replay: re-run a journal's trades under different risk settings.

Each trade keeps its prices, asset and exits but is re-sized against the
balance the replayed account would have had at that point, so the effect of
a risk change compounds through the history.
"""
from __future__ import annotations

import logging
from typing import List, Sequence

from analytics import sort_logs
from calculator import calculate_trade
from models import Exit, HistoryLog, ReplayConfig, RiskMapping, TradeInput, TradeLog, TransferLog

logger = logging.getLogger(__name__)


def _fmt(value: float) -> str:
    return f"{value:g}"


def risk_key(trade: TradeInput) -> str:
    """Identify a trade's risk setting, e.g. ``p_1`` for 1 % or ``c_100`` for $100."""
    if trade.risk_mode == "cash" and trade.risk_cash_amount:
        return f"c_{_fmt(trade.risk_cash_amount)}"
    return f"p_{_fmt(trade.initial_risk_percent)}"


def detect_risks(logs: Sequence[HistoryLog]) -> List[str]:
    """Distinct risk settings used in the journal: percent first, then cash, each ascending."""
    seen = {}
    for log in logs:
        if isinstance(log, TradeLog):
            key = risk_key(log.input)
            seen.setdefault(key, (0 if key.startswith("p_") else 1, float(key[2:])))
    return sorted(seen, key=seen.get)


def _recorded_exits(log: TradeLog) -> List[Exit]:
    """The exits a trade was settled with, rebuilt from its results for logs that predate stored exits."""
    if log.exits:
        return list(log.exits)
    return [
        Exit(id=r.exit_id, pips=r.pips_captured, percent_to_close=r.percent_closed_of_remaining)
        for r in log.results.exits
    ]


def _with_risk(trade: TradeInput, balance: float, config: ReplayConfig) -> TradeInput:
    if isinstance(config, RiskMapping):
        key = risk_key(trade)
        if key not in config.mapping:
            return trade.model_copy(update={"account_balance": balance})
        value = config.mapping[key]
        mode = "cash" if key.startswith("c_") else "percent"
    else:
        value, mode = config.value, config.unit

    update = {"account_balance": balance, "risk_mode": mode}
    if mode == "cash":
        update["risk_cash_amount"] = value
    else:
        update["initial_risk_percent"] = value
    return trade.model_copy(update=update)


def replay_history(
    logs: Sequence[HistoryLog],
    initial_balance: float,
    config: ReplayConfig,
) -> List[HistoryLog]:
    """
    Recalculate every trade in chronological order with substituted risk.

    Trades whose risk key is absent from a mapping keep their own risk but are
    still re-sized against the replayed balance.  The input logs are not
    modified.
    """
    balance = initial_balance
    replayed: List[HistoryLog] = []

    for log in sort_logs(logs):
        if isinstance(log, TradeLog):
            trade = _with_risk(log.input, balance, config)
            results = calculate_trade(trade, _recorded_exits(log))
            balance = results.final_account_balance
            replayed.append(log.model_copy(update={"input": trade, "results": results}))
        elif isinstance(log, TransferLog):
            balance += log.signed_amount
            replayed.append(log.model_copy(update={"resulting_balance": balance}))

    logger.info("Replayed %d logs, final balance %.2f", len(replayed), balance)
    return replayed
