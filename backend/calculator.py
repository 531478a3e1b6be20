"""
Position sizing and waterfall partial-exit P&L.

``calculate_trade`` is pure and cheap: the ticket calls it on every input
change, and it never raises for incomplete or degenerate input.  Invalid
configurations come back with ``initial_lots == 0``.
"""
from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Sequence

from assets import get_asset, pip_value_at
from models import CalculationResult, Exit, ExitResult, TradeInput, TradeLog

logger = logging.getLogger(__name__)

# Absorbs float error such as 0.29 * 100 == 28.999999999999996 before flooring.
_LOT_EPSILON = 1e-9


def round_half_up(value: float, places: int) -> float:
    """Round to ``places`` decimals with ties going away from zero (0.125 -> 0.13)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def floor_lots(lots: float) -> float:
    """Truncate a raw size down to the 0.01 lot broker step, never sizing above the risk."""
    return math.floor(lots * 100 + _LOT_EPSILON) / 100


def risk_amount(trade: TradeInput) -> float:
    """Cash put at risk by the trade, before any rounding."""
    if trade.risk_mode == "cash":
        return trade.risk_cash_amount
    return trade.account_balance * (trade.initial_risk_percent / 100)


def _pips_captured(trade: TradeInput, exit_: Exit, multiplier: float) -> float:
    if exit_.price:
        if trade.is_long:
            pips = (exit_.price - trade.entry_price) * multiplier
        else:
            pips = (trade.entry_price - exit_.price) * multiplier
    elif exit_.pips is not None:
        pips = exit_.pips
    else:
        pips = 0.0
    return round_half_up(pips, 1)


def calculate_trade(trade: TradeInput, exits: Sequence[Exit]) -> CalculationResult:
    """
    Size a position from its risk setting and settle its exits in order.

    Each exit closes ``percent_to_close`` of the lots still open at that
    point, so two 50 % exits close 75 % of the original position.

    Args:
        trade: Ticket input (entry, stop, balance, risk, asset).
        exits: Partial closes, applied in the order given.

    Returns:
        A fully populated CalculationResult; zeros when the trade cannot be sized.
    """
    config = get_asset(trade.asset)
    amount = risk_amount(trade)

    sl_pips = abs(trade.entry_price - trade.stop_loss_price) * config.pip_multiplier

    # Risk sizing converts at the entry rate.
    loss_per_lot = sl_pips * pip_value_at(config, trade.entry_price) + config.commission

    initial_lots = 0.0
    if sl_pips > 0 and loss_per_lot > 0 and amount > 0:
        initial_lots = floor_lots(amount / loss_per_lot)

    remaining = initial_lots
    total_net = 0.0
    results: List[ExitResult] = []

    for exit_ in exits:
        lots = round_half_up(remaining * (exit_.percent_to_close / 100), 2)
        pips = _pips_captured(trade, exit_, config.pip_multiplier)

        if lots == 0:
            results.append(
                ExitResult(
                    exit_id=exit_.id,
                    lots_closed=0.0,
                    pips_captured=pips,
                    gross_profit=0.0,
                    commission=0.0,
                    net_profit=0.0,
                    percent_closed_of_remaining=exit_.percent_to_close,
                    remaining_lots=round_half_up(remaining, 2),
                )
            )
            continue

        # Realised P&L converts at the rate in force when the lots are closed.
        exit_price = exit_.price or trade.entry_price
        gross = lots * pips * pip_value_at(config, exit_price)
        commission = lots * config.commission
        net = gross - commission

        total_net += net
        remaining = max(remaining - lots, 0.0)

        results.append(
            ExitResult(
                exit_id=exit_.id,
                lots_closed=lots,
                pips_captured=pips,
                gross_profit=gross,
                commission=commission,
                net_profit=net,
                percent_closed_of_remaining=exit_.percent_to_close,
                remaining_lots=round_half_up(remaining, 2),
            )
        )

    total_net = round_half_up(total_net, 2)

    logger.debug(
        "%s %s: risk=%.2f lots=%.2f exits=%d net=%.2f",
        trade.asset, trade.direction, amount, initial_lots, len(results), total_net,
    )

    return CalculationResult(
        initial_risk_amount=round_half_up(amount, 2),
        initial_lots=initial_lots,
        sl_pips=round_half_up(sl_pips, 1),
        exits=results,
        total_net_profit=total_net,
        remaining_lots=round_half_up(remaining, 2),
        final_account_balance=round_half_up(trade.account_balance + total_net, 2),
    )


def build_trade_log(
    trade: TradeInput,
    exits: Sequence[Exit],
    log_id: Optional[str] = None,
    when: Optional[datetime] = None,
    tags: Optional[List[str]] = None,
) -> TradeLog:
    """Calculate a trade and wrap it as a journal entry ready to persist."""
    return TradeLog(
        id=log_id or str(uuid.uuid4()),
        date=when or trade.timestamp or datetime.now(timezone.utc),
        input=trade.model_copy(),
        exits=list(exits),
        results=calculate_trade(trade, exits),
        tags=list(tags or []),
    )
