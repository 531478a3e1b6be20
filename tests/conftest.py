"""
Shared factories for journal entries.

Trade logs are built directly from a net P&L figure so analytics tests do not
depend on the position calculator's rounding.
"""
from datetime import datetime, timedelta

import pytest

from models import CalculationResult, TradeInput, TradeLog, TransferLog

BASE_DATE = datetime(2024, 3, 1, 9, 30)


def _trade(pnl, day=0, risk=100.0, asset="EURUSD", log_id=None, minutes=0):
    return TradeLog(
        id=log_id or f"t-{day}-{minutes}-{pnl}",
        date=BASE_DATE + timedelta(days=day, minutes=minutes),
        input=TradeInput(
            entry_price=1.1,
            stop_loss_price=1.095,
            account_balance=10_000,
            initial_risk_percent=1,
            asset=asset,
        ),
        results=CalculationResult(
            initial_risk_amount=risk,
            initial_lots=0.19,
            sl_pips=50.0,
            exits=[],
            total_net_profit=pnl,
            remaining_lots=0.0,
            final_account_balance=10_000 + pnl,
        ),
    )


def _transfer(kind, amount, day=0, minutes=0):
    return TransferLog(
        type=kind,
        id=f"{kind.lower()}-{day}-{minutes}",
        date=BASE_DATE + timedelta(days=day, minutes=minutes),
        amount=amount,
        resulting_balance=0.0,
    )


@pytest.fixture
def make_trade():
    return _trade


@pytest.fixture
def make_transfer():
    return _transfer


@pytest.fixture
def eurusd_long():
    """The reference ticket: 50 pip stop, $10,000 balance, 1 % risk."""
    return TradeInput(
        entry_price=1.1000,
        stop_loss_price=1.0950,
        account_balance=10_000,
        risk_mode="percent",
        initial_risk_percent=1,
        asset="EURUSD",
    )
