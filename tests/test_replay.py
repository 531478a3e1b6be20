"""
test_replay.py — Re-running a journal under substituted risk settings.
"""
from datetime import datetime

import pytest

from calculator import build_trade_log
from models import Exit, RiskMapping, RiskOverride, TradeInput, TransferLog
from replay import detect_risks, replay_history, risk_key


def _ticket(**overrides):
    base = dict(
        entry_price=1.1000,
        stop_loss_price=1.0950,
        account_balance=10_000,
        initial_risk_percent=1,
        asset="EURUSD",
    )
    base.update(overrides)
    return TradeInput(**base)


TP = [Exit(id="tp", price=1.1050, percent_to_close=100)]


class TestRiskKeys:
    def test_percent_key(self):
        assert risk_key(_ticket()) == "p_1"
        assert risk_key(_ticket(initial_risk_percent=0.5)) == "p_0.5"

    def test_cash_key(self):
        assert risk_key(_ticket(risk_mode="cash", risk_cash_amount=100)) == "c_100"

    def test_cash_mode_without_amount_falls_back_to_percent(self):
        assert risk_key(_ticket(risk_mode="cash", risk_cash_amount=0)) == "p_1"

    def test_detect_risks_sorted_percent_first(self):
        logs = [
            build_trade_log(_ticket(risk_mode="cash", risk_cash_amount=250), []),
            build_trade_log(_ticket(initial_risk_percent=2), []),
            build_trade_log(_ticket(risk_mode="cash", risk_cash_amount=100), []),
            build_trade_log(_ticket(initial_risk_percent=0.5), []),
            build_trade_log(_ticket(initial_risk_percent=2), []),
        ]
        assert detect_risks(logs) == ["p_0.5", "p_2", "c_100", "c_250"]


class TestReplayHistory:
    def test_static_override_resizes_trade(self):
        log = build_trade_log(_ticket(), TP, when=datetime(2024, 1, 1))
        [replayed] = replay_history([log], 10_000, RiskOverride(value=2))
        # 200 / 507 → 0.39 lots; 0.39 × 50 × 10 − 0.39 × 7
        assert replayed.results.initial_lots == 0.39
        assert replayed.results.total_net_profit == pytest.approx(192.27)
        assert replayed.input.initial_risk_percent == 2
        assert replayed.id == log.id
        assert log.results.initial_lots == 0.19

    def test_static_cash_override(self):
        log = build_trade_log(_ticket(), TP, when=datetime(2024, 1, 1))
        [replayed] = replay_history([log], 10_000, RiskOverride(value=507, unit="cash"))
        assert replayed.input.risk_mode == "cash"
        assert replayed.results.initial_lots == 1.0

    def test_mapping_matches_static(self):
        log = build_trade_log(_ticket(), TP, when=datetime(2024, 1, 1))
        [mapped] = replay_history([log], 10_000, RiskMapping(mapping={"p_1": 2}))
        [static] = replay_history([log], 10_000, RiskOverride(value=2))
        assert mapped.results == static.results

    def test_unmapped_risk_kept(self):
        log = build_trade_log(_ticket(), TP, when=datetime(2024, 1, 1))
        [replayed] = replay_history([log], 10_000, RiskMapping(mapping={"p_3": 5}))
        assert replayed.results == log.results

    def test_balance_compounds_through_journal(self):
        first = build_trade_log(_ticket(), TP, when=datetime(2024, 1, 1))
        second = build_trade_log(_ticket(), TP, when=datetime(2024, 1, 2))
        withdrawal = TransferLog(
            type="WITHDRAWAL", id="w", date=datetime(2024, 1, 3), amount=1000, resulting_balance=0
        )
        replayed = replay_history([withdrawal, second, first], 10_000, RiskOverride(value=2))

        assert [log.id for log in replayed] == [first.id, second.id, "w"]
        assert replayed[1].input.account_balance == replayed[0].results.final_account_balance
        assert replayed[2].resulting_balance == pytest.approx(replayed[1].results.final_account_balance - 1000)

    def test_rebuilds_exits_from_results(self):
        log = build_trade_log(_ticket(), TP, when=datetime(2024, 1, 1))
        legacy = log.model_copy(update={"exits": []})
        [replayed] = replay_history([legacy], 10_000, RiskOverride(value=1))
        assert replayed.results.total_net_profit == log.results.total_net_profit
