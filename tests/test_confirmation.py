from __future__ import annotations

import pytest

from diverquant.confirmation import BEARISH_RULES, BULLISH_RULES, evaluate, rules_for
from diverquant.domain.models import (
    DivergenceKind,
    EmaValues,
    IndicatorSnapshot,
    MacdValues,
    StochasticValues,
)


def _snapshot(
    rsi: float = 50.0,
    histogram: float = 0.0,
    ema_fast: float = 1.0,
    ema_slow: float = 1.0,
    adx: float = 20.0,
    k: float = 50.0,
    d: float = 50.0,
) -> IndicatorSnapshot:
    return IndicatorSnapshot(
        rsi=rsi,
        macd=MacdValues(histogram=histogram),
        stochastic=StochasticValues(k=k, d=d),
        ema=EmaValues(fast=ema_fast, slow=ema_slow),
        adx=adx,
    )


def test_rule_tables_are_weighted_to_one() -> None:
    assert sum(rule.weight for rule in BULLISH_RULES) == pytest.approx(1.0)
    assert sum(rule.weight for rule in BEARISH_RULES) == pytest.approx(1.0)
    assert rules_for(DivergenceKind.BULLISH) is BULLISH_RULES
    assert rules_for(DivergenceKind.BEARISH) is BEARISH_RULES


def test_all_bullish_rules_pass() -> None:
    history = [
        _snapshot(rsi=28.0, histogram=-0.3),
        _snapshot(rsi=25.0, histogram=-0.2),
    ]
    current = _snapshot(
        rsi=35.0, histogram=-0.1, ema_fast=1.2, ema_slow=1.1, adx=30.0, k=40.0, d=38.0
    )

    outcome = evaluate(current, [*history, current], BULLISH_RULES)

    assert outcome.count == 5
    assert outcome.score == pytest.approx(1.0)
    assert outcome.reasons == (
        "MACD Histogram Rising",
        "EMA Fast Above Slow",
        "RSI Oversold Recovery",
        "ADX Strong Trend",
        "Stochastic Bullish",
    )


def test_all_bearish_rules_pass() -> None:
    history = [
        _snapshot(rsi=72.0, histogram=0.3),
        _snapshot(rsi=75.0, histogram=0.2),
    ]
    current = _snapshot(
        rsi=65.0, histogram=0.1, ema_fast=1.0, ema_slow=1.1, adx=40.0, k=60.0, d=62.0
    )

    outcome = evaluate(current, [*history, current], BEARISH_RULES)

    assert outcome.count == 5
    assert outcome.score == pytest.approx(1.0)


def test_history_dependent_rules_need_enough_snapshots() -> None:
    current = _snapshot(rsi=35.0, histogram=0.5)
    outcome = evaluate(current, [current], BULLISH_RULES)
    assert "MACD Histogram Rising" not in outcome.reasons
    assert "RSI Oversold Recovery" not in outcome.reasons


def test_rsi_recovery_compares_previous_snapshot() -> None:
    previous = _snapshot(rsi=31.0)
    current = _snapshot(rsi=35.0)
    outcome = evaluate(current, [previous, current], BULLISH_RULES)
    assert "RSI Oversold Recovery" not in outcome.reasons


def test_stochastic_rules_respect_extremes() -> None:
    overbought = _snapshot(k=85.0, d=80.0)
    oversold = _snapshot(k=15.0, d=18.0)
    assert "Stochastic Bullish" not in evaluate(overbought, [overbought], BULLISH_RULES).reasons
    assert "Stochastic Bearish" not in evaluate(oversold, [oversold], BEARISH_RULES).reasons


def test_partial_score_matches_weights() -> None:
    current = _snapshot(adx=26.0, k=60.0, d=57.0)
    outcome = evaluate(current, [current], BULLISH_RULES)
    assert outcome.count == 2
    assert outcome.score == pytest.approx(0.25)
    assert outcome.reasons == ("ADX Strong Trend", "Stochastic Bullish")
