from __future__ import annotations

import pytest

from diverquant.domain.models import (
    EmaValues,
    IndicatorSnapshot,
    MacdValues,
    SignalKind,
    StochasticValues,
    TradingSignal,
)
from diverquant.signal_log import SignalLog


def _signal(kind: SignalKind, confidence: float, instrument: str = "EUR/USD") -> TradingSignal:
    snapshot = IndicatorSnapshot(
        rsi=50.0,
        macd=MacdValues(),
        stochastic=StochasticValues(),
        ema=EmaValues(fast=1.1, slow=1.1),
        adx=25.0,
    )
    return TradingSignal(
        instrument=instrument,
        timeframe="1m",
        kind=kind,
        confidence=confidence,
        reason="test",
        entry_price=1.1,
        stop_loss=None,
        take_profit=None,
        horizon_minutes=1,
        expected_move_pct=0.0,
        indicator_snapshot=snapshot,
    )


def test_recent_is_newest_first_and_filterable() -> None:
    log = SignalLog()
    log.record(_signal(SignalKind.HOLD, 0.45))
    log.record(_signal(SignalKind.BUY, 0.8, instrument="GBP/USD"))
    log.record(_signal(SignalKind.SELL, 0.7))

    assert [s.kind for s in log.recent()] == [SignalKind.SELL, SignalKind.BUY, SignalKind.HOLD]
    assert [s.kind for s in log.recent(limit=1)] == [SignalKind.SELL]
    assert [s.instrument for s in log.recent(instrument="GBP/USD")] == ["GBP/USD"]


def test_log_is_bounded() -> None:
    log = SignalLog(max_size=2)
    for confidence in (0.5, 0.6, 0.7):
        log.record(_signal(SignalKind.HOLD, confidence))
    assert len(log) == 2
    assert [s.confidence for s in log.recent()] == [0.7, 0.6]


def test_stats_counts_by_kind() -> None:
    log = SignalLog()
    log.record(_signal(SignalKind.BUY, 0.8))
    log.record(_signal(SignalKind.SELL, 0.6))
    log.record(_signal(SignalKind.HOLD, 0.45))
    log.record(_signal(SignalKind.HOLD, 0.45))

    stats = log.stats().to_dict()

    assert stats == {
        "total_signals": 4,
        "buy_signals": 1,
        "sell_signals": 1,
        "hold_signals": 2,
        "avg_confidence": pytest.approx(0.575),
    }


def test_empty_stats_and_export() -> None:
    exported = SignalLog().export()
    assert exported["signals"] == []
    assert exported["stats"]["total_signals"] == 0
    assert exported["stats"]["avg_confidence"] == 0.0
    assert "export_time" in exported


def test_validation() -> None:
    with pytest.raises(ValueError):
        SignalLog(max_size=0)
    with pytest.raises(ValueError):
        SignalLog().recent(limit=0)
