from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from diverquant.domain.models import ConfirmationOutcome, DivergenceKind, IndicatorSnapshot

# history ends with the snapshot being evaluated
Predicate = Callable[[IndicatorSnapshot, Sequence[IndicatorSnapshot]], bool]


@dataclass(slots=True, frozen=True)
class ConfirmationRule:
    name: str
    predicate: Predicate
    weight: float


def _histogram_rising(current: IndicatorSnapshot, history: Sequence[IndicatorSnapshot]) -> bool:
    if len(history) < 3:
        return False
    a, b, c = (snapshot.macd.histogram for snapshot in history[-3:])
    return a < b < c


def _histogram_falling(current: IndicatorSnapshot, history: Sequence[IndicatorSnapshot]) -> bool:
    if len(history) < 3:
        return False
    a, b, c = (snapshot.macd.histogram for snapshot in history[-3:])
    return a > b > c


def _ema_fast_above(current: IndicatorSnapshot, history: Sequence[IndicatorSnapshot]) -> bool:
    return current.ema.fast > current.ema.slow


def _ema_fast_below(current: IndicatorSnapshot, history: Sequence[IndicatorSnapshot]) -> bool:
    return current.ema.fast < current.ema.slow


def _rsi_oversold_recovery(
    current: IndicatorSnapshot,
    history: Sequence[IndicatorSnapshot],
) -> bool:
    if len(history) < 2:
        return False
    return history[-2].rsi < 30 and current.rsi > 30


def _rsi_overbought_decline(
    current: IndicatorSnapshot,
    history: Sequence[IndicatorSnapshot],
) -> bool:
    if len(history) < 2:
        return False
    return history[-2].rsi > 70 and current.rsi < 70


def _adx_strong_trend(current: IndicatorSnapshot, history: Sequence[IndicatorSnapshot]) -> bool:
    return current.adx > 25


def _stochastic_bullish(current: IndicatorSnapshot, history: Sequence[IndicatorSnapshot]) -> bool:
    return current.stochastic.k > current.stochastic.d and current.stochastic.k < 80


def _stochastic_bearish(current: IndicatorSnapshot, history: Sequence[IndicatorSnapshot]) -> bool:
    return current.stochastic.k < current.stochastic.d and current.stochastic.k > 20


# Weights in each table sum to 1.0.
BULLISH_RULES: tuple[ConfirmationRule, ...] = (
    ConfirmationRule("MACD Histogram Rising", _histogram_rising, 0.30),
    ConfirmationRule("EMA Fast Above Slow", _ema_fast_above, 0.25),
    ConfirmationRule("RSI Oversold Recovery", _rsi_oversold_recovery, 0.20),
    ConfirmationRule("ADX Strong Trend", _adx_strong_trend, 0.15),
    ConfirmationRule("Stochastic Bullish", _stochastic_bullish, 0.10),
)

BEARISH_RULES: tuple[ConfirmationRule, ...] = (
    ConfirmationRule("MACD Histogram Falling", _histogram_falling, 0.30),
    ConfirmationRule("EMA Fast Below Slow", _ema_fast_below, 0.25),
    ConfirmationRule("RSI Overbought Decline", _rsi_overbought_decline, 0.20),
    ConfirmationRule("ADX Strong Trend", _adx_strong_trend, 0.15),
    ConfirmationRule("Stochastic Bearish", _stochastic_bearish, 0.10),
)


def rules_for(kind: DivergenceKind) -> tuple[ConfirmationRule, ...]:
    if kind == DivergenceKind.BULLISH:
        return BULLISH_RULES
    return BEARISH_RULES


def evaluate(
    snapshot: IndicatorSnapshot,
    history: Sequence[IndicatorSnapshot],
    rules: Sequence[ConfirmationRule],
) -> ConfirmationOutcome:
    count = 0
    score = 0.0
    reasons: list[str] = []
    for rule in rules:
        if rule.predicate(snapshot, history):
            count += 1
            score += rule.weight
            reasons.append(rule.name)
    return ConfirmationOutcome(count=count, score=score, reasons=tuple(reasons))
