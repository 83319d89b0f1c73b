from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from diverquant.domain.models import (
    EmaValues,
    IndicatorSnapshot,
    MacdValues,
    StochasticValues,
)

NEUTRAL_OSCILLATOR = 50.0
NEUTRAL_ADX = 25.0

# Signal line and %D are scaled copies of MACD and %K; no separate smoothing history is kept.
MACD_SIGNAL_FACTOR = 0.9
STOCHASTIC_D_FACTOR = 0.95


@dataclass(slots=True)
class IndicatorConfig:
    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    stochastic_k: int = 14
    stochastic_d: int = 3
    ema_fast: int = 9
    ema_slow: int = 21
    adx_period: int = 14

    def __post_init__(self) -> None:
        for name in (
            "rsi_period",
            "macd_fast",
            "macd_slow",
            "macd_signal",
            "stochastic_k",
            "stochastic_d",
            "ema_fast",
            "ema_slow",
            "adx_period",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be greater than zero")
        if self.macd_fast >= self.macd_slow:
            raise ValueError("macd_fast must be < macd_slow")
        if self.ema_fast >= self.ema_slow:
            raise ValueError("ema_fast must be < ema_slow")


def _as_array(values: Sequence[float] | np.ndarray) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def rsi(prices: Sequence[float] | np.ndarray, period: int = 14) -> float:
    values = _as_array(prices)
    if values.size < period + 1:
        return NEUTRAL_OSCILLATOR

    deltas = np.diff(values)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = float(gains[:period].sum()) / period
    avg_loss = float(losses[:period].sum()) / period
    for gain, loss in zip(gains[period:], losses[period:], strict=True):
        avg_gain = (avg_gain * (period - 1) + float(gain)) / period
        avg_loss = (avg_loss * (period - 1) + float(loss)) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def ema(prices: Sequence[float] | np.ndarray, period: int) -> float:
    values = _as_array(prices)
    if values.size == 0:
        return 0.0

    multiplier = 2.0 / (period + 1)
    current = float(values[0])
    for price in values[1:]:
        current = (float(price) - current) * multiplier + current
    return current


def macd(
    prices: Sequence[float] | np.ndarray,
    fast_period: int = 12,
    slow_period: int = 26,
) -> MacdValues:
    values = _as_array(prices)
    if values.size < slow_period:
        return MacdValues(macd=0.0, signal=0.0, histogram=0.0)

    macd_line = ema(values, fast_period) - ema(values, slow_period)
    signal = macd_line * MACD_SIGNAL_FACTOR
    return MacdValues(macd=macd_line, signal=signal, histogram=macd_line - signal)


def stochastic(
    highs: Sequence[float] | np.ndarray,
    lows: Sequence[float] | np.ndarray,
    closes: Sequence[float] | np.ndarray,
    k_period: int = 14,
) -> StochasticValues:
    close_values = _as_array(closes)
    if close_values.size < k_period:
        return StochasticValues(k=NEUTRAL_OSCILLATOR, d=NEUTRAL_OSCILLATOR)

    high_window = _as_array(highs)[-k_period:]
    low_window = _as_array(lows)[-k_period:]
    if high_window.size == 0 or low_window.size == 0:
        return StochasticValues(k=NEUTRAL_OSCILLATOR, d=NEUTRAL_OSCILLATOR)

    highest = float(high_window.max())
    lowest = float(low_window.min())
    price_range = highest - lowest
    if price_range == 0:
        return StochasticValues(k=NEUTRAL_OSCILLATOR, d=NEUTRAL_OSCILLATOR)

    k = (float(close_values[-1]) - lowest) / price_range * 100.0
    return StochasticValues(k=k, d=k * STOCHASTIC_D_FACTOR)


def adx(
    highs: Sequence[float] | np.ndarray,
    lows: Sequence[float] | np.ndarray,
    closes: Sequence[float] | np.ndarray,
    period: int = 14,
) -> float:
    """Directional index summed over the first ``period`` transitions of the window."""
    high_values = _as_array(highs)
    low_values = _as_array(lows)
    close_values = _as_array(closes)
    if close_values.size < period + 1:
        return NEUTRAL_ADX

    size = min(high_values.size, low_values.size, close_values.size, period + 1)
    total_true_range = 0.0
    total_dm_plus = 0.0
    total_dm_minus = 0.0
    for i in range(1, size):
        high_diff = float(high_values[i] - high_values[i - 1])
        low_diff = float(low_values[i - 1] - low_values[i])

        dm_plus = high_diff if high_diff > low_diff and high_diff > 0 else 0.0
        dm_minus = low_diff if low_diff > high_diff and low_diff > 0 else 0.0
        true_range = max(
            float(high_values[i] - low_values[i]),
            abs(float(high_values[i] - close_values[i - 1])),
            abs(float(low_values[i] - close_values[i - 1])),
        )

        total_true_range += true_range
        total_dm_plus += dm_plus
        total_dm_minus += dm_minus

    if total_true_range == 0:
        return NEUTRAL_ADX

    di_plus = total_dm_plus / total_true_range * 100.0
    di_minus = total_dm_minus / total_true_range * 100.0
    if di_plus + di_minus == 0:
        return NEUTRAL_ADX
    return abs(di_plus - di_minus) / (di_plus + di_minus) * 100.0


class IndicatorEngine:
    """Stateless snapshot calculator over caller-supplied windows."""

    def __init__(self, config: IndicatorConfig | None = None) -> None:
        self.config = config or IndicatorConfig()

    def compute(
        self,
        prices: Sequence[float] | np.ndarray,
        highs: Sequence[float] | np.ndarray | None = None,
        lows: Sequence[float] | np.ndarray | None = None,
        closes: Sequence[float] | np.ndarray | None = None,
    ) -> IndicatorSnapshot:
        cfg = self.config
        price_values = _as_array(prices)
        high_values = price_values if highs is None else _as_array(highs)
        low_values = price_values if lows is None else _as_array(lows)
        close_values = price_values if closes is None else _as_array(closes)

        return IndicatorSnapshot(
            rsi=rsi(price_values, cfg.rsi_period),
            macd=macd(price_values, cfg.macd_fast, cfg.macd_slow),
            stochastic=stochastic(high_values, low_values, close_values, cfg.stochastic_k),
            ema=EmaValues(
                fast=ema(price_values, cfg.ema_fast),
                slow=ema(price_values, cfg.ema_slow),
            ),
            adx=adx(high_values, low_values, close_values, cfg.adx_period),
        )
