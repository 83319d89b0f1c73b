from __future__ import annotations

from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass

from diverquant.domain.models import (
    DivergenceCandidate,
    DivergenceKind,
    ExtremePoint,
    IndicatorName,
    IndicatorSnapshot,
)


@dataclass(slots=True)
class DivergenceConfig:
    min_bars: int = 5
    max_history: int = 100
    min_strength: float = 0.3

    def __post_init__(self) -> None:
        if self.min_bars < 3:
            raise ValueError("min_bars must be at least 3")
        if self.max_history < self.min_bars:
            raise ValueError("max_history must be >= min_bars")
        if not 0.0 <= self.min_strength <= 1.0:
            raise ValueError("min_strength must be within [0, 1]")


def find_extremes(values: Sequence[float]) -> tuple[list[ExtremePoint], list[ExtremePoint]]:
    """Return strict interior (maxima, minima) of ``values``."""
    maxima: list[ExtremePoint] = []
    minima: list[ExtremePoint] = []
    for i in range(1, len(values) - 1):
        if values[i] > values[i - 1] and values[i] > values[i + 1]:
            maxima.append(ExtremePoint(index=i, value=values[i]))
        if values[i] < values[i - 1] and values[i] < values[i + 1]:
            minima.append(ExtremePoint(index=i, value=values[i]))
    return maxima, minima


def divergence_strength(
    price_first: ExtremePoint,
    price_second: ExtremePoint,
    indicator_first: ExtremePoint,
    indicator_second: ExtremePoint,
    full_gap: int = 5,
) -> float:
    price_change = abs(price_second.value - price_first.value) / (abs(price_first.value) or 1.0)
    indicator_change = abs(indicator_second.value - indicator_first.value) / (
        abs(indicator_first.value) or 1.0
    )
    time_gap = abs(price_second.index - price_first.index)
    strength = (price_change + indicator_change) * min(time_gap / full_gap, 1.0)
    return min(strength, 1.0)


class DivergenceDetector:
    """Rolling price/indicator buffers for one instrument."""

    def __init__(self, config: DivergenceConfig | None = None) -> None:
        self.config = config or DivergenceConfig()
        capacity = self.config.max_history
        self._prices: deque[float] = deque(maxlen=capacity)
        self._indicators: dict[IndicatorName, deque[float]] = {
            IndicatorName.RSI: deque(maxlen=capacity),
            IndicatorName.MACD: deque(maxlen=capacity),
            IndicatorName.STOCHASTIC: deque(maxlen=capacity),
        }

    def __len__(self) -> int:
        return len(self._prices)

    def add_sample(self, price: float, snapshot: IndicatorSnapshot) -> None:
        self._prices.append(price)
        self._indicators[IndicatorName.RSI].append(snapshot.rsi)
        self._indicators[IndicatorName.MACD].append(snapshot.macd.histogram)
        self._indicators[IndicatorName.STOCHASTIC].append(snapshot.stochastic.k)

    def reset(self) -> None:
        self._prices.clear()
        for history in self._indicators.values():
            history.clear()

    def history(self, indicator: IndicatorName) -> tuple[float, ...]:
        return tuple(self._indicators[indicator])

    @property
    def prices(self) -> tuple[float, ...]:
        return tuple(self._prices)

    def detect(self) -> list[DivergenceCandidate]:
        window = self.config.min_bars
        if len(self._prices) < window:
            return []

        recent_prices = list(self._prices)[-window:]
        candidates: list[DivergenceCandidate] = []
        for indicator, history in self._indicators.items():
            recent_indicator = list(history)[-window:]
            candidates.extend(self._check_indicator(recent_prices, recent_indicator, indicator))
        return candidates

    def _check_indicator(
        self,
        prices: list[float],
        indicator_values: list[float],
        indicator: IndicatorName,
    ) -> list[DivergenceCandidate]:
        price_maxima, price_minima = find_extremes(prices)
        indicator_maxima, indicator_minima = find_extremes(indicator_values)
        candidates: list[DivergenceCandidate] = []

        if len(price_minima) >= 2 and len(indicator_minima) >= 2:
            p1, p2 = price_minima[-2], price_minima[-1]
            i1, i2 = indicator_minima[-2], indicator_minima[-1]
            if p2.value < p1.value and i2.value > i1.value:
                candidate = self._candidate(
                    DivergenceKind.BULLISH,
                    indicator,
                    (p1, p2),
                    (i1, i2),
                    f"{indicator} bullish divergence: price making lower lows "
                    f"while {indicator} shows higher lows",
                )
                if candidate is not None:
                    candidates.append(candidate)

        if len(price_maxima) >= 2 and len(indicator_maxima) >= 2:
            p1, p2 = price_maxima[-2], price_maxima[-1]
            i1, i2 = indicator_maxima[-2], indicator_maxima[-1]
            if p2.value > p1.value and i2.value < i1.value:
                candidate = self._candidate(
                    DivergenceKind.BEARISH,
                    indicator,
                    (p1, p2),
                    (i1, i2),
                    f"{indicator} bearish divergence: price making higher highs "
                    f"while {indicator} shows lower highs",
                )
                if candidate is not None:
                    candidates.append(candidate)

        return candidates

    def _candidate(
        self,
        kind: DivergenceKind,
        indicator: IndicatorName,
        price_points: tuple[ExtremePoint, ExtremePoint],
        indicator_points: tuple[ExtremePoint, ExtremePoint],
        description: str,
    ) -> DivergenceCandidate | None:
        strength = divergence_strength(
            price_points[0],
            price_points[1],
            indicator_points[0],
            indicator_points[1],
            full_gap=self.config.min_bars,
        )
        if strength <= self.config.min_strength:
            return None
        return DivergenceCandidate(
            kind=kind,
            indicator=indicator,
            strength=strength,
            price_points=price_points,
            indicator_points=indicator_points,
            description=description,
        )
