from __future__ import annotations

import pytest

from diverquant.divergence import (
    DivergenceConfig,
    DivergenceDetector,
    divergence_strength,
    find_extremes,
)
from diverquant.domain.models import (
    DivergenceKind,
    EmaValues,
    ExtremePoint,
    IndicatorName,
    IndicatorSnapshot,
    MacdValues,
    StochasticValues,
)


def _snapshot(rsi: float, histogram: float = 0.0, k: float = 50.0) -> IndicatorSnapshot:
    return IndicatorSnapshot(
        rsi=rsi,
        macd=MacdValues(histogram=histogram),
        stochastic=StochasticValues(k=k, d=k * 0.95),
        ema=EmaValues(fast=1.0, slow=1.0),
        adx=25.0,
    )


def _feed(detector: DivergenceDetector, prices: list[float], rsis: list[float]) -> None:
    for price, value in zip(prices, rsis, strict=True):
        detector.add_sample(price, _snapshot(value))


def test_find_extremes_strict_interior_only() -> None:
    maxima, minima = find_extremes([1.0, 3.0, 2.0, 2.0, 0.5, 4.0])
    assert [p.index for p in maxima] == [1]
    assert [p.index for p in minima] == [4]


def test_find_extremes_short_input() -> None:
    assert find_extremes([1.0, 2.0]) == ([], [])


def test_strength_scales_with_time_gap_and_caps_at_one() -> None:
    p1, p2 = ExtremePoint(1, 1.19), ExtremePoint(3, 1.18)
    i1, i2 = ExtremePoint(1, 15.0), ExtremePoint(3, 35.0)
    strength = divergence_strength(p1, p2, i1, i2, full_gap=5)
    assert strength == pytest.approx((0.01 / 1.19 + 20.0 / 15.0) * 0.4)

    wide = divergence_strength(ExtremePoint(0, 1.0), ExtremePoint(10, 2.0), i1, i2)
    assert wide == 1.0


def test_strength_uses_unit_denominator_for_zero_reference() -> None:
    strength = divergence_strength(
        ExtremePoint(1, 1.0),
        ExtremePoint(3, 1.0),
        ExtremePoint(1, 0.0),
        ExtremePoint(3, 0.5),
        full_gap=2,
    )
    assert strength == pytest.approx(0.5)


def test_detect_requires_min_bars() -> None:
    detector = DivergenceDetector()
    _feed(detector, [1.20, 1.19, 1.20, 1.18], [40.0, 15.0, 45.0, 35.0])
    assert detector.detect() == []


def test_detects_bullish_rsi_divergence() -> None:
    detector = DivergenceDetector()
    _feed(detector, [1.20, 1.19, 1.20, 1.18, 1.21], [40.0, 15.0, 45.0, 35.0, 50.0])

    candidates = detector.detect()

    assert len(candidates) == 1
    candidate = candidates[0]
    assert candidate.kind == DivergenceKind.BULLISH
    assert candidate.indicator == IndicatorName.RSI
    assert candidate.strength == pytest.approx(0.5367, abs=1e-3)
    assert candidate.price_points == (ExtremePoint(1, 1.19), ExtremePoint(3, 1.18))
    assert candidate.description == (
        "RSI bullish divergence: price making lower lows while RSI shows higher lows"
    )


def test_detects_bearish_rsi_divergence() -> None:
    detector = DivergenceDetector()
    _feed(detector, [1.18, 1.20, 1.19, 1.21, 1.17], [50.0, 90.0, 10.0, 15.0, 5.0])

    candidates = detector.detect()

    assert [(c.kind, c.indicator) for c in candidates] == [
        (DivergenceKind.BEARISH, IndicatorName.RSI)
    ]
    assert candidates[0].description.startswith("RSI bearish divergence: price making higher highs")


def test_weak_divergence_is_discarded() -> None:
    detector = DivergenceDetector(DivergenceConfig(min_strength=0.9))
    _feed(detector, [1.20, 1.19, 1.20, 1.18, 1.21], [40.0, 15.0, 45.0, 35.0, 50.0])
    assert detector.detect() == []


def test_only_latest_window_is_examined() -> None:
    detector = DivergenceDetector()
    _feed(detector, [1.20, 1.19, 1.20, 1.18, 1.21], [40.0, 15.0, 45.0, 35.0, 50.0])
    _feed(detector, [1.22, 1.23, 1.24, 1.25, 1.26], [55.0, 56.0, 57.0, 58.0, 59.0])
    assert detector.detect() == []


def test_history_is_bounded_and_resettable() -> None:
    detector = DivergenceDetector(DivergenceConfig(min_bars=5, max_history=6))
    _feed(detector, [1.0 + i * 0.01 for i in range(10)], [float(i) for i in range(10)])

    assert len(detector) == 6
    assert detector.history(IndicatorName.RSI) == (4.0, 5.0, 6.0, 7.0, 8.0, 9.0)
    assert detector.prices[0] == pytest.approx(1.04)

    detector.reset()
    assert len(detector) == 0
    assert detector.history(IndicatorName.MACD) == ()


def test_divergence_config_validation() -> None:
    with pytest.raises(ValueError):
        DivergenceConfig(min_bars=2)
    with pytest.raises(ValueError):
        DivergenceConfig(min_bars=5, max_history=4)
    with pytest.raises(ValueError):
        DivergenceConfig(min_strength=1.5)
