from __future__ import annotations

from pathlib import Path

import pytest

# Last five ticks: price makes a lower low at 16 -> 18.
CYCLE = [1.2000, 1.1950, 1.2010, 1.1900, 1.2050]

Bars = tuple[list[float], list[float], list[float]]


def _scripted_bars(
    high_spikes: dict[int, float],
    low_spikes: dict[int, float] | None = None,
    count: int = 20,
) -> Bars:
    closes = [CYCLE[i % len(CYCLE)] for i in range(count)]
    highs = [c + 0.001 for c in closes]
    lows = [c - 0.001 for c in closes]
    for index, value in high_spikes.items():
        highs[index] = value
    for index, value in (low_spikes or {}).items():
        lows[index] = value
    return highs, lows, closes


@pytest.fixture
def bullish_bars() -> Bars:
    """Stochastic higher lows against price lower lows, with ADX far above 25."""
    return _scripted_bars({3: 1.789, 19: 1.2150})


@pytest.fixture
def unconfirmed_bars() -> Bars:
    """Same divergence, but %K closes above 80 and ADX collapses."""
    return _scripted_bars({3: 1.789}, low_spikes={1: 0.595})


# 26 flat closes seed both MACD EMAs exactly; the tail makes a higher price high
# at 27 -> 29 while the MACD histogram turns negative between them.
BEARISH_TAIL = [1.21, 1.15, 1.212, 1.15]


def _bearish_bars(high_spikes: dict[int, float]) -> Bars:
    closes = [1.2] * 26 + BEARISH_TAIL
    highs = [c + 0.001 for c in closes]
    lows = [c - 0.001 for c in closes]
    for index, value in high_spikes.items():
        highs[index] = value
    return highs, lows, closes


@pytest.fixture
def bearish_bars() -> Bars:
    """MACD lower highs against price higher highs; fast EMA below slow, ADX at 100."""
    return _bearish_bars({3: 1.789})


@pytest.fixture
def unconfirmed_bearish_bars() -> Bars:
    """Same divergence without the early range spike, so ADX stays neutral."""
    return _bearish_bars({})


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in ("DIVERQ_RATE_LIMIT_PER_MINUTE", "DIVERQ_MIN_CONFIDENCE", "DIVERQ_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
