from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any


class SignalKind(StrEnum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class DivergenceKind(StrEnum):
    BULLISH = "bullish"
    BEARISH = "bearish"


class IndicatorName(StrEnum):
    RSI = "RSI"
    MACD = "MACD"
    STOCHASTIC = "Stochastic"


@dataclass(slots=True, frozen=True)
class PriceSample:
    """One tick. Missing high/low/close degrade to the traded price."""

    timestamp: datetime | None
    price: float
    high: float | None = None
    low: float | None = None
    close: float | None = None

    @property
    def bar_high(self) -> float:
        return self.price if self.high is None else self.high

    @property
    def bar_low(self) -> float:
        return self.price if self.low is None else self.low

    @property
    def bar_close(self) -> float:
        return self.price if self.close is None else self.close


@dataclass(slots=True, frozen=True)
class MacdValues:
    macd: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0


@dataclass(slots=True, frozen=True)
class StochasticValues:
    k: float = 50.0
    d: float = 50.0


@dataclass(slots=True, frozen=True)
class EmaValues:
    fast: float = 0.0
    slow: float = 0.0


@dataclass(slots=True, frozen=True)
class IndicatorSnapshot:
    rsi: float
    macd: MacdValues
    stochastic: StochasticValues
    ema: EmaValues
    adx: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class ExtremePoint:
    index: int
    value: float


@dataclass(slots=True, frozen=True)
class DivergenceCandidate:
    kind: DivergenceKind
    indicator: IndicatorName
    strength: float
    price_points: tuple[ExtremePoint, ExtremePoint]
    indicator_points: tuple[ExtremePoint, ExtremePoint]
    description: str


@dataclass(slots=True, frozen=True)
class ConfirmationOutcome:
    count: int
    score: float
    reasons: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class TradingSignal:
    instrument: str
    timeframe: str
    kind: SignalKind
    confidence: float
    reason: str
    entry_price: float
    stop_loss: float | None
    take_profit: float | None
    horizon_minutes: int
    expected_move_pct: float
    indicator_snapshot: IndicatorSnapshot
    entry_type: str = "market"
    timestamp: datetime | None = None

    @property
    def is_actionable(self) -> bool:
        return self.kind != SignalKind.HOLD

    def to_payload(self) -> dict[str, Any]:
        return {
            "instrument": self.instrument,
            "timeframe": self.timeframe,
            "signal": str(self.kind),
            "confidence": self.confidence,
            "reason": self.reason,
            "entry_price": self.entry_price,
            "entry_type": self.entry_type,
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
            "horizon_minutes": self.horizon_minutes,
            "expected_move_pct": self.expected_move_pct,
            "indicators": self.indicator_snapshot.to_dict(),
            "timestamp": None if self.timestamp is None else self.timestamp.isoformat(),
        }


@dataclass(slots=True, frozen=True)
class Tick:
    instrument: str
    sample: PriceSample
