from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import UTC, datetime
from threading import Lock
from typing import Any

from diverquant.domain.models import SignalKind, TradingSignal


@dataclass(slots=True, frozen=True)
class SignalStats:
    total: int
    buy: int
    sell: int
    hold: int
    avg_confidence: float

    def to_dict(self) -> dict[str, float | int]:
        return {
            "total_signals": self.total,
            "buy_signals": self.buy,
            "sell_signals": self.sell,
            "hold_signals": self.hold,
            "avg_confidence": round(self.avg_confidence, 6),
        }


class SignalLog:
    """Bounded in-memory signal log, newest first."""

    def __init__(self, max_size: int = 1000) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be greater than zero")
        self.max_size = max_size
        self._signals: deque[TradingSignal] = deque(maxlen=max_size)
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._signals)

    def record(self, signal: TradingSignal) -> None:
        with self._lock:
            self._signals.appendleft(signal)

    def recent(self, limit: int = 50, instrument: str | None = None) -> list[TradingSignal]:
        if limit <= 0:
            raise ValueError("limit must be greater than zero")
        with self._lock:
            signals = list(self._signals)
        if instrument is not None:
            signals = [s for s in signals if s.instrument == instrument]
        return signals[:limit]

    def stats(self) -> SignalStats:
        with self._lock:
            signals = list(self._signals)
        total = len(signals)
        counts = {kind: 0 for kind in SignalKind}
        for signal in signals:
            counts[signal.kind] += 1
        avg_confidence = sum(s.confidence for s in signals) / total if total else 0.0
        return SignalStats(
            total=total,
            buy=counts[SignalKind.BUY],
            sell=counts[SignalKind.SELL],
            hold=counts[SignalKind.HOLD],
            avg_confidence=avg_confidence,
        )

    def export(self) -> dict[str, Any]:
        return {
            "signals": [s.to_payload() for s in self.recent(limit=self.max_size)],
            "stats": self.stats().to_dict(),
            "export_time": datetime.now(UTC).isoformat(),
        }
