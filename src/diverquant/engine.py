from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime

from diverquant.confirmation import evaluate, rules_for
from diverquant.divergence import DivergenceConfig, DivergenceDetector
from diverquant.domain.models import (
    DivergenceCandidate,
    DivergenceKind,
    IndicatorSnapshot,
    PriceSample,
    SignalKind,
    Tick,
    TradingSignal,
)
from diverquant.indicators import IndicatorConfig, IndicatorEngine
from diverquant.risk import risk_bracket

logger = logging.getLogger(__name__)

MIXED_SIGNALS_REASON = "Mixed signals - insufficient confirmation for trade entry"


@dataclass(slots=True)
class SignalEngineConfig:
    indicators: IndicatorConfig = field(default_factory=IndicatorConfig)
    divergence: DivergenceConfig = field(default_factory=DivergenceConfig)
    timeframe: str = "1m"
    snapshot_history: int = 50
    price_window: int = 100
    strong_divergence: float = 0.5
    min_confirmations: int = 2
    min_confidence: float = 0.6
    max_confidence: float = 0.95
    base_confidence: float = 0.6
    score_weight: float = 0.35
    strength_weight: float = 0.2
    hold_confidence: float = 0.45
    stop_loss_pct: float = 0.002
    take_profit_pct: float = 0.004
    horizon_minutes: int = 5
    expected_move_pct: float = 0.3

    def __post_init__(self) -> None:
        if self.snapshot_history < 3:
            raise ValueError("snapshot_history must be at least 3")
        if self.price_window <= 0:
            raise ValueError("price_window must be greater than zero")
        if self.min_confirmations <= 0:
            raise ValueError("min_confirmations must be greater than zero")
        for name in (
            "strong_divergence",
            "min_confidence",
            "max_confidence",
            "base_confidence",
            "hold_confidence",
        ):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ValueError(f"{name} must be within [0, 1]")
        if self.stop_loss_pct <= 0 or self.take_profit_pct <= 0:
            raise ValueError("risk bracket percentages must be greater than zero")
        if self.horizon_minutes <= 0:
            raise ValueError("horizon_minutes must be greater than zero")


class SignalEngine:
    """Divergence signal pipeline for a single instrument.

    Each call to :meth:`process_tick` runs tick -> indicators -> divergence
    update -> confirmation -> signal. Ticks must arrive in timestamp order; the
    engine does not check this.

    Returns ``None`` only when a confirmed divergence falls below
    ``min_confidence``. A HOLD is still returned as a signal.
    """

    def __init__(self, instrument: str, config: SignalEngineConfig | None = None) -> None:
        if not instrument.strip():
            raise ValueError("instrument must be non-empty")
        self.instrument = instrument
        self.config = config or SignalEngineConfig()
        self.indicator_engine = IndicatorEngine(self.config.indicators)
        self.detector = DivergenceDetector(self.config.divergence)
        self._snapshots: deque[IndicatorSnapshot] = deque(maxlen=self.config.snapshot_history)
        self._samples: deque[PriceSample] = deque(maxlen=self.config.price_window)

    @property
    def snapshots(self) -> tuple[IndicatorSnapshot, ...]:
        return tuple(self._snapshots)

    @property
    def samples(self) -> tuple[PriceSample, ...]:
        return tuple(self._samples)

    def reset(self) -> None:
        self._snapshots.clear()
        self._samples.clear()
        self.detector.reset()

    def process_sample(self, sample: PriceSample) -> TradingSignal | None:
        self._samples.append(sample)
        highs = [s.bar_high for s in self._samples]
        lows = [s.bar_low for s in self._samples]
        closes = [s.bar_close for s in self._samples]
        return self._run(sample.price, highs, lows, closes, sample.timestamp)

    def process_tick(
        self,
        price: float,
        highs: Sequence[float] | None = None,
        lows: Sequence[float] | None = None,
        closes: Sequence[float] | None = None,
        timestamp: datetime | None = None,
    ) -> TradingSignal | None:
        if closes is None and highs is None and lows is None:
            return self.process_sample(PriceSample(timestamp=timestamp, price=price))

        self._samples.append(PriceSample(timestamp=timestamp, price=price))
        if closes is None:
            closes = [s.price for s in self._samples]
        return self._run(
            price,
            closes if highs is None else highs,
            closes if lows is None else lows,
            closes,
            timestamp,
        )

    def _run(
        self,
        price: float,
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
        timestamp: datetime | None,
    ) -> TradingSignal | None:
        cfg = self.config
        snapshot = self.indicator_engine.compute(closes, highs, lows, closes)
        self._snapshots.append(snapshot)
        self.detector.add_sample(price, snapshot)

        strong = [c for c in self.detector.detect() if c.strength > cfg.strong_divergence]
        if not strong:
            return self._hold(price, snapshot, MIXED_SIGNALS_REASON, timestamp)

        primary = _strongest(strong)
        outcome = evaluate(snapshot, self.snapshots, rules_for(primary.kind))
        if outcome.count < cfg.min_confirmations:
            label = str(primary.kind).capitalize()
            return self._hold(
                price,
                snapshot,
                f"{label} divergence detected but insufficient confirmation "
                f"({outcome.count}/{cfg.min_confirmations})",
                timestamp,
            )

        confidence = min(
            cfg.max_confidence,
            cfg.base_confidence
            + (outcome.score * cfg.score_weight)
            + (primary.strength * cfg.strength_weight),
        )
        confidence = max(0.0, confidence)
        if confidence < cfg.min_confidence:
            logger.debug(
                "%s suppressed %s divergence: confidence=%.4f below %.4f",
                self.instrument,
                primary.kind,
                confidence,
                cfg.min_confidence,
            )
            return None

        kind = SignalKind.BUY if primary.kind == DivergenceKind.BULLISH else SignalKind.SELL
        stop_loss, take_profit = risk_bracket(
            kind,
            price,
            stop_loss_pct=cfg.stop_loss_pct,
            take_profit_pct=cfg.take_profit_pct,
        )
        reason = (
            f"{primary.description} + {' + '.join(outcome.reasons)} "
            f"({outcome.count}/{cfg.min_confirmations})"
        )
        logger.info(
            "%s %s signal confidence=%.4f entry=%s via %s",
            self.instrument,
            kind,
            confidence,
            price,
            primary.indicator,
        )
        return TradingSignal(
            instrument=self.instrument,
            timeframe=cfg.timeframe,
            kind=kind,
            confidence=confidence,
            reason=reason,
            entry_price=price,
            stop_loss=stop_loss,
            take_profit=take_profit,
            horizon_minutes=cfg.horizon_minutes,
            expected_move_pct=(
                cfg.expected_move_pct if kind == SignalKind.BUY else -cfg.expected_move_pct
            ),
            indicator_snapshot=snapshot,
            timestamp=timestamp,
        )

    def _hold(
        self,
        price: float,
        snapshot: IndicatorSnapshot,
        reason: str,
        timestamp: datetime | None,
    ) -> TradingSignal:
        return TradingSignal(
            instrument=self.instrument,
            timeframe=self.config.timeframe,
            kind=SignalKind.HOLD,
            confidence=self.config.hold_confidence,
            reason=reason,
            entry_price=price,
            stop_loss=None,
            take_profit=None,
            horizon_minutes=1,
            expected_move_pct=0.0,
            indicator_snapshot=snapshot,
            timestamp=timestamp,
        )


def _strongest(candidates: Sequence[DivergenceCandidate]) -> DivergenceCandidate:
    primary = candidates[0]
    for candidate in candidates[1:]:
        if candidate.strength > primary.strength:
            primary = candidate
    return primary


class SignalHub:
    """Owns one :class:`SignalEngine` per instrument."""

    def __init__(
        self,
        config: SignalEngineConfig | None = None,
        max_instruments: int | None = None,
    ) -> None:
        if max_instruments is not None and max_instruments <= 0:
            raise ValueError("max_instruments must be greater than zero")
        self.config = config or SignalEngineConfig()
        self.max_instruments = max_instruments
        self._engines: dict[str, SignalEngine] = {}

    def instruments(self) -> list[str]:
        return sorted(self._engines)

    def register(self, instrument: str) -> SignalEngine:
        engine = self._engines.get(instrument)
        if engine is None:
            if self.max_instruments is not None and len(self._engines) >= self.max_instruments:
                raise ValueError(
                    f"Cannot register '{instrument}': "
                    f"limit of {self.max_instruments} instruments reached"
                )
            engine = SignalEngine(instrument, self.config)
            self._engines[instrument] = engine
        return engine

    def reset(self, instrument: str) -> None:
        engine = self._engines.get(instrument)
        if engine is None:
            raise KeyError(f"Unknown instrument '{instrument}'")
        engine.reset()
        logger.debug("Reset histories for %s", instrument)

    def unregister(self, instrument: str) -> None:
        self._engines.pop(instrument, None)

    def process_tick(
        self,
        instrument: str,
        price: float,
        highs: Sequence[float] | None = None,
        lows: Sequence[float] | None = None,
        closes: Sequence[float] | None = None,
        timestamp: datetime | None = None,
    ) -> TradingSignal | None:
        return self.register(instrument).process_tick(
            price,
            highs=highs,
            lows=lows,
            closes=closes,
            timestamp=timestamp,
        )

    def process_many(
        self,
        ticks: Iterable[Tick],
        max_workers: int = 1,
    ) -> list[TradingSignal]:
        """Replay ticks, one worker per instrument group, preserving per-instrument order."""
        if max_workers <= 0:
            raise ValueError("max_workers must be greater than zero")

        grouped: dict[str, list[PriceSample]] = {}
        for tick in ticks:
            grouped.setdefault(tick.instrument, []).append(tick.sample)
        engines = {instrument: self.register(instrument) for instrument in grouped}

        def _replay(instrument: str) -> list[TradingSignal]:
            engine = engines[instrument]
            emitted: list[TradingSignal] = []
            for sample in grouped[instrument]:
                signal = engine.process_sample(sample)
                if signal is not None:
                    emitted.append(signal)
            return emitted

        if max_workers == 1 or len(grouped) <= 1:
            results = [_replay(instrument) for instrument in grouped]
        else:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                results = list(pool.map(_replay, list(grouped)))

        return [signal for batch in results for signal in batch]
