from __future__ import annotations

from datetime import datetime

import pandas as pd

from diverquant.domain.models import PriceSample, TradingSignal
from diverquant.engine import SignalEngine, SignalEngineConfig
from diverquant.strategies.base import TradingStrategy


class DivergenceStrategy(TradingStrategy):
    def __init__(
        self,
        config: SignalEngineConfig | None = None,
        instrument: str = "backtest",
    ) -> None:
        self.config = config or SignalEngineConfig()
        self.instrument = instrument

    def replay(self, data: pd.DataFrame) -> pd.Series:
        """Run every bar through a fresh engine; values are signals or ``None``."""
        if "close" not in data.columns:
            raise ValueError("data must contain a close column")

        close = data["close"].astype(float)
        price = data["price"].astype(float) if "price" in data.columns else close
        high = data["high"].astype(float) if "high" in data.columns else close
        low = data["low"].astype(float) if "low" in data.columns else close

        engine = SignalEngine(self.instrument, self.config)
        signals: list[TradingSignal | None] = []
        for timestamp, p, h, lo, c in zip(
            data.index,
            price.to_numpy(),
            high.to_numpy(),
            low.to_numpy(),
            close.to_numpy(),
            strict=True,
        ):
            sample = PriceSample(
                timestamp=_to_datetime(timestamp),
                price=float(p),
                high=float(h),
                low=float(lo),
                close=float(c),
            )
            signals.append(engine.process_sample(sample))
        return pd.Series(signals, index=data.index, dtype=object)


def _to_datetime(value: object) -> datetime | None:
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value
    return None
