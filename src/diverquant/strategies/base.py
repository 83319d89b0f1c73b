from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
import pandas as pd

from diverquant.domain.models import SignalKind

_POSITIONS = {SignalKind.BUY: 1.0, SignalKind.SELL: -1.0}


class TradingStrategy(ABC):
    @abstractmethod
    def replay(self, data: pd.DataFrame) -> pd.Series:
        """Return the emitted signal (or ``None``) for every bar of ``data``."""

    def generate_signals(self, data: pd.DataFrame) -> pd.Series:
        """Return target positions in {-1, 0, 1} indexed like ``data``."""
        return self.positions(self.replay(data))

    @staticmethod
    def positions(signals: pd.Series) -> pd.Series:
        # A BUY/SELL opens or flips; HOLD and suppressed bars keep the last position.
        raw = pd.Series(
            [
                np.nan if s is None else _POSITIONS.get(s.kind, np.nan)
                for s in signals.to_numpy()
            ],
            index=signals.index,
            dtype=float,
        )
        return raw.ffill().fillna(0.0)
