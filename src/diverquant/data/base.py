from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator

import pandas as pd

from diverquant.domain.models import Tick


class TickSource(ABC):
    @abstractmethod
    def ticks(self, instrument: str | None = None) -> Iterator[Tick]:
        """Yield ticks in timestamp order."""

    @abstractmethod
    def frame(self, instrument: str | None = None) -> pd.DataFrame:
        """Return price/high/low/close bars indexed by timestamp."""
