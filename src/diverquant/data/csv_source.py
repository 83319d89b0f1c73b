from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any, cast

import pandas as pd

from diverquant.data.base import TickSource
from diverquant.domain.models import PriceSample, Tick

BAR_COLUMNS = ["price", "high", "low", "close"]


class CsvTickSource(TickSource):
    """Tick file with ``timestamp`` and ``price`` (or ``close``) columns.

    Optional ``instrument``, ``high``, ``low`` and ``close`` columns are used
    when present; missing bar fields fall back to the tick price.
    """

    def __init__(self, path: str | Path, default_instrument: str = "EUR/USD") -> None:
        self.path = Path(path)
        self.default_instrument = default_instrument
        self._frame: pd.DataFrame | None = None

    def _load(self) -> pd.DataFrame:
        if self._frame is not None:
            return self._frame
        if not self.path.exists():
            raise ValueError(f"Tick file not found: {self.path}")

        raw = pd.read_csv(self.path)
        normalized = raw.rename(columns=lambda c: str(c).strip().lower())
        if "timestamp" not in normalized.columns:
            raise ValueError("Missing expected column: timestamp")
        if "price" not in normalized.columns:
            if "close" not in normalized.columns:
                raise ValueError("Missing expected column: price (or close)")
            normalized["price"] = normalized["close"]
        if normalized.empty:
            raise ValueError(f"No ticks in {self.path}")

        normalized["timestamp"] = pd.to_datetime(normalized["timestamp"])
        if "instrument" not in normalized.columns:
            normalized["instrument"] = self.default_instrument
        normalized["instrument"] = normalized["instrument"].astype(str).str.strip()

        for column in ("high", "low", "close"):
            if column not in normalized.columns:
                normalized[column] = normalized["price"]
            else:
                normalized[column] = normalized[column].fillna(normalized["price"])

        if normalized[BAR_COLUMNS].isna().any().any():
            raise ValueError("Tick file contains rows without a price")

        ordered = normalized.sort_values("timestamp", kind="mergesort")
        self._frame = cast(pd.DataFrame, ordered[["timestamp", "instrument", *BAR_COLUMNS]])
        return self._frame

    def instruments(self) -> list[str]:
        return sorted(self._load()["instrument"].unique().tolist())

    def _select(self, instrument: str | None) -> pd.DataFrame:
        frame = self._load()
        if instrument is None:
            return frame
        selected = frame[frame["instrument"] == instrument]
        if selected.empty:
            raise ValueError(f"No ticks for instrument={instrument}")
        return cast(pd.DataFrame, selected)

    def ticks(self, instrument: str | None = None) -> Iterator[Tick]:
        for row in self._select(instrument).itertuples(index=False):
            yield Tick(
                instrument=str(row.instrument),
                sample=PriceSample(
                    timestamp=cast(pd.Timestamp, row.timestamp).to_pydatetime(),
                    price=float(row.price),
                    high=float(row.high),
                    low=float(row.low),
                    close=float(row.close),
                ),
            )

    def frame(self, instrument: str | None = None) -> pd.DataFrame:
        selected = self._select(instrument or self._single_instrument())
        result: Any = selected.set_index("timestamp")[BAR_COLUMNS]
        return cast(pd.DataFrame, result)

    def _single_instrument(self) -> str:
        instruments = self.instruments()
        if len(instruments) != 1:
            raise ValueError(
                "instrument is required when the file holds "
                f"{len(instruments)} instruments: {', '.join(instruments)}"
            )
        return instruments[0]
