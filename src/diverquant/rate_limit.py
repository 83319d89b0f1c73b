from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from threading import Lock
from time import monotonic


@dataclass(slots=True, frozen=True)
class RateDecision:
    allowed: bool
    remaining: int
    retry_after: float


class SlidingWindowLimiter:
    """Per-client sliding-window limiter guarding the tick ingestion API.

    Clients with no hit inside the window are forgotten at most once per window.
    """

    def __init__(self, limit: int, window_seconds: float = 60.0) -> None:
        if limit <= 0:
            raise ValueError("limit must be greater than zero")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be greater than zero")
        self.limit = limit
        self.window_seconds = window_seconds
        self._hits: dict[str, deque[float]] = {}
        self._last_sweep: float | None = None
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._hits)

    def check(self, client: str, now: float | None = None) -> RateDecision:
        current = monotonic() if now is None else now
        cutoff = current - self.window_seconds
        with self._lock:
            self._sweep(current, cutoff)
            hits = self._hits.setdefault(client, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()

            if len(hits) >= self.limit:
                retry_after = max(0.0, self.window_seconds - (current - hits[0]))
                return RateDecision(allowed=False, remaining=0, retry_after=retry_after)

            hits.append(current)
            return RateDecision(allowed=True, remaining=self.limit - len(hits), retry_after=0.0)

    def _sweep(self, current: float, cutoff: float) -> None:
        if self._last_sweep is not None and current - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = current
        stale = [client for client, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for client in stale:
            del self._hits[client]

    def reset(self, client: str | None = None) -> None:
        with self._lock:
            if client is None:
                self._hits.clear()
            else:
                self._hits.pop(client, None)
