"""Resolve emitted signals against the bars that follow them.

A BUY wins when a later bar's high reaches the take-profit and loses when its
low reaches the stop-loss; a SELL is mirrored. When one bar touches both levels
the stop-loss is assumed to have filled first. A signal that touches neither
level within its horizon expires.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum

import pandas as pd

from diverquant.domain.models import SignalKind, TradingSignal


class Outcome(StrEnum):
    TAKE_PROFIT = "take_profit"
    STOP_LOSS = "stop_loss"
    EXPIRED = "expired"


@dataclass(slots=True, frozen=True)
class ResolvedSignal:
    signal: TradingSignal
    outcome: Outcome
    bars_held: int
    return_pct: float


@dataclass(slots=True, frozen=True)
class OutcomeStats:
    wins: int
    losses: int
    expired: int
    win_rate: float
    avg_win_pct: float
    avg_loss_pct: float

    def to_dict(self) -> dict[str, float | int]:
        return {
            "wins": self.wins,
            "losses": self.losses,
            "expired": self.expired,
            "win_rate": round(self.win_rate, 6),
            "avg_win_pct": round(self.avg_win_pct, 6),
            "avg_loss_pct": round(self.avg_loss_pct, 6),
        }


def _horizon_bars(frame: pd.DataFrame, position: int, signal: TradingSignal) -> pd.DataFrame:
    following = frame.iloc[position + 1 :]
    if isinstance(frame.index, pd.DatetimeIndex):
        cutoff = frame.index[position] + timedelta(minutes=signal.horizon_minutes)
        return following[following.index <= cutoff]
    return following.iloc[: signal.horizon_minutes]


def resolve_signal(
    signal: TradingSignal,
    bars: pd.DataFrame,
) -> ResolvedSignal:
    if signal.kind == SignalKind.HOLD or signal.stop_loss is None or signal.take_profit is None:
        raise ValueError("Only BUY/SELL signals with a risk bracket can be resolved")

    entry = signal.entry_price
    is_long = signal.kind == SignalKind.BUY
    for held, (high, low) in enumerate(
        zip(bars["high"].to_numpy(), bars["low"].to_numpy(), strict=True),
        start=1,
    ):
        if is_long:
            hit_stop = low <= signal.stop_loss
            hit_target = high >= signal.take_profit
        else:
            hit_stop = high >= signal.stop_loss
            hit_target = low <= signal.take_profit

        if hit_stop:
            loss = -abs(signal.stop_loss - entry) / entry * 100.0
            return ResolvedSignal(signal, Outcome.STOP_LOSS, held, loss)
        if hit_target:
            gain = abs(signal.take_profit - entry) / entry * 100.0
            return ResolvedSignal(signal, Outcome.TAKE_PROFIT, held, gain)

    return ResolvedSignal(signal, Outcome.EXPIRED, len(bars), 0.0)


def resolve_outcomes(signals: pd.Series, frame: pd.DataFrame) -> list[ResolvedSignal]:
    """Resolve every actionable signal in ``signals`` (aligned with ``frame``)."""
    if not signals.index.equals(frame.index):
        raise ValueError("signals and frame must have the same index")
    for column in ("high", "low"):
        if column not in frame.columns:
            raise ValueError(f"frame must contain a {column} column")

    resolved: list[ResolvedSignal] = []
    for position, signal in enumerate(signals.to_numpy()):
        if signal is None or not signal.is_actionable:
            continue
        resolved.append(resolve_signal(signal, _horizon_bars(frame, position, signal)))
    return resolved


def summarize(resolved: list[ResolvedSignal]) -> OutcomeStats:
    wins = [r.return_pct for r in resolved if r.outcome == Outcome.TAKE_PROFIT]
    losses = [r.return_pct for r in resolved if r.outcome == Outcome.STOP_LOSS]
    expired = sum(1 for r in resolved if r.outcome == Outcome.EXPIRED)
    decided = len(wins) + len(losses)
    return OutcomeStats(
        wins=len(wins),
        losses=len(losses),
        expired=expired,
        win_rate=len(wins) / decided if decided else 0.0,
        avg_win_pct=sum(wins) / len(wins) if wins else 0.0,
        avg_loss_pct=abs(sum(losses) / len(losses)) if losses else 0.0,
    )


def evaluate_outcomes(signals: pd.Series, frame: pd.DataFrame) -> OutcomeStats:
    return summarize(resolve_outcomes(signals, frame))
