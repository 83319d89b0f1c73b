from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from diverquant.outcomes import OutcomeStats, evaluate_outcomes
from diverquant.risk import MINUTE_BARS_PER_YEAR, annualized_return, max_drawdown, sharpe_ratio
from diverquant.strategies.base import TradingStrategy


@dataclass(slots=True)
class PortfolioConfig:
    initial_cash: float = 100_000.0
    commission_bps: float = 0.0
    periods_per_year: int = MINUTE_BARS_PER_YEAR

    def __post_init__(self) -> None:
        if self.initial_cash <= 0:
            raise ValueError("initial_cash must be greater than zero")
        if self.commission_bps < 0:
            raise ValueError("commission_bps must be non-negative")
        if self.periods_per_year <= 0:
            raise ValueError("periods_per_year must be greater than zero")


def equity_curve(positions: pd.Series, closes: pd.Series, config: PortfolioConfig) -> pd.Series:
    """Mark a position series (-1, 0, 1) to market on the next bar's close."""
    returns = closes.pct_change().fillna(0.0)
    held = positions.shift(1).fillna(0.0)

    turnover = positions.diff().abs().fillna(positions.abs())
    commission = turnover * (config.commission_bps / 10_000)
    net = held * returns - commission

    return config.initial_cash * (1.0 + net).cumprod()


@dataclass(slots=True)
class BacktestResult:
    equity: pd.Series
    positions: pd.Series
    signals: pd.Series
    outcomes: OutcomeStats
    annual_return: float
    max_drawdown: float
    sharpe: float
    benchmark_equity: pd.Series
    benchmark_annual_return: float
    benchmark_max_drawdown: float
    benchmark_sharpe: float

    def summary(self) -> dict[str, object]:
        counts = self.signals.dropna().map(lambda s: str(s.kind)).value_counts()
        return {
            "bars": len(self.equity),
            "final_equity": float(self.equity.iloc[-1]) if len(self.equity) else 0.0,
            "annual_return": self.annual_return,
            "max_drawdown": self.max_drawdown,
            "sharpe": self.sharpe,
            "benchmark_annual_return": self.benchmark_annual_return,
            "benchmark_max_drawdown": self.benchmark_max_drawdown,
            "benchmark_sharpe": self.benchmark_sharpe,
            "signal_counts": {str(k): int(v) for k, v in counts.items()},
            "outcomes": self.outcomes.to_dict(),
        }


class BacktestEngine:
    def __init__(
        self,
        strategy: TradingStrategy,
        portfolio_config: PortfolioConfig | None = None,
    ) -> None:
        self.strategy = strategy
        self.portfolio_config = portfolio_config or PortfolioConfig()

    def run(self, data: pd.DataFrame) -> BacktestResult:
        if data.empty:
            raise ValueError("Cannot backtest an empty frame")
        if "close" not in data.columns:
            raise ValueError("data must contain a close column")

        bars = data.copy()
        for column in ("high", "low"):
            if column not in bars.columns:
                bars[column] = bars["close"]

        signals = self.strategy.replay(bars)
        positions = self.strategy.positions(signals)
        curve = equity_curve(
            positions=positions,
            closes=bars["close"],
            config=self.portfolio_config,
        )
        benchmark_curve = equity_curve(
            positions=pd.Series(1.0, index=bars.index),
            closes=bars["close"],
            config=self.portfolio_config,
        )
        periods = self.portfolio_config.periods_per_year

        return BacktestResult(
            equity=curve,
            positions=positions,
            signals=signals,
            outcomes=evaluate_outcomes(signals, bars),
            annual_return=annualized_return(curve, periods),
            max_drawdown=max_drawdown(curve),
            sharpe=sharpe_ratio(curve, periods_per_year=periods),
            benchmark_equity=benchmark_curve,
            benchmark_annual_return=annualized_return(benchmark_curve, periods),
            benchmark_max_drawdown=max_drawdown(benchmark_curve),
            benchmark_sharpe=sharpe_ratio(benchmark_curve, periods_per_year=periods),
        )
