from __future__ import annotations

import math

import pandas as pd

from diverquant.domain.models import SignalKind

# One-minute bars over a 24/5 FX week.
MINUTE_BARS_PER_YEAR = 60 * 24 * 5 * 52


def risk_bracket(
    kind: SignalKind,
    price: float,
    stop_loss_pct: float = 0.002,
    take_profit_pct: float = 0.004,
) -> tuple[float | None, float | None]:
    if kind == SignalKind.BUY:
        return price * (1.0 - stop_loss_pct), price * (1.0 + take_profit_pct)
    if kind == SignalKind.SELL:
        return price * (1.0 + stop_loss_pct), price * (1.0 - take_profit_pct)
    return None, None


def annualized_return(equity: pd.Series, periods_per_year: int = MINUTE_BARS_PER_YEAR) -> float:
    if len(equity) < 2:
        return 0.0
    period_return = float((equity.iloc[-1] / equity.iloc[0]) - 1.0)
    years = len(equity) / periods_per_year
    if years <= 0 or period_return <= -1.0:
        return 0.0
    # Short minute-bar samples compound to values beyond float range.
    growth = math.log1p(period_return) / years
    if growth > 700:
        return math.inf
    return float(math.expm1(growth))


def total_return(equity: pd.Series) -> float:
    if len(equity) < 2:
        return 0.0
    return float((equity.iloc[-1] / equity.iloc[0]) - 1.0)


def max_drawdown(equity: pd.Series) -> float:
    if equity.empty:
        return 0.0
    drawdown = (equity / equity.cummax()) - 1.0
    return float(drawdown.min())


def sharpe_ratio(
    equity: pd.Series,
    risk_free_rate: float = 0.0,
    periods_per_year: int = MINUTE_BARS_PER_YEAR,
) -> float:
    returns = equity.pct_change().dropna()
    if returns.empty:
        return 0.0

    excess = returns - (risk_free_rate / periods_per_year)
    std = excess.std(ddof=1)
    if std == 0 or math.isnan(std):
        return 0.0
    return float((excess.mean() / std) * math.sqrt(periods_per_year))
