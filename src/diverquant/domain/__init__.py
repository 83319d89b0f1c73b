from diverquant.domain.models import (
    ConfirmationOutcome,
    DivergenceCandidate,
    DivergenceKind,
    EmaValues,
    ExtremePoint,
    IndicatorName,
    IndicatorSnapshot,
    MacdValues,
    PriceSample,
    SignalKind,
    StochasticValues,
    Tick,
    TradingSignal,
)

__all__ = [
    "ConfirmationOutcome",
    "DivergenceCandidate",
    "DivergenceKind",
    "EmaValues",
    "ExtremePoint",
    "IndicatorName",
    "IndicatorSnapshot",
    "MacdValues",
    "PriceSample",
    "SignalKind",
    "StochasticValues",
    "Tick",
    "TradingSignal",
]
