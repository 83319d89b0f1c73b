"""Divergence-based trading signal engine."""

from diverquant.config import Settings
from diverquant.engine import SignalEngine, SignalEngineConfig, SignalHub
from diverquant.indicators import IndicatorConfig, IndicatorEngine

__all__ = [
    "IndicatorConfig",
    "IndicatorEngine",
    "Settings",
    "SignalEngine",
    "SignalEngineConfig",
    "SignalHub",
]

__version__ = "0.1.0"
