from diverquant.strategies.base import TradingStrategy
from diverquant.strategies.divergence import DivergenceStrategy

__all__ = ["TradingStrategy", "DivergenceStrategy"]
