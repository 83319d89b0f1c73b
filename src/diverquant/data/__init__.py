from diverquant.data.base import TickSource
from diverquant.data.csv_source import CsvTickSource

__all__ = ["TickSource", "CsvTickSource"]
