from gains_tracker.clients.price import PriceClient
from gains_tracker.clients.price_table import HistoricalPriceTable

__all__ = ['PriceClient', 'HistoricalPriceTable']
