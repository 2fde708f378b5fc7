import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Union

from gains_tracker.clients.price import PriceClient
from gains_tracker.exceptions import PriceNotAvailableError
from gains_tracker.models import to_decimal


class HistoricalPriceTable(PriceClient):
    """
    Daily closing prices keyed by symbol and ISO date.

    Expected JSON shape::

        {"ETH": {"2024-01-01": "2300.15", "2024-01-02": {"price": 2310.0}}}
    """

    def __init__(self, prices: Dict[str, Dict[str, Any]]):
        self._prices: Dict[str, Dict[str, Decimal]] = {}
        for symbol, by_day in prices.items():
            self._prices[symbol.upper()] = {
                day: to_decimal(value["price"] if isinstance(value, dict) else value, f"{symbol} price on {day}")
                for day, value in by_day.items()
            }

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "HistoricalPriceTable":
        with open(path, "r", encoding="utf-8") as handle:
            return cls(json.load(handle))

    @property
    def name(self) -> str:
        return "Historical price table"

    def get_price_at_timestamp(self, symbol: str, timestamp: datetime) -> Decimal:
        day = timestamp.strftime('%Y-%m-%d')
        price = self._prices.get(symbol.upper(), {}).get(day)
        if price is None:
            raise PriceNotAvailableError(f"No {symbol} price for {day}")
        return price
