from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal


class PriceClient(ABC):
    """Abstract interface for historical fiat price sources."""
    
    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of the client for logging purposes."""
        pass
    
    @abstractmethod
    def get_price_at_timestamp(self, symbol: str, timestamp: datetime) -> Decimal:
        """
        Get the fiat price of one unit of an asset at a specific moment.
        
        Args:
            symbol: The asset symbol (e.g., 'ETH')
            timestamp: Moment of the transfer
            
        Returns:
            Decimal: Price per unit in the report currency
            
        Raises:
            PriceNotAvailableError: If price cannot be retrieved
        """
        pass
