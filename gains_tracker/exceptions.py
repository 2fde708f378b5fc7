class InvalidInputError(ValueError):
    """Raised when matcher input violates its contract (mixed assets, bad quantities, unknown method)."""
    pass


class PriceNotAvailableError(Exception):
    """Raised when price data is not available."""
    pass
