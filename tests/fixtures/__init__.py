"""Shared test fixtures for gains tracker tests."""
# Mock sheets fixtures
from .mock_sheets import mock_sheets

# Mock config fixtures and constants
from .mock_config import (
    mock_tax_settings,
    mock_sheet_settings,
    # Test constants
    TEST_LOT_STRATEGY,
    TEST_EXPORT_TEMPLATE,
    TEST_FIAT_CURRENCY,
    TEST_TAX_SHEET_ID,
    TEST_GOOGLE_CREDENTIALS_PATH,
)

# Event builders
from .mock_data import two_lot_events, two_lot_report, buy, sell, transfer, at, BASE_TIME, WEI

__all__ = [
    # Fixtures
    'mock_sheets',
    'mock_tax_settings',
    'mock_sheet_settings',
    'two_lot_events',
    'two_lot_report',
    # Builders
    'buy',
    'sell',
    'transfer',
    'at',
    'BASE_TIME',
    'WEI',
    # Constants
    'TEST_LOT_STRATEGY',
    'TEST_EXPORT_TEMPLATE',
    'TEST_FIAT_CURRENCY',
    'TEST_TAX_SHEET_ID',
    'TEST_GOOGLE_CREDENTIALS_PATH',
]
