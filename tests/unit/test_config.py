from unittest.mock import patch

from gains_tracker.config import SheetSettings, TaxSettings
from tests.fixtures.mock_config import (
    TEST_EXPORT_TEMPLATE,
    TEST_FIAT_CURRENCY,
    TEST_GOOGLE_CREDENTIALS_PATH,
    TEST_LOT_STRATEGY,
    TEST_TAX_SHEET_ID,
)


def test_defaults_without_environment():
    with patch.dict('os.environ', {}, clear=True):
        settings = TaxSettings()
        sheets = SheetSettings()

    assert settings.lot_strategy == "FIFO"
    assert settings.export_template == "general"
    assert settings.fiat_currency == "USD"
    assert sheets.tax_sheet_id is None
    assert sheets.tax_google_credentials is None


def test_reads_environment(mock_tax_settings, mock_sheet_settings):
    assert mock_tax_settings.lot_strategy == TEST_LOT_STRATEGY.name
    assert mock_tax_settings.export_template == TEST_EXPORT_TEMPLATE
    assert mock_tax_settings.fiat_currency == TEST_FIAT_CURRENCY
    assert mock_sheet_settings.tax_sheet_id == TEST_TAX_SHEET_ID
    assert mock_sheet_settings.tax_google_credentials == TEST_GOOGLE_CREDENTIALS_PATH
