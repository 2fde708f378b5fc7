from tests.fixtures import (  # noqa: F401
    mock_sheets,
    mock_tax_settings,
    mock_sheet_settings,
    two_lot_events,
    two_lot_report,
)
