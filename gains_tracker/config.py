from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class TaxSettings(BaseSettings):
    """Core report configuration."""

    # Lot consumption strategy: FIFO (default), LIFO or HIFO. HIFO = Highest cost-basis first.
    lot_strategy: str = Field("FIFO", alias="LOT_STRATEGY", description="Lot consumption strategy: FIFO, LIFO or HIFO")
    export_template: str = Field(
        "general",
        alias="TAX_EXPORT_TEMPLATE",
        description="Default CSV export template"
    )
    fiat_currency: str = Field("USD", alias="FIAT_CURRENCY", description="Currency label used in exports")


class SheetSettings(BaseSettings):
    """Google Sheets configuration for publishing reports."""

    tax_sheet_id: Optional[str] = Field(None, alias="TAX_SHEET_ID", description="Google Sheet ID for published reports")
    tax_google_credentials: Optional[str] = Field(
        None,
        alias="TAX_GOOGLE_CREDENTIALS",
        description="Path to Google service account credentials"
    )
