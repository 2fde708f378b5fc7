from typing import Any, List, Optional

import backoff
import gspread
from gspread.exceptions import WorksheetNotFound
from oauth2client.service_account import ServiceAccountCredentials

from gains_tracker.config import SheetSettings
from gains_tracker.models import CapitalGainRecord, UnmatchedDisposal, WalletTaxReport


def _is_rate_limit_error(e: Exception) -> bool:
    """Check if an exception is a Google Sheets rate limit error."""
    error_str = str(e)
    error_type = type(e).__name__
    return '429' in error_str or 'Quota exceeded' in error_str or 'APIError' in error_type


class ReportSheetPublisher:
    """Appends generated tax reports to a Google Sheet."""

    GAINS_SHEET = "Capital Gains"
    SUMMARY_SHEET = "Tax Summary"
    ANOMALIES_SHEET = "Anomalies"

    def __init__(self, settings: Optional[SheetSettings] = None):
        self.config = settings or SheetSettings()
        if not self.config.tax_sheet_id or not self.config.tax_google_credentials:
            raise ValueError("TAX_SHEET_ID and TAX_GOOGLE_CREDENTIALS are required to publish reports")

        # Connect to Google Sheets
        scope = [
            'https://spreadsheets.google.com/feeds',
            'https://www.googleapis.com/auth/drive'
        ]
        creds = ServiceAccountCredentials.from_json_keyfile_name(
            self.config.tax_google_credentials, scope
        )
        self.sheets_client = gspread.authorize(creds)
        self.sheet = self._open_sheet_with_retry(self.config.tax_sheet_id)
        self._init_sheets()

    @backoff.on_exception(
        backoff.expo,
        Exception,
        max_tries=5,
        max_time=180,
        base=10,
        factor=5,
        giveup=lambda e: not _is_rate_limit_error(e),
        on_backoff=lambda details: print(f"  Warning: opening sheet failed (attempt {details['tries']}), retrying in {details['wait']:.1f}s...")
    )
    def _open_sheet_with_retry(self, sheet_id: str):
        return self.sheets_client.open_by_key(sheet_id)

    def _init_sheets(self):
        """Initialize all report sheets with headers."""
        sheet_configs = [
            (self.GAINS_SHEET, ["Wallet", "Method"] + CapitalGainRecord.sheet_headers()),
            (self.SUMMARY_SHEET, WalletTaxReport.summary_headers()),
            (self.ANOMALIES_SHEET, ["Wallet"] + UnmatchedDisposal.sheet_headers()),
        ]

        for sheet_name, headers in sheet_configs:
            try:
                worksheet = self.sheet.worksheet(sheet_name)
                self._ensure_sheet_headers(worksheet, headers, sheet_name)
            except WorksheetNotFound:
                worksheet = self.sheet.add_worksheet(title=sheet_name, rows=1000, cols=20)
                worksheet.append_row(headers)
                print(f"  Created sheet: {sheet_name}")

        self.gains_sheet = self.sheet.worksheet(self.GAINS_SHEET)
        self.summary_sheet = self.sheet.worksheet(self.SUMMARY_SHEET)
        self.anomalies_sheet = self.sheet.worksheet(self.ANOMALIES_SHEET)

    def _ensure_sheet_headers(self, worksheet, expected_headers, label: str):
        """Ensure worksheet header row matches expected schema."""
        existing_headers = worksheet.row_values(1)
        if existing_headers != expected_headers:
            worksheet.update('A1', [expected_headers])
            print(f"  Updated {label} headers")

    @backoff.on_exception(
        backoff.expo,
        Exception,
        max_tries=5,
        max_time=180,
        base=10,
        factor=5,
        giveup=lambda e: not _is_rate_limit_error(e),
        on_backoff=lambda details: print(f"  Warning: append rows failed (attempt {details['tries']}), retrying in {details['wait']:.1f}s...")
    )
    def _append_rows_with_retry(self, worksheet, rows: List[List[Any]]):
        if rows:
            worksheet.append_rows(rows)

    def publish(self, report: WalletTaxReport):
        """Append gain records, per-asset summary and anomalies for one report."""
        prefix = [report.wallet_id, report.method.name]
        gain_rows = [prefix + r.to_sheet_row() for r in report.report.records]
        anomaly_rows = [[report.wallet_id] + a.to_sheet_row() for a in report.report.anomalies]

        self._append_rows_with_retry(self.gains_sheet, gain_rows)
        self._append_rows_with_retry(self.summary_sheet, report.summary_rows())
        self._append_rows_with_retry(self.anomalies_sheet, anomaly_rows)

        print(f"  Published {len(gain_rows)} gain rows and {len(anomaly_rows)} anomalies to {self.config.tax_sheet_id}")
