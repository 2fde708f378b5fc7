#!/usr/bin/env python3
"""
Wallet Capital Gains Report

Computes realized capital gains for a wallet's transfers:
- Lot matching per asset with FIFO, LIFO or HIFO
- Short-term / long-term split at a 365-day holding period
- JSON or CSV output (general, TurboTax, H&R Block, TaxAct, Koinly, CoinTracker)
- Optional publishing to Google Sheets
"""

import argparse
import json
import sys
from datetime import datetime, time, timezone

from gains_tracker.clients.price_table import HistoricalPriceTable
from gains_tracker.config import TaxSettings
from gains_tracker.exceptions import InvalidInputError, PriceNotAvailableError
from gains_tracker.export import EXPORT_TEMPLATES, render_csv
from gains_tracker.models import CostBasisMethod, WalletTransfer
from gains_tracker.report import TaxReportGenerator
from gains_tracker.sheets import ReportSheetPublisher


def _parse_date(value: str, end_of_day: bool = False) -> datetime:
    try:
        day = datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}; expected YYYY-MM-DD")
    return datetime.combine(day, time.max if end_of_day else time.min, tzinfo=timezone.utc)


def load_transfers(path: str) -> list:
    """Load transfers from a JSON list (or {"data": [...]})."""
    with open(path, "r", encoding="utf-8") as handle:
        payload = json.load(handle)
    records = payload["data"] if isinstance(payload, dict) else payload
    return [WalletTransfer.from_dict(r) for r in records]


def build_parser(settings: TaxSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Wallet Capital Gains Report',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # FIFO report for 2024 as JSON
  python -m gains_tracker.main --transfers transfers.json --wallet main --start 2024-01-01 --end 2024-12-31

  # HIFO report exported in TurboTax format
  python -m gains_tracker.main --transfers transfers.json --wallet main --start 2024-01-01 --end 2024-12-31 \\
      --method hifo --format csv --template turbotax --output gains.csv

  # Price transfers without a fiat value from a daily price table and publish to Google Sheets
  python -m gains_tracker.main --transfers transfers.json --prices prices.json --wallet main \\
      --start 2024-01-01 --end 2024-12-31 --publish
        """
    )

    parser.add_argument('--transfers', required=True, help='JSON file of wallet transfers')
    parser.add_argument('--wallet', required=True, help='Wallet identifier for the report')
    parser.add_argument('--start', required=True, type=_parse_date, help='Start date (YYYY-MM-DD, inclusive)')
    parser.add_argument(
        '--end',
        required=True,
        type=lambda v: _parse_date(v, end_of_day=True),
        help='End date (YYYY-MM-DD, inclusive)'
    )
    parser.add_argument(
        '--method',
        choices=[m.value for m in CostBasisMethod],
        default=settings.lot_strategy.lower(),
        help='Lot consumption strategy (default: LOT_STRATEGY or fifo)'
    )
    parser.add_argument('--prices', default=None, help='JSON price table used for transfers without a fiat value')
    parser.add_argument('--format', choices=['json', 'csv'], default='json', help='Output format')
    parser.add_argument(
        '--template',
        choices=list(EXPORT_TEMPLATES),
        default=settings.export_template,
        help='CSV export template (default: TAX_EXPORT_TEMPLATE or general)'
    )
    parser.add_argument('--output', default=None, help='Write output to this file instead of stdout')
    parser.add_argument('--publish', action='store_true', help='Append the report to the configured Google Sheet')
    return parser


def run(argv=None) -> int:
    settings = TaxSettings()
    args = build_parser(settings).parse_args(argv)

    try:
        price_client = HistoricalPriceTable.from_file(args.prices) if args.prices else None
        generator = TaxReportGenerator(price_client=price_client)
        transfers = load_transfers(args.transfers)
        report = generator.generate(args.wallet, transfers, args.start, args.end, args.method)

        if args.format == 'csv':
            output = render_csv(report, args.template, settings.fiat_currency)
        else:
            output = json.dumps(report.to_dict(), indent=2)

        # raises ValueError without TAX_SHEET_ID / TAX_GOOGLE_CREDENTIALS
        publisher = ReportSheetPublisher() if args.publish else None
    except (InvalidInputError, PriceNotAvailableError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.output:
        with open(args.output, "w", encoding="utf-8", newline="") as handle:
            handle.write(output)
        print(f"Wrote {args.format.upper()} report to {args.output}", file=sys.stderr)
    else:
        print(output)

    if publisher is not None:
        publisher.publish(report)

    if report.report.anomalies:
        print(f"⚠️  {len(report.report.anomalies)} disposal(s) exceeded available lots; see anomalies in the report", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(run())
