from datetime import datetime, timezone
import sys
import time
from typing import Any, Iterable, List, Optional

from gains_tracker.clients.price import PriceClient
from gains_tracker.matcher import LotMatcher, summarize
from gains_tracker.models import (
    CapitalGainRecord, CostBasisMethod, UnmatchedDisposal, WalletTaxReport, WalletTransfer
)
from gains_tracker.valuation import filter_window, group_by_asset, value_transfers


def _as_utc(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)


class TaxReportGenerator:
    """
    Builds wallet tax reports from raw transfers.

    Implements:
    - Date window filtering (inclusive)
    - Transfer valuation (fiat value on the transfer, else the price client)
    - Per-asset lot matching under FIFO, LIFO or HIFO
    - Short/long-term aggregation per asset and across the wallet
    """

    def __init__(self, price_client: Optional[PriceClient] = None):
        self.price_client = price_client

    # -------------------------------------------------------------------------
    # Lightweight logging / timing helpers
    # -------------------------------------------------------------------------
    def _log(self, msg: str):
        """Print a timestamped log message."""
        ts = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        print(f"{ts}  {msg}", file=sys.stderr)

    def _timed_call(self, label: str, func, *args, **kwargs):
        """Call func(*args, **kwargs) while logging start/end and elapsed time."""
        start = time.time()
        self._log(f"{label} — start")
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            elapsed = time.time() - start
            self._log(f"{label} — failed after {elapsed:.2f}s: {e}")
            raise

        elapsed = time.time() - start
        self._log(f"{label} — done in {elapsed:.2f}s")
        return result

    # -------------------------------------------------------------------------
    # Report generation
    # -------------------------------------------------------------------------

    def generate(
        self,
        wallet_id: str,
        transfers: Iterable[WalletTransfer],
        start_date: datetime,
        end_date: datetime,
        method: Any = CostBasisMethod.FIFO,
    ) -> WalletTaxReport:
        """
        Generate a tax report for a wallet using the specified method.

        Args:
            wallet_id: Wallet the transfers belong to
            transfers: Raw transfers of the wallet (any assets, any order)
            start_date: Window start (inclusive)
            end_date: Window end (inclusive)
            method: CostBasisMethod or its name

        Raises:
            InvalidInputError: For an unknown method, an inverted window or malformed events
            PriceNotAvailableError: If a transfer cannot be valued
        """
        matcher = LotMatcher(method)
        start_date, end_date = _as_utc(start_date), _as_utc(end_date)

        in_window = filter_window(transfers, start_date, end_date)
        events = self._timed_call(
            f"Valuing {len(in_window)} transfers", value_transfers, in_window, self.price_client
        )

        records: List[CapitalGainRecord] = []
        anomalies: List[UnmatchedDisposal] = []
        per_asset = {}
        grouped = group_by_asset(events)

        for asset in sorted(grouped):
            result = matcher.match_events(grouped[asset])
            per_asset[asset] = summarize(result.records, result.anomalies)
            records.extend(result.records)
            anomalies.extend(result.anomalies)
            self._log(
                f"  {asset}: {len(grouped[asset])} events, {len(result.records)} gain records, "
                f"total {per_asset[asset].total_gains:.2f}"
            )
            for anomaly in result.anomalies:
                self._log(f"  Warning: {anomaly.message}")

        report = summarize(records, anomalies)
        self._log(
            f"Wallet {wallet_id} ({matcher.method.name}): short-term {report.short_term_gains:.2f}, "
            f"long-term {report.long_term_gains:.2f}, total {report.total_gains:.2f}"
        )

        return WalletTaxReport(
            wallet_id=wallet_id,
            start_date=start_date,
            end_date=end_date,
            method=matcher.method,
            report=report,
            per_asset=per_asset,
            events=tuple(sorted(events, key=lambda e: e.timestamp)),
        )


def generate_tax_report(
    wallet_id: str,
    transfers: Iterable[WalletTransfer],
    start_date: datetime,
    end_date: datetime,
    method: Any = CostBasisMethod.FIFO,
    price_client: Optional[PriceClient] = None,
) -> WalletTaxReport:
    return TaxReportGenerator(price_client).generate(wallet_id, transfers, start_date, end_date, method)
