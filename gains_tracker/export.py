"""
CSV export templates for wallet tax reports.

Gain-based templates write one row per capital gain record, sorted by date
sold. Trade-based templates (koinly, cointracker) write one row per valued
event so the report can be re-imported into those tools. All rounding happens
here; the report itself keeps full Decimal precision.
"""

import csv
import io
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, List, NamedTuple

from gains_tracker.exceptions import InvalidInputError
from gains_tracker.models import (
    CapitalGainRecord, ValuedEvent, WalletTaxReport, FIAT_QUANT, QUANTITY_QUANT
)


def fmt_fiat(value: Decimal) -> str:
    return str(value.quantize(FIAT_QUANT, rounding=ROUND_HALF_UP))


def fmt_quantity(value: Decimal) -> str:
    return str(value.quantize(QUANTITY_QUANT, rounding=ROUND_HALF_UP))


def _date(moment) -> str:
    return moment.strftime('%Y-%m-%d')


def _general_row(g: CapitalGainRecord, currency: str) -> List[Any]:
    return [
        _date(g.disposal_timestamp), _date(g.acquisition_timestamp), g.asset_id,
        fmt_quantity(g.matched_quantity), fmt_fiat(g.proceeds), fmt_fiat(g.cost_basis),
        fmt_fiat(g.gain_or_loss), "Yes" if g.is_long_term else "No",
    ]


def _turbotax_row(g: CapitalGainRecord, currency: str) -> List[Any]:
    return [
        f"{fmt_quantity(g.matched_quantity)} {g.asset_id}", _date(g.acquisition_timestamp),
        _date(g.disposal_timestamp), fmt_fiat(g.proceeds), fmt_fiat(g.cost_basis), "0.00",
        fmt_fiat(g.gain_or_loss), "Long" if g.is_long_term else "Short",
    ]


def _hrblock_row(g: CapitalGainRecord, currency: str) -> List[Any]:
    return [
        f"{fmt_quantity(g.matched_quantity)} {g.asset_id}", _date(g.acquisition_timestamp),
        fmt_fiat(g.cost_basis), _date(g.disposal_timestamp), fmt_fiat(g.proceeds),
        fmt_fiat(g.gain_or_loss), "Long Term" if g.is_long_term else "Short Term",
    ]


def _taxact_row(g: CapitalGainRecord, currency: str) -> List[Any]:
    return [
        f"{fmt_quantity(g.matched_quantity)} {g.asset_id}", _date(g.acquisition_timestamp),
        _date(g.disposal_timestamp), fmt_fiat(g.proceeds), fmt_fiat(g.cost_basis),
        "L" if g.is_long_term else "S", "0.00", fmt_fiat(g.gain_or_loss),
    ]


def _koinly_row(e: ValuedEvent, currency: str) -> List[Any]:
    if e.is_acquisition:
        sent, sent_cur, received, received_cur = fmt_fiat(e.fiat_value), currency, fmt_quantity(e.quantity), e.asset_id
        description = f"Bought {fmt_quantity(e.quantity)} {e.asset_id}"
    else:
        sent, sent_cur, received, received_cur = fmt_quantity(e.quantity), e.asset_id, fmt_fiat(e.fiat_value), currency
        description = f"Sold {fmt_quantity(e.quantity)} {e.asset_id}"
    return [
        e.timestamp.isoformat(), sent, sent_cur, received, received_cur, "0", currency,
        fmt_fiat(e.fiat_value), currency, "", description, e.source_id,
    ]


def _cointracker_row(e: ValuedEvent, currency: str) -> List[Any]:
    if e.is_acquisition:
        return [_date(e.timestamp), "Buy", fmt_quantity(e.quantity), e.asset_id,
                fmt_fiat(e.fiat_value), currency, "0", currency, "", ""]
    return [_date(e.timestamp), "Sell", fmt_fiat(e.fiat_value), currency,
            fmt_quantity(e.quantity), e.asset_id, "0", currency, "", ""]


class ExportTemplate(NamedTuple):
    headers: List[str]
    row: Callable[[Any, str], List[Any]]
    per_trade: bool = False


_TEMPLATES: Dict[str, ExportTemplate] = {
    "general": ExportTemplate(
        ["Date Sold", "Date Acquired", "Asset", "Amount", "Sale Value ({cur})",
         "Cost Basis ({cur})", "Gain/Loss ({cur})", "Long Term"],
        _general_row,
    ),
    "turbotax": ExportTemplate(
        ["Description", "Date Acquired", "Date Sold", "Proceeds", "Cost Basis",
         "Wash Sale Loss Disallowed", "Gain Or Loss", "Term"],
        _turbotax_row,
    ),
    "hrblock": ExportTemplate(
        ["Asset Name", "Purchase Date", "Cost Basis", "Date Sold", "Proceeds", "Gain/Loss", "Term"],
        _hrblock_row,
    ),
    "taxact": ExportTemplate(
        ["Security Description", "Date Acquired", "Date Sold", "Sales Price",
         "Cost or Other Basis", "Codes", "Amount of Adjustment", "Gain or Loss"],
        _taxact_row,
    ),
    "koinly": ExportTemplate(
        ["Date", "Sent Amount", "Sent Currency", "Received Amount", "Received Currency",
         "Fee Amount", "Fee Currency", "Net Worth Amount", "Net Worth Currency",
         "Label", "Description", "TxHash"],
        _koinly_row,
        per_trade=True,
    ),
    "cointracker": ExportTemplate(
        ["Date", "Type", "Received Quantity", "Received Currency", "Sent Quantity",
         "Sent Currency", "Fee", "Fee Currency", "Exchange", "Tag"],
        _cointracker_row,
        per_trade=True,
    ),
}

EXPORT_TEMPLATES = tuple(_TEMPLATES)


def export_rows(report: WalletTaxReport, template: str = "general", currency: str = "USD") -> List[List[Any]]:
    """Header row followed by data rows for the given template."""
    chosen = _TEMPLATES.get(template.strip().lower())
    if chosen is None:
        raise InvalidInputError(f"Unknown export template {template!r}; expected one of {list(EXPORT_TEMPLATES)}")

    if chosen.per_trade:
        items = sorted(report.events, key=lambda e: e.timestamp)
    else:
        items = sorted(report.report.records, key=lambda g: g.disposal_timestamp)

    headers = [h.format(cur=currency) for h in chosen.headers]
    return [headers] + [chosen.row(item, currency) for item in items]


def render_csv(report: WalletTaxReport, template: str = "general", currency: str = "USD") -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(export_rows(report, template, currency))
    return buffer.getvalue()
