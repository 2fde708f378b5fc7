from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import List, Optional, Dict, Any, Tuple

from gains_tracker.exceptions import InvalidInputError

# Holding period must strictly exceed this to be long-term.
LONG_TERM_THRESHOLD = timedelta(days=365)

ZERO = Decimal("0")
FIAT_QUANT = Decimal("0.01")
QUANTITY_QUANT = Decimal("0.00000001")


def to_decimal(value: Any, label: str) -> Decimal:
    """Coerce an int/str/float/Decimal to Decimal, raising InvalidInputError otherwise."""
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise InvalidInputError(f"{label} is not a number: {value!r}")
    try:
        # floats go through str() so 0.1 stays 0.1
        return Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidInputError(f"{label} is not a number: {value!r}") from e


def decimal_str(value: Decimal) -> str:
    """Plain (non-scientific) string form of a Decimal."""
    return format(value, "f")


def elapsed_between(start: datetime, end: datetime) -> timedelta:
    """Real elapsed time; aware datetimes are compared in UTC."""
    if start.tzinfo is not None and end.tzinfo is not None:
        return end.astimezone(timezone.utc) - start.astimezone(timezone.utc)
    return end - start


class CostBasisMethod(Enum):
    """Lot selection policy for disposals."""
    FIFO = "fifo"
    LIFO = "lifo"
    HIFO = "hifo"

    @classmethod
    def parse(cls, value: Any) -> "CostBasisMethod":
        """Accept a member, a name or a value, case-insensitively."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for method in cls:
                if method.value == normalized:
                    return method
        raise InvalidInputError(
            f"Unknown cost basis method {value!r}; expected one of {[m.name for m in cls]}"
        )


class GainType(Enum):
    """Capital gain type based on holding period."""
    SHORT_TERM = "Short-term"
    LONG_TERM = "Long-term"


class TransferDirection(Enum):
    """Direction of a wallet transfer relative to the tracked wallet."""
    RECEIVE = "receive"
    SEND = "send"


@dataclass(frozen=True)
class ValuedEvent:
    """One acquisition (positive quantity) or disposal (negative quantity) of an asset."""
    asset_id: str
    timestamp: datetime
    signed_quantity: Decimal
    fiat_value: Decimal  # absolute fiat value of the whole quantity
    source_id: str

    def __post_init__(self):
        object.__setattr__(self, "signed_quantity", to_decimal(self.signed_quantity, "signed_quantity"))
        object.__setattr__(self, "fiat_value", to_decimal(self.fiat_value, "fiat_value"))

    @property
    def quantity(self) -> Decimal:
        return abs(self.signed_quantity)

    @property
    def is_acquisition(self) -> bool:
        return self.signed_quantity > 0

    @property
    def is_disposal(self) -> bool:
        return self.signed_quantity < 0

    @property
    def unit_cost(self) -> Decimal:
        """Cost basis per unit for acquisitions, proceeds per unit for disposals."""
        if self.signed_quantity == 0:
            raise InvalidInputError(f"Event {self.source_id} has zero quantity")
        return self.fiat_value / self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_id": self.source_id,
            "timestamp": self.timestamp.isoformat(),
            "asset": self.asset_id,
            "amount": decimal_str(self.signed_quantity),
            "value": decimal_str(self.fiat_value),
            "unit_cost": decimal_str(self.unit_cost),
        }


@dataclass(frozen=True)
class CapitalGainRecord:
    """Result of matching (part of) one disposal against one acquisition lot."""
    disposal_source_id: str
    disposal_timestamp: datetime
    asset_id: str
    acquisition_timestamp: datetime
    acquisition_source_id: str
    matched_quantity: Decimal
    proceeds: Decimal
    cost_basis: Decimal
    gain_or_loss: Decimal
    is_long_term: bool

    @property
    def holding_period(self) -> timedelta:
        return elapsed_between(self.acquisition_timestamp, self.disposal_timestamp)

    @property
    def gain_type(self) -> GainType:
        return GainType.LONG_TERM if self.is_long_term else GainType.SHORT_TERM

    def to_dict(self) -> Dict[str, Any]:
        return {
            "disposal_source_id": self.disposal_source_id,
            "disposal_timestamp": self.disposal_timestamp.isoformat(),
            "asset": self.asset_id,
            "acquisition_timestamp": self.acquisition_timestamp.isoformat(),
            "acquisition_source_id": self.acquisition_source_id,
            "matched_quantity": decimal_str(self.matched_quantity),
            "proceeds": decimal_str(self.proceeds),
            "cost_basis": decimal_str(self.cost_basis),
            "gain_or_loss": decimal_str(self.gain_or_loss),
            "is_long_term": self.is_long_term,
        }

    def to_sheet_row(self) -> List[Any]:
        """Convert to Google Sheets row."""
        return [
            self.disposal_timestamp.strftime('%Y-%m-%d %H:%M:%S'),
            self.acquisition_timestamp.strftime('%Y-%m-%d %H:%M:%S'),
            self.asset_id,
            float(self.matched_quantity.quantize(QUANTITY_QUANT)),
            float(self.proceeds.quantize(FIAT_QUANT)),
            float(self.cost_basis.quantize(FIAT_QUANT)),
            float(self.gain_or_loss.quantize(FIAT_QUANT)),
            self.gain_type.value,
            self.disposal_source_id,
            self.acquisition_source_id,
        ]

    @classmethod
    def sheet_headers(cls) -> List[str]:
        return [
            "Date Sold", "Date Acquired", "Asset", "Amount", "Proceeds",
            "Cost Basis", "Gain/Loss", "Gain Type", "Disposal Tx", "Acquisition Tx"
        ]


@dataclass(frozen=True)
class UnmatchedDisposal:
    """A disposal (or its remainder) with no acquisition lot left to cover it."""
    disposal_source_id: str
    disposal_timestamp: datetime
    asset_id: str
    disposed_quantity: Decimal
    unmatched_quantity: Decimal

    @property
    def message(self) -> str:
        return (
            f"Disposal {self.disposal_source_id} sold {decimal_str(self.disposed_quantity)} {self.asset_id} "
            f"but {decimal_str(self.unmatched_quantity)} had no matching cost basis"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "disposal_source_id": self.disposal_source_id,
            "disposal_timestamp": self.disposal_timestamp.isoformat(),
            "asset": self.asset_id,
            "disposed_quantity": decimal_str(self.disposed_quantity),
            "unmatched_quantity": decimal_str(self.unmatched_quantity),
            "message": self.message,
        }

    def to_sheet_row(self) -> List[Any]:
        return [
            self.disposal_timestamp.strftime('%Y-%m-%d %H:%M:%S'),
            self.asset_id,
            float(self.disposed_quantity.quantize(QUANTITY_QUANT)),
            float(self.unmatched_quantity.quantize(QUANTITY_QUANT)),
            self.disposal_source_id,
        ]

    @classmethod
    def sheet_headers(cls) -> List[str]:
        return ["Date Sold", "Asset", "Amount Sold", "Amount Unmatched", "Disposal Tx"]


@dataclass(frozen=True)
class MatchResult:
    """Records and anomalies produced by one matcher run."""
    records: Tuple[CapitalGainRecord, ...]
    anomalies: Tuple[UnmatchedDisposal, ...]


@dataclass(frozen=True)
class TaxReport:
    """Aggregate gains over an ordered list of capital gain records."""
    short_term_gains: Decimal
    long_term_gains: Decimal
    total_gains: Decimal
    records: Tuple[CapitalGainRecord, ...] = ()
    anomalies: Tuple[UnmatchedDisposal, ...] = ()

    @property
    def unmatched_quantity(self) -> Decimal:
        return sum((a.unmatched_quantity for a in self.anomalies), ZERO)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "short_term_gains": decimal_str(self.short_term_gains),
            "long_term_gains": decimal_str(self.long_term_gains),
            "total_gains": decimal_str(self.total_gains),
            "gains": [r.to_dict() for r in self.records],
            "anomalies": [a.to_dict() for a in self.anomalies],
        }


@dataclass(frozen=True)
class WalletTransfer:
    """Raw ledger transfer for a wallet, amounts in the asset's base units."""
    tx_hash: str
    timestamp: datetime
    asset: str
    direction: TransferDirection
    raw_amount: str  # integer string, e.g. wei
    decimals: int = 18
    fiat_value: Optional[Decimal] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WalletTransfer":
        try:
            timestamp = datetime.fromisoformat(str(data["timestamp"]).replace("Z", "+00:00"))
            if timestamp.tzinfo is None:
                timestamp = timestamp.replace(tzinfo=timezone.utc)
            direction = TransferDirection(str(data["type"]).lower())
            fiat_value = data.get("fiat_value")
            return cls(
                tx_hash=data["tx_hash"],
                timestamp=timestamp,
                asset=data["asset"],
                direction=direction,
                raw_amount=str(data["value"]),
                decimals=int(data.get("decimals", 18)),
                fiat_value=None if fiat_value is None else to_decimal(fiat_value, "fiat_value"),
            )
        except InvalidInputError:
            raise
        except (KeyError, ValueError) as e:
            raise InvalidInputError(f"Malformed transfer record {data!r}: {e}") from e


@dataclass(frozen=True)
class WalletTaxReport:
    """Tax report for one wallet over a date window, combined across assets."""
    wallet_id: str
    start_date: datetime
    end_date: datetime
    method: CostBasisMethod
    report: TaxReport
    per_asset: Dict[str, TaxReport] = field(default_factory=dict)
    events: Tuple[ValuedEvent, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wallet_id": self.wallet_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "method": self.method.value,
            "short_term_gains": decimal_str(self.report.short_term_gains),
            "long_term_gains": decimal_str(self.report.long_term_gains),
            "total_gains": decimal_str(self.report.total_gains),
            "transactions": {
                "trades": [e.to_dict() for e in self.events],
                "gains": [r.to_dict() for r in self.report.records],
            },
            "anomalies": [a.to_dict() for a in self.report.anomalies],
        }

    def summary_rows(self) -> List[List[Any]]:
        """One Google Sheets row per asset plus a total row."""
        rows = []
        for asset, asset_report in sorted(self.per_asset.items()):
            rows.append(self._summary_row(asset, asset_report))
        rows.append(self._summary_row("TOTAL", self.report))
        return rows

    def _summary_row(self, label: str, report: TaxReport) -> List[Any]:
        return [
            self.wallet_id,
            self.start_date.strftime('%Y-%m-%d'),
            self.end_date.strftime('%Y-%m-%d'),
            self.method.name,
            label,
            float(report.short_term_gains.quantize(FIAT_QUANT)),
            float(report.long_term_gains.quantize(FIAT_QUANT)),
            float(report.total_gains.quantize(FIAT_QUANT)),
            len(report.anomalies),
        ]

    @classmethod
    def summary_headers(cls) -> List[str]:
        return [
            "Wallet", "Start Date", "End Date", "Method", "Asset",
            "Short-term Gains", "Long-term Gains", "Total Gains", "Anomalies"
        ]
