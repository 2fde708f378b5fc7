"""
Lot matching engine.

Assigns disposals of a single asset to acquisition lots under FIFO, LIFO or
HIFO and computes the realized gain or loss of every (disposal, lot) match.

Disposals are always consumed oldest-first; the cost basis method only decides
which lot a disposal draws from next. Quantities that cannot be covered by any
remaining lot are reported as UnmatchedDisposal anomalies instead of raising.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Sequence

from gains_tracker.exceptions import InvalidInputError
from gains_tracker.models import (
    CapitalGainRecord, CostBasisMethod, MatchResult, TaxReport,
    UnmatchedDisposal, ValuedEvent, LONG_TERM_THRESHOLD, ZERO, elapsed_between
)


@dataclass
class _Lot:
    """Mutable per-call view of one acquisition."""
    index: int
    event: ValuedEvent
    remaining: Decimal


def _order_fifo(lots: List[_Lot]) -> List[_Lot]:
    return sorted(lots, key=lambda l: (l.event.timestamp, l.index))


def _order_lifo(lots: List[_Lot]) -> List[_Lot]:
    # reverse=True keeps equal timestamps in input order
    by_index = sorted(lots, key=lambda l: l.index)
    return sorted(by_index, key=lambda l: l.event.timestamp, reverse=True)


def _order_hifo(lots: List[_Lot]) -> List[_Lot]:
    # Highest unit cost first, tiebreaker by timestamp asc
    return sorted(lots, key=lambda l: (-l.event.unit_cost, l.event.timestamp, l.index))


_LOT_ORDERINGS: Dict[CostBasisMethod, Callable[[List[_Lot]], List[_Lot]]] = {
    CostBasisMethod.FIFO: _order_fifo,
    CostBasisMethod.LIFO: _order_lifo,
    CostBasisMethod.HIFO: _order_hifo,
}

_missing = set(CostBasisMethod) - set(_LOT_ORDERINGS)
if _missing:
    raise RuntimeError(f"No lot ordering registered for {sorted(m.name for m in _missing)}")


def is_long_term(acquired: datetime, disposed: datetime) -> bool:
    """Holding period strictly longer than 365 days."""
    return elapsed_between(acquired, disposed) > LONG_TERM_THRESHOLD


def _validate(events: Sequence[ValuedEvent]) -> None:
    asset_ids = {e.asset_id for e in events}
    if len(asset_ids) > 1:
        raise InvalidInputError(f"Events mix assets {sorted(asset_ids)}; match one asset at a time")

    for e in events:
        if not isinstance(e.timestamp, datetime):
            raise InvalidInputError(f"Event {e.source_id} timestamp is not a datetime: {e.timestamp!r}")
    aware = {e.timestamp.tzinfo is not None for e in events}
    if len(aware) > 1:
        raise InvalidInputError("Event timestamps mix timezone-aware and naive datetimes")

    for e in events:
        if not e.signed_quantity.is_finite():
            raise InvalidInputError(f"Event {e.source_id} has non-finite quantity {e.signed_quantity}")
        if e.signed_quantity == 0:
            raise InvalidInputError(f"Event {e.source_id} has zero quantity")
        if not e.fiat_value.is_finite():
            raise InvalidInputError(f"Event {e.source_id} has non-finite fiat value {e.fiat_value}")
        if e.fiat_value < 0:
            raise InvalidInputError(f"Event {e.source_id} has negative fiat value {e.fiat_value}")


class LotMatcher:
    """
    Matches disposals against acquisition lots for one asset.

    A matcher holds no state between calls; every call builds its own lot
    arena from the events it is given and never mutates them.
    """

    def __init__(self, method: Any = CostBasisMethod.FIFO):
        self.method = CostBasisMethod.parse(method)

    def match(self, events: Iterable[ValuedEvent]) -> List[CapitalGainRecord]:
        return list(self.match_events(events).records)

    def match_events(self, events: Iterable[ValuedEvent]) -> MatchResult:
        """
        Consume acquisition lots for every disposal in chronological order.

        Args:
            events: Valued acquisitions and disposals of a single asset, any order

        Returns:
            MatchResult with records in disposal order (then lot consumption order)
            and one anomaly per disposal that could not be fully covered

        Raises:
            InvalidInputError: If events mix assets or carry invalid quantities/values
        """
        events = list(events)
        _validate(events)

        order_lots = _LOT_ORDERINGS[self.method]
        lots = [
            _Lot(index=i, event=e, remaining=e.quantity)
            for i, e in enumerate(events) if e.is_acquisition
        ]
        disposals = sorted(
            ((i, e) for i, e in enumerate(events) if e.is_disposal),
            key=lambda pair: (pair[1].timestamp, pair[0])
        )

        records: List[CapitalGainRecord] = []
        anomalies: List[UnmatchedDisposal] = []

        for _, disposal in disposals:
            remaining = disposal.quantity
            candidates = order_lots([lot for lot in lots if lot.remaining > 0])

            for lot in candidates:
                if remaining == 0:
                    break
                use = min(remaining, lot.remaining)
                # multiply before dividing so a full match reproduces the fiat value exactly
                proceeds = use * disposal.fiat_value / disposal.quantity
                cost_basis = use * lot.event.fiat_value / lot.event.quantity
                records.append(CapitalGainRecord(
                    disposal_source_id=disposal.source_id,
                    disposal_timestamp=disposal.timestamp,
                    asset_id=disposal.asset_id,
                    acquisition_timestamp=lot.event.timestamp,
                    acquisition_source_id=lot.event.source_id,
                    matched_quantity=use,
                    proceeds=proceeds,
                    cost_basis=cost_basis,
                    gain_or_loss=proceeds - cost_basis,
                    is_long_term=is_long_term(lot.event.timestamp, disposal.timestamp),
                ))
                lot.remaining -= use
                remaining -= use

            if remaining > 0:
                anomalies.append(UnmatchedDisposal(
                    disposal_source_id=disposal.source_id,
                    disposal_timestamp=disposal.timestamp,
                    asset_id=disposal.asset_id,
                    disposed_quantity=disposal.quantity,
                    unmatched_quantity=remaining,
                ))

        return MatchResult(records=tuple(records), anomalies=tuple(anomalies))


def match(events: Iterable[ValuedEvent], method: Any = CostBasisMethod.FIFO) -> List[CapitalGainRecord]:
    """Match disposals to lots; see LotMatcher.match_events."""
    return LotMatcher(method).match(events)


def match_events(events: Iterable[ValuedEvent], method: Any = CostBasisMethod.FIFO) -> MatchResult:
    return LotMatcher(method).match_events(events)


def summarize(records: Iterable[CapitalGainRecord], anomalies: Iterable[UnmatchedDisposal] = ()) -> TaxReport:
    """Split gains into short/long-term totals. Pure; records are attached unchanged."""
    records = tuple(records)
    short_term = sum((r.gain_or_loss for r in records if not r.is_long_term), ZERO)
    long_term = sum((r.gain_or_loss for r in records if r.is_long_term), ZERO)
    return TaxReport(
        short_term_gains=short_term,
        long_term_gains=long_term,
        total_gains=short_term + long_term,
        records=records,
        anomalies=tuple(anomalies),
    )
