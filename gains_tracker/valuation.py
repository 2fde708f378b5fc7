"""
Turns raw wallet transfers into valued acquisition/disposal events.

Received transfers become acquisitions, sent transfers become disposals.
Base-unit integer amounts (e.g. wei) are normalized to decimal quantities here,
before anything reaches the matcher.
"""

from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, TypeVar

from gains_tracker.clients.price import PriceClient
from gains_tracker.exceptions import InvalidInputError, PriceNotAvailableError
from gains_tracker.models import TransferDirection, ValuedEvent, WalletTransfer

T = TypeVar("T")


def to_quantity(raw_amount: str, decimals: int) -> Decimal:
    """Convert an integer amount in base units to a decimal quantity."""
    try:
        raw = int(str(raw_amount))
    except ValueError as e:
        raise InvalidInputError(f"Raw amount must be an integer string, got {raw_amount!r}") from e
    if raw < 0:
        raise InvalidInputError(f"Raw amount must not be negative, got {raw_amount!r}")
    if decimals < 0:
        raise InvalidInputError(f"Decimals must not be negative, got {decimals}")
    # built from a string so no context rounding applies
    return Decimal(f"{raw}E-{decimals}")


def value_transfer(transfer: WalletTransfer, price_client: Optional[PriceClient] = None) -> ValuedEvent:
    """
    Build the valued event for one transfer.

    Uses the transfer's own fiat value when present, otherwise prices the
    quantity with the given client.

    Raises:
        InvalidInputError: If the fiat value is negative
        PriceNotAvailableError: If the transfer has no fiat value and no price can be found
    """
    quantity = to_quantity(transfer.raw_amount, transfer.decimals)

    if transfer.fiat_value is not None:
        fiat_value = transfer.fiat_value
    elif price_client is not None:
        fiat_value = quantity * price_client.get_price_at_timestamp(transfer.asset, transfer.timestamp)
    else:
        raise PriceNotAvailableError(
            f"Transfer {transfer.tx_hash} has no fiat value and no price client was configured"
        )

    if fiat_value < 0:
        raise InvalidInputError(f"Transfer {transfer.tx_hash} has negative fiat value {fiat_value}")

    signed = quantity if transfer.direction is TransferDirection.RECEIVE else -quantity
    return ValuedEvent(
        asset_id=transfer.asset,
        timestamp=transfer.timestamp,
        signed_quantity=signed,
        fiat_value=fiat_value,
        source_id=transfer.tx_hash,
    )


def value_transfers(
    transfers: Iterable[WalletTransfer],
    price_client: Optional[PriceClient] = None
) -> List[ValuedEvent]:
    """Value every non-zero transfer; zero-amount transfers carry no quantity and are skipped."""
    return [
        value_transfer(t, price_client)
        for t in transfers
        if to_quantity(t.raw_amount, t.decimals) != 0
    ]


def group_by_asset(events: Iterable[ValuedEvent]) -> Dict[str, List[ValuedEvent]]:
    grouped: Dict[str, List[ValuedEvent]] = OrderedDict()
    for event in events:
        grouped.setdefault(event.asset_id, []).append(event)
    return grouped


def filter_window(items: Iterable[T], start: datetime, end: datetime) -> List[T]:
    """Keep items whose timestamp falls in [start, end]."""
    if end < start:
        raise InvalidInputError(f"End date {end.isoformat()} is before start date {start.isoformat()}")
    return [item for item in items if start <= item.timestamp <= end]
