from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
import logging
import math
from typing import Dict, Tuple, Union

from ...constants import SECONDS_PER_DAY
from ...database.repositories.rentals_repo import Rental
from .quantities import QuantityInput, collect_quantities

_log = logging.getLogger(__name__)

DateLike = Union[str, date, datetime]


@dataclass(frozen=True)
class ChargeLine:
    product_id: int
    product_name: str
    quantity: int
    days: int
    unit_price: float
    amount: float


@dataclass(frozen=True)
class Charge:
    days: int
    lines: Tuple[ChargeLine, ...]
    sub_total: float

    @property
    def returned_quantities(self) -> Dict[int, int]:
        return {line.product_id: line.quantity for line in self.lines}


def parse_date(value: DateLike) -> datetime:
    """
    Accept 'YYYY-MM-DD', a full ISO timestamp, a date or a datetime.
    Aware timestamps are converted to naive UTC so they compare with plain dates.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        dt = datetime.fromisoformat(str(value).strip())
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def rental_days(start_date: DateLike, return_date: DateLike) -> int:
    """
    Whole days billed between start and return: partial days round up, the
    direction of the gap is ignored and a same-day return still bills 1 day.
    """
    seconds = abs((parse_date(return_date) - parse_date(start_date)).total_seconds())
    return max(math.ceil(seconds / SECONDS_PER_DAY), 1)


def compute_charge(rental: Rental, returned_items: QuantityInput, return_date: DateLike) -> Charge:
    """
    Price a return event without touching the rental.

    Each line is quantity x locked unit price x days since the original
    start_date. Products that are not on the rental are skipped. A quantity
    larger than what is still out is capped at the outstanding quantity.
    """
    days = rental_days(rental.start_date, return_date)
    lines = []
    sub_total = 0.0
    for product_id, requested in collect_quantities(returned_items).items():
        item = rental.item_for(product_id)
        if item is None:
            _log.warning("rental %s: product %s is not on the rental; skipped",
                         rental.rental_id, product_id)
            continue
        qty = min(requested, item.quantity)
        if qty < requested:
            _log.warning("rental %s: return of %s x %s capped at %s outstanding",
                         rental.rental_id, requested, item.product_name, item.quantity)
        if qty <= 0:
            continue
        amount = float(qty * item.unit_price * days)
        sub_total += amount
        lines.append(
            ChargeLine(
                product_id=product_id,
                product_name=item.product_name,
                quantity=qty,
                days=days,
                unit_price=float(item.unit_price),
                amount=amount,
            )
        )
    return Charge(days=days, lines=tuple(lines), sub_total=float(sub_total))
