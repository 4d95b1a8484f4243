"""
Settlement math for a return event. Pure helpers: no repos, no DB.

Order of application is fixed:
    net_bill          = max(0, sub_total - discount)
    advance_adjusted  = min(rental advance, net_bill)
    current_payable   = net_bill - advance_adjusted
    total_outstanding = current_payable + previous_debt
    balance_due       = max(0, total_outstanding - received_amount)
"""
from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "Settlement",
    "clamp_non_negative",
    "settle",
]


def clamp_non_negative(x: float) -> float:
    """Return x if x > 0, else 0.0."""
    return x if x > 0.0 else 0.0


@dataclass(frozen=True)
class Settlement:
    net_bill: float
    advance_adjusted: float
    remaining_advance: float
    current_payable: float
    total_outstanding: float
    balance_due: float
    previous_debt: float = 0.0
    received_amount: float = 0.0
    overpayment: float = 0.0

    @property
    def is_paid(self) -> bool:
        return self.balance_due == 0


def settle(
    sub_total: float,
    discount: float,
    rental_advance: float,
    previous_debt: float,
    received_amount: float,
) -> Settlement:
    """
    Reconcile one return event's bill against the rental's advance, the
    customer's previous debt and the cash received.

    The advance is only ever consumed, never refunded. Cash beyond the total
    outstanding is not turned into credit; it is reported as `overpayment`
    so the caller can hand back change.

    Call once per return event with values read before any side effect is
    applied.
    """
    net_bill = clamp_non_negative(float(sub_total) - float(discount))
    advance = clamp_non_negative(float(rental_advance or 0.0))

    if advance >= net_bill:
        advance_adjusted = net_bill
        remaining_advance = advance - net_bill
    else:
        advance_adjusted = advance
        remaining_advance = 0.0

    current_payable = net_bill - advance_adjusted
    total_outstanding = current_payable + float(previous_debt or 0.0)
    received = float(received_amount or 0.0)
    balance_due = clamp_non_negative(total_outstanding - received)
    overpayment = clamp_non_negative(received - total_outstanding)

    return Settlement(
        net_bill=net_bill,
        advance_adjusted=advance_adjusted,
        remaining_advance=remaining_advance,
        current_payable=current_payable,
        total_outstanding=total_outstanding,
        balance_due=balance_due,
        previous_debt=float(previous_debt or 0.0),
        received_amount=received,
        overpayment=overpayment,
    )
