"""
Customer credit ("Udhaar") ledger.

total_spent only grows, by the billed sub_total of each return (before
discount). total_debt is replaced by the settlement's balance_due, which
already includes the debt carried in.
"""
from __future__ import annotations

from dataclasses import replace

from ...database.repositories.customers_repo import Customer
from .settlement import clamp_non_negative
from .tiers import classify


def apply_settlement(customer: Customer, sub_total: float, balance_due: float) -> Customer:
    total_spent = float(customer.total_spent or 0.0) + float(sub_total)
    return replace(
        customer,
        total_spent=total_spent,
        total_debt=clamp_non_negative(float(balance_due)),
        tier=classify(total_spent),
    )


def settle_debt_directly(customer: Customer, amount: float) -> Customer:
    """Cash against the running balance, outside of any return. No invoice."""
    return replace(
        customer,
        total_debt=clamp_non_negative(float(customer.total_debt or 0.0) - float(amount)),
    )
