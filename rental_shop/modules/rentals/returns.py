from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from ...database.repositories.customers_repo import Customer
from ...database.repositories.invoices_repo import Invoice
from ...database.repositories.products_repo import Product
from ...database.repositories.rentals_repo import Rental
from .invoicing import create_invoice
from .ledger import apply_settlement
from .proration import Charge, DateLike, compute_charge
from .quantities import QuantityInput
from .settlement import Settlement, settle
from .state import apply_return, restock


@dataclass(frozen=True)
class ReturnOutcome:
    rental: Rental
    customer: Customer
    invoice: Invoice
    charge: Charge
    settlement: Settlement
    catalog: Dict[int, Product]


def process_return(
    rental: Rental,
    customer: Customer,
    catalog: Mapping[int, Product],
    returned_items: QuantityInput,
    return_date: DateLike,
    *,
    discount: float = 0.0,
    received_amount: float = 0.0,
    created_by: Optional[str] = None,
    invoice_number: int,
) -> Optional[ReturnOutcome]:
    """
    One return event, end to end, on in-memory snapshots:
    charge -> settlement -> invoice -> rental / customer / stock updates.

    Settlement inputs (advance, previous debt) are read from the snapshots
    before anything is applied. Returns None when nothing billable is being
    returned.
    """
    charge = compute_charge(rental, returned_items, return_date)
    if not charge.lines:
        return None

    settlement = settle(
        charge.sub_total,
        discount,
        rental.advance_payment,
        customer.total_debt,
        received_amount,
    )
    invoice = create_invoice(
        rental,
        return_date,
        charge,
        discount,
        settlement,
        created_by,
        customer,
        invoice_number,
    )
    return ReturnOutcome(
        rental=apply_return(rental, charge, settlement, invoice),
        customer=apply_settlement(customer, charge.sub_total, settlement.balance_due),
        invoice=invoice,
        charge=charge,
        settlement=settlement,
        catalog=restock(catalog, charge),
    )
