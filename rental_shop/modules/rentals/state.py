from __future__ import annotations

from dataclasses import replace
from typing import Dict, Mapping

from ...database.repositories.invoices_repo import Invoice
from ...database.repositories.products_repo import Product
from ...database.repositories.rentals_repo import Rental
from . import status as rental_status
from .proration import Charge
from .settlement import Settlement


def apply_return(
    rental: Rental,
    charge: Charge,
    settlement: Settlement,
    invoice: Invoice,
) -> Rental:
    """
    Rental after a return event.

    Returned quantities come off the outstanding lines and lines that reach
    zero leave the active list (the invoice keeps its own copy). start_date
    is never reset, so later returns keep measuring from the original start.
    """
    returned = charge.returned_quantities
    items = []
    for it in rental.items:
        left = it.quantity - returned.get(it.product_id, 0)
        if left > 0:
            items.append(replace(it, quantity=left))

    return replace(
        rental,
        items=items,
        status=rental_status.after_return(rental.status, len(items)),
        total_amount=float(rental.total_amount or 0.0) + charge.sub_total,
        advance_payment=settlement.remaining_advance,
        invoices=[*rental.invoices, invoice],
    )


def restock(catalog: Mapping[int, Product], charge: Charge) -> Dict[int, Product]:
    """Catalog with returned pieces put back on the shelf."""
    out = dict(catalog)
    for line in charge.lines:
        product = out.get(line.product_id)
        if product is None:
            continue
        out[line.product_id] = replace(
            product, available_quantity=product.available_quantity + line.quantity
        )
    return out
