from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from ...constants import INVOICE_ID_WIDTH
from ...database.repositories.customers_repo import Customer
from ...database.repositories.invoices_repo import Invoice, InvoiceLine
from ...database.repositories.rentals_repo import Rental
from ...utils.helpers import format_sequence_id
from .proration import Charge, DateLike
from .settlement import Settlement


def format_invoice_id(number: int) -> str:
    return format_sequence_id(number, INVOICE_ID_WIDTH)


def date_str(value: DateLike) -> str:
    """ISO date for storage; strings are kept as entered."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def create_invoice(
    rental: Rental,
    return_date: DateLike,
    charge: Charge,
    discount: float,
    settlement: Settlement,
    created_by: Optional[str],
    customer: Optional[Customer],
    invoice_number: int,
) -> Invoice:
    """
    Assemble the receipt for one return event.

    `invoice_number` comes from the durable invoice sequence. Customer
    name/phone/address are copied onto the invoice so later edits to the
    customer do not rewrite history.
    """
    return Invoice(
        invoice_id=format_invoice_id(invoice_number),
        rental_id=rental.rental_id,
        date=date_str(return_date),
        items=tuple(
            InvoiceLine(
                product_name=line.product_name,
                quantity=line.quantity,
                days=line.days,
                amount=line.amount,
            )
            for line in charge.lines
        ),
        sub_total=charge.sub_total,
        discount=float(discount or 0.0),
        total_amount=settlement.net_bill,
        advance_adjusted=settlement.advance_adjusted,
        previous_debt=settlement.previous_debt,
        received_amount=settlement.received_amount,
        balance_due=settlement.balance_due,
        is_paid=settlement.balance_due == 0,
        created_by=created_by,
        customer_name=customer.name if customer else (rental.customer_name or "Unknown"),
        customer_phone=customer.phone if customer else "",
        customer_address=(customer.address or "") if customer else "",
    )
