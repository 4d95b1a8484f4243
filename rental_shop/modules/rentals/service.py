"""
modules/rentals/service.py

Runs the rental lifecycle against the repositories.

Every write happens inside one IMMEDIATE transaction, with state read inside
that transaction, and under the per-customer / per-rental lock of the
entities involved, so two settlements on the same rental or customer cannot
interleave. Locks are always taken customer first, then rental.

Missing rentals/customers abort the operation and return None (logged);
invalid input raises DomainError.
"""
from __future__ import annotations

from datetime import datetime
import logging
import sqlite3
from typing import Callable, List, Optional

from ...constants import RENTAL_ID_WIDTH, SEQ_INVOICE, SEQ_RENTAL, STATUS_ACTIVE, STATUS_COMPLETED, STATUS_OVERDUE
from ...database import immediate_tx
from ...database.repositories.customers_repo import Customer, CustomersRepo
from ...database.repositories.invoices_repo import Invoice, InvoicesRepo
from ...database.repositories.products_repo import ProductsRepo
from ...database.repositories.rentals_repo import Rental, RentalsRepo
from ...database.repositories.sequences_repo import SequencesRepo
from ...utils.helpers import format_sequence_id, today_str
from ...utils.locks import KeyedLocks
from ...utils.validators import is_strictly_positive_number, non_negative_amount
from . import status as rental_status
from .errors import DomainError
from .ledger import settle_debt_directly
from .merge import add_rental, build_items, find_open_rental
from .proration import DateLike, compute_charge, parse_date
from .quantities import QuantityInput, collect_quantities
from .returns import ReturnOutcome, process_return

_log = logging.getLogger(__name__)

InvoiceSink = Callable[[Invoice], None]


def _amount(value, label: str) -> float:
    try:
        return non_negative_amount(value, label)
    except ValueError as e:
        raise DomainError(str(e)) from e


def _valid_date(value: DateLike, label: str) -> datetime:
    try:
        return parse_date(value)
    except (TypeError, ValueError) as e:
        raise DomainError(f"{label} must be a date like 2025-01-31, got {value!r}.") from e


def _customer_key(customer_id: int) -> tuple:
    return ("customer", int(customer_id))


def _rental_key(rental_id: str) -> tuple:
    return ("rental", str(rental_id))


class RentalService:
    # shared by every service instance in the process
    _locks = KeyedLocks()

    def __init__(self, conn: sqlite3.Connection, invoice_sink: Optional[InvoiceSink] = None):
        self.conn = conn
        self.products = ProductsRepo(conn)
        self.customers = CustomersRepo(conn)
        self.rentals = RentalsRepo(conn)
        self.invoices = InvoicesRepo(conn)
        self.sequences = SequencesRepo(conn)
        self.invoice_sink = invoice_sink

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get_rental(self, rental_id: str) -> Rental | None:
        return self.rentals.get(rental_id)

    def list_rentals(self, status: str | None = None) -> List[Rental]:
        return self.rentals.list_rentals(status=rental_status.ensure_valid(status) if status else None)

    def open_rental_for(self, customer_id: int) -> Rental | None:
        return find_open_rental(self.rentals.find_open_for_customer(customer_id), customer_id)

    # ------------------------------------------------------------------ #
    # New orders
    # ------------------------------------------------------------------ #

    def create_rental(
        self,
        customer_id: int,
        items: QuantityInput,
        *,
        start_date: Optional[DateLike] = None,
        expected_return_date: Optional[str] = None,
        advance_payment: float = 0.0,
        notes: Optional[str] = None,
    ) -> Rental | None:
        """
        Book items for a customer. Joins the customer's open rental when there
        is one (advance added, quantities summed), otherwise opens a new rental.
        Returns the rental as stored, or None if the customer does not exist.
        """
        advance = _amount(advance_payment, "Advance payment")
        selected = collect_quantities(items)
        if not selected:
            raise DomainError("Select at least one item to rent.")
        start = _valid_date(start_date, "Start date").date().isoformat() if start_date else today_str()
        expected = None
        if expected_return_date:
            expected = _valid_date(expected_return_date, "Expected return date").date().isoformat()
            if expected < start:
                raise DomainError("Expected return date cannot be before the start date.")

        with self._locks.hold(_customer_key(customer_id)):
            with immediate_tx(self.conn):
                customer = self.customers.get(customer_id)
                if customer is None:
                    _log.warning("create_rental: customer %s not found", customer_id)
                    return None

                catalog = self.products.get_many(selected)
                open_rentals = self.rentals.find_open_for_customer(customer_id)
                target = find_open_rental(open_rentals, customer_id)
                if target is None:
                    rental_id = format_sequence_id(self.sequences.next_value(SEQ_RENTAL), RENTAL_ID_WIDTH)
                else:
                    rental_id = target.rental_id

                with self._locks.hold(_rental_key(rental_id)):
                    order = Rental(
                        rental_id=rental_id,
                        customer_id=customer.customer_id,
                        customer_name=customer.name,
                        start_date=start,
                        status=STATUS_ACTIVE,
                        items=build_items(selected, catalog),
                        advance_payment=advance,
                        expected_return_date=expected,
                        notes=notes,
                    )
                    rentals, updated_catalog = add_rental(order, open_rentals, catalog)
                    rental = find_open_rental(rentals, customer_id)

                    self.rentals.save(rental)
                    for product_id, product in updated_catalog.items():
                        delta = product.available_quantity - catalog[product_id].available_quantity
                        if delta:
                            self.products.adjust_available(product_id, delta)

        _log.info(
            "rental %s for customer %s: %d line(s), advance %.2f",
            rental.rental_id, customer_id, len(rental.items), rental.advance_payment,
        )
        return rental

    # ------------------------------------------------------------------ #
    # Returns & settlement
    # ------------------------------------------------------------------ #

    def return_items(
        self,
        rental_id: str,
        returned_items: QuantityInput,
        return_date: Optional[DateLike] = None,
        *,
        discount: float = 0.0,
        received_amount: float = 0.0,
        created_by: Optional[str] = None,
    ) -> ReturnOutcome | None:
        """
        Bring back some or all outstanding items, bill them and settle.

        Returns the outcome (updated rental and customer, the new invoice and
        the settlement figures), or None when the rental or its customer does
        not exist or nothing billable was returned.
        """
        discount = _amount(discount, "Discount")
        received = _amount(received_amount, "Received amount")
        when = return_date if return_date is not None else today_str()
        _valid_date(when, "Return date")

        head = self.rentals.get(rental_id)
        if head is None:
            _log.warning("return_items: rental %s not found", rental_id)
            return None

        with self._locks.hold(_customer_key(head.customer_id), _rental_key(rental_id)):
            with immediate_tx(self.conn):
                rental = self.rentals.get(rental_id)
                if rental is None:
                    _log.warning("return_items: rental %s not found", rental_id)
                    return None
                if not rental.is_open:
                    raise DomainError(f"Rental {rental_id} is already completed.")
                customer = self.customers.get(rental.customer_id)
                if customer is None:
                    _log.warning("return_items: customer %s of rental %s not found",
                                 rental.customer_id, rental_id)
                    return None

                # price first so an empty return does not consume an invoice number
                selected = collect_quantities(returned_items)
                if not compute_charge(rental, selected, when).lines:
                    _log.info("return_items: nothing to bill on rental %s", rental_id)
                    return None

                outcome = process_return(
                    rental,
                    customer,
                    self.products.get_many(selected),
                    selected,
                    when,
                    discount=discount,
                    received_amount=received,
                    created_by=created_by,
                    invoice_number=self.sequences.next_value(SEQ_INVOICE),
                )

                self.rentals.save(outcome.rental)
                self.invoices.append(outcome.invoice)
                self.customers.save_balances(outcome.customer)
                for line in outcome.charge.lines:
                    self.products.adjust_available(line.product_id, line.quantity)

        s = outcome.settlement
        _log.info(
            "invoice %s on rental %s: subtotal %.2f, net %.2f, advance used %.2f, "
            "previous debt %.2f, received %.2f, balance due %.2f, status %s",
            outcome.invoice.invoice_id, rental_id, outcome.charge.sub_total, s.net_bill,
            s.advance_adjusted, s.previous_debt, s.received_amount, s.balance_due,
            outcome.rental.status,
        )
        if s.overpayment > 0:
            _log.warning("invoice %s: %.2f received beyond the amount outstanding",
                         outcome.invoice.invoice_id, s.overpayment)

        if self.invoice_sink is not None:
            self.invoice_sink(outcome.invoice)
        return outcome

    def settle_debt(self, customer_id: int, amount: float) -> Customer | None:
        """Receive cash against a customer's running balance (no invoice)."""
        if not is_strictly_positive_number(amount):
            raise DomainError("Amount must be greater than zero.")
        amount = float(amount)

        with self._locks.hold(_customer_key(customer_id)):
            with immediate_tx(self.conn):
                customer = self.customers.get(customer_id)
                if customer is None:
                    _log.warning("settle_debt: customer %s not found", customer_id)
                    return None
                updated = settle_debt_directly(customer, amount)
                self.customers.save_balances(updated)

        if amount > customer.total_debt:
            _log.warning("settle_debt: customer %s paid %.2f against a debt of %.2f",
                         customer_id, amount, customer.total_debt)
        _log.info("customer %s debt %.2f -> %.2f", customer_id, customer.total_debt, updated.total_debt)
        return updated

    # ------------------------------------------------------------------ #
    # Status maintenance
    # ------------------------------------------------------------------ #

    def update_status(self, rental_id: str, status: str) -> Rental | None:
        """
        Manual status change from the host UI. Completed rentals cannot be
        reopened, and a rental can only be completed once nothing is out.
        """
        head = self.rentals.get(rental_id)
        if head is None:
            _log.warning("update_status: rental %s not found", rental_id)
            return None

        with self._locks.hold(_customer_key(head.customer_id), _rental_key(rental_id)):
            with immediate_tx(self.conn):
                rental = self.rentals.get(rental_id)
                if rental is None:
                    return None
                new_status = rental_status.check_transition(rental.status, status)
                if new_status == STATUS_COMPLETED and rental.items:
                    raise DomainError(
                        f"Rental {rental_id} still has {rental.outstanding_quantity} item(s) out."
                    )
                self.rentals.update_status(rental_id, new_status)
        return self.rentals.get(rental_id)

    def mark_overdue(self, today: Optional[DateLike] = None) -> List[str]:
        """
        Flag open rentals whose expected_return_date has passed. Returns the ids
        that changed.
        """
        cutoff = _valid_date(today if today is not None else today_str(), "Date").date()
        changed: List[str] = []
        with immediate_tx(self.conn):
            for rental in self.rentals.list_open():
                if rental.status == STATUS_OVERDUE or not rental.expected_return_date:
                    continue
                try:
                    due = parse_date(rental.expected_return_date).date()
                except ValueError:
                    _log.warning("rental %s: unreadable expected return date %r; skipped",
                                 rental.rental_id, rental.expected_return_date)
                    continue
                if due < cutoff:
                    self.rentals.update_status(rental.rental_id, STATUS_OVERDUE)
                    changed.append(rental.rental_id)
        if changed:
            _log.info("marked overdue: %s", ", ".join(changed))
        return changed

    def delete_rental(self, rental_id: str) -> bool:
        """
        Remove a rental with its invoices. Pieces still out on it go back on
        the shelf. Invoice and rental numbers are never reused.
        """
        head = self.rentals.get(rental_id)
        if head is None:
            _log.warning("delete_rental: rental %s not found", rental_id)
            return False

        with self._locks.hold(_customer_key(head.customer_id), _rental_key(rental_id)):
            with immediate_tx(self.conn):
                rental = self.rentals.get(rental_id)
                if rental is None:
                    return False
                for it in rental.items:
                    self.products.adjust_available(it.product_id, it.quantity)
                self.rentals.delete(rental_id)
        _log.info("rental %s deleted (%d invoice(s))", rental_id, len(head.invoices))
        return True
