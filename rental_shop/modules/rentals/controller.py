"""
modules/rentals/controller.py

Qt-facing wrapper around RentalService.

Purpose
-------
Lets a window/dialog drive bookings, returns and debt payments without
knowing about transactions. Results are broadcast as Qt signals so several
views (rental list, customer card, dashboard) can refresh themselves.

Signals
-------
- rentalsChanged()           any rental was created, merged, returned, deleted or re-flagged
- invoiceCreated(object)     a new Invoice was issued (ready for printing)
- customerChanged(int)       a customer's tier / spend / debt moved
- error(str)                 a user-facing message for a rejected action
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from PySide6.QtCore import QObject, Signal

from ...database.repositories.invoices_repo import Invoice
from .errors import DomainError
from .service import RentalService

_log = logging.getLogger(__name__)


class RentalsController(QObject):
    rentalsChanged = Signal()
    invoiceCreated = Signal(object)
    customerChanged = Signal(int)
    error = Signal(str)

    def __init__(self, conn: sqlite3.Connection, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.conn = conn
        self.service = RentalService(conn, invoice_sink=self._on_invoice)

    def _on_invoice(self, invoice: Invoice) -> None:
        self.invoiceCreated.emit(invoice)

    def _fail(self, action: str, exc: Exception) -> None:
        _log.warning("%s rejected: %s", action, exc)
        self.error.emit(str(exc))

    # ---------------- actions ----------------

    def create_rental(self, customer_id: int, items, **kwargs):
        try:
            rental = self.service.create_rental(customer_id, items, **kwargs)
        except (DomainError, sqlite3.IntegrityError) as e:
            self._fail("create_rental", e)
            return None
        if rental is None:
            self.error.emit(f"Customer {customer_id} was not found.")
            return None
        self.rentalsChanged.emit()
        return rental

    def return_items(self, rental_id: str, returned_items, return_date=None, **kwargs):
        try:
            outcome = self.service.return_items(rental_id, returned_items, return_date, **kwargs)
        except (DomainError, sqlite3.IntegrityError) as e:
            self._fail("return_items", e)
            return None
        if outcome is None:
            if self.service.get_rental(rental_id) is None:
                self.error.emit(f"Rental {rental_id} was not found.")
            else:
                self.error.emit(f"Nothing to bill on rental {rental_id}.")
            return None
        self.rentalsChanged.emit()
        self.customerChanged.emit(int(outcome.customer.customer_id))
        return outcome

    def settle_debt(self, customer_id: int, amount: float):
        try:
            customer = self.service.settle_debt(customer_id, amount)
        except DomainError as e:
            self._fail("settle_debt", e)
            return None
        if customer is None:
            self.error.emit(f"Customer {customer_id} was not found.")
            return None
        self.customerChanged.emit(int(customer.customer_id))
        return customer

    def update_status(self, rental_id: str, status: str):
        try:
            rental = self.service.update_status(rental_id, status)
        except DomainError as e:
            self._fail("update_status", e)
            return None
        if rental is None:
            self.error.emit(f"Rental {rental_id} was not found.")
            return None
        self.rentalsChanged.emit()
        return rental

    def mark_overdue(self, today=None) -> list[str]:
        try:
            changed = self.service.mark_overdue(today)
        except DomainError as e:
            self._fail("mark_overdue", e)
            return []
        if changed:
            self.rentalsChanged.emit()
        return changed

    def delete_rental(self, rental_id: str) -> bool:
        if not self.service.delete_rental(rental_id):
            self.error.emit(f"Rental {rental_id} was not found.")
            return False
        self.rentalsChanged.emit()
        return True
