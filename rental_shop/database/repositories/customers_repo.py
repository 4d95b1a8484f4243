from __future__ import annotations

from dataclasses import dataclass
import sqlite3

from .. import immediate_tx
from ...constants import TIER_NEW
from ...utils.helpers import format_cnic, format_phone
from ...utils.validators import non_empty


# Domain-level error the controller can surface directly (e.g., toast/snackbar)
class DomainError(Exception):
    pass


@dataclass
class Customer:
    customer_id: int | None
    name: str
    phone: str
    address: str | None
    cnic: str | None = None
    guarantor_name: str | None = None
    guarantor_phone: str | None = None
    rating: int = 5
    tier: str = TIER_NEW
    total_spent: float = 0.0
    total_debt: float = 0.0


_COLUMNS = (
    "customer_id, name, phone, address, cnic, guarantor_name, guarantor_phone, rating, tier, "
    "CAST(total_spent AS REAL) AS total_spent, CAST(total_debt AS REAL) AS total_debt"
)


def _row_to_customer(r: sqlite3.Row) -> Customer:
    c = Customer(**dict(r))
    c.total_spent = float(c.total_spent or 0.0)
    c.total_debt = float(c.total_debt or 0.0)
    return c


class CustomersRepo:
    """
    Customer records.

    Contact fields are edited through create()/update(). The money columns
    (tier, total_spent, total_debt) are owned by the debt ledger and are only
    written through save_balances().
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _normalize_text(s: str | None) -> str | None:
        if s is None:
            return None
        return s.strip()

    @staticmethod
    def _ensure_non_empty(value: str | None, field_label: str) -> None:
        if not non_empty(value):
            raise DomainError(f"{field_label} cannot be empty.")

    def _normalized_fields(
        self,
        name: str,
        phone: str,
        address: str | None,
        cnic: str | None,
        guarantor_name: str | None,
        guarantor_phone: str | None,
        rating: int,
    ) -> tuple:
        self._ensure_non_empty(name, "Name")
        self._ensure_non_empty(phone, "Phone")
        if rating is None or not 0 <= int(rating) <= 5:
            raise DomainError("Rating must be between 0 and 5.")
        return (
            self._normalize_text(name),
            format_phone(phone),
            self._normalize_text(address),
            format_cnic(cnic) if cnic else None,
            self._normalize_text(guarantor_name),
            format_phone(guarantor_phone) if guarantor_phone else None,
            int(rating),
        )

    # ---- Queries ----------------------------------------------------------

    def list_customers(self) -> list[Customer]:
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM customers ORDER BY customer_id DESC"
        ).fetchall()
        return [_row_to_customer(r) for r in rows]

    def search(self, term: str) -> list[Customer]:
        """
        Matches using LIKE on id, name, phone, cnic and address.
        """
        pattern = f"%{term.strip()}%"
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM customers "
            "WHERE CAST(customer_id AS TEXT) LIKE ? OR name LIKE ? OR phone LIKE ? "
            "   OR cnic LIKE ? OR address LIKE ? "
            "ORDER BY customer_id DESC",
            (pattern, pattern, pattern, pattern, pattern),
        ).fetchall()
        return [_row_to_customer(r) for r in rows]

    def get(self, customer_id: int) -> Customer | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM customers WHERE customer_id=?",
            (customer_id,),
        ).fetchone()
        return _row_to_customer(r) if r else None

    def list_debtors(self) -> list[Customer]:
        """Customers who currently owe the store money, largest balance first."""
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM customers "
            "WHERE CAST(total_debt AS REAL) > 0 "
            "ORDER BY CAST(total_debt AS REAL) DESC, customer_id"
        ).fetchall()
        return [_row_to_customer(r) for r in rows]

    # ---- Mutations --------------------------------------------------------

    def create(
        self,
        name: str,
        phone: str,
        address: str | None = None,
        cnic: str | None = None,
        guarantor_name: str | None = None,
        guarantor_phone: str | None = None,
        rating: int = 5,
    ) -> int:
        """
        Insert a new customer. New customers start in the lowest tier with no
        spend and no debt.
        """
        fields = self._normalized_fields(
            name, phone, address, cnic, guarantor_name, guarantor_phone, rating
        )
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "INSERT INTO customers(name, phone, address, cnic, guarantor_name, "
                "guarantor_phone, rating) VALUES (?,?,?,?,?,?,?)",
                fields,
            )
            return int(cur.lastrowid)

    def update(
        self,
        customer_id: int,
        name: str,
        phone: str,
        address: str | None = None,
        cnic: str | None = None,
        guarantor_name: str | None = None,
        guarantor_phone: str | None = None,
        rating: int = 5,
    ) -> None:
        """
        Update contact fields. Invoices already issued keep the snapshot they
        were created with.
        """
        fields = self._normalized_fields(
            name, phone, address, cnic, guarantor_name, guarantor_phone, rating
        )
        with immediate_tx(self.conn):
            self.conn.execute(
                "UPDATE customers SET name=?, phone=?, address=?, cnic=?, guarantor_name=?, "
                "guarantor_phone=?, rating=? WHERE customer_id=?",
                (*fields, customer_id),
            )
            # keep the denormalized name on rentals in step
            self.conn.execute(
                "UPDATE rentals SET customer_name=? WHERE customer_id=?",
                (fields[0], customer_id),
            )

    def delete(self, customer_id: int) -> None:
        with immediate_tx(self.conn):
            row = self.conn.execute(
                "SELECT 1 FROM rentals WHERE customer_id=? LIMIT 1", (customer_id,)
            ).fetchone()
            if row is not None:
                raise DomainError("Customer has rental history and cannot be deleted.")
            self.conn.execute("DELETE FROM customers WHERE customer_id=?", (customer_id,))

    def save_balances(self, customer: Customer) -> None:
        """
        Persist tier / total_spent / total_debt. Runs inside the caller's
        transaction.
        """
        self.conn.execute(
            "UPDATE customers SET tier=?, total_spent=?, total_debt=? WHERE customer_id=?",
            (customer.tier, float(customer.total_spent), float(customer.total_debt),
             customer.customer_id),
        )
