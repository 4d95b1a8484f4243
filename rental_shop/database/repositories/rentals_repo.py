# rental_shop/database/repositories/rentals_repo.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
import sqlite3
from typing import Any, Dict, Iterable, List, Optional

from ...constants import OPEN_STATUSES, STATUS_ACTIVE
from ...utils.helpers import camel_keys, snake_keys
from .invoices_repo import Invoice, InvoicesRepo


@dataclass
class RentalItem:
    product_id: int
    product_name: str
    quantity: int               # still with the customer
    unit_price: float           # locked in when first booked
    product_image: str | None = None


@dataclass
class Rental:
    rental_id: str | None
    customer_id: int
    customer_name: str
    start_date: str
    status: str = STATUS_ACTIVE
    items: List[RentalItem] = field(default_factory=list)
    advance_payment: float = 0.0    # unapplied credit held against this rental
    total_amount: float = 0.0       # cumulative billed sub_total across invoices
    expected_return_date: str | None = None
    notes: str | None = None
    invoices: List[Invoice] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    @property
    def outstanding_quantity(self) -> int:
        return sum(i.quantity for i in self.items)

    def item_for(self, product_id: int) -> Optional[RentalItem]:
        for it in self.items:
            if it.product_id == product_id:
                return it
        return None

    def to_dict(self) -> Dict[str, Any]:
        data = camel_keys(asdict(self))
        data["id"] = data.pop("rentalId")
        data["items"] = [camel_keys(asdict(it)) for it in self.items]
        data["invoices"] = [inv.to_dict() for inv in self.invoices]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rental":
        values = snake_keys(data)
        if "id" in values:
            values["rental_id"] = values.pop("id")
        values["items"] = [RentalItem(**snake_keys(it)) for it in values.get("items") or ()]
        values["invoices"] = [Invoice.from_dict(inv) for inv in values.get("invoices") or ()]
        return cls(**values)


_HEADER_COLUMNS = """
    rental_id, customer_id, customer_name, start_date, expected_return_date, status,
    CAST(advance_payment AS REAL) AS advance_payment,
    CAST(total_amount AS REAL)    AS total_amount,
    notes
"""


class RentalsRepo:
    """
    Rental headers + their outstanding items; invoices are read through
    InvoicesRepo and attached on load.

    Writes run inside the caller's transaction (see database.immediate_tx).
    The schema keeps at most one open rental per customer, so inserting a
    second open rental fails with sqlite3.IntegrityError.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.invoices = InvoicesRepo(conn)

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def _items_for(self, rental_ids: List[str]) -> Dict[str, List[RentalItem]]:
        if not rental_ids:
            return {}
        placeholders = ",".join(["?"] * len(rental_ids))
        rows = self.conn.execute(
            f"""
            SELECT rental_id, product_id, product_name, product_image, quantity,
                   CAST(unit_price AS REAL) AS unit_price
              FROM rental_items
             WHERE rental_id IN ({placeholders})
             ORDER BY rental_id, position
            """,
            rental_ids,
        ).fetchall()
        out: Dict[str, List[RentalItem]] = {}
        for r in rows:
            out.setdefault(r["rental_id"], []).append(
                RentalItem(
                    product_id=int(r["product_id"]),
                    product_name=r["product_name"],
                    quantity=int(r["quantity"]),
                    unit_price=float(r["unit_price"]),
                    product_image=r["product_image"],
                )
            )
        return out

    def _hydrate(self, rows: Iterable[sqlite3.Row]) -> List[Rental]:
        rows = list(rows)
        items = self._items_for([r["rental_id"] for r in rows])
        out: List[Rental] = []
        for r in rows:
            d = dict(r)
            d["customer_id"] = int(d["customer_id"])
            d["items"] = items.get(r["rental_id"], [])
            d["invoices"] = self.invoices.list_for_rental(r["rental_id"])
            out.append(Rental(**d))
        return out

    def list_rentals(
        self,
        *,
        status: str | None = None,
        customer_id: int | None = None,
    ) -> List[Rental]:
        """Most recent first."""
        where = []
        params: list = []
        if status:
            where.append("status = ?")
            params.append(status)
        if customer_id is not None:
            where.append("customer_id = ?")
            params.append(customer_id)
        sql = f"SELECT {_HEADER_COLUMNS} FROM rentals"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY CAST(rental_id AS INTEGER) DESC"
        return self._hydrate(self.conn.execute(sql, params).fetchall())

    def list_open(self) -> List[Rental]:
        placeholders = ",".join(["?"] * len(OPEN_STATUSES))
        rows = self.conn.execute(
            f"SELECT {_HEADER_COLUMNS} FROM rentals WHERE status IN ({placeholders}) "
            "ORDER BY CAST(rental_id AS INTEGER) DESC",
            OPEN_STATUSES,
        ).fetchall()
        return self._hydrate(rows)

    def get(self, rental_id: str) -> Rental | None:
        rows = self.conn.execute(
            f"SELECT {_HEADER_COLUMNS} FROM rentals WHERE rental_id=?", (rental_id,)
        ).fetchall()
        found = self._hydrate(rows)
        return found[0] if found else None

    def find_open_for_customer(self, customer_id: int) -> List[Rental]:
        placeholders = ",".join(["?"] * len(OPEN_STATUSES))
        rows = self.conn.execute(
            f"SELECT {_HEADER_COLUMNS} FROM rentals "
            f"WHERE customer_id=? AND status IN ({placeholders})",
            (customer_id, *OPEN_STATUSES),
        ).fetchall()
        return self._hydrate(rows)

    # ---------------------------------------------------------------------
    # WRITE
    # ---------------------------------------------------------------------
    def save(self, rental: Rental) -> None:
        """
        Insert or replace-by-id the header and rebuild the outstanding items.
        Invoices are appended separately through InvoicesRepo.append().
        """
        self.conn.execute(
            """
            INSERT INTO rentals (
                rental_id, customer_id, customer_name, start_date, expected_return_date,
                status, advance_payment, total_amount, notes
            ) VALUES (?,?,?,?,?,?,?,?,?)
            ON CONFLICT(rental_id) DO UPDATE SET
                customer_id=excluded.customer_id,
                customer_name=excluded.customer_name,
                start_date=excluded.start_date,
                expected_return_date=excluded.expected_return_date,
                status=excluded.status,
                advance_payment=excluded.advance_payment,
                total_amount=excluded.total_amount,
                notes=excluded.notes
            """,
            (
                rental.rental_id,
                rental.customer_id,
                rental.customer_name,
                rental.start_date,
                rental.expected_return_date,
                rental.status,
                float(rental.advance_payment),
                float(rental.total_amount),
                rental.notes,
            ),
        )
        self.conn.execute("DELETE FROM rental_items WHERE rental_id=?", (rental.rental_id,))
        self.conn.executemany(
            """
            INSERT INTO rental_items (
                rental_id, position, product_id, product_name, product_image, quantity, unit_price
            ) VALUES (?,?,?,?,?,?,?)
            """,
            [
                (rental.rental_id, pos, it.product_id, it.product_name, it.product_image,
                 int(it.quantity), float(it.unit_price))
                for pos, it in enumerate(rental.items)
            ],
        )

    def update_status(self, rental_id: str, status: str) -> None:
        self.conn.execute("UPDATE rentals SET status=? WHERE rental_id=?", (status, rental_id))

    def delete(self, rental_id: str) -> None:
        """Removes the rental with its items and invoices (ON DELETE CASCADE)."""
        self.conn.execute("DELETE FROM rentals WHERE rental_id=?", (rental_id,))
