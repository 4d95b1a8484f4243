# rental_shop/database/repositories/invoices_repo.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
import sqlite3
from typing import Any, Dict, Iterable, List

from ...utils.helpers import camel_keys, snake_keys


@dataclass(frozen=True)
class InvoiceLine:
    product_name: str
    quantity: int
    days: int
    amount: float


@dataclass(frozen=True)
class Invoice:
    """
    A settled return event. Historical receipt: never edited after issue,
    even when later settlements change the customer's balance.

    total_amount is the bill of this transaction alone (sub_total - discount,
    floored at 0). balance_due is the customer's debt right after this
    settlement and already includes previous_debt.
    """

    invoice_id: str
    rental_id: str
    date: str
    items: tuple[InvoiceLine, ...] = field(default_factory=tuple)
    sub_total: float = 0.0
    discount: float = 0.0
    total_amount: float = 0.0
    advance_adjusted: float = 0.0
    previous_debt: float = 0.0
    received_amount: float = 0.0
    balance_due: float = 0.0
    is_paid: bool = True
    created_by: str | None = None
    customer_name: str = ""
    customer_phone: str | None = None
    customer_address: str | None = None

    @property
    def net_payable(self) -> float:
        """Bill left after the advance (what the printed receipt calls Net Total)."""
        return self.total_amount - self.advance_adjusted

    @property
    def grand_total(self) -> float:
        return self.net_payable + self.previous_debt

    def to_dict(self) -> Dict[str, Any]:
        """JSON shape of a stored invoice: camelCase keys, the number under "id"."""
        data = camel_keys(asdict(self))
        data["id"] = data.pop("invoiceId")
        data["items"] = [camel_keys(asdict(line)) for line in self.items]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Invoice":
        """Rebuild an invoice exactly as stored; nothing is recomputed."""
        values = snake_keys(data)
        if "id" in values:
            values["invoice_id"] = values.pop("id")
        values["items"] = tuple(InvoiceLine(**snake_keys(line)) for line in values.get("items") or ())
        return cls(**values)


_HEADER_COLUMNS = """
    invoice_id, rental_id, date,
    CAST(sub_total AS REAL)        AS sub_total,
    CAST(discount AS REAL)         AS discount,
    CAST(total_amount AS REAL)     AS total_amount,
    CAST(advance_adjusted AS REAL) AS advance_adjusted,
    CAST(previous_debt AS REAL)    AS previous_debt,
    CAST(received_amount AS REAL)  AS received_amount,
    CAST(balance_due AS REAL)      AS balance_due,
    is_paid, created_by, customer_name, customer_phone, customer_address
"""


class InvoicesRepo:
    """
    Append-only store of invoices. The schema blocks UPDATE on invoice rows;
    rows only disappear together with the rental they belong to.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ---- internals --------------------------------------------------------

    def _lines_for(self, invoice_ids: List[str]) -> Dict[str, List[InvoiceLine]]:
        if not invoice_ids:
            return {}
        placeholders = ",".join(["?"] * len(invoice_ids))
        rows = self.conn.execute(
            f"""
            SELECT invoice_id, product_name, quantity, days, CAST(amount AS REAL) AS amount
              FROM invoice_items
             WHERE invoice_id IN ({placeholders})
             ORDER BY invoice_id, position
            """,
            invoice_ids,
        ).fetchall()
        out: Dict[str, List[InvoiceLine]] = {}
        for r in rows:
            out.setdefault(r["invoice_id"], []).append(
                InvoiceLine(
                    product_name=r["product_name"],
                    quantity=int(r["quantity"]),
                    days=int(r["days"]),
                    amount=float(r["amount"]),
                )
            )
        return out

    def _hydrate(self, rows: Iterable[sqlite3.Row]) -> List[Invoice]:
        rows = list(rows)
        lines = self._lines_for([r["invoice_id"] for r in rows])
        out: List[Invoice] = []
        for r in rows:
            d = dict(r)
            d["is_paid"] = bool(d["is_paid"])
            d["items"] = tuple(lines.get(r["invoice_id"], ()))
            out.append(Invoice(**d))
        return out

    # ---- API --------------------------------------------------------------

    def append(self, invoice: Invoice) -> None:
        """Write a new invoice. Runs inside the caller's transaction."""
        self.conn.execute(
            """
            INSERT INTO invoices (
                invoice_id, rental_id, date, sub_total, discount, total_amount,
                advance_adjusted, previous_debt, received_amount, balance_due,
                is_paid, created_by, customer_name, customer_phone, customer_address
            ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
            """,
            (
                invoice.invoice_id,
                invoice.rental_id,
                invoice.date,
                invoice.sub_total,
                invoice.discount,
                invoice.total_amount,
                invoice.advance_adjusted,
                invoice.previous_debt,
                invoice.received_amount,
                invoice.balance_due,
                1 if invoice.is_paid else 0,
                invoice.created_by,
                invoice.customer_name,
                invoice.customer_phone,
                invoice.customer_address,
            ),
        )
        self.conn.executemany(
            "INSERT INTO invoice_items(invoice_id, position, product_name, quantity, days, amount) "
            "VALUES (?,?,?,?,?,?)",
            [
                (invoice.invoice_id, pos, line.product_name, line.quantity, line.days, line.amount)
                for pos, line in enumerate(invoice.items)
            ],
        )

    def get(self, invoice_id: str) -> Invoice | None:
        rows = self.conn.execute(
            f"SELECT {_HEADER_COLUMNS} FROM invoices WHERE invoice_id=?", (invoice_id,)
        ).fetchall()
        found = self._hydrate(rows)
        return found[0] if found else None

    def list_for_rental(self, rental_id: str) -> List[Invoice]:
        """Invoices of one rental in the order they were issued."""
        rows = self.conn.execute(
            f"SELECT {_HEADER_COLUMNS} FROM invoices WHERE rental_id=? ORDER BY rowid",
            (rental_id,),
        ).fetchall()
        return self._hydrate(rows)

    def list_invoices(self, date_from: str | None = None, date_to: str | None = None) -> List[Invoice]:
        """All invoices, newest first, optionally limited to an inclusive date range."""
        where = []
        params: list = []
        if date_from:
            where.append("DATE(date) >= DATE(?)")
            params.append(date_from)
        if date_to:
            where.append("DATE(date) <= DATE(?)")
            params.append(date_to)
        sql = f"SELECT {_HEADER_COLUMNS} FROM invoices"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY DATE(date) DESC, rowid DESC"
        return self._hydrate(self.conn.execute(sql, params).fetchall())

    def search(self, term: str) -> List[Invoice]:
        """Case-insensitive match on invoice number or customer name."""
        pattern = f"%{term.strip().lower()}%"
        rows = self.conn.execute(
            f"SELECT {_HEADER_COLUMNS} FROM invoices "
            "WHERE LOWER(invoice_id) LIKE ? OR LOWER(customer_name) LIKE ? "
            "ORDER BY DATE(date) DESC, rowid DESC",
            (pattern, pattern),
        ).fetchall()
        return self._hydrate(rows)
