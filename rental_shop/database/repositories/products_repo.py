# rental_shop/database/repositories/products_repo.py
from __future__ import annotations

from dataclasses import dataclass
import logging
import sqlite3
from typing import Dict, Iterable

from .. import immediate_tx
from ...utils.validators import non_empty

_log = logging.getLogger(__name__)


class DomainError(Exception):
    """Domain-level error the controller/UI can surface (toast/snackbar)."""
    pass


@dataclass
class Product:
    product_id: int | None
    name: str
    category: str | None
    description: str | None
    image: str | None
    rate: float
    total_quantity: int
    available_quantity: int

    @property
    def rented_quantity(self) -> int:
        return self.total_quantity - self.available_quantity


_COLUMNS = (
    "product_id, name, category, description, image, "
    "CAST(rate AS REAL) AS rate, total_quantity, available_quantity"
)


def _row_to_product(r: sqlite3.Row) -> Product:
    return Product(
        product_id=int(r["product_id"]),
        name=r["name"],
        category=r["category"],
        description=r["description"],
        image=r["image"],
        rate=float(r["rate"] or 0.0),
        total_quantity=int(r["total_quantity"]),
        available_quantity=int(r["available_quantity"]),
    )


class ProductsRepo:
    """
    Catalog of rentable products.

    available_quantity is the stock on the shelf; it moves down when a rental
    is booked and back up when items are returned. The schema enforces
    0 <= available_quantity <= total_quantity.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    @staticmethod
    def _validate(name: str, rate: float, total_quantity: int) -> None:
        if not non_empty(name):
            raise DomainError("Name cannot be empty.")
        if rate is None or float(rate) < 0:
            raise DomainError("Rate cannot be negative.")
        if total_quantity is None or int(total_quantity) < 0:
            raise DomainError("Total quantity cannot be negative.")

    # ---------------------------- Queries ----------------------------

    def list_products(self) -> list[Product]:
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM products ORDER BY product_id DESC"
        ).fetchall()
        return [_row_to_product(r) for r in rows]

    def get(self, product_id: int) -> Product | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM products WHERE product_id=?",
            (product_id,),
        ).fetchone()
        return _row_to_product(r) if r else None

    def get_many(self, product_ids: Iterable[int]) -> Dict[int, Product]:
        """Catalog lookup keyed by product_id; unknown ids are simply absent."""
        ids = sorted({int(p) for p in product_ids})
        if not ids:
            return {}
        placeholders = ",".join(["?"] * len(ids))
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM products WHERE product_id IN ({placeholders})",
            ids,
        ).fetchall()
        return {int(r["product_id"]): _row_to_product(r) for r in rows}

    def low_stock(self, ratio: float) -> list[Product]:
        """Products whose shelf stock is below `ratio` of their total stock."""
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM products "
            "WHERE available_quantity < total_quantity * ? "
            "ORDER BY name",
            (ratio,),
        ).fetchall()
        return [_row_to_product(r) for r in rows]

    # ---------------------------- Mutations ----------------------------

    def create(
        self,
        name: str,
        rate: float,
        total_quantity: int,
        category: str | None = None,
        description: str | None = None,
        image: str | None = None,
    ) -> int:
        """New products start with all stock on the shelf."""
        self._validate(name, rate, total_quantity)
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "INSERT INTO products(name, category, description, image, rate, "
                "total_quantity, available_quantity) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (name.strip(), category, description, image, float(rate),
                 int(total_quantity), int(total_quantity)),
            )
            return int(cur.lastrowid)

    def update(
        self,
        product_id: int,
        name: str,
        rate: float,
        total_quantity: int,
        category: str | None = None,
        description: str | None = None,
        image: str | None = None,
    ) -> None:
        """
        Edit catalog fields. Changing total_quantity moves the shelf stock by the
        same delta; shrinking below what is currently rented out is rejected.
        Rates already locked into open rentals are not touched.
        """
        self._validate(name, rate, total_quantity)
        with immediate_tx(self.conn):
            current = self.get(product_id)
            if current is None:
                raise DomainError(f"Product {product_id} does not exist.")
            available = current.available_quantity + (int(total_quantity) - current.total_quantity)
            if available < 0:
                raise DomainError(
                    f"Total quantity cannot drop below the {current.rented_quantity} "
                    "pieces currently rented out."
                )
            self.conn.execute(
                "UPDATE products SET name=?, category=?, description=?, image=?, rate=?, "
                "total_quantity=?, available_quantity=? WHERE product_id=?",
                (name.strip(), category, description, image, float(rate),
                 int(total_quantity), available, product_id),
            )

    def _product_is_referenced(self, product_id: int) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM rental_items WHERE product_id=? LIMIT 1", (product_id,)
        ).fetchone()
        return row is not None

    def delete(self, product_id: int) -> None:
        with immediate_tx(self.conn):
            if self._product_is_referenced(product_id):
                raise DomainError("Product is still out on an open rental and cannot be deleted.")
            self.conn.execute("DELETE FROM products WHERE product_id=?", (product_id,))

    def adjust_available(self, product_id: int, delta: int) -> None:
        """
        Move shelf stock by `delta` (negative when booked, positive when returned).
        Runs inside the caller's transaction; the CHECK constraint rejects
        results outside [0, total_quantity].
        """
        self.conn.execute(
            "UPDATE products SET available_quantity = available_quantity + ? WHERE product_id=?",
            (int(delta), product_id),
        )
        _log.debug("product %s available %+d", product_id, delta)
