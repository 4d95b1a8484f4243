# rental_shop/tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - pytest-qt owns QApplication (use qapp/qtbot fixtures)
# - Every test gets its own SQLite file under tmp_path, built through
#   get_connection() so schema, triggers and seed rows match production
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON (set by get_connection)
# - Provide handy ids for the seeded catalog and customers
# ---------------------------------------------------------------------

from __future__ import annotations

import os
import sqlite3
from pathlib import Path

import pytest

# Run Qt headless when no display is available.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from rental_shop.database import get_connection
from rental_shop.database.repositories import (
    CustomersRepo,
    InvoicesRepo,
    ProductsRepo,
    RentalsRepo,
    SequencesRepo,
    SettingsRepo,
)
from rental_shop.modules.rentals.service import RentalService


# ---------- Qt: let pytest-qt own the app ----------
@pytest.fixture(scope="session")
def app(qapp):  # alias to match code that expects an `app` fixture
    return qapp


# ---------- Per-test database ----------
@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "rental_shop.db"


@pytest.fixture()
def conn(db_path: Path):
    con = get_connection(db_path)
    try:
        yield con
    finally:
        con.close()


# ---------- Repositories ----------
@pytest.fixture()
def products(conn: sqlite3.Connection) -> ProductsRepo:
    return ProductsRepo(conn)


@pytest.fixture()
def customers(conn: sqlite3.Connection) -> CustomersRepo:
    return CustomersRepo(conn)


@pytest.fixture()
def rentals(conn: sqlite3.Connection) -> RentalsRepo:
    return RentalsRepo(conn)


@pytest.fixture()
def invoices(conn: sqlite3.Connection) -> InvoicesRepo:
    return InvoicesRepo(conn)


@pytest.fixture()
def sequences(conn: sqlite3.Connection) -> SequencesRepo:
    return SequencesRepo(conn)


@pytest.fixture()
def settings(conn: sqlite3.Connection) -> SettingsRepo:
    return SettingsRepo(conn)


@pytest.fixture()
def service(conn: sqlite3.Connection) -> RentalService:
    return RentalService(conn)


# ---------- Seeded catalog + customers ----------
@pytest.fixture()
def ids(products: ProductsRepo, customers: CustomersRepo) -> dict:
    """
    Two products and two customers:
      plate  "Steel Plate 2x3"  rate 100/day, 50 pcs
      jack   "Prop Jack"        rate  40/day, 20 pcs
      ali    no debt
      bilal  no debt
    """
    return {
        "plate": products.create("Steel Plate 2x3", 100, 50, category="Shuttering"),
        "jack": products.create("Prop Jack", 40, 20, category="Scaffold"),
        "ali": customers.create("Ali Raza", "03001234567", "Street 4, Lahore"),
        "bilal": customers.create("Bilal Ahmed", "0321-7654321", "Haveli Lakha"),
    }
