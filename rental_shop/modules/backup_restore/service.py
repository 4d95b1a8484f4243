"""
modules/backup_restore/service.py

Purpose
-------
Portable JSON snapshots of the whole store: catalog, customers (with their
balances), rentals (with every invoice issued on them) and store settings.

Public interface
----------------
- export_snapshot(conn, dest_file) -> dict     counts per collection
- import_snapshot(conn, src_file) -> dict      counts per collection

The file is a single JSON object keyed by collection name:
    {"products": [...], "customers": [...], "rentals": [...], "settings": {...}}

Import replaces the current contents in one transaction; if anything in the
file is rejected by the schema nothing is changed. Rental / invoice counters
are moved forward past the imported numbers and never moved back.
"""

from __future__ import annotations

from dataclasses import asdict
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterable

from ...constants import SEQ_INVOICE, SEQ_RENTAL
from ...database import immediate_tx
from ...database.repositories.customers_repo import Customer, CustomersRepo
from ...database.repositories.products_repo import Product, ProductsRepo
from ...database.repositories.rentals_repo import Rental, RentalsRepo
from ...database.repositories.sequences_repo import SequencesRepo
from ...database.repositories.settings_repo import AppSettings, SettingsRepo
from .logging_utils import get_logger, log_event

COLLECTIONS = ("products", "customers", "rentals", "settings")


class SnapshotError(Exception):
    """The snapshot file is missing, unreadable or not shaped like an export."""


def _max_number(ids: Iterable[str]) -> int:
    """Largest numeric id ('07' -> 7); non-numeric ids are ignored."""
    best = 0
    for value in ids:
        text = str(value).strip()
        if text.isdigit():
            best = max(best, int(text))
    return best


# ----------------------------
# Export
# ----------------------------

def build_snapshot(conn: sqlite3.Connection) -> Dict[str, Any]:
    return {
        "products": [asdict(p) for p in ProductsRepo(conn).list_products()],
        "customers": [asdict(c) for c in CustomersRepo(conn).list_customers()],
        "rentals": [r.to_dict() for r in RentalsRepo(conn).list_rentals()],
        "settings": SettingsRepo(conn).get().to_dict(),
    }


def export_snapshot(conn: sqlite3.Connection, dest_file: str | Path) -> Dict[str, int]:
    log = get_logger()
    dest = Path(dest_file)
    log_event(log, "export", "start", "Snapshot export started", {"dest": str(dest)})

    data = build_snapshot(conn)
    dest.parent.mkdir(parents=True, exist_ok=True)
    tmp = dest.with_suffix(dest.suffix + ".part")
    tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    tmp.replace(dest)

    counts = {k: len(data[k]) for k in ("products", "customers", "rentals")}
    counts["invoices"] = sum(len(r["invoices"]) for r in data["rentals"])
    log_event(log, "export", "done", "Snapshot written", {"dest": str(dest), **counts})
    return counts


# ----------------------------
# Import
# ----------------------------

def _read(src: Path) -> Dict[str, Any]:
    try:
        data = json.loads(src.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise SnapshotError(f"Snapshot file not found: {src}") from e
    except json.JSONDecodeError as e:
        raise SnapshotError(f"Snapshot file is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SnapshotError("Snapshot must be a JSON object.")
    missing = [k for k in COLLECTIONS if k not in data]
    if missing:
        raise SnapshotError("Snapshot is missing: " + ", ".join(missing))
    return data


def _insert_product(conn: sqlite3.Connection, p: Product) -> None:
    conn.execute(
        "INSERT INTO products(product_id, name, category, description, image, rate, "
        "total_quantity, available_quantity) VALUES (?,?,?,?,?,?,?,?)",
        (p.product_id, p.name, p.category, p.description, p.image, float(p.rate),
         int(p.total_quantity), int(p.available_quantity)),
    )


def _insert_customer(conn: sqlite3.Connection, c: Customer) -> None:
    conn.execute(
        "INSERT INTO customers(customer_id, name, phone, address, cnic, guarantor_name, "
        "guarantor_phone, rating, tier, total_spent, total_debt) VALUES (?,?,?,?,?,?,?,?,?,?,?)",
        (c.customer_id, c.name, c.phone, c.address, c.cnic, c.guarantor_name,
         c.guarantor_phone, int(c.rating), c.tier, float(c.total_spent), float(c.total_debt)),
    )


def import_snapshot(conn: sqlite3.Connection, src_file: str | Path) -> Dict[str, int]:
    log = get_logger()
    src = Path(src_file)
    log_event(log, "import", "start", "Snapshot import started", {"src": str(src)})

    data = _read(src)
    try:
        products = [Product(**d) for d in data["products"]]
        customers = [Customer(**d) for d in data["customers"]]
        rentals = [Rental.from_dict(d) for d in data["rentals"]]
        settings = AppSettings.from_dict(data["settings"] or {})
    except TypeError as e:
        log_event(log, "import", "load", "Snapshot rejected", {"error": str(e)}, logging.ERROR)
        raise SnapshotError(f"Snapshot record has unexpected fields: {e}") from e

    rentals_repo = RentalsRepo(conn)
    sequences = SequencesRepo(conn)
    with immediate_tx(conn):
        # invoices and rental items go with their rentals (ON DELETE CASCADE)
        conn.execute("DELETE FROM rentals")
        conn.execute("DELETE FROM customers")
        conn.execute("DELETE FROM products")

        for p in products:
            _insert_product(conn, p)
        for c in customers:
            _insert_customer(conn, c)
        invoice_ids = []
        # oldest first so invoice rowids follow issue order
        for r in sorted(rentals, key=lambda r: _max_number([r.rental_id])):
            rentals_repo.save(r)
            for inv in r.invoices:
                rentals_repo.invoices.append(inv)
                invoice_ids.append(inv.invoice_id)
        SettingsRepo(conn).save(settings)

        sequences.ensure_at_least(SEQ_RENTAL, _max_number(r.rental_id for r in rentals))
        sequences.ensure_at_least(SEQ_INVOICE, _max_number(invoice_ids))

    counts = {
        "products": len(products),
        "customers": len(customers),
        "rentals": len(rentals),
        "invoices": len(invoice_ids),
    }
    log_event(log, "import", "done", "Snapshot restored", {"src": str(src), **counts})
    return counts
