from pathlib import Path
import logging
import sqlite3
import sys

_log = logging.getLogger(__name__)

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== CORE TABLES ======================== */

/* -------- store settings (single row) -------- */
CREATE TABLE IF NOT EXISTS app_settings (
    settings_id   INTEGER PRIMARY KEY CHECK (settings_id = 1),
    store_name    TEXT NOT NULL,
    tagline       TEXT,
    store_address TEXT,
    store_phone   TEXT,
    owner_name    TEXT,
    logo_url      TEXT,
    theme         TEXT NOT NULL DEFAULT 'slate'
);

/* -------- durable counters (rental / invoice numbering) -------- */
CREATE TABLE IF NOT EXISTS sequences (
    name  TEXT PRIMARY KEY,
    value INTEGER NOT NULL DEFAULT 0 CHECK (value >= 0)
);

/* -------- catalog -------- */
CREATE TABLE IF NOT EXISTS products (
    product_id         INTEGER PRIMARY KEY AUTOINCREMENT,
    name               TEXT NOT NULL,
    category           TEXT,
    description        TEXT,
    image              TEXT,
    rate               NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(rate AS REAL) >= 0),
    total_quantity     INTEGER NOT NULL DEFAULT 0 CHECK (total_quantity >= 0),
    available_quantity INTEGER NOT NULL DEFAULT 0,
    CHECK (available_quantity >= 0 AND available_quantity <= total_quantity)
);
CREATE INDEX IF NOT EXISTS idx_products_name ON products(name);

/* -------- parties -------- */
CREATE TABLE IF NOT EXISTS customers (
    customer_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT NOT NULL,
    phone           TEXT NOT NULL,
    address         TEXT,
    cnic            TEXT,
    guarantor_name  TEXT,
    guarantor_phone TEXT,
    rating          INTEGER NOT NULL DEFAULT 5 CHECK (rating BETWEEN 0 AND 5),
    tier            TEXT NOT NULL DEFAULT 'New'
                    CHECK (tier IN ('New','Bronze','Silver','Gold','Platinum')),
    total_spent     NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(total_spent AS REAL) >= 0),
    total_debt      NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(total_debt AS REAL) >= 0)
);
CREATE INDEX IF NOT EXISTS idx_customers_name  ON customers(name);
CREATE INDEX IF NOT EXISTS idx_customers_phone ON customers(phone);

/* -------- rentals: headers -------- */
CREATE TABLE IF NOT EXISTS rentals (
    rental_id            TEXT PRIMARY KEY,
    customer_id          INTEGER NOT NULL,
    customer_name        TEXT NOT NULL,
    start_date           DATE NOT NULL,
    expected_return_date DATE,
    status               TEXT NOT NULL DEFAULT 'Active'
                         CHECK (status IN ('Active','Completed','Overdue','Partial Return')),
    advance_payment      NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(advance_payment AS REAL) >= 0),
    total_amount         NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(total_amount AS REAL) >= 0),
    notes                TEXT,
    FOREIGN KEY (customer_id) REFERENCES customers(customer_id)
);
CREATE INDEX IF NOT EXISTS idx_rentals_customer ON rentals(customer_id, status);

/* at most one open rental per customer */
CREATE UNIQUE INDEX IF NOT EXISTS idx_rentals_one_open_per_customer
ON rentals(customer_id) WHERE status IN ('Active','Overdue','Partial Return');

/* -------- rentals: outstanding items -------- */
CREATE TABLE IF NOT EXISTS rental_items (
    item_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    rental_id     TEXT    NOT NULL,
    position      INTEGER NOT NULL,
    product_id    INTEGER NOT NULL,
    product_name  TEXT    NOT NULL,
    product_image TEXT,
    quantity      INTEGER NOT NULL CHECK (quantity > 0),
    unit_price    NUMERIC NOT NULL CHECK (CAST(unit_price AS REAL) >= 0),
    UNIQUE (rental_id, product_id),
    FOREIGN KEY (rental_id)  REFERENCES rentals(rental_id) ON DELETE CASCADE,
    FOREIGN KEY (product_id) REFERENCES products(product_id)
);
CREATE INDEX IF NOT EXISTS idx_rental_items_rental ON rental_items(rental_id, position);

/* -------- invoices (append-only receipts) -------- */
CREATE TABLE IF NOT EXISTS invoices (
    invoice_id       TEXT PRIMARY KEY,
    rental_id        TEXT NOT NULL,
    date             DATE NOT NULL,
    sub_total        NUMERIC NOT NULL CHECK (CAST(sub_total AS REAL) >= 0),
    discount         NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(discount AS REAL) >= 0),
    total_amount     NUMERIC NOT NULL CHECK (CAST(total_amount AS REAL) >= 0),
    advance_adjusted NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(advance_adjusted AS REAL) >= 0),
    previous_debt    NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(previous_debt AS REAL) >= 0),
    received_amount  NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(received_amount AS REAL) >= 0),
    balance_due      NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(balance_due AS REAL) >= 0),
    is_paid          INTEGER NOT NULL CHECK (is_paid IN (0,1)),
    created_by       TEXT,
    customer_name    TEXT NOT NULL,
    customer_phone   TEXT,
    customer_address TEXT,
    FOREIGN KEY (rental_id) REFERENCES rentals(rental_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_invoices_rental ON invoices(rental_id);
CREATE INDEX IF NOT EXISTS idx_invoices_date   ON invoices(date);

CREATE TABLE IF NOT EXISTS invoice_items (
    line_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    invoice_id   TEXT    NOT NULL,
    position     INTEGER NOT NULL,
    product_name TEXT    NOT NULL,
    quantity     INTEGER NOT NULL CHECK (quantity > 0),
    days         INTEGER NOT NULL CHECK (days >= 1),
    amount       NUMERIC NOT NULL CHECK (CAST(amount AS REAL) >= 0),
    FOREIGN KEY (invoice_id) REFERENCES invoices(invoice_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_invoice_items_invoice ON invoice_items(invoice_id, position);


/* ======================== INVOICE IMMUTABILITY ======================== */
DROP TRIGGER IF EXISTS trg_invoices_no_update;
DROP TRIGGER IF EXISTS trg_invoice_items_no_update;

CREATE TRIGGER trg_invoices_no_update
BEFORE UPDATE ON invoices
FOR EACH ROW
BEGIN
  SELECT RAISE(ABORT, 'Invoices are immutable once issued');
END;

CREATE TRIGGER trg_invoice_items_no_update
BEFORE UPDATE ON invoice_items
FOR EACH ROW
BEGIN
  SELECT RAISE(ABORT, 'Invoices are immutable once issued');
END;


/* ======================== SEQUENCE GUARD ======================== */
/* counters only move forward */
DROP TRIGGER IF EXISTS trg_sequences_monotonic;

CREATE TRIGGER trg_sequences_monotonic
BEFORE UPDATE OF value ON sequences
FOR EACH ROW
WHEN NEW.value < OLD.value
BEGIN
  SELECT RAISE(ABORT, 'Sequence values cannot move backwards');
END;
"""


def init_schema(db_path: Path | str) -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        conn.execute("PRAGMA journal_mode=WAL;")
        # Apply (idempotent) schema
        conn.executescript(SQL)
        conn.commit()
    finally:
        conn.close()
    _log.debug("schema applied to %s", db_path)


if __name__ == "__main__":
    from ..config import DB_PATH

    target = sys.argv[1] if len(sys.argv) > 1 else DB_PATH
    init_schema(target)
    print(f"✓ DB applied to {target}")
