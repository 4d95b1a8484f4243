# tests/test_repositories.py
import sqlite3

import pytest

from rental_shop.database import immediate_tx
from rental_shop.database.repositories import (
    AppSettings,
    CustomersDomainError,
    Invoice,
    InvoiceLine,
    ProductsDomainError,
    Rental,
    RentalItem,
    SettingsDomainError,
)


def _invoice(invoice_id="01", rental_id="01"):
    return Invoice(
        invoice_id=invoice_id,
        rental_id=rental_id,
        date="2025-01-04",
        items=(InvoiceLine("Steel Plate 2x3", 5, 3, 1500.0),),
        sub_total=1500.0,
        discount=100.0,
        total_amount=1400.0,
        advance_adjusted=200.0,
        previous_debt=300.0,
        received_amount=1000.0,
        balance_due=500.0,
        is_paid=False,
        created_by="counter",
        customer_name="Ali Raza",
        customer_phone="0300-1234567",
        customer_address="Street 4, Lahore",
    )


def _rental(ids, rental_id="01", customer="ali", status="Active"):
    return Rental(
        rental_id=rental_id,
        customer_id=ids[customer],
        customer_name="Ali Raza",
        start_date="2025-01-01",
        status=status,
        items=[RentalItem(ids["plate"], "Steel Plate 2x3", 5, 100.0)],
    )


# -------------------------
# Invoices
# -------------------------

def test_invoice_dict_round_trip_keeps_every_field():
    inv = _invoice()
    data = inv.to_dict()
    assert data["items"] == [{"productName": "Steel Plate 2x3", "quantity": 5, "days": 3, "amount": 1500.0}]
    assert (data["id"], data["rentalId"], data["balanceDue"], data["advanceAdjusted"]) == ("01", "01", 500.0, 200.0)
    assert "invoice_id" not in data
    assert Invoice.from_dict(data) == inv
    assert inv.net_payable == 1200
    assert inv.grand_total == 1500


def test_invoice_db_round_trip(conn, rentals, invoices, ids):
    with immediate_tx(conn):
        rentals.save(_rental(ids))
        invoices.append(_invoice())

    assert invoices.get("01") == _invoice()
    assert rentals.get("01").invoices == [_invoice()]
    assert [i.invoice_id for i in invoices.search("ali")] == ["01"]
    assert invoices.list_invoices(date_from="2025-02-01") == []


def test_invoices_cannot_be_edited(conn, rentals, invoices, ids):
    with immediate_tx(conn):
        rentals.save(_rental(ids))
        invoices.append(_invoice())

    with pytest.raises(sqlite3.IntegrityError):
        with immediate_tx(conn):
            conn.execute("UPDATE invoices SET balance_due=0 WHERE invoice_id='01'")
    with pytest.raises(sqlite3.IntegrityError):
        with immediate_tx(conn):
            conn.execute("UPDATE invoice_items SET amount=0")
    assert invoices.get("01").balance_due == 500


# -------------------------
# Rentals
# -------------------------

def test_second_open_rental_for_customer_is_refused(conn, rentals, ids):
    with immediate_tx(conn):
        rentals.save(_rental(ids, "01"))
    with pytest.raises(sqlite3.IntegrityError):
        with immediate_tx(conn):
            rentals.save(_rental(ids, "02"))
    # a completed one does not count
    with immediate_tx(conn):
        rentals.save(_rental(ids, "03", status="Completed"))
    assert [r.rental_id for r in rentals.list_rentals()] == ["03", "01"]
    assert [r.rental_id for r in rentals.list_open()] == ["01"]


def test_rental_dict_round_trip(ids):
    r = _rental(ids)
    r.invoices = [_invoice()]
    data = r.to_dict()
    assert (data["id"], data["customerId"], data["startDate"]) == ("01", ids["ali"], "2025-01-01")
    assert data["items"][0]["unitPrice"] == 100.0
    assert data["invoices"][0]["subTotal"] == 1500.0
    assert Rental.from_dict(data) == r


# -------------------------
# Sequences
# -------------------------

def test_sequences_only_move_forward(conn, sequences):
    with immediate_tx(conn):
        assert sequences.next_value("rental") == 1
        assert sequences.next_value("rental") == 2
        sequences.ensure_at_least("rental", 1)
    assert sequences.current("rental") == 2

    with pytest.raises(sqlite3.IntegrityError):
        with immediate_tx(conn):
            conn.execute("UPDATE sequences SET value=0 WHERE name='rental'")


# -------------------------
# Products
# -------------------------

def test_product_update_moves_shelf_stock(service, products, ids):
    service.create_rental(ids["ali"], {ids["plate"]: 10}, start_date="2025-01-01")

    products.update(ids["plate"], "Steel Plate 2x3", 120, 60)
    p = products.get(ids["plate"])
    assert (p.total_quantity, p.available_quantity, p.rented_quantity) == (60, 50, 10)
    # open rental keeps the rate it was booked at
    assert service.get_rental("01").items[0].unit_price == 100

    with pytest.raises(ProductsDomainError):
        products.update(ids["plate"], "Steel Plate 2x3", 120, 5)
    with pytest.raises(ProductsDomainError):
        products.delete(ids["plate"])


def test_low_stock(service, products, ids):
    service.create_rental(ids["ali"], {ids["jack"]: 17}, start_date="2025-01-01")
    assert [p.name for p in products.low_stock(0.2)] == ["Prop Jack"]


# -------------------------
# Customers
# -------------------------

def test_customer_contact_fields_are_normalized(customers, ids):
    c = customers.get(ids["ali"])
    assert c.phone == "0300-1234567"
    assert (c.tier, c.total_spent, c.total_debt, c.rating) == ("New", 0.0, 0.0, 5)

    cid = customers.create("  Kamran ", "0333 111 2222", cnic="3520212345671", rating=4)
    k = customers.get(cid)
    assert (k.name, k.phone, k.cnic) == ("Kamran", "0333-1112222", "35202-1234567-1")
    assert [x.customer_id for x in customers.search("kamran")] == [cid]


def test_customer_validation(customers):
    with pytest.raises(CustomersDomainError):
        customers.create("", "0300-1234567")
    with pytest.raises(CustomersDomainError):
        customers.create("Zed", "0300-1234567", rating=9)


def test_customer_rename_follows_onto_rentals_not_invoices(service, customers, ids):
    service.create_rental(ids["ali"], {ids["plate"]: 2}, start_date="2025-01-01")
    service.return_items("01", {ids["plate"]: 1}, "2025-01-02")

    customers.update(ids["ali"], "Ali R. Khan", "03001234567", "Street 4, Lahore")
    rental = service.get_rental("01")
    assert rental.customer_name == "Ali R. Khan"
    assert rental.invoices[0].customer_name == "Ali Raza"

    with pytest.raises(CustomersDomainError):
        customers.delete(ids["ali"])


def test_debtors_largest_first(conn, customers, ids):
    a, b = customers.get(ids["ali"]), customers.get(ids["bilal"])
    a.total_debt, b.total_debt = 100, 700
    with immediate_tx(conn):
        customers.save_balances(a)
        customers.save_balances(b)
    assert [c.name for c in customers.list_debtors()] == ["Bilal Ahmed", "Ali Raza"]


# -------------------------
# Settings
# -------------------------

def test_settings_seeded_and_saved(settings):
    s = settings.get()
    assert s == AppSettings.defaults()

    s.store_name = "Doula Shuttering"
    s.theme = "emerald"
    settings.save(s)
    assert settings.get().store_name == "Doula Shuttering"

    with pytest.raises(SettingsDomainError):
        settings.save(AppSettings.from_dict({"store_name": " "}))


# -------------------------
# Schema version
# -------------------------

def test_newer_schema_is_refused(conn, db_path):
    from rental_shop.database import get_connection
    from rental_shop.database.versioning import get_current_version, set_current_version

    assert get_current_version(conn) == "1.0.0"
    set_current_version(conn, "9.0.0")
    with pytest.raises(RuntimeError):
        get_connection(db_path)
