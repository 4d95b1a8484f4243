# tests/test_rental_service.py
import pytest

from rental_shop.constants import SEQ_INVOICE, SEQ_RENTAL
from rental_shop.database import immediate_tx
from rental_shop.modules.rentals.errors import (
    DomainError,
    InsufficientStockError,
    InvalidTransitionError,
)
from rental_shop.modules.rentals.service import RentalService


def _owe(customers, customer_id, amount):
    c = customers.get(customer_id)
    c.total_debt = amount
    with immediate_tx(customers.conn):
        customers.save_balances(c)


# -------------------------
# Booking
# -------------------------

def test_create_rental_reserves_stock_and_numbers_rental(service, products, sequences, ids):
    rental = service.create_rental(
        ids["ali"], {ids["plate"]: 5, ids["jack"]: 2},
        start_date="2025-01-01", advance_payment=300,
    )

    assert rental.rental_id == "01"
    assert rental.status == "Active"
    assert rental.customer_name == "Ali Raza"
    assert [(it.product_name, it.quantity, it.unit_price) for it in rental.items] == [
        ("Steel Plate 2x3", 5, 100.0),
        ("Prop Jack", 2, 40.0),
    ]
    assert products.get(ids["plate"]).available_quantity == 45
    assert products.get(ids["jack"]).available_quantity == 18
    assert sequences.current(SEQ_RENTAL) == 1
    assert service.get_rental("01").advance_payment == 300


def test_second_order_merges_into_open_rental(service, rentals, sequences, ids):
    service.create_rental(ids["ali"], {ids["plate"]: 2}, start_date="2025-01-01", advance_payment=100)
    merged = service.create_rental(ids["ali"], {ids["plate"]: 3}, start_date="2025-01-05", advance_payment=50)

    assert merged.rental_id == "01"
    assert [(it.product_id, it.quantity) for it in merged.items] == [(ids["plate"], 5)]
    assert merged.advance_payment == 150
    assert merged.start_date == "2025-01-01"
    assert service.open_rental_for(ids["ali"]).rental_id == "01"
    assert service.open_rental_for(ids["bilal"]) is None
    assert len(rentals.list_rentals()) == 1
    assert sequences.current(SEQ_RENTAL) == 1


def test_each_customer_gets_their_own_rental(service, ids):
    a = service.create_rental(ids["ali"], {ids["plate"]: 1}, start_date="2025-01-01")
    b = service.create_rental(ids["bilal"], {ids["plate"]: 1}, start_date="2025-01-01")
    assert (a.rental_id, b.rental_id) == ("01", "02")


def test_order_beyond_stock_changes_nothing(service, products, sequences, rentals, ids):
    with pytest.raises(InsufficientStockError):
        service.create_rental(ids["ali"], {ids["plate"]: 51}, start_date="2025-01-01")

    assert products.get(ids["plate"]).available_quantity == 50
    assert rentals.list_rentals() == []
    assert sequences.current(SEQ_RENTAL) == 0


def test_bad_input_is_rejected(service, ids):
    with pytest.raises(DomainError):
        service.create_rental(ids["ali"], {ids["plate"]: 0})
    with pytest.raises(DomainError):
        service.create_rental(ids["ali"], {ids["plate"]: 1}, advance_payment=-5)
    with pytest.raises(DomainError):
        service.create_rental(ids["ali"], {999: 1})


def test_unknown_customer_returns_none(service, ids):
    assert service.create_rental(9999, {ids["plate"]: 1}) is None


# -------------------------
# Returns & settlement
# -------------------------

def test_full_return_paid_in_full(service, products, customers, ids):
    service.create_rental(ids["ali"], {ids["plate"]: 5}, start_date="2025-01-01")
    out = service.return_items("01", {ids["plate"]: 5}, "2025-01-04", received_amount=1500)

    assert out.charge.sub_total == 1500
    assert out.settlement.net_bill == 1500
    assert out.settlement.advance_adjusted == 0
    assert out.settlement.balance_due == 0
    assert out.rental.status == "Completed"
    assert out.rental.items == []
    assert out.invoice.invoice_id == "01"
    assert out.invoice.is_paid

    stored = service.get_rental("01")
    assert stored.status == "Completed"
    assert stored.total_amount == 1500
    assert [inv.invoice_id for inv in stored.invoices] == ["01"]
    assert products.get(ids["plate"]).available_quantity == 50
    ali = customers.get(ids["ali"])
    assert (ali.total_spent, ali.total_debt, ali.tier) == (1500, 0, "New")


def test_advance_discount_and_part_payment(service, customers, ids):
    service.create_rental(ids["ali"], {ids["plate"]: 5}, start_date="2025-01-01", advance_payment=200)
    out = service.return_items(
        "01", {ids["plate"]: 5}, "2025-01-04", discount=100, received_amount=1000, created_by="counter"
    )

    s = out.settlement
    assert (s.net_bill, s.advance_adjusted, s.remaining_advance, s.current_payable, s.balance_due) == (
        1400, 200, 0, 1200, 200,
    )
    assert out.invoice.total_amount == 1400
    assert out.invoice.discount == 100
    assert out.invoice.created_by == "counter"
    assert not out.invoice.is_paid
    assert customers.get(ids["ali"]).total_debt == 200
    # spend counts the bill before discount
    assert customers.get(ids["ali"]).total_spent == 1500


def test_previous_debt_replaced_by_new_balance(service, customers, ids):
    _owe(customers, ids["ali"], 300)
    service.create_rental(ids["ali"], {ids["plate"]: 5}, start_date="2025-01-01")
    out = service.return_items("01", {ids["plate"]: 5}, "2025-01-02", received_amount=400)

    assert out.settlement.total_outstanding == 800
    assert out.invoice.previous_debt == 300
    assert out.invoice.received_amount == 400
    assert customers.get(ids["ali"]).total_debt == 400


def test_partial_return_keeps_rest_out(service, products, ids):
    service.create_rental(ids["ali"], {ids["plate"]: 5, ids["jack"]: 2}, start_date="2025-01-01")
    out = service.return_items("01", {ids["plate"]: 2}, "2025-01-03")

    assert out.rental.status == "Active"
    assert [(it.product_id, it.quantity) for it in out.rental.items] == [
        (ids["plate"], 3),
        (ids["jack"], 2),
    ]
    assert [(l.product_name, l.quantity, l.days) for l in out.invoice.items] == [("Steel Plate 2x3", 2, 2)]

    plate = products.get(ids["plate"])
    # pieces on the shelf + pieces out always add up to the stock owned
    assert plate.available_quantity + out.rental.item_for(ids["plate"]).quantity == plate.total_quantity


def test_second_return_measures_from_original_start(service, ids):
    service.create_rental(ids["ali"], {ids["plate"]: 4}, start_date="2025-01-01", advance_payment=1000)
    first = service.return_items("01", {ids["plate"]: 1}, "2025-01-03")
    second = service.return_items("01", {ids["plate"]: 3}, "2025-01-06")

    assert first.charge.days == 2
    assert second.charge.days == 5
    # advance carried over from the first return
    assert first.settlement.remaining_advance == 800
    assert second.settlement.advance_adjusted == 800
    assert second.rental.status == "Completed"
    assert [inv.invoice_id for inv in second.rental.invoices] == ["01", "02"]
    assert second.rental.total_amount == 200 + 1500


def test_return_clamps_to_outstanding(service, products, ids):
    service.create_rental(ids["ali"], {ids["jack"]: 2}, start_date="2025-01-01")
    out = service.return_items("01", {ids["jack"]: 9}, "2025-01-02")

    assert out.charge.returned_quantities == {ids["jack"]: 2}
    assert products.get(ids["jack"]).available_quantity == 20


def test_empty_return_does_not_consume_invoice_number(service, sequences, ids):
    service.create_rental(ids["ali"], {ids["jack"]: 2}, start_date="2025-01-01")
    assert service.return_items("01", {ids["plate"]: 1}, "2025-01-02") is None
    assert sequences.current(SEQ_INVOICE) == 0


def test_return_on_completed_rental_is_rejected(service, ids):
    service.create_rental(ids["ali"], {ids["jack"]: 1}, start_date="2025-01-01")
    service.return_items("01", {ids["jack"]: 1}, "2025-01-02")
    with pytest.raises(DomainError):
        service.return_items("01", {ids["jack"]: 1}, "2025-01-03")


def test_return_on_missing_rental_returns_none(service, ids):
    assert service.return_items("77", {ids["jack"]: 1}) is None


def test_invoice_sink_receives_each_invoice(conn, ids):
    seen = []
    svc = RentalService(conn, invoice_sink=seen.append)
    svc.create_rental(ids["ali"], {ids["plate"]: 2}, start_date="2025-01-01")
    svc.return_items("01", {ids["plate"]: 1}, "2025-01-02")
    svc.return_items("01", {ids["plate"]: 1}, "2025-01-03")
    assert [inv.invoice_id for inv in seen] == ["01", "02"]


def test_new_order_after_completion_opens_new_rental(service, ids):
    service.create_rental(ids["ali"], {ids["jack"]: 1}, start_date="2025-01-01")
    service.return_items("01", {ids["jack"]: 1}, "2025-01-02")
    again = service.create_rental(ids["ali"], {ids["jack"]: 1}, start_date="2025-02-01")
    assert again.rental_id == "02"


# -------------------------
# Debt ledger
# -------------------------

def test_settle_debt_reduces_and_floors_at_zero(service, customers, ids):
    _owe(customers, ids["bilal"], 500)

    assert service.settle_debt(ids["bilal"], 200).total_debt == 300
    assert service.settle_debt(ids["bilal"], 1000).total_debt == 0
    assert customers.get(ids["bilal"]).total_debt == 0


@pytest.mark.parametrize("amount", [0, -10, "abc"])
def test_settle_debt_rejects_bad_amounts(service, ids, amount):
    with pytest.raises(DomainError):
        service.settle_debt(ids["bilal"], amount)


def test_settle_debt_unknown_customer(service):
    assert service.settle_debt(4242, 10) is None


# -------------------------
# Status, overdue, delete
# -------------------------

def test_mark_overdue_flags_late_open_rentals(service, ids):
    service.create_rental(ids["ali"], {ids["plate"]: 1}, start_date="2025-01-01", expected_return_date="2025-01-05")
    service.create_rental(ids["bilal"], {ids["plate"]: 1}, start_date="2025-01-01", expected_return_date="2025-01-20")

    assert service.mark_overdue("2025-01-06") == ["01"]
    assert service.get_rental("01").status == "Overdue"
    assert service.get_rental("02").status == "Active"
    # already flagged: nothing changes on a second run
    assert service.mark_overdue("2025-01-07") == []


def test_booking_dates_are_checked(service, ids):
    with pytest.raises(DomainError):
        service.create_rental(ids["ali"], {ids["plate"]: 1}, start_date="2025-01-01", expected_return_date="15/01/2025")
    with pytest.raises(DomainError):
        service.create_rental(ids["ali"], {ids["plate"]: 1}, start_date="01-01-2025")
    with pytest.raises(DomainError):
        service.create_rental(ids["ali"], {ids["plate"]: 1}, start_date="2025-01-10", expected_return_date="2025-01-05")
    assert service.open_rental_for(ids["ali"]) is None

    rental = service.create_rental(
        ids["ali"], {ids["plate"]: 1}, start_date="2025-01-01", expected_return_date="2025-01-05T18:30:00"
    )
    assert rental.expected_return_date == "2025-01-05"


def test_bad_return_date_is_rejected_before_billing(service, ids):
    service.create_rental(ids["ali"], {ids["plate"]: 2}, start_date="2025-01-01")
    with pytest.raises(DomainError):
        service.return_items("01", {ids["plate"]: 1}, "04/01/2025")
    assert service.get_rental("01").invoices == []
    assert service.sequences.current(SEQ_INVOICE) == 0


def test_unreadable_stored_due_date_does_not_block_others(service, rentals, ids):
    service.create_rental(ids["ali"], {ids["plate"]: 1}, start_date="2025-01-01", expected_return_date="2025-01-15")
    service.create_rental(ids["bilal"], {ids["plate"]: 1}, start_date="2025-01-01", expected_return_date="2025-01-05")
    # e.g. typed by hand in an older snapshot
    legacy = service.get_rental("01")
    legacy.expected_return_date = "15/01/2025"
    with immediate_tx(service.conn):
        rentals.save(legacy)

    assert service.mark_overdue("2025-02-01") == ["02"]
    assert service.get_rental("01").status == "Active"
    with pytest.raises(DomainError):
        service.mark_overdue("someday")


def test_overdue_rental_still_takes_orders_and_returns(service, ids):
    service.create_rental(ids["ali"], {ids["plate"]: 2}, start_date="2025-01-01", expected_return_date="2025-01-02")
    service.mark_overdue("2025-01-10")

    merged = service.create_rental(ids["ali"], {ids["plate"]: 1})
    assert merged.rental_id == "01"
    assert merged.status == "Overdue"

    out = service.return_items("01", {ids["plate"]: 1}, "2025-01-10")
    assert out.rental.status == "Overdue"


def test_update_status_rules(service, ids):
    service.create_rental(ids["ali"], {ids["jack"]: 1}, start_date="2025-01-01")

    assert service.update_status("01", "partial").status == "Partial Return"
    with pytest.raises(DomainError):
        service.update_status("01", "Completed")
    with pytest.raises(InvalidTransitionError):
        service.update_status("01", "Lost")

    service.return_items("01", {ids["jack"]: 1}, "2025-01-02")
    with pytest.raises(InvalidTransitionError):
        service.update_status("01", "Active")
    assert service.update_status("99", "Active") is None


def test_delete_open_rental_restocks(service, products, ids):
    service.create_rental(ids["ali"], {ids["plate"]: 5}, start_date="2025-01-01")
    service.return_items("01", {ids["plate"]: 2}, "2025-01-02")

    assert service.delete_rental("01") is True
    assert service.get_rental("01") is None
    assert products.get(ids["plate"]).available_quantity == 50
    assert service.delete_rental("01") is False


def test_numbers_are_not_reused_after_delete(service, invoices, ids):
    service.create_rental(ids["ali"], {ids["plate"]: 1}, start_date="2025-01-01")
    service.return_items("01", {ids["plate"]: 1}, "2025-01-02")
    service.delete_rental("01")
    assert invoices.list_invoices() == []

    rental = service.create_rental(ids["bilal"], {ids["plate"]: 1}, start_date="2025-01-01")
    out = service.return_items(rental.rental_id, {ids["plate"]: 1}, "2025-01-02")
    assert rental.rental_id == "02"
    assert out.invoice.invoice_id == "02"
