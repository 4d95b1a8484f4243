# tests/test_dashboard.py
from rental_shop.database.repositories.invoices_repo import Invoice
from rental_shop.modules.dashboard.model import DashboardModel, revenue_series


def _inv(invoice_id, day, total):
    return Invoice(invoice_id=invoice_id, rental_id="01", date=day, total_amount=total)


INVOICES = [
    _inv("01", "2025-03-01", 100.0),   # Saturday
    _inv("02", "2025-03-02", 250.0),   # Sunday
    _inv("03", "2025-03-02", 50.0),
    _inv("04", "2025-03-09", 400.0),   # next Sunday
    _inv("05", "2025-04-15", 75.0),
]


def test_daily_buckets_oldest_first():
    points = revenue_series(INVOICES, "daily")
    assert [(p.key, p.revenue, p.orders) for p in points] == [
        ("2025-03-01", 100.0, 1),
        ("2025-03-02", 300.0, 2),
        ("2025-03-09", 400.0, 1),
        ("2025-04-15", 75.0, 1),
    ]


def test_weeks_start_on_sunday():
    points = revenue_series(INVOICES, "weekly")
    assert [(p.key, p.revenue) for p in points] == [
        ("2025-02-23", 100.0),
        ("2025-03-02", 300.0),
        ("2025-03-09", 400.0),
        ("2025-04-13", 75.0),
    ]


def test_monthly_and_custom_range():
    monthly = revenue_series(INVOICES, "monthly")
    assert [(p.label, p.revenue, p.orders) for p in monthly] == [("Mar 2025", 800.0, 4), ("Apr 2025", 75.0, 1)]

    custom = revenue_series(INVOICES, "custom", "2025-03-02", "2025-03-09")
    assert sum(p.revenue for p in custom) == 700.0


def test_dashboard_model_refresh(conn, service, customers, ids):
    service.create_rental(ids["ali"], {ids["plate"]: 5, ids["jack"]: 17}, start_date="2025-01-01")
    service.create_rental(ids["bilal"], {ids["plate"]: 2}, start_date="2025-01-01", advance_payment=50)
    service.return_items("01", {ids["plate"]: 5}, "2025-01-04", discount=100, received_amount=1000)

    model = DashboardModel(conn)
    model.refresh(timeframe="monthly")

    k = model.kpis
    assert k.total_revenue == 1400
    assert k.total_receivable == 400
    assert k.open_rentals == 2
    assert k.low_stock_count == 1
    assert (k.items_available, k.items_rented) == (48 + 3, 2 + 17)

    assert [(p.key, p.revenue) for p in model.revenue] == [("2025-01", 1400.0)]
    assert [c.name for c in model.debtor_rows] == ["Ali Raza"]
    assert model.total_receivable == 400
    assert {row.customer_name: row.items_out for row in model.open_rentals} == {
        "Ali Raza": 17,
        "Bilal Ahmed": 2,
    }
    assert [p.name for p in model.low_stock] == ["Prop Jack"]
