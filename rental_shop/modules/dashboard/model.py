# rental_shop/modules/dashboard/model.py
from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from ...constants import LOW_STOCK_RATIO
from ...database.repositories.customers_repo import Customer, CustomersRepo
from ...database.repositories.invoices_repo import Invoice, InvoicesRepo
from ...database.repositories.products_repo import Product, ProductsRepo
from ...database.repositories.rentals_repo import Rental, RentalsRepo
from ..rentals.proration import parse_date

TIMEFRAMES = ("daily", "weekly", "monthly", "custom")


# --------------------------- Value objects ---------------------------

@dataclass(frozen=True)
class Summary:
    total_revenue: float
    total_receivable: float
    open_rentals: int
    low_stock_count: int
    items_available: int
    items_rented: int


@dataclass(frozen=True)
class RevenuePoint:
    key: str       # sortable bucket key (yyyy-mm-dd or yyyy-mm)
    label: str
    revenue: float
    orders: int


@dataclass(frozen=True)
class OpenRentalRow:
    customer_id: int
    customer_name: str
    rental_ids: tuple[str, ...]
    items_out: int
    advance_held: float


# --------------------------- Calculations ---------------------------

def is_low_stock(product: Product, ratio: float = LOW_STOCK_RATIO) -> bool:
    return product.available_quantity < product.total_quantity * ratio


def summary(
    products: Iterable[Product],
    customers: Iterable[Customer],
    rentals: Iterable[Rental],
    *,
    low_stock_ratio: float = LOW_STOCK_RATIO,
) -> Summary:
    """
    Headline numbers. Revenue is what has actually been invoiced (sum of the
    invoices' total_amount); receivable is the customers' running debt.
    """
    products = list(products)
    rentals = list(rentals)
    return Summary(
        total_revenue=float(sum(inv.total_amount for r in rentals for inv in r.invoices)),
        total_receivable=float(sum(c.total_debt or 0.0 for c in customers)),
        open_rentals=sum(1 for r in rentals if r.is_open),
        low_stock_count=sum(1 for p in products if is_low_stock(p, low_stock_ratio)),
        items_available=sum(p.available_quantity for p in products),
        items_rented=sum(p.rented_quantity for p in products),
    )


def _bucket(day: date, timeframe: str) -> tuple[str, str]:
    if timeframe == "weekly":
        # weeks start on Sunday
        start = day - timedelta(days=(day.weekday() + 1) % 7)
        return start.isoformat(), f"Week of {start.strftime('%d %b %Y')}"
    if timeframe == "monthly":
        return day.strftime("%Y-%m"), day.strftime("%b %Y")
    return day.isoformat(), day.strftime("%d %b %Y")


def revenue_series(
    invoices: Iterable[Invoice],
    timeframe: str = "daily",
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> List[RevenuePoint]:
    """
    Invoice revenue and order count per day / week (Sunday start) / month,
    oldest bucket first. "custom" buckets by day; date_from / date_to
    (inclusive) narrow any timeframe.
    """
    tf = (timeframe or "daily").lower()
    if tf not in TIMEFRAMES:
        raise ValueError("timeframe must be one of: " + ", ".join(TIMEFRAMES))
    lo = parse_date(date_from).date() if date_from else None
    hi = parse_date(date_to).date() if date_to else None

    acc: Dict[str, list] = {}
    for inv in invoices:
        day = parse_date(inv.date).date()
        if (lo and day < lo) or (hi and day > hi):
            continue
        key, label = _bucket(day, tf)
        slot = acc.setdefault(key, [label, 0.0, 0])
        slot[1] += inv.total_amount
        slot[2] += 1
    return [
        RevenuePoint(key=k, label=v[0], revenue=float(v[1]), orders=v[2])
        for k, v in sorted(acc.items())
    ]


def debtors(customers: Iterable[Customer]) -> tuple[List[Customer], float]:
    """Customers who owe money (largest first) and the total receivable."""
    owing = sorted(
        (c for c in customers if (c.total_debt or 0.0) > 0),
        key=lambda c: c.total_debt,
        reverse=True,
    )
    return owing, float(sum(c.total_debt for c in owing))


def open_rentals_by_customer(rentals: Iterable[Rental]) -> List[OpenRentalRow]:
    """One row per customer with something out, in first-seen order."""
    rows: Dict[int, dict] = {}
    for r in rentals:
        if not r.is_open:
            continue
        row = rows.setdefault(
            r.customer_id,
            {"customer_name": r.customer_name, "ids": [], "items": 0, "advance": 0.0},
        )
        row["ids"].append(r.rental_id)
        row["items"] += r.outstanding_quantity
        row["advance"] += float(r.advance_payment or 0.0)
    return [
        OpenRentalRow(
            customer_id=cid,
            customer_name=row["customer_name"],
            rental_ids=tuple(row["ids"]),
            items_out=row["items"],
            advance_held=row["advance"],
        )
        for cid, row in rows.items()
    ]


# --------------------------- Dashboard Model ---------------------------

@dataclass
class DashboardModel:
    """
    Loads the store state and exposes the figures for the dashboard view.

    Usage:
        model = DashboardModel(conn)
        model.refresh(timeframe="weekly")
        print(model.kpis.total_revenue, model.revenue)
    """

    conn: sqlite3.Connection
    kpis: Optional[Summary] = field(init=False, default=None)
    revenue: List[RevenuePoint] = field(init=False, default_factory=list)
    debtor_rows: List[Customer] = field(init=False, default_factory=list)
    total_receivable: float = field(init=False, default=0.0)
    open_rentals: List[OpenRentalRow] = field(init=False, default_factory=list)
    low_stock: List[Product] = field(init=False, default_factory=list)

    def refresh(
        self,
        timeframe: str = "daily",
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> None:
        products = ProductsRepo(self.conn).list_products()
        customers = CustomersRepo(self.conn).list_customers()
        rentals = RentalsRepo(self.conn).list_rentals()

        self.kpis = summary(products, customers, rentals)
        self.revenue = revenue_series(
            InvoicesRepo(self.conn).list_invoices(), timeframe, date_from, date_to
        )
        self.debtor_rows, self.total_receivable = debtors(customers)
        self.open_rentals = open_rentals_by_customer(rentals)
        self.low_stock = [p for p in products if is_low_stock(p)]
