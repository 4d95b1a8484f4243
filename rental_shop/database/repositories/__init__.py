# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from rental_shop.database.repositories import (
        # Customers
        CustomersRepo, Customer, CustomersDomainError,
        # Invoices
        InvoicesRepo, Invoice, InvoiceLine,
        # Products
        ProductsRepo, Product, ProductsDomainError,
        # Rentals
        RentalsRepo, Rental, RentalItem,
        # Counters / settings
        SequencesRepo, SettingsRepo, AppSettings,
    )
"""

# ---------------- Customers ----------------
from .customers_repo import (
    CustomersRepo,
    Customer,
    DomainError as CustomersDomainError,
)

# ---------------- Invoices -----------------
from .invoices_repo import InvoicesRepo, Invoice, InvoiceLine

# ---------------- Products -----------------
from .products_repo import (
    ProductsRepo,
    Product,
    DomainError as ProductsDomainError,
)

# ---------------- Rentals ------------------
from .rentals_repo import RentalsRepo, Rental, RentalItem

# ------------- Counters / settings ---------
from .sequences_repo import SequencesRepo
from .settings_repo import (
    SettingsRepo,
    AppSettings,
    DomainError as SettingsDomainError,
)

__all__ = [
    # customers_repo
    "CustomersRepo",
    "Customer",
    "CustomersDomainError",
    # invoices_repo
    "InvoicesRepo",
    "Invoice",
    "InvoiceLine",
    # products_repo
    "ProductsRepo",
    "Product",
    "ProductsDomainError",
    # rentals_repo
    "RentalsRepo",
    "Rental",
    "RentalItem",
    # sequences / settings
    "SequencesRepo",
    "SettingsRepo",
    "AppSettings",
    "SettingsDomainError",
]
