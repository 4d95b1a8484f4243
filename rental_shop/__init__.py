"""Rental shop management: inventory, customers, rentals, invoicing and credit."""

__version__ = "1.0.0"
