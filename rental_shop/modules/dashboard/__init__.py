"""
Dashboard module package exports.
"""

from .model import DashboardModel, debtors, open_rentals_by_customer, revenue_series, summary

__all__ = [
    "DashboardModel",
    "debtors",
    "open_rentals_by_customer",
    "revenue_series",
    "summary",
]
