"""
Backup & Restore module package.

JSON snapshots of the store (catalog, customers, rentals with invoices,
settings) for moving data between installs.
"""

from __future__ import annotations

from .service import SnapshotError, export_snapshot, import_snapshot

MODULE_TITLE: str = "Backup & Restore"
__all__ = ["MODULE_TITLE", "SnapshotError", "export_snapshot", "import_snapshot"]
