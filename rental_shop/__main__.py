"""
Housekeeping commands for the rental shop database.

    python -m rental_shop [--db PATH] init
    python -m rental_shop [--db PATH] overdue [--today YYYY-MM-DD]
    python -m rental_shop [--db PATH] summary
    python -m rental_shop [--db PATH] export FILE
    python -m rental_shop [--db PATH] import FILE
"""
from __future__ import annotations

import argparse
import sys

from .config import DB_PATH
from .database import get_connection
from .modules.backup_restore import SnapshotError, export_snapshot, import_snapshot
from .modules.dashboard.model import DashboardModel
from .modules.rentals.errors import DomainError
from .modules.rentals.service import RentalService
from .utils.helpers import fmt_money
from .utils.loggers import get_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rental_shop", description="Rental shop database tools")
    parser.add_argument("--db", default=None, help=f"Path to SQLite DB (default: {DB_PATH})")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create / upgrade the schema and seed defaults")

    overdue = sub.add_parser("overdue", help="Flag open rentals past their expected return date")
    overdue.add_argument("--today", default=None, help="Reference date (default: today)")

    sub.add_parser("summary", help="Print headline figures")

    exp = sub.add_parser("export", help="Write a JSON snapshot")
    exp.add_argument("file")

    imp = sub.add_parser("import", help="Replace all data with a JSON snapshot")
    imp.add_argument("file")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    log = get_logger()
    conn = get_connection(args.db)
    try:
        if args.command == "init":
            log.info("database ready")
        elif args.command == "overdue":
            try:
                changed = RentalService(conn).mark_overdue(args.today)
            except DomainError as e:
                log.error("%s", e)
                return 1
            log.info("%d rental(s) marked overdue", len(changed))
        elif args.command == "summary":
            model = DashboardModel(conn)
            model.refresh()
            k = model.kpis
            print(f"Revenue:      PKR {fmt_money(k.total_revenue)}")
            print(f"Receivable:   PKR {fmt_money(k.total_receivable)}")
            print(f"Open rentals: {k.open_rentals}")
            print(f"Low stock:    {k.low_stock_count}")
            print(f"Pieces out:   {k.items_rented} (on shelf {k.items_available})")
        elif args.command == "export":
            counts = export_snapshot(conn, args.file)
            log.info("exported %s", counts)
        elif args.command == "import":
            try:
                counts = import_snapshot(conn, args.file)
            except SnapshotError as e:
                log.error("%s", e)
                return 1
            log.info("imported %s", counts)
    finally:
        conn.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
