"""
JSON-lines audit trail for snapshot export and import.

Each line records one phase of an operation, for example:

    {"ts": "2025-01-04T09:12:44.120Z", "level": "INFO", "op": "import",
     "phase": "done", "msg": "Snapshot restored", "rentals": 12}
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

from ...config import BASE_DIR

__all__ = ["get_logger", "log_event"]

AUDIT_LOGGER = "rental_shop.backup_restore"
AUDIT_FILE = BASE_DIR / "logs" / "backup_restore.log"


class _AuditFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        line: dict[str, Any] = {
            "ts": stamp.strftime("%Y-%m-%dT%H:%M:%S.") + f"{stamp.microsecond // 1000:03d}Z",
            "level": record.levelname,
        }
        line.update(getattr(record, "audit", None) or {})
        line["msg"] = record.getMessage()
        return json.dumps(line, ensure_ascii=False, default=str)


def _audit_handler(target: Path) -> logging.Handler:
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(target, mode="a", encoding="utf-8", delay=True)
    except OSError:
        # install dir not writable
        return logging.StreamHandler()


def get_logger(file_path: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """Audit logger; the handler is attached once per process."""
    logger = logging.getLogger(AUDIT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False
    if not logger.handlers:
        handler = _audit_handler(Path(file_path) if file_path else AUDIT_FILE)
        handler.setFormatter(_AuditFormatter())
        logger.addHandler(handler)
    return logger


def log_event(
    logger: logging.Logger,
    op: str,
    phase: str,
    message: str,
    extra: Mapping[str, object] | None = None,
    level: int = logging.INFO,
) -> None:
    """
    Write one audit line. ``op`` is "export" or "import"; ``phase`` is one of
    "start", "load" or "done". Keys in ``extra`` never replace op/phase.
    """
    fields = dict(extra or {})
    fields.update(op=op, phase=phase)
    logger.log(level, message, extra={"audit": fields})
