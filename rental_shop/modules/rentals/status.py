from __future__ import annotations

from typing import Optional

from ...constants import (
    OPEN_STATUSES,
    RENTAL_STATUSES,
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    STATUS_OVERDUE,
    STATUS_PARTIAL,
)
from .errors import InvalidTransitionError

# ---------- Canonical set & order ----------
STATE_ORDER: dict[str, int] = {s: i for i, s in enumerate(RENTAL_STATUSES)}

# ---------- Descriptions (UI copy / tooltips) ----------
DESCRIPTIONS = {
    STATUS_ACTIVE:    "Items are out with the customer.",
    STATUS_PARTIAL:   "Some items have come back; the rest are still out.",
    STATUS_OVERDUE:   "Items are still out past the expected return date.",
    STATUS_COMPLETED: "Everything has been returned and billed.",
}

# (Optional) style tokens the UI can map to colors
STYLES = {
    STATUS_ACTIVE:    {"badge": "info",    "fg": "#1E40AF", "bg": "#DBEAFE"},
    STATUS_PARTIAL:   {"badge": "warning", "fg": "#9A3412", "bg": "#FFEDD5"},
    STATUS_OVERDUE:   {"badge": "danger",  "fg": "#991B1B", "bg": "#FEE2E2"},
    STATUS_COMPLETED: {"badge": "neutral", "fg": "#1F2937", "bg": "#F3F4F6"},
}

_BY_KEY = {s.lower().replace(" ", ""): s for s in RENTAL_STATUSES}
_BY_KEY["partial"] = STATUS_PARTIAL


# ---------- API ----------

def normalize(status: Optional[str]) -> Optional[str]:
    """Map 'active', 'PARTIAL RETURN', 'partial' ... to the canonical label; None if unknown."""
    if status is None:
        return None
    key = str(status).strip().lower().replace(" ", "").replace("_", "")
    return _BY_KEY.get(key)


def is_valid(status: Optional[str]) -> bool:
    return normalize(status) is not None


def ensure_valid(status: str) -> str:
    s = normalize(status)
    if s is None:
        raise InvalidTransitionError(
            "status must be one of: " + ", ".join(RENTAL_STATUSES)
        )
    return s


def is_open(status: str) -> bool:
    return normalize(status) in OPEN_STATUSES


def description(status: str) -> str:
    return DESCRIPTIONS.get(normalize(status) or "", "")


def style_tokens(status: str) -> dict:
    return STYLES.get(normalize(status) or "", STYLES[STATUS_COMPLETED])


def sort_key(status: str) -> int:
    """Open states first, then completed; unknown states last."""
    return STATE_ORDER.get(normalize(status) or "", 999)


def after_return(current: str, items_left: int) -> str:
    """
    Status of a rental once a return has been applied.

    Nothing left out -> Completed. Otherwise the rental keeps its state
    (an Active rental stays Active; an Overdue one stays Overdue).
    """
    if items_left <= 0:
        return STATUS_COMPLETED
    return current


def check_transition(current: str, target: str) -> str:
    """
    Validate a manual status change. Completed rentals are closed for good;
    a new order after completion starts a new rental instead.
    """
    cur = ensure_valid(current)
    new = ensure_valid(target)
    if cur == STATUS_COMPLETED and new != STATUS_COMPLETED:
        raise InvalidTransitionError("A completed rental cannot be reopened.")
    return new
