# utils/validators.py
"""Parsing helpers for values typed at the counter (names, amounts, piece counts)."""


def non_empty(text) -> bool:
    return bool(text and str(text).strip())


def try_parse_float(x):
    """(True, value) when ``x`` reads as a number, else (False, None)."""
    try:
        return True, float(x)
    except (TypeError, ValueError):
        return False, None


def parse_float(x) -> float:
    ok, val = try_parse_float(x)
    if not ok:
        raise ValueError(f"'{x}' is not a number.")
    return val  # type: ignore[return-value]


def is_strictly_positive_number(x) -> bool:
    ok, val = try_parse_float(x)
    return ok and val > 0


def non_negative_amount(x, field_label: str = "Amount") -> float:
    """Money entered for a payment or discount; must be zero or more."""
    val = parse_float(x)
    if val < 0:
        raise ValueError(f"{field_label} cannot be negative.")
    return val


def whole_quantity(x) -> int:
    """Piece count: fractions truncate toward zero, negatives clamp to 0."""
    return max(int(parse_float(x)), 0)
