# utils/helpers.py
import logging
import re
from datetime import date
from typing import Optional, Union

NumberLike = Union[float, int, str]

_log = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def fmt_money(
    v: NumberLike,
    places: int = 2,
    *,
    strict: bool = False,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals.

    Behavior on parse failure:
      - By default (strict=False, sentinel=None), returns str(v).
      - If `sentinel` is provided (e.g., "N/A"), returns that sentinel instead.
      - If `strict=True`, raises ValueError on parse failures.
    """
    try:
        x = float(v)
    except (TypeError, ValueError) as e:
        _log.debug("fmt_money: failed to parse %r as float: %s", v, e)
        if strict:
            raise ValueError(f"Could not parse {v!r} as a number.") from e
        return str(sentinel) if sentinel is not None else str(v)
    return f"{x:,.{places}f}"


def format_sequence_id(value: int, width: int = 2) -> str:
    """Zero-pad a sequence number to at least `width` digits ('07', '42', '105')."""
    return str(int(value)).zfill(width)


def format_phone(value: Optional[str]) -> str:
    """
    Normalize a mobile number to 03XX-XXXXXXX.

    Non-digits are dropped; anything past 11 digits is cut off.
    """
    digits = _NON_DIGITS.sub("", value or "")
    if len(digits) <= 4:
        return digits
    return f"{digits[:4]}-{digits[4:11]}"


def format_cnic(value: Optional[str]) -> str:
    """Normalize a national identity number to XXXXX-XXXXXXX-X."""
    digits = _NON_DIGITS.sub("", value or "")
    if len(digits) <= 5:
        return digits
    if len(digits) <= 12:
        return f"{digits[:5]}-{digits[5:]}"
    return f"{digits[:5]}-{digits[5:12]}-{digits[12:13]}"


_UPPER = re.compile(r"(?<=[a-z0-9])([A-Z])")


def camel_keys(data: dict) -> dict:
    """Top-level keys snake_case -> camelCase ('balance_due' -> 'balanceDue')."""
    out = {}
    for key, value in data.items():
        head, *rest = key.split("_")
        out[head + "".join(p.capitalize() for p in rest)] = value
    return out


def snake_keys(data: dict) -> dict:
    """Inverse of camel_keys; snake_case keys pass through unchanged."""
    return {_UPPER.sub(r"_\1", key).lower(): value for key, value in data.items()}
