from __future__ import annotations

from typing import Dict, Iterable, Mapping, Tuple, Union

from ...utils.validators import whole_quantity

QuantityInput = Union[Mapping[int, int], Iterable[Tuple[int, int]]]


def collect_quantities(lines: QuantityInput) -> Dict[int, int]:
    """
    Normalize {product_id: qty} or [(product_id, qty), ...] into an ordered
    dict. Repeated product ids are summed; non-positive quantities are dropped.
    """
    pairs = lines.items() if isinstance(lines, Mapping) else lines
    out: Dict[int, int] = {}
    for product_id, qty in pairs:
        q = whole_quantity(qty)
        if q <= 0:
            continue
        pid = int(product_id)
        out[pid] = out.get(pid, 0) + q
    return out
