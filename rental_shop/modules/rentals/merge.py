"""
New orders: stock reservation and merging into the customer's open rental.

A customer holds at most one open rental. A second order while one is open
is folded into it; otherwise the order becomes a new rental.
"""
from __future__ import annotations

from dataclasses import replace
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ...database.repositories.products_repo import Product
from ...database.repositories.rentals_repo import Rental, RentalItem
from .errors import DomainError, InsufficientStockError
from .quantities import QuantityInput, collect_quantities

_log = logging.getLogger(__name__)

Catalog = Mapping[int, Product]


def build_items(selected: QuantityInput, catalog: Catalog) -> List[RentalItem]:
    """
    Turn selected (product_id, qty) pairs into rental lines, snapshotting the
    product name, image and current rate. The rate stays locked on the line
    even if the catalog price changes later.
    """
    items: List[RentalItem] = []
    for product_id, qty in collect_quantities(selected).items():
        product = catalog.get(product_id)
        if product is None:
            raise DomainError(f"Product {product_id} does not exist.")
        items.append(
            RentalItem(
                product_id=product_id,
                product_name=product.name,
                quantity=qty,
                unit_price=float(product.rate),
                product_image=product.image,
            )
        )
    return items


def check_stock(items: Iterable[RentalItem], catalog: Catalog) -> None:
    """Reject an order that asks for more pieces than are on the shelf."""
    wanted = collect_quantities((it.product_id, it.quantity) for it in items)
    for product_id, qty in wanted.items():
        product = catalog.get(product_id)
        if product is None:
            raise DomainError(f"Product {product_id} does not exist.")
        if qty > product.available_quantity:
            raise InsufficientStockError(product.name, qty, product.available_quantity)


def reserve_stock(catalog: Catalog, items: Iterable[RentalItem]) -> Dict[int, Product]:
    """
    Return a new catalog with available_quantity reduced by the ordered
    quantities. Products not referenced by the order are passed through.
    """
    out = dict(catalog)
    for it in items:
        product = out.get(it.product_id)
        if product is None:
            continue
        out[it.product_id] = replace(
            product, available_quantity=product.available_quantity - it.quantity
        )
    return out


def find_open_rental(rentals: Iterable[Rental], customer_id: int) -> Optional[Rental]:
    matches = [r for r in rentals if r.customer_id == customer_id and r.is_open]
    if len(matches) > 1:
        raise DomainError(
            f"Customer {customer_id} has {len(matches)} open rentals; expected at most one."
        )
    return matches[0] if matches else None


def merge_into(existing: Rental, new_order: Rental) -> Rental:
    """
    Fold a new order into an open rental.

    Advance payments accumulate. A product already on the rental has its
    quantity increased and keeps its original unit price; new products are
    appended. start_date is not touched.
    """
    items = [replace(it) for it in existing.items]
    index = {it.product_id: pos for pos, it in enumerate(items)}
    for incoming in new_order.items:
        pos = index.get(incoming.product_id)
        if pos is None:
            index[incoming.product_id] = len(items)
            items.append(replace(incoming))
        else:
            items[pos].quantity += incoming.quantity

    return replace(
        existing,
        items=items,
        advance_payment=float(existing.advance_payment or 0.0) + float(new_order.advance_payment or 0.0),
        invoices=list(existing.invoices),
    )


def add_rental(
    new_order: Rental,
    existing_rentals: List[Rental],
    catalog: Catalog,
    *,
    check_capacity: bool = True,
) -> Tuple[List[Rental], Dict[int, Product]]:
    """
    Book a new order.

    Returns (rentals, catalog): the rental collection with the order merged
    into the customer's open rental or prepended as a new one, and the catalog
    with stock reserved. Inputs are left untouched.
    """
    if check_capacity:
        check_stock(new_order.items, catalog)
    updated_catalog = reserve_stock(catalog, new_order.items)

    target = find_open_rental(existing_rentals, new_order.customer_id)
    if target is None:
        fresh = replace(new_order, items=[replace(it) for it in new_order.items], invoices=[])
        _log.info("rental %s opened for customer %s", fresh.rental_id, fresh.customer_id)
        return [fresh, *existing_rentals], updated_catalog

    merged = merge_into(target, new_order)
    _log.info(
        "order for customer %s merged into rental %s", new_order.customer_id, target.rental_id
    )
    rentals = [merged if r is target else r for r in existing_rentals]
    return rentals, updated_catalog
