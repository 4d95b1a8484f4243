from __future__ import annotations


# Domain-level error the controller can surface directly (e.g., toast/snackbar)
class DomainError(Exception):
    pass


class InsufficientStockError(DomainError):
    def __init__(self, product_name: str, requested: int, available: int):
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Only {available} x {product_name} available; {requested} requested."
        )


class InvalidTransitionError(DomainError):
    pass
