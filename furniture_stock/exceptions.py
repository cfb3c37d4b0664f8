"""
Typed exceptions for the stock ledger.

Every error carries a machine readable ``code`` so callers (the HTTP layer,
scripts, tests) can branch on the type instead of parsing messages.

    InventoryError
    +-- InvalidInputError
    +-- NotFoundError
    |   +-- ProductNotFoundError
    +-- InvariantViolationError
    |   +-- NegativeStockError
    |   +-- DuplicateCodeError
    +-- StockConflictError          (retryable)
    +-- CodeAllocationError         (retryable)
"""


class InventoryError(Exception):
    """Base class for all domain errors."""

    code: str = "INVENTORY_ERROR"
    retryable: bool = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInputError(InventoryError):
    """Malformed id, zero or non-integer delta, bad date string, missing field."""

    code = "INVALID_INPUT"


class NotFoundError(InventoryError):
    code = "NOT_FOUND"


class ProductNotFoundError(NotFoundError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id=None, code=None):
        self.product_id = product_id
        self.product_code = code
        key = f"code {code}" if code is not None else f"id {product_id}"
        super().__init__(f"Product not found ({key})")


class InvariantViolationError(InventoryError):
    code = "INVARIANT_VIOLATION"


class NegativeStockError(InvariantViolationError):
    """The delta would take stock below zero; stock is left unchanged."""

    code = "NEGATIVE_STOCK"

    def __init__(self, product_id: int, current_stock: int, delta: int):
        self.product_id = product_id
        self.current_stock = current_stock
        self.delta = delta
        super().__init__(
            f"Stock cannot be negative: product {product_id} has {current_stock}, change {delta}"
        )


class DuplicateCodeError(InvariantViolationError):
    code = "DUPLICATE_CODE"

    def __init__(self, product_code: str):
        self.product_code = product_code
        super().__init__(f"Product code already exists: {product_code}")


class StockConflictError(InventoryError):
    """Concurrent writes kept conflicting; safe to retry the whole request."""

    code = "STOCK_CONFLICT"
    retryable = True

    def __init__(self, product_id: int, attempts: int):
        self.product_id = product_id
        self.attempts = attempts
        super().__init__(
            f"Stock update for product {product_id} conflicted {attempts} times, retry later"
        )


class CodeAllocationError(InventoryError):
    """Not even a fallback code could be reserved; the storage is contended or down."""

    code = "CODE_ALLOCATION_FAILED"
    retryable = True

    def __init__(self, prefix: str, attempts: int):
        self.prefix = prefix
        self.attempts = attempts
        super().__init__(f"Could not reserve a {prefix} code after {attempts} attempts, retry later")
