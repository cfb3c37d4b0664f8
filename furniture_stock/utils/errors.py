# furniture_stock/utils/errors.py
from fastapi import HTTPException

from furniture_stock.exceptions import (
    CodeAllocationError,
    DuplicateCodeError,
    InvalidInputError,
    InventoryError,
    NegativeStockError,
    NotFoundError,
    StockConflictError,
)

# Most specific classes first
_STATUS = (
    (NegativeStockError, 400),
    (DuplicateCodeError, 409),
    (InvalidInputError, 400),
    (NotFoundError, 404),
    (StockConflictError, 503),
    (CodeAllocationError, 503),
)


def http_error(exc: InventoryError) -> HTTPException:
    """Translate a domain error into the HTTPException the route raises."""
    status_code = 500
    for cls, code in _STATUS:
        if isinstance(exc, cls):
            status_code = code
            break

    headers = {"Retry-After": "1"} if exc.retryable else None
    return HTTPException(
        status_code=status_code,
        detail={"code": exc.code, "message": exc.message},
        headers=headers,
    )
