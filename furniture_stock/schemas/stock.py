# furniture_stock/schemas/stock.py
from datetime import datetime
from typing import List, Optional

from furniture_stock.schemas.product import CamelModel, ProductResponse


# Body of PATCH /products/{id}/stock
class StockChangeRequest(CamelModel):
    change: int
    reason: Optional[str] = None
    note: Optional[str] = None


# Body of POST /stock/adjust
class StockAdjustRequest(StockChangeRequest):
    product_id: int


# One row of the adjustment history
class StockAdjustmentResponse(CamelModel):
    id: int
    product_id: int
    delta: int
    reason: str
    note: str
    stock_after: int
    created_at: datetime
    product_name: Optional[str] = None
    product_code: Optional[str] = None


class StockChangeResponse(CamelModel):
    message: str = "Stock updated"
    new_stock: int
    product: ProductResponse
    adjustment: StockAdjustmentResponse


# Paginated adjustment history
class StockAdjustmentPage(CamelModel):
    items: List[StockAdjustmentResponse]
    total: int
    page: int
    page_size: int
