# furniture_stock/routes/stock.py
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Optional

from furniture_stock.database import get_db
from furniture_stock.routes.products import apply_stock_change
from furniture_stock.services.catalog import ProductCatalog
from furniture_stock.utils.deps import get_catalog
import furniture_stock.schemas.stock as stock_schemas

router = APIRouter(prefix="/stock", tags=["Stock"])


@router.get("", response_model=stock_schemas.StockAdjustmentPage)
def list_adjustments(
    product_id: Optional[int] = Query(None, alias="productId"),
    reason: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100, alias="pageSize"),
    catalog: ProductCatalog = Depends(get_catalog),
):
    items, total = catalog.list_adjustments(
        product_id=product_id, reason=reason, page=page, page_size=page_size
    )

    results = []
    for a in items:
        row = stock_schemas.StockAdjustmentResponse.model_validate(a)
        # The product may have been renamed since; show the current values
        row.product_name = a.product.name if a.product else None
        row.product_code = a.product.code if a.product else None
        results.append(row)

    return {"items": results, "total": total, "page": page, "page_size": page_size}


@router.post("/adjust", response_model=stock_schemas.StockChangeResponse)
def adjust_stock(
    payload: stock_schemas.StockAdjustRequest,
    request: Request,
    db: Session = Depends(get_db),
    catalog: ProductCatalog = Depends(get_catalog),
):
    return apply_stock_change(db, catalog, request, payload.product_id, payload)
