# furniture_stock/routes/products.py
from typing import Optional, List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from furniture_stock.config import settings
from furniture_stock.database import get_db
from furniture_stock.exceptions import InventoryError, NegativeStockError
from furniture_stock.models.product import Product
from furniture_stock.services.catalog import ProductCatalog
from furniture_stock.services.code_allocator import CodeAllocator
from furniture_stock.utils.audit import write_log
from furniture_stock.utils.deps import get_allocator, get_catalog
from furniture_stock.utils.errors import http_error
import furniture_stock.schemas.product as product_schemas
import furniture_stock.schemas.stock as stock_schemas

router = APIRouter(prefix="/products", tags=["Products"])


# ---- HELPERS ----
def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None

def _out(p: Product) -> product_schemas.ProductResponse:
    return product_schemas.ProductResponse.model_validate(p)


# =========================
# LISTA PRODUKTÓW
# =========================
@router.get("", response_model=product_schemas.ProductListPage)
def list_products(
    q: Optional[str] = Query(None, description="Search by name or code"),
    category: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    catalog: ProductCatalog = Depends(get_catalog),
):
    items, total = catalog.list_products(page=page, limit=limit, q=q, category=category)
    return {"items": [_out(p) for p in items], "total": total, "page": page, "limit": limit}


# =========================
# DODAWANIE PRODUKTU
# =========================
@router.post("", response_model=product_schemas.ProductResponse, status_code=201)
def create_product(
    payload: product_schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    catalog: ProductCatalog = Depends(get_catalog),
):
    try:
        product = catalog.create_product(payload)
    except InventoryError as e:
        raise http_error(e)

    write_log(
        db, action="PRODUCT_CREATE", resource="products", ip=_client_ip(request),
        meta={"id": product.id, "code": product.code},
    )
    return _out(product)


@router.post("/bulk/create", response_model=product_schemas.BulkCreateResponse)
def bulk_create_products(
    payload: List[product_schemas.ProductCreate],
    request: Request,
    db: Session = Depends(get_db),
    catalog: ProductCatalog = Depends(get_catalog),
):
    try:
        created = catalog.bulk_create(payload)
    except InventoryError as e:
        raise http_error(e)

    write_log(
        db, action="PRODUCT_BULK_CREATE", resource="products", ip=_client_ip(request),
        meta={"count": len(created), "codes": [p.code for p in created]},
    )
    return {"count": len(created), "items": [_out(p) for p in created]}


# =========================
# ENDPOINTY POMOCNICZE
# =========================
@router.get("/next-code", response_model=product_schemas.NextCodeResponse)
def next_code(
    prefix: Optional[str] = Query(None, description=f"Defaults to {settings.CODE_PREFIX}"),
    allocator: CodeAllocator = Depends(get_allocator),
):
    """Reserve and return the next free product code."""
    try:
        return {"code": allocator.allocate(prefix)}
    except InventoryError as e:
        raise http_error(e)


@router.get("/code/{code}", response_model=product_schemas.ProductResponse)
@router.get("/barcode/{code}", response_model=product_schemas.ProductResponse)
def get_product_by_code(code: str, catalog: ProductCatalog = Depends(get_catalog)):
    try:
        return _out(catalog.get_by_code(code))
    except InventoryError as e:
        raise http_error(e)


@router.get("/search/{query}", response_model=List[product_schemas.ProductResponse])
def search_products(query: str, catalog: ProductCatalog = Depends(get_catalog)):
    return [_out(p) for p in catalog.search(query)]


@router.get("/category/{category}", response_model=List[product_schemas.ProductResponse])
def products_by_category(category: str, catalog: ProductCatalog = Depends(get_catalog)):
    return [_out(p) for p in catalog.by_category(category)]


@router.get("/low-stock", response_model=product_schemas.LowStockResponse)
@router.get("/low-stock/alerts", response_model=product_schemas.LowStockResponse)
def low_stock_products(
    threshold: int = Query(settings.LOW_STOCK_THRESHOLD, ge=0, description="Stock threshold (<=)"),
    catalog: ProductCatalog = Depends(get_catalog),
):
    products = catalog.low_stock(threshold)
    return {"threshold": threshold, "count": len(products), "products": [_out(p) for p in products]}


# =========================
# POJEDYNCZY PRODUKT
# =========================
@router.get("/{product_id}", response_model=product_schemas.ProductResponse)
def get_product(product_id: int, catalog: ProductCatalog = Depends(get_catalog)):
    try:
        return _out(catalog.get_product(product_id))
    except InventoryError as e:
        raise http_error(e)


@router.put("/{product_id}", response_model=product_schemas.ProductResponse)
def update_product(
    product_id: int,
    payload: product_schemas.ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    catalog: ProductCatalog = Depends(get_catalog),
):
    try:
        product = catalog.update_product(product_id, payload)
    except InventoryError as e:
        raise http_error(e)

    write_log(
        db, action="PRODUCT_UPDATE", resource="products", ip=_client_ip(request),
        meta={"id": product.id, "fields": sorted(payload.model_dump(exclude_unset=True))},
    )
    return _out(product)


@router.delete("/{product_id}")
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    catalog: ProductCatalog = Depends(get_catalog),
):
    try:
        product = catalog.delete_product(product_id)
    except InventoryError as e:
        raise http_error(e)

    write_log(
        db, action="PRODUCT_DELETE", resource="products", ip=_client_ip(request),
        meta={"id": product_id, "code": product.code},
    )
    return {"detail": f"Product '{product.name}' deleted"}


# =========================
# STAN MAGAZYNOWY
# =========================
@router.patch("/{product_id}/stock", response_model=stock_schemas.StockChangeResponse)
def update_product_stock(
    product_id: int,
    payload: stock_schemas.StockChangeRequest,
    request: Request,
    db: Session = Depends(get_db),
    catalog: ProductCatalog = Depends(get_catalog),
):
    return apply_stock_change(db, catalog, request, product_id, payload)


@router.get("/{product_id}/stock-history", response_model=List[stock_schemas.StockAdjustmentResponse])
def product_stock_history(
    product_id: int,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    catalog: ProductCatalog = Depends(get_catalog),
):
    try:
        history = catalog.stock_history(product_id, limit=limit)
    except InventoryError as e:
        raise http_error(e)
    return [stock_schemas.StockAdjustmentResponse.model_validate(a) for a in history]


def apply_stock_change(
    db: Session,
    catalog: ProductCatalog,
    request: Request,
    product_id: int,
    payload: stock_schemas.StockChangeRequest,
) -> stock_schemas.StockChangeResponse:
    """Shared by PATCH /products/{id}/stock and POST /stock/adjust."""
    try:
        change = catalog.apply_stock_delta(product_id, payload.change, payload.reason, payload.note)
    except NegativeStockError as e:
        write_log(
            db, action="STOCK_ADJUSTMENT", resource="stock", status="FAIL", ip=_client_ip(request),
            meta={"product_id": product_id, "change": payload.change, "stock": e.current_stock},
        )
        raise http_error(e)
    except InventoryError as e:
        raise http_error(e)

    adjustment = stock_schemas.StockAdjustmentResponse.model_validate(change.adjustment)
    write_log(
        db, action="STOCK_ADJUSTMENT", resource="stock", ip=_client_ip(request),
        meta={"product_id": product_id, "change": payload.change, "new_stock": change.new_stock},
    )
    return stock_schemas.StockChangeResponse(
        new_stock=change.new_stock,
        product=_out(change.product),
        adjustment=adjustment,
    )
