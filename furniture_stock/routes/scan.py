# furniture_stock/routes/scan.py
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Optional, List

from furniture_stock.database import get_db
from furniture_stock.exceptions import InventoryError
from furniture_stock.schemas.product import ProductResponse
from furniture_stock.services.catalog import ProductCatalog
from furniture_stock.services.scan_log import ScanEventLog, ScanFilter
from furniture_stock.utils.audit import write_log
from furniture_stock.utils.deps import get_catalog, get_scan_log
from furniture_stock.utils.errors import http_error
import furniture_stock.schemas.scan as scan_schemas

router = APIRouter(prefix="/scan", tags=["Scan"])


@router.post("", response_model=scan_schemas.ScanSaved, status_code=201)
def record_scan(
    payload: scan_schemas.ScanCreate,
    request: Request,
    db: Session = Depends(get_db),
    scan_log: ScanEventLog = Depends(get_scan_log),
):
    try:
        scan, new_stock = scan_log.append(payload)
    except InventoryError as e:
        raise http_error(e)

    saved = scan_schemas.ScanSaved(
        scan=scan_schemas.ScanResponse.model_validate(scan),
        new_stock=new_stock,
    )
    write_log(
        db, action="SCAN", resource="scan",
        ip=request.client.host if request.client else None,
        meta={"code": saved.scan.code, "type": saved.scan.scan_type.value, "qty": saved.scan.quantity},
    )
    return saved


@router.get("/recent", response_model=List[scan_schemas.ScanResponse])
def recent_scans(
    limit: int = Query(10, ge=1, le=100),
    scan_log: ScanEventLog = Depends(get_scan_log),
):
    return [scan_schemas.ScanResponse.model_validate(s) for s in scan_log.query(limit=limit)]


@router.get("/history", response_model=scan_schemas.ScanPage)
def scan_history(
    date_from: Optional[str] = Query(None, alias="from", description="YYYY-MM-DD or ISO datetime"),
    date_to: Optional[str] = Query(None, alias="to", description="YYYY-MM-DD covers the whole day"),
    code: Optional[str] = Query(None),
    scan_type: Optional[str] = Query(None, alias="scanType"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    scan_log: ScanEventLog = Depends(get_scan_log),
):
    try:
        scan_filter = ScanFilter.from_params(
            scan_type=scan_type, code=code, date_from=date_from, date_to=date_to
        )
    except InventoryError as e:
        raise http_error(e)

    total = scan_log.count(scan_filter)
    items = scan_log.query(scan_filter, limit=page_size, offset=(page - 1) * page_size)
    return {
        "items": [scan_schemas.ScanResponse.model_validate(s) for s in items],
        "total": total,
        "page": page,
        "page_size": page_size,
    }


# Static routes (recent, history) stay above this one
@router.get("/{code}", response_model=ProductResponse)
def product_for_scanned_code(code: str, catalog: ProductCatalog = Depends(get_catalog)):
    try:
        return ProductResponse.model_validate(catalog.get_by_code(code))
    except InventoryError as e:
        raise http_error(e)
