# furniture_stock/routes/logs.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional, Any
from datetime import datetime

from furniture_stock.database import get_db
from furniture_stock.exceptions import InventoryError
from furniture_stock.models.log import Log
from furniture_stock.schemas.product import CamelModel
from furniture_stock.utils.dates import parse_date_bound
from furniture_stock.utils.errors import http_error

router = APIRouter(prefix="/logs", tags=["Logs"])

# --- SCHEMATY ---
class LogResponse(CamelModel):
    id: int
    action: str
    resource: str
    status: str
    ip: Optional[str] = None
    ts: Optional[datetime] = None
    meta: Optional[Any] = None

class LogPage(CamelModel):
    items: List[LogResponse]
    total: int
    page: int
    page_size: int

# --- ENDPOINT ---
@router.get("", response_model=LogPage)
def get_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    action: Optional[str] = Query(None, description="Filter by action"),
    resource: Optional[str] = Query(None, description="Filter by resource"),
    status: Optional[str] = Query(None, description="SUCCESS / FAIL"),
    date_from: Optional[str] = Query(None, alias="from", description="YYYY-MM-DD"),
    date_to: Optional[str] = Query(None, alias="to", description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
):
    try:
        dt_from = parse_date_bound(date_from)
        dt_to = parse_date_bound(date_to, end_of_day=True)
    except InventoryError as e:
        raise http_error(e)

    query = db.query(Log)

    if action:
        query = query.filter(Log.action.ilike(f"%{action}%"))
    if resource:
        query = query.filter(Log.resource.ilike(f"%{resource}%"))
    if status:
        query = query.filter(Log.status == status.upper())
    if dt_from is not None:
        query = query.filter(Log.ts >= dt_from)
    if dt_to is not None:
        query = query.filter(Log.ts <= dt_to)

    # Newest first
    query = query.order_by(Log.ts.desc(), Log.id.desc())

    total = query.count()
    logs = query.offset((page - 1) * page_size).limit(page_size).all()

    return {
        "items": [LogResponse.model_validate(entry) for entry in logs],
        "total": total,
        "page": page,
        "page_size": page_size,
    }
