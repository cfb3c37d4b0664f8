# furniture_stock/routes/reports.py
from typing import Optional

from fastapi import APIRouter, Depends, Query

from furniture_stock.exceptions import InventoryError
from furniture_stock.schemas.reports import SalesReport, StockReport
from furniture_stock.services.reports import ReportAggregator
from furniture_stock.utils.deps import get_reports
from furniture_stock.utils.errors import http_error

router = APIRouter(prefix="/reports", tags=["Reports"])

# Numeric parameters arrive as raw strings: a missing, zero or non-numeric
# value falls back to the default instead of failing the request.


# -----------------------------
# 1) Stany magazynowe
# -----------------------------
@router.get("/stock", response_model=StockReport)
def report_stock(
    low_threshold: Optional[str] = Query(None, alias="lowThreshold", description="Low stock threshold (<=)"),
    limit: Optional[str] = Query(None, description="Length of every top-N list"),
    date_from: Optional[str] = Query(None, alias="from", description="Scan section: YYYY-MM-DD or ISO datetime"),
    date_to: Optional[str] = Query(None, alias="to", description="Scan section: date-only covers the whole day"),
    reports: ReportAggregator = Depends(get_reports),
):
    try:
        return reports.stock_report(
            low_threshold=low_threshold, limit=limit, date_from=date_from, date_to=date_to
        )
    except InventoryError as e:
        raise http_error(e)


# -----------------------------
# 2) Sprzedaż (skany typu sale)
# -----------------------------
@router.get("/sales", response_model=SalesReport)
def report_sales(
    limit: Optional[str] = Query(None, description="Length of every top-N list"),
    date_from: Optional[str] = Query(None, alias="from", description="YYYY-MM-DD or ISO datetime"),
    date_to: Optional[str] = Query(None, alias="to", description="Date-only covers the whole day"),
    reports: ReportAggregator = Depends(get_reports),
):
    try:
        return reports.sales_report(limit=limit, date_from=date_from, date_to=date_to)
    except InventoryError as e:
        raise http_error(e)
