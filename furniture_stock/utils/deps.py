# furniture_stock/utils/deps.py
from fastapi import Depends
from sqlalchemy.orm import Session

from furniture_stock.database import get_db
from furniture_stock.services.catalog import ProductCatalog
from furniture_stock.services.code_allocator import CodeAllocator
from furniture_stock.services.reports import ReportAggregator
from furniture_stock.services.scan_log import ScanEventLog
from furniture_stock.utils.clock import Clock, SystemClock

_system_clock = SystemClock()


def get_clock() -> Clock:
    return _system_clock


def get_allocator(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> CodeAllocator:
    return CodeAllocator(db, clock=clock)


def get_catalog(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    allocator: CodeAllocator = Depends(get_allocator),
) -> ProductCatalog:
    return ProductCatalog(db, clock=clock, allocator=allocator)


def get_scan_log(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    catalog: ProductCatalog = Depends(get_catalog),
) -> ScanEventLog:
    return ScanEventLog(db, clock=clock, catalog=catalog)


def get_reports(
    db: Session = Depends(get_db),
    catalog: ProductCatalog = Depends(get_catalog),
    scan_log: ScanEventLog = Depends(get_scan_log),
) -> ReportAggregator:
    return ReportAggregator(db, catalog=catalog, scan_log=scan_log)
