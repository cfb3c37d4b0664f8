"""
ScanEventLog - append-only record of barcode scans.

Scans are never edited or deleted: a wrong scan is corrected by a new,
compensating one. A scan keeps the raw code even when no product matches;
``product_id`` is only a lookup hint. Aggregations group by code for the
same reason.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from furniture_stock.exceptions import InvalidInputError, InventoryError
from furniture_stock.models.product import Product
from furniture_stock.models.scan import ScanEvent, ScanType
from furniture_stock.schemas.scan import ScanCreate
from furniture_stock.utils.clock import Clock, SystemClock
from furniture_stock.utils.codes import norm_code
from furniture_stock.utils.dates import DateInput, day_key, parse_date_bound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanFilter:
    scan_type: Optional[str] = None
    code: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    @classmethod
    def from_params(
        cls,
        scan_type: Optional[str] = None,
        code: Optional[str] = None,
        date_from: DateInput = None,
        date_to: DateInput = None,
    ) -> "ScanFilter":
        """Build a filter from raw query values; a date-only `to` covers the whole day."""
        if isinstance(scan_type, ScanType):
            scan_type = scan_type.value
        elif scan_type is not None:
            scan_type = str(scan_type).strip().lower() or None
            if scan_type and scan_type not in {t.value for t in ScanType}:
                raise InvalidInputError(f"Unknown scan type: {scan_type}")
        return cls(
            scan_type=scan_type,
            code=norm_code(code),
            date_from=parse_date_bound(date_from),
            date_to=parse_date_bound(date_to, end_of_day=True),
        )

    def apply(self, query):
        if self.scan_type:
            query = query.where(ScanEvent.scan_type == self.scan_type)
        if self.code:
            query = query.where(ScanEvent.code == self.code)
        if self.date_from is not None:
            query = query.where(ScanEvent.created_at >= self.date_from)
        if self.date_to is not None:
            query = query.where(ScanEvent.created_at <= self.date_to)
        return query


@dataclass(frozen=True)
class CodeTotals:
    total_quantity: int
    event_count: int


@dataclass(frozen=True)
class DayCodeTotals:
    day: str
    code: str
    total_quantity: int
    event_count: int


# Stock effect of a scan when apply_stock is requested
_STOCK_SIGN = {ScanType.SALE.value: -1, ScanType.IN.value: 1, ScanType.AUDIT.value: 0}


class ScanEventLog:
    def __init__(self, db: Session, clock: Optional[Clock] = None, catalog=None):
        self.db = db
        self.clock = clock or SystemClock()
        # ProductCatalog, only needed for scans that move stock
        self.catalog = catalog

    def append(self, event: ScanCreate) -> Tuple[ScanEvent, Optional[int]]:
        """
        Store a scan and, when ``event.apply_stock`` is set, move stock with it.

        Returns the stored scan and the product's new stock (None when stock
        was not touched). A rejected stock change stores nothing.
        """
        code = norm_code(event.code)
        if not code:
            raise InvalidInputError("Code is required")

        scan_type = ScanType(event.scan_type).value
        product_id = event.product_id
        if product_id is None:
            product_id = self.db.execute(
                select(Product.id).where(Product.code == code)
            ).scalar_one_or_none()

        new_stock = None
        sign = _STOCK_SIGN[scan_type]
        if event.apply_stock and sign and product_id is not None:
            if self.catalog is None:
                raise RuntimeError("ScanEventLog needs a ProductCatalog to apply stock")
            try:
                change = self.catalog.apply_stock_delta(
                    product_id,
                    sign * event.quantity,
                    reason=scan_type,
                    note=event.note or f"scan {code}",
                    commit=False,
                )
            except InventoryError:
                self.db.rollback()
                raise
            new_stock = change.new_stock

        scan = ScanEvent(
            code=code,
            product_id=product_id,
            quantity=event.quantity,
            scan_type=scan_type,
            location=event.location,
            note=event.note,
            created_at=self.clock.now(),
        )
        self.db.add(scan)
        self.db.commit()
        self.db.refresh(scan)

        if product_id is None:
            logger.info("Stored %s scan for unknown code %s", scan_type, code)
        else:
            logger.debug("Stored %s scan %s x%d", scan_type, code, event.quantity)
        return scan, new_stock

    def query(
        self,
        scan_filter: Optional[ScanFilter] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        newest_first: bool = True,
    ) -> List[ScanEvent]:
        query = (scan_filter or ScanFilter()).apply(select(ScanEvent))
        if newest_first:
            query = query.order_by(ScanEvent.created_at.desc(), ScanEvent.id.desc())
        else:
            query = query.order_by(ScanEvent.created_at.asc(), ScanEvent.id.asc())
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return list(self.db.execute(query).scalars())

    def count(self, scan_filter: Optional[ScanFilter] = None) -> int:
        query = (scan_filter or ScanFilter()).apply(select(func.count(ScanEvent.id)))
        return self.db.execute(query).scalar_one()

    def aggregate_by_code(
        self,
        scan_filter: Optional[ScanFilter] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, CodeTotals]:
        """code -> totals, ordered by total quantity desc (ties: code asc)."""
        total_qty = func.sum(ScanEvent.quantity).label("total_qty")
        query = (scan_filter or ScanFilter()).apply(
            select(ScanEvent.code, total_qty, func.count(ScanEvent.id).label("events"))
        )
        query = query.group_by(ScanEvent.code).order_by(total_qty.desc(), ScanEvent.code.asc())
        if limit is not None:
            query = query.limit(limit)

        return {
            row.code: CodeTotals(total_quantity=int(row.total_qty or 0), event_count=int(row.events))
            for row in self.db.execute(query)
        }

    def aggregate_by_day_and_code(self, scan_filter: Optional[ScanFilter] = None) -> List[DayCodeTotals]:
        """Totals per (UTC calendar day, code), ascending by day then code."""
        day = func.date(ScanEvent.created_at).label("scan_day")
        query = (scan_filter or ScanFilter()).apply(
            select(
                day,
                ScanEvent.code,
                func.sum(ScanEvent.quantity).label("total_qty"),
                func.count(ScanEvent.id).label("events"),
            )
        )
        query = query.group_by(day, ScanEvent.code).order_by(day.asc(), ScanEvent.code.asc())

        return [
            DayCodeTotals(
                day=day_key(row.scan_day),
                code=row.code,
                total_quantity=int(row.total_qty or 0),
                event_count=int(row.events),
            )
            for row in self.db.execute(query)
        ]
