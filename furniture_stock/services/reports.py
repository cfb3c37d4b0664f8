"""
ReportAggregator - stock and sales reports built from the catalog and the
scan log.

Reports are read-only and computed on every call; nothing is cached or
materialised. For unchanged data and identical parameters the output is
identical (every ordering has a deterministic tie-break and no generation
timestamp is included). A scan whose code or product no longer matches the
catalog is reported with ``product = None``, never as an error.
"""
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from furniture_stock.config import settings
from furniture_stock.models.product import Product
from furniture_stock.models.scan import ScanEvent, ScanType
from furniture_stock.schemas.reports import (
    CategorySales,
    CategoryStock,
    DailySales,
    MostScanned,
    ProductRef,
    RecentScan,
    ReportFilters,
    SalesReport,
    SalesSummary,
    ScanSection,
    StockItem,
    StockReport,
    StockSummary,
    TopSellingProduct,
)
from furniture_stock.services.catalog import ProductCatalog
from furniture_stock.services.scan_log import CodeTotals, DayCodeTotals, ScanEventLog, ScanFilter
from furniture_stock.utils.dates import DateInput, isoformat_or_none

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"


def coerce_positive_int(value, default: int, maximum: Optional[int] = None) -> int:
    """Query parameter -> int, falling back to ``default`` on missing, non-numeric or < 1."""
    try:
        number = int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return default
    if number < 1:
        return default
    if maximum is not None:
        number = min(number, maximum)
    return number


def _stock_of(product: Product) -> int:
    return int(product.stock or 0)


def _price_of(product: Optional[Product]) -> float:
    if product is None:
        return 0.0
    return float(product.sale_price or 0)


def _category_of(product: Optional[Product]) -> str:
    if product is None:
        return UNCATEGORIZED
    return (product.category or "").strip() or UNCATEGORIZED


def _stock_item(product: Product) -> StockItem:
    return StockItem(
        id=product.id,
        name=product.name,
        code=product.code,
        category=product.category,
        stock=_stock_of(product),
    )


def _totals_by_code(rows: Iterable[DayCodeTotals]) -> Dict[str, CodeTotals]:
    """Fold per-day rows into per-code totals, quantity desc (ties: code asc)."""
    qty: Dict[str, int] = {}
    events: Dict[str, int] = {}
    for row in rows:
        qty[row.code] = qty.get(row.code, 0) + row.total_quantity
        events[row.code] = events.get(row.code, 0) + row.event_count
    ordered = sorted(qty, key=lambda code: (-qty[code], code))
    return {code: CodeTotals(total_quantity=qty[code], event_count=events[code]) for code in ordered}


class ReportAggregator:
    def __init__(
        self,
        db: Session,
        catalog: Optional[ProductCatalog] = None,
        scan_log: Optional[ScanEventLog] = None,
    ):
        self.db = db
        self.catalog = catalog or ProductCatalog(db)
        self.scan_log = scan_log or ScanEventLog(db)

    # -----------------------------
    # Stock report
    # -----------------------------
    def stock_report(
        self,
        low_threshold=None,
        limit=None,
        date_from: DateInput = None,
        date_to: DateInput = None,
    ) -> StockReport:
        low_threshold = coerce_positive_int(low_threshold, settings.LOW_STOCK_THRESHOLD)
        limit = coerce_positive_int(limit, settings.REPORT_LIMIT, settings.REPORT_LIMIT_MAX)
        scan_filter = ScanFilter.from_params(date_from=date_from, date_to=date_to)

        products = self.catalog.all_products()

        total_stock_qty = 0
        low_stock: List[Product] = []
        out_of_stock: List[Product] = []
        categories: Dict[str, CategoryStock] = {}

        for p in products:
            stock = _stock_of(p)
            total_stock_qty += stock

            cat = _category_of(p)
            bucket = categories.get(cat)
            if bucket is None:
                bucket = categories[cat] = CategoryStock(category=cat)

            bucket.total_products += 1
            bucket.total_stock_qty += stock
            if stock <= 0:
                out_of_stock.append(p)
                bucket.out_of_stock_count += 1
            elif stock <= low_threshold:
                low_stock.append(p)
                bucket.low_stock_count += 1
            bucket.items.append(_stock_item(p))

        # sorted() is stable, so equal stock keeps catalog order
        top_low = sorted(low_stock, key=_stock_of)[:limit]
        top_high = sorted(products, key=lambda p: -_stock_of(p))[:limit]

        by_code = {p.code: p for p in products}
        by_id = {p.id: p for p in products}

        recent = self.scan_log.query(scan_filter, limit=limit)
        most = self.scan_log.aggregate_by_code(scan_filter, limit=limit)

        scans = ScanSection(
            filters=ReportFilters(
                date_from=isoformat_or_none(date_from),
                date_to=isoformat_or_none(date_to),
            ),
            recent_scans=[self._recent_scan(s, by_id, by_code) for s in recent],
            most_scanned=[
                MostScanned(
                    code=code,
                    total_qty=totals.total_quantity,
                    scans_count=totals.event_count,
                    product=self._product_ref(by_code.get(code)),
                )
                for code, totals in most.items()
            ],
        )

        logger.debug(
            "Stock report: %d products, %d low, %d out of stock",
            len(products), len(low_stock), len(out_of_stock),
        )
        return StockReport(
            summary=StockSummary(
                total_products=len(products),
                total_stock_qty=total_stock_qty,
                low_threshold=low_threshold,
                low_stock_count=len(low_stock),
                out_of_stock_count=len(out_of_stock),
            ),
            top_low_stock=[_stock_item(p) for p in top_low],
            top_high_stock=[_stock_item(p) for p in top_high],
            by_category=list(categories.values()),
            scans=scans,
        )

    # -----------------------------
    # Sales report
    # -----------------------------
    def sales_report(
        self,
        limit=None,
        date_from: DateInput = None,
        date_to: DateInput = None,
    ) -> SalesReport:
        limit = coerce_positive_int(limit, settings.REPORT_LIMIT, settings.REPORT_LIMIT_MAX)
        scan_filter = ScanFilter.from_params(
            scan_type=ScanType.SALE, date_from=date_from, date_to=date_to
        )

        # Summary, rollups and daily buckets all come from this one read
        day_rows = self.scan_log.aggregate_by_day_and_code(scan_filter)
        per_code = _totals_by_code(day_rows)
        products = self.catalog.products_by_codes(per_code.keys())

        total_qty = 0
        total_amount = 0.0
        top_selling: List[TopSellingProduct] = []
        categories: Dict[str, CategorySales] = {}

        for code, totals in per_code.items():
            product = products.get(code)
            amount = totals.total_quantity * _price_of(product)
            total_qty += totals.total_quantity
            total_amount += amount

            if len(top_selling) < limit:
                top_selling.append(TopSellingProduct(
                    code=code,
                    total_qty=totals.total_quantity,
                    scans_count=totals.event_count,
                    total_amount=round(amount, 2),
                    product=self._product_ref(product, with_price=True),
                ))

            cat = _category_of(product)
            bucket = categories.get(cat)
            if bucket is None:
                bucket = categories[cat] = CategorySales(category=cat)
            bucket.total_qty_sold += totals.total_quantity
            bucket.total_sales_amount += amount
            bucket.products_count += 1

        for bucket in categories.values():
            bucket.total_sales_amount = round(bucket.total_sales_amount, 2)

        days: Dict[str, DailySales] = {}
        for row in day_rows:
            bucket = days.get(row.day)
            if bucket is None:
                bucket = days[row.day] = DailySales(date=row.day)
            bucket.total_qty_sold += row.total_quantity
            bucket.total_sales_amount += row.total_quantity * _price_of(products.get(row.code))
            bucket.sales_count += row.event_count

        daily = sorted(days.values(), key=lambda d: d.date)
        for bucket in daily:
            bucket.total_sales_amount = round(bucket.total_sales_amount, 2)

        recent = self.scan_log.query(scan_filter, limit=limit)
        by_code = dict(products)
        by_code.update(self.catalog.products_by_codes({s.code for s in recent} - set(by_code)))
        by_id = self.catalog.products_by_ids(s.product_id for s in recent if s.product_id is not None)

        logger.debug("Sales report: %d codes, qty %d, amount %.2f", len(per_code), total_qty, total_amount)
        return SalesReport(
            filters=ReportFilters(
                date_from=isoformat_or_none(date_from),
                date_to=isoformat_or_none(date_to),
                limit=limit,
            ),
            summary=SalesSummary(
                total_qty_sold=total_qty,
                total_sales_amount=round(total_amount, 2),
                total_products_sold=len(per_code),
            ),
            top_selling_products=top_selling,
            sales_by_category=list(categories.values()),
            daily_breakdown=daily,
            recent_sales=[self._recent_scan(s, by_id, by_code, with_price=True) for s in recent],
        )

    # -----------------------------
    # helpers
    # -----------------------------
    @staticmethod
    def _product_ref(product: Optional[Product], with_price: bool = False) -> Optional[ProductRef]:
        if product is None:
            return None
        return ProductRef(
            id=product.id,
            name=product.name,
            code=product.code,
            category=product.category,
            stock=_stock_of(product),
            sale_price=_price_of(product) if with_price else None,
        )

    def _recent_scan(self, scan: ScanEvent, by_id: dict, by_code: dict, with_price: bool = False) -> RecentScan:
        product = by_id.get(scan.product_id) if scan.product_id is not None else None
        if product is None:
            product = by_code.get(scan.code)
        return RecentScan(
            id=scan.id,
            code=scan.code,
            product_id=scan.product_id,
            quantity=scan.quantity,
            scan_type=scan.scan_type,
            location=scan.location,
            note=scan.note,
            created_at=scan.created_at,
            product=self._product_ref(product, with_price=with_price),
        )
