# furniture_stock/schemas/reports.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from furniture_stock.schemas.product import CamelModel

# ---------- shared ----------

class ReportFilters(CamelModel):
    # Serialized as "from"/"to", which are Python keywords
    date_from: Optional[str] = Field(default=None, alias="from")
    date_to: Optional[str] = Field(default=None, alias="to")
    limit: Optional[int] = None


class ProductRef(CamelModel):
    id: int
    name: str
    code: Optional[str] = None
    category: Optional[str] = None
    stock: Optional[int] = None
    sale_price: Optional[float] = None


# ---------- stock report ----------

class StockItem(CamelModel):
    id: int
    name: str
    code: str
    category: Optional[str] = None
    stock: int


class CategoryStock(CamelModel):
    category: str
    total_products: int = 0
    total_stock_qty: int = 0
    low_stock_count: int = 0
    out_of_stock_count: int = 0
    items: List[StockItem] = []


class StockSummary(CamelModel):
    total_products: int
    total_stock_qty: int
    low_threshold: int
    low_stock_count: int
    out_of_stock_count: int


class RecentScan(CamelModel):
    id: int
    code: str
    product_id: Optional[int] = None
    quantity: int
    scan_type: str
    location: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime
    product: Optional[ProductRef] = None


class MostScanned(CamelModel):
    code: str
    total_qty: int
    scans_count: int
    product: Optional[ProductRef] = None


class ScanSection(CamelModel):
    filters: ReportFilters
    recent_scans: List[RecentScan]
    most_scanned: List[MostScanned]


class StockReport(CamelModel):
    summary: StockSummary
    top_low_stock: List[StockItem]
    top_high_stock: List[StockItem]
    by_category: List[CategoryStock]
    scans: ScanSection


# ---------- sales report ----------

class SalesSummary(CamelModel):
    total_qty_sold: int
    total_sales_amount: float
    total_products_sold: int


class TopSellingProduct(CamelModel):
    code: str
    total_qty: int
    scans_count: int
    total_amount: float
    product: Optional[ProductRef] = None


class CategorySales(CamelModel):
    category: str
    total_qty_sold: int = 0
    total_sales_amount: float = 0
    products_count: int = 0


class DailySales(CamelModel):
    date: str
    total_qty_sold: int = 0
    total_sales_amount: float = 0
    sales_count: int = 0


class SalesReport(CamelModel):
    filters: ReportFilters
    summary: SalesSummary
    top_selling_products: List[TopSellingProduct]
    sales_by_category: List[CategorySales]
    daily_breakdown: List[DailySales]
    recent_sales: List[RecentScan]
