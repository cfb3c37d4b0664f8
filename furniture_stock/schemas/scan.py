# furniture_stock/schemas/scan.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from furniture_stock.models.scan import ScanType
from furniture_stock.schemas.product import CamelModel


# Incoming scan from the counter / warehouse scanner
class ScanCreate(CamelModel):
    code: str = Field(min_length=1)
    product_id: Optional[int] = None
    quantity: int = Field(default=1, ge=1)
    scan_type: ScanType = ScanType.AUDIT
    location: Optional[str] = None
    note: Optional[str] = None
    # Also move stock: sale => -quantity, in => +quantity, audit => nothing
    apply_stock: bool = False


class ScanResponse(CamelModel):
    id: int
    code: str
    product_id: Optional[int] = None
    quantity: int
    scan_type: ScanType
    location: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime


class ScanSaved(CamelModel):
    scan: ScanResponse
    new_stock: Optional[int] = None


class ScanPage(CamelModel):
    items: List[ScanResponse]
    total: int
    page: int
    page_size: int
