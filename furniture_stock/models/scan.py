# furniture_stock/models/scan.py
import enum
from sqlalchemy import Column, Integer, String, DateTime, Index, CheckConstraint
from furniture_stock.database import Base

# Allowed scan classifications
class ScanType(str, enum.Enum):
    SALE = "sale"
    IN = "in"
    AUDIT = "audit"

# One barcode scan. Rows are never updated or deleted; corrections are
# new compensating scans.
class ScanEvent(Base):
    __tablename__ = "scan_events"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_scan_events_quantity_positive"),
        Index("ix_scan_events_type_created", "scan_type", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    # The scanned value, kept even when no product matches it
    code = Column(String, nullable=False, index=True)
    # Weak reference: no foreign key, the product may be missing or deleted later
    product_id = Column(Integer, nullable=True, index=True)

    quantity = Column(Integer, nullable=False, default=1)
    scan_type = Column(String(10), nullable=False, default=ScanType.AUDIT.value)
    location = Column(String, nullable=True)
    note = Column(String, nullable=True)

    # Naive UTC, set once by the service clock
    created_at = Column(DateTime, nullable=False, index=True)
