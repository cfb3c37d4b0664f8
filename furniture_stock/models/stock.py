# furniture_stock/models/stock.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from furniture_stock.database import Base

# Append-only history of accepted stock deltas for a product
class StockAdjustment(Base):
    __tablename__ = "stock_adjustments"
    __table_args__ = (
        CheckConstraint("delta <> 0", name="ck_stock_adjustments_delta_non_zero"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    # Signed quantity change (positive = increase)
    delta = Column(Integer, nullable=False)
    reason = Column(String, nullable=False, default="adjustment")
    note = Column(String, nullable=False, default="")

    # Stock value right after this delta was committed
    stock_after = Column(Integer, nullable=False)

    created_at = Column(DateTime, nullable=False, index=True)

    product = relationship("Product", back_populates="adjustments")


# Every code handed out by CodeAllocator; the unique index is what makes
# concurrent allocations distinct.
class CodeReservation(Base):
    __tablename__ = "code_reservations"

    id = Column(Integer, primary_key=True)
    code = Column(String, unique=True, nullable=False, index=True)
    prefix = Column(String, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False)
