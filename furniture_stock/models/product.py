# furniture_stock/models/product.py
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, CheckConstraint, func
from sqlalchemy.orm import relationship
from furniture_stock.database import Base

# Model Product
# A single catalog item (sofa, bed, chair...). `code` is the human facing
# barcode value; `product_code` is an optional secondary technical key.
# Stock is only ever changed through ProductCatalog.apply_stock_delta.
class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False, index=True)
    # Unique when present; NULLs never collide in a unique index.
    product_code = Column(String, unique=True, nullable=True)

    name = Column(String, nullable=False, index=True)
    # Free-form string, reports group by its literal value.
    category = Column(String, nullable=False, index=True)

    purchase_price = Column(Float, CheckConstraint("purchase_price >= 0"), nullable=False, default=0)
    sale_price = Column(Float, CheckConstraint("sale_price >= 0"), nullable=False, default=0)
    gst_percent = Column(Float, CheckConstraint("gst_percent >= 0 AND gst_percent <= 100"), nullable=False, default=0)

    stock = Column(Integer, nullable=False, default=0)
    unit = Column(String, nullable=False, default="pcs")
    location = Column(String)
    description = Column(String)

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    adjustments = relationship(
        "StockAdjustment",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="StockAdjustment.id",
    )
