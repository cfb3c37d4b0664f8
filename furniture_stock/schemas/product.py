# furniture_stock/schemas/product.py
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# camelCase on the wire, snake_case in Python; both accepted on input
class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


# Shared base attributes for product entities
class ProductBase(CamelModel):
    name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    product_code: Optional[str] = None
    purchase_price: float = Field(default=0, ge=0)
    sale_price: float = Field(default=0, ge=0)
    unit: str = "pcs"
    location: Optional[str] = None
    description: Optional[str] = None
    gst_percent: float = Field(default=0, ge=0, le=100)
    is_active: bool = True


# Schema for creating a new product; a missing code is allocated (FUR-001...)
class ProductCreate(ProductBase):
    code: Optional[str] = None
    stock: int = Field(default=0, ge=0)


# Partial update. Stock is deliberately absent: it only changes through
# the stock endpoints, so sending it is an error.
class ProductUpdate(CamelModel):
    model_config = ConfigDict(extra="forbid")

    code: Optional[str] = None
    product_code: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1)
    purchase_price: Optional[float] = Field(default=None, ge=0)
    sale_price: Optional[float] = Field(default=None, ge=0)
    unit: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    gst_percent: Optional[float] = Field(default=None, ge=0, le=100)
    is_active: Optional[bool] = None


# Full product representation including ID
class ProductResponse(ProductBase):
    id: int
    code: str
    stock: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Paginated response for product listings
class ProductListPage(CamelModel):
    items: List[ProductResponse]
    total: int
    page: int
    limit: int


class LowStockResponse(CamelModel):
    threshold: int
    count: int
    products: List[ProductResponse]


class BulkCreateResponse(CamelModel):
    count: int
    items: List[ProductResponse]


class NextCodeResponse(CamelModel):
    code: str
