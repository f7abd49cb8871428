# app/schemas/masters/product_schemas.py

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from decimal import Decimal
from datetime import datetime


class ProductCreate(BaseModel):
    sku: str = Field(min_length=1, max_length=64)
    barcode: Optional[str] = Field(default=None, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    category: Optional[str] = None
    brand: Optional[str] = None
    description: Optional[str] = None
    price: Decimal = Field(ge=0)
    cost_price: Optional[Decimal] = Field(default=None, ge=0)
    min_stock_level: int = Field(default=0, ge=0)
    max_stock_level: Optional[int] = Field(default=None, ge=0)
    track_quantity: bool = True

    @model_validator(mode="after")
    def check_stock_levels(self):
        if self.max_stock_level is not None and self.max_stock_level < self.min_stock_level:
            raise ValueError("max_stock_level must be greater than or equal to min_stock_level")
        return self


class ProductUpdate(BaseModel):
    sku: Optional[str] = Field(default=None, min_length=1, max_length=64)
    barcode: Optional[str] = Field(default=None, max_length=64)
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    category: Optional[str] = None
    brand: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    cost_price: Optional[Decimal] = Field(default=None, ge=0)
    min_stock_level: Optional[int] = Field(default=None, ge=0)
    max_stock_level: Optional[int] = Field(default=None, ge=0)
    track_quantity: Optional[bool] = None

    version: int


class ProductOut(BaseModel):
    id: int
    sku: str
    barcode: Optional[str]
    name: str
    category: Optional[str]
    brand: Optional[str]
    description: Optional[str]
    price: Decimal
    cost_price: Optional[Decimal]
    min_stock_level: int
    max_stock_level: Optional[int]
    track_quantity: bool
    total_stock: int

    is_active: bool
    version: int

    created_by: Optional[int]
    updated_by: Optional[int]
    created_by_name: Optional[str]
    updated_by_name: Optional[str]

    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class ProductListData(BaseModel):
    total: int
    items: List[ProductOut]


class VersionPayload(BaseModel):
    version: int


class ProductReorderItem(BaseModel):
    id: int
    sku: str
    name: str
    category: Optional[str]
    total_available: int
    min_stock_level: int
    max_stock_level: Optional[int]
    suggested_quantity: int


class ProductAvailability(BaseModel):
    product_id: int
    warehouse_id: Optional[int]
    requested_quantity: int
    available_quantity: int
    is_available: bool
    shortage: int
    message: str
