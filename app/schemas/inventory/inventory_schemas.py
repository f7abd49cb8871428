from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class InventoryCreate(BaseModel):
    product_id: int
    warehouse_id: int
    quantity_on_hand: int = Field(default=0, ge=0)
    location: Optional[str] = Field(default=None, max_length=100)
    last_counted_at: Optional[datetime] = None


class InventoryUpdate(BaseModel):
    location: Optional[str] = Field(default=None, max_length=100)
    last_counted_at: Optional[datetime] = None


class QuantityPayload(BaseModel):
    quantity: int = Field(gt=0)


class InventoryOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    product_sku: str
    warehouse_id: int
    warehouse_code: str
    warehouse_name: str

    quantity_on_hand: int
    quantity_reserved: int
    quantity_available: int
    location: Optional[str]
    last_counted_at: Optional[datetime]

    is_low_stock: bool
    is_out_of_stock: bool

    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class InventoryListData(BaseModel):
    total: int
    items: List[InventoryOut]


class WarehouseStockSummary(BaseModel):
    warehouse_id: int
    warehouse_code: str
    warehouse_name: str
    product_count: int
    total_on_hand: int
    total_reserved: int
    total_available: int
    low_stock_count: int


class WarehouseAnalytics(WarehouseStockSummary):
    out_of_stock_count: int
    stock_value: Decimal
    capacity_utilization: float
    inbound_last_30_days: int
    outbound_last_30_days: int
