from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime

from app.models.enums.stock_adjustment import AdjustmentReason, AdjustmentType


class StockAdjustmentCreate(BaseModel):
    inventory_id: int
    adjustment_type: AdjustmentType
    quantity: int = Field(gt=0)
    reason: AdjustmentReason
    notes: Optional[str] = Field(default=None, max_length=1000)


class StockAdjustmentOut(BaseModel):
    id: int
    reference_number: str
    inventory_id: int
    product_id: int
    product_name: Optional[str]
    warehouse_id: int
    warehouse_code: Optional[str]

    adjustment_type: AdjustmentType
    quantity_adjusted: int
    quantity_before: int
    quantity_after: int
    reason: AdjustmentReason
    notes: Optional[str]

    adjusted_by: Optional[int]
    adjusted_by_name: Optional[str]
    adjusted_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class StockAdjustmentListData(BaseModel):
    total: int
    items: List[StockAdjustmentOut]


class StockAdjustmentAnalytics(BaseModel):
    total_adjustments: int
    total_increases: int
    total_decreases: int
    quantity_increased: int
    quantity_decreased: int
    net_quantity: int
    by_reason: Dict[str, int]
