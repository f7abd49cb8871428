from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Dict
from decimal import Decimal
from datetime import datetime

from app.models.enums.stock_movement_status import StockMovementStatus, StockMovementType


class StockMovementCreate(BaseModel):
    inventory_id: int
    movement_type: StockMovementType
    quantity_moved: int
    unit_cost: Optional[Decimal] = Field(default=None, ge=0)
    reason: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None, max_length=1000)
    related_document_type: Optional[str] = Field(default=None, max_length=50)
    related_document_id: Optional[int] = None

    @model_validator(mode="after")
    def check_quantity(self):
        if self.quantity_moved == 0:
            raise ValueError("quantity_moved cannot be zero")
        return self


class StockMovementReject(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class StockMovementOut(BaseModel):
    id: int
    reference_number: str
    inventory_id: int
    product_id: int
    product_name: Optional[str]
    warehouse_id: int
    warehouse_code: Optional[str]
    movement_type: StockMovementType
    quantity_moved: int
    quantity_before: int
    quantity_after: int
    unit_cost: Decimal
    total_value: Decimal
    reason: Optional[str]
    notes: Optional[str]
    related_document_type: Optional[str]
    related_document_id: Optional[int]
    status: StockMovementStatus

    user_id: Optional[int]
    user_name: Optional[str]
    approved_by_id: Optional[int]
    approved_by_name: Optional[str]
    approved_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class StockMovementListData(BaseModel):
    total: int
    items: List[StockMovementOut]


class StockMovementSearch(BaseModel):
    movement_types: Optional[List[StockMovementType]] = None
    status: Optional[StockMovementStatus] = None
    product_id: Optional[int] = None
    warehouse_id: Optional[int] = None
    user_id: Optional[int] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    quantity_min: Optional[int] = None
    quantity_max: Optional[int] = None
    value_min: Optional[Decimal] = None
    value_max: Optional[Decimal] = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


class StockMovementStats(BaseModel):
    total_movements: int
    type_distribution: Dict[str, int]
    status_distribution: Dict[str, int]
    value_in: Decimal
    value_out: Decimal
    value_net: Decimal
    value_avg: Decimal
    quantity_in: int
    quantity_out: int
    quantity_net: int
    quantity_avg: float
