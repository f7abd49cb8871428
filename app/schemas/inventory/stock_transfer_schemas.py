from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from app.models.enums.stock_transfer_status import TransferStatus


class StockTransferCreateSchema(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    from_warehouse_id: int
    to_warehouse_id: int
    notes: Optional[str] = Field(default=None, max_length=1000)


class StockTransferCancelSchema(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class BulkTransferIdsSchema(BaseModel):
    transfer_ids: List[int] = Field(min_length=1, max_length=100)


class BulkTransferCancelSchema(BulkTransferIdsSchema):
    reason: str = Field(min_length=1, max_length=500)


class StockTransferTableSchema(BaseModel):
    id: int
    reference_number: str
    product_id: int
    product_name: Optional[str]
    quantity: int
    from_warehouse_id: int
    from_warehouse_code: Optional[str]
    to_warehouse_id: int
    to_warehouse_code: Optional[str]
    status: TransferStatus
    notes: Optional[str]
    cancellation_reason: Optional[str]

    requested_by_id: Optional[int]
    requested_by: Optional[str]
    approved_by_id: Optional[int]
    approved_by: Optional[str]
    completed_by_id: Optional[int]
    completed_by: Optional[str]

    approved_at: Optional[datetime]
    shipped_at: Optional[datetime]
    completed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class StockTransferListData(BaseModel):
    total: int
    items: List[StockTransferTableSchema]


class BulkOperationResult(BaseModel):
    processed: int
    failed: int
    errors: List[str]


class StockTransferAnalytics(BaseModel):
    total: int
    pending: int
    approved: int
    in_transit: int
    completed: int
    cancelled: int
    this_month: int
    total_quantity_transferred: int


class TransferAvailability(BaseModel):
    product_id: int
    warehouse_id: int
    has_inventory: bool
    quantity_on_hand: int
    quantity_reserved: int
    available_quantity: int
    requested_quantity: int
    is_sufficient: bool
    message: str
