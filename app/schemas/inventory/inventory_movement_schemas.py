from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from app.constants.inventory_movement_type import InventoryMovementType


class InventoryMovementOut(BaseModel):
    id: int
    inventory_id: Optional[int]
    product_id: int
    product_name: Optional[str]
    warehouse_id: int
    warehouse_code: Optional[str]
    movement_type: InventoryMovementType
    quantity_change: int
    quantity_before: int
    quantity_after: int
    reference_type: str
    reference_id: int
    notes: Optional[str]

    created_by: Optional[int]
    created_by_name: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class InventoryMovementListData(BaseModel):
    total: int
    items: List[InventoryMovementOut]
