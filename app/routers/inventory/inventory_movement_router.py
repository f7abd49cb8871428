from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.constants.inventory_movement_type import InventoryMovementType, InventoryReferenceType
from app.schemas.inventory.inventory_movement_schemas import InventoryMovementListData
from app.services.inventory.inventory_movement_service import list_inventory_movements
from app.utils.get_user import get_current_user
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/inventory-movements", tags=["Inventory Movements"])


@router.get("/", response_model=APIResponse[InventoryMovementListData])
async def list_inventory_movements_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
    product_id: int | None = Query(None),
    warehouse_id: int | None = Query(None),
    movement_type: InventoryMovementType | None = Query(None),
    reference_type: InventoryReferenceType | None = Query(None),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    data = await list_inventory_movements(
        db,
        product_id=product_id,
        warehouse_id=warehouse_id,
        movement_type=movement_type,
        reference_type=reference_type.value if reference_type else None,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )
    return success_response("Inventory movements fetched", data)
