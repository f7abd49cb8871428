from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.inventory.inventory_schemas import (
    InventoryCreate,
    InventoryUpdate,
    InventoryOut,
    InventoryListData,
    QuantityPayload,
)
from app.services.inventory.inventory_service import (
    create_inventory,
    get_inventory,
    list_inventory,
    update_inventory,
    delete_inventory,
    reserve_inventory,
    release_inventory,
)
from app.utils.check_roles import require_role
from app.utils.get_user import get_current_user
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/inventory", tags=["Inventory"])

STOCK_ROLES = ["admin", "manager", "inventory"]


@router.post("/", response_model=APIResponse[InventoryOut], status_code=201)
async def create_inventory_api(
    payload: InventoryCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(STOCK_ROLES)),
):
    return success_response("Inventory record created", await create_inventory(db, payload, user))


@router.get("/", response_model=APIResponse[InventoryListData])
async def list_inventory_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
    warehouse_id: int | None = Query(None),
    product_id: int | None = Query(None),
    low_stock: bool = Query(False),
    out_of_stock: bool = Query(False),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    data = await list_inventory(
        db,
        warehouse_id=warehouse_id,
        product_id=product_id,
        low_stock=low_stock,
        out_of_stock=out_of_stock,
        search=search,
        page=page,
        page_size=page_size,
    )
    return success_response("Inventory fetched", data)


@router.get("/{inventory_id}", response_model=APIResponse[InventoryOut])
async def get_inventory_api(
    inventory_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    return success_response("Inventory record fetched", await get_inventory(db, inventory_id))


@router.patch("/{inventory_id}", response_model=APIResponse[InventoryOut])
async def update_inventory_api(
    inventory_id: int,
    payload: InventoryUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(STOCK_ROLES)),
):
    return success_response("Inventory record updated", await update_inventory(db, inventory_id, payload, user))


@router.delete("/{inventory_id}", response_model=APIResponse[None])
async def delete_inventory_api(
    inventory_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "manager"])),
):
    await delete_inventory(db, inventory_id, user)
    return success_response("Inventory record deleted")


@router.post("/{inventory_id}/reserve", response_model=APIResponse[InventoryOut])
async def reserve_inventory_api(
    inventory_id: int,
    payload: QuantityPayload,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(STOCK_ROLES + ["sales"])),
):
    data = await reserve_inventory(db, inventory_id, payload.quantity, user)
    return success_response("Stock reserved", data)


@router.post("/{inventory_id}/release", response_model=APIResponse[InventoryOut])
async def release_inventory_api(
    inventory_id: int,
    payload: QuantityPayload,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(STOCK_ROLES + ["sales"])),
):
    data = await release_inventory(db, inventory_id, payload.quantity, user)
    return success_response("Reserved stock released", data)
