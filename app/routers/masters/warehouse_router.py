# app/routers/masters/warehouse_router.py

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.masters.warehouse_schemas import (
    WarehouseCreate,
    WarehouseUpdate,
    WarehouseOut,
    WarehouseListData,
    VersionPayload,
)
from app.schemas.inventory.inventory_schemas import WarehouseAnalytics, WarehouseStockSummary
from app.services.masters.warehouse_service import (
    create_warehouse,
    list_warehouses,
    get_warehouse,
    update_warehouse,
    deactivate_warehouse,
    reactivate_warehouse,
    delete_warehouse,
)
from app.services.inventory.inventory_service import warehouse_analytics, warehouse_stock_summary
from app.utils.check_roles import require_role
from app.utils.get_user import get_current_user
from app.utils.response import APIResponse, success_response
from app.utils.logger import get_logger

router = APIRouter(prefix="/warehouses", tags=["Warehouses"])
logger = get_logger(__name__)


@router.post("/", response_model=APIResponse[WarehouseOut], status_code=201)
async def create_warehouse_api(
    payload: WarehouseCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "manager"])),
):
    logger.info("Create warehouse", extra={"code": payload.code})
    warehouse = await create_warehouse(db, payload, user)
    return success_response("Warehouse created successfully", warehouse)


@router.get("/", response_model=APIResponse[WarehouseListData])
async def list_warehouses_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
    search: str | None = Query(None, description="Search by name, code or city"),
    is_active: bool | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: str = Query("created_at"),
    order: str = Query("desc"),
):
    data = await list_warehouses(
        db,
        search=search,
        is_active=is_active,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        order=order,
    )
    return success_response("Warehouses fetched successfully", data)


@router.get("/{warehouse_id}", response_model=APIResponse[WarehouseOut])
async def get_warehouse_api(
    warehouse_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    return success_response("Warehouse fetched successfully", await get_warehouse(db, warehouse_id))


@router.get("/{warehouse_id}/summary", response_model=APIResponse[WarehouseStockSummary])
async def warehouse_summary_api(
    warehouse_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    data = await warehouse_stock_summary(db, warehouse_id)
    return success_response("Warehouse stock summary fetched", data)


@router.get("/{warehouse_id}/analytics", response_model=APIResponse[WarehouseAnalytics])
async def warehouse_analytics_api(
    warehouse_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "manager", "inventory"])),
):
    data = await warehouse_analytics(db, warehouse_id)
    return success_response("Warehouse analytics fetched", data)


@router.patch("/{warehouse_id}", response_model=APIResponse[WarehouseOut])
async def update_warehouse_api(
    warehouse_id: int,
    payload: WarehouseUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "manager"])),
):
    warehouse = await update_warehouse(db, warehouse_id, payload, user)
    return success_response("Warehouse updated successfully", warehouse)


@router.patch("/{warehouse_id}/deactivate", response_model=APIResponse[WarehouseOut])
async def deactivate_warehouse_api(
    warehouse_id: int,
    payload: VersionPayload,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin"])),
):
    warehouse = await deactivate_warehouse(db, warehouse_id, payload.version, user)
    return success_response("Warehouse deactivated successfully", warehouse)


@router.patch("/{warehouse_id}/activate", response_model=APIResponse[WarehouseOut])
async def reactivate_warehouse_api(
    warehouse_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin"])),
):
    warehouse = await reactivate_warehouse(db, warehouse_id, user)
    return success_response("Warehouse reactivated successfully", warehouse)


@router.delete("/{warehouse_id}", response_model=APIResponse[None])
async def delete_warehouse_api(
    warehouse_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin"])),
):
    await delete_warehouse(db, warehouse_id, user)
    return success_response("Warehouse deleted successfully")
