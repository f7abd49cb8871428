from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.stock_adjustment import AdjustmentReason, AdjustmentType
from app.schemas.inventory.stock_adjustment_schemas import (
    StockAdjustmentCreate,
    StockAdjustmentOut,
    StockAdjustmentListData,
    StockAdjustmentAnalytics,
)
from app.services.inventory.stock_adjustment_service import (
    create_stock_adjustment,
    get_stock_adjustment,
    list_stock_adjustments,
    stock_adjustment_analytics,
    list_adjustments_for_inventory,
)
from app.utils.check_roles import require_role
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/stock-adjustments", tags=["Stock Adjustments"])

STOCK_ROLES = ["admin", "manager", "inventory"]


@router.post("/", response_model=APIResponse[StockAdjustmentOut], status_code=201)
async def create_stock_adjustment_api(
    payload: StockAdjustmentCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(STOCK_ROLES)),
):
    return success_response("Stock adjusted", await create_stock_adjustment(db, payload, user))


@router.get("/analytics", response_model=APIResponse[StockAdjustmentAnalytics])
async def stock_adjustment_analytics_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(STOCK_ROLES)),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
):
    data = await stock_adjustment_analytics(db, date_from=date_from, date_to=date_to)
    return success_response("Stock adjustment analytics fetched", data)


@router.get("/", response_model=APIResponse[StockAdjustmentListData])
async def list_stock_adjustments_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(STOCK_ROLES)),
    search: str | None = Query(None),
    adjustment_type: AdjustmentType | None = Query(None),
    reason: AdjustmentReason | None = Query(None),
    warehouse_id: int | None = Query(None),
    product_id: int | None = Query(None),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    sort: str = Query("newest"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    data = await list_stock_adjustments(
        db,
        search=search,
        adjustment_type=adjustment_type,
        reason=reason,
        warehouse_id=warehouse_id,
        product_id=product_id,
        date_from=date_from,
        date_to=date_to,
        sort=sort,
        page=page,
        page_size=page_size,
    )
    return success_response("Stock adjustments fetched", data)


@router.get("/by-inventory/{inventory_id}", response_model=APIResponse[List[StockAdjustmentOut]])
async def adjustments_by_inventory_api(
    inventory_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(STOCK_ROLES)),
):
    data = await list_adjustments_for_inventory(db, inventory_id)
    return success_response("Stock adjustments fetched", data)


@router.get("/{adjustment_id}", response_model=APIResponse[StockAdjustmentOut])
async def get_stock_adjustment_api(
    adjustment_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(STOCK_ROLES)),
):
    return success_response("Stock adjustment fetched", await get_stock_adjustment(db, adjustment_id))
