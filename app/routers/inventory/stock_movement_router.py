from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.inventory.stock_movement_schemas import (
    StockMovementCreate,
    StockMovementReject,
    StockMovementOut,
    StockMovementListData,
    StockMovementSearch,
    StockMovementStats,
)
from app.services.inventory.stock_movement_service import (
    create_stock_movement,
    approve_stock_movement,
    reject_stock_movement,
    get_stock_movement,
    search_stock_movements,
    stock_movement_stats,
)
from app.utils.check_roles import require_role
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/stock-movements", tags=["Stock Movements"])

STOCK_ROLES = ["admin", "manager", "inventory"]


@router.post("/", response_model=APIResponse[StockMovementOut], status_code=201)
async def create_stock_movement_api(
    payload: StockMovementCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(STOCK_ROLES)),
):
    return success_response("Stock movement recorded", await create_stock_movement(db, payload, user))


@router.post("/search", response_model=APIResponse[StockMovementListData])
async def search_stock_movements_api(
    criteria: StockMovementSearch,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(STOCK_ROLES)),
):
    return success_response("Stock movements fetched", await search_stock_movements(db, criteria))


@router.post("/search/stats", response_model=APIResponse[StockMovementStats])
async def stock_movement_stats_api(
    criteria: StockMovementSearch,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(STOCK_ROLES)),
):
    return success_response("Stock movement statistics fetched", await stock_movement_stats(db, criteria))


@router.get("/{movement_id}", response_model=APIResponse[StockMovementOut])
async def get_stock_movement_api(
    movement_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(STOCK_ROLES)),
):
    return success_response("Stock movement fetched", await get_stock_movement(db, movement_id))


@router.post("/{movement_id}/approve", response_model=APIResponse[StockMovementOut])
async def approve_stock_movement_api(
    movement_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "manager"])),
):
    return success_response("Stock movement approved", await approve_stock_movement(db, movement_id, user))


@router.post("/{movement_id}/reject", response_model=APIResponse[StockMovementOut])
async def reject_stock_movement_api(
    movement_id: int,
    payload: StockMovementReject,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "manager"])),
):
    data = await reject_stock_movement(db, movement_id, payload.reason, user)
    return success_response("Stock movement rejected", data)
