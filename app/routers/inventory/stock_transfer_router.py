from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.utils.check_roles import require_role
from app.utils.response import APIResponse, success_response
from app.models.enums.stock_transfer_status import TransferStatus

from app.schemas.inventory.stock_transfer_schemas import (
    StockTransferCreateSchema,
    StockTransferCancelSchema,
    StockTransferTableSchema,
    StockTransferListData,
    BulkTransferIdsSchema,
    BulkTransferCancelSchema,
    BulkOperationResult,
    StockTransferAnalytics,
    TransferAvailability,
)

from app.services.inventory.stock_transfer_service import (
    create_stock_transfer,
    approve_stock_transfer,
    ship_stock_transfer,
    complete_stock_transfer,
    cancel_stock_transfer,
    bulk_approve_transfers,
    bulk_cancel_transfers,
    get_stock_transfer,
    list_stock_transfers,
    list_overdue_transfers,
    stock_transfer_analytics,
    check_transfer_availability,
)

router = APIRouter(prefix="/stock-transfers", tags=["Stock Transfers"])

STOCK_ROLES = ["admin", "manager", "inventory"]
APPROVER_ROLES = ["admin", "manager"]


@router.post("/", response_model=APIResponse[StockTransferTableSchema], status_code=201)
async def create_stock_transfer_api(
    payload: StockTransferCreateSchema,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_role(STOCK_ROLES)),
):
    return success_response(
        "Stock transfer created",
        await create_stock_transfer(db, payload, current_user),
    )


@router.post("/bulk/approve", response_model=APIResponse[BulkOperationResult])
async def bulk_approve_api(
    payload: BulkTransferIdsSchema,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_role(APPROVER_ROLES)),
):
    return success_response(
        "Bulk approval processed",
        await bulk_approve_transfers(db, payload.transfer_ids, current_user),
    )


@router.post("/bulk/cancel", response_model=APIResponse[BulkOperationResult])
async def bulk_cancel_api(
    payload: BulkTransferCancelSchema,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_role(APPROVER_ROLES)),
):
    return success_response(
        "Bulk cancellation processed",
        await bulk_cancel_transfers(db, payload.transfer_ids, payload.reason, current_user),
    )


@router.get("/overdue", response_model=APIResponse[List[StockTransferTableSchema]])
async def overdue_transfers_api(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_role(STOCK_ROLES)),
):
    return success_response("Overdue transfers fetched", await list_overdue_transfers(db))


@router.get("/analytics", response_model=APIResponse[StockTransferAnalytics])
async def transfer_analytics_api(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_role(STOCK_ROLES)),
):
    return success_response("Stock transfer analytics fetched", await stock_transfer_analytics(db))


@router.get("/availability", response_model=APIResponse[TransferAvailability])
async def transfer_availability_api(
    product_id: int = Query(...),
    warehouse_id: int = Query(...),
    quantity: int = Query(1, ge=1),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_role(STOCK_ROLES)),
):
    return success_response(
        "Availability checked",
        await check_transfer_availability(db, product_id, warehouse_id, quantity),
    )


@router.post("/{transfer_id}/approve", response_model=APIResponse[StockTransferTableSchema])
async def approve_stock_transfer_api(
    transfer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_role(APPROVER_ROLES)),
):
    return success_response(
        "Stock transfer approved",
        await approve_stock_transfer(db, transfer_id, current_user),
    )


@router.post("/{transfer_id}/ship", response_model=APIResponse[StockTransferTableSchema])
async def ship_stock_transfer_api(
    transfer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_role(STOCK_ROLES)),
):
    return success_response(
        "Stock transfer shipped",
        await ship_stock_transfer(db, transfer_id, current_user),
    )


@router.post("/{transfer_id}/complete", response_model=APIResponse[StockTransferTableSchema])
async def complete_stock_transfer_api(
    transfer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_role(STOCK_ROLES)),
):
    return success_response(
        "Stock transfer completed",
        await complete_stock_transfer(db, transfer_id, current_user),
    )


@router.post("/{transfer_id}/cancel", response_model=APIResponse[StockTransferTableSchema])
async def cancel_stock_transfer_api(
    transfer_id: int,
    payload: StockTransferCancelSchema,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_role(STOCK_ROLES)),
):
    return success_response(
        "Stock transfer cancelled",
        await cancel_stock_transfer(db, transfer_id, payload.reason, current_user),
    )


@router.get("/{transfer_id}", response_model=APIResponse[StockTransferTableSchema])
async def get_stock_transfer_api(
    transfer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_role(STOCK_ROLES)),
):
    return success_response("Stock transfer fetched", await get_stock_transfer(db, transfer_id))


@router.get("/", response_model=APIResponse[StockTransferListData])
async def list_stock_transfers_api(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_role(STOCK_ROLES)),
    status: TransferStatus | None = Query(None),
    product_id: int | None = Query(None),
    warehouse_id: int | None = Query(None),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    data = await list_stock_transfers(
        db,
        status=status,
        product_id=product_id,
        warehouse_id=warehouse_id,
        search=search,
        page=page,
        page_size=page_size,
    )
    return success_response("Stock transfers fetched", data)
