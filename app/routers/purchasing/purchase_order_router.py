from datetime import date
from typing import Optional, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.order_priority import OrderPriority
from app.models.enums.purchase_order_status import PurchaseOrderStatus
from app.schemas.purchasing.purchase_order_schemas import (
    PurchaseOrderCreate,
    PurchaseOrderUpdate,
    PurchaseOrderItemCreate,
    PurchaseOrderItemUpdate,
    ReceivePayload,
    CancelPayload,
    PurchaseOrderOut,
    PurchaseOrderListItem,
    PurchaseOrderListData,
    PurchaseOrderStatistics,
)
from app.services.purchasing.purchase_order_service import (
    create_purchase_order,
    get_purchase_order,
    list_purchase_orders,
    update_purchase_order,
    delete_purchase_order,
    submit_purchase_order,
    approve_purchase_order,
    send_purchase_order,
    cancel_purchase_order,
    close_purchase_order,
    add_purchase_order_item,
    update_purchase_order_item,
    remove_purchase_order_item,
    receive_purchase_order,
    list_pending_approvals,
    list_overdue_purchase_orders,
    purchase_order_statistics,
)
from app.utils.check_roles import require_role
from app.utils.get_user import get_current_user
from app.utils.response import APIResponse, success_response
from app.utils.logger import get_logger

router = APIRouter(prefix="/purchase-orders", tags=["Purchase Orders"])
logger = get_logger(__name__)

PO_WRITERS = ["admin", "manager", "purchasing"]
PO_APPROVERS = ["admin", "manager"]
PO_RECEIVERS = ["admin", "manager", "purchasing", "inventory"]


# =====================================================
# CREATE / LIST
# =====================================================
@router.post("/", response_model=APIResponse[PurchaseOrderOut], status_code=201)
async def create_purchase_order_api(
    payload: PurchaseOrderCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PO_WRITERS)),
):
    logger.info(
        "Create purchase order",
        extra={"supplier_name": payload.supplier_name, "items": len(payload.items)},
    )
    po = await create_purchase_order(db, payload, user)
    return success_response("Purchase order created successfully", po)


@router.get("/", response_model=APIResponse[PurchaseOrderListData])
async def list_purchase_orders_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),

    search: Optional[str] = Query(None, description="Search by PO number, supplier or reference"),
    status: Optional[PurchaseOrderStatus] = Query(None),
    priority: Optional[OrderPriority] = Query(None),
    supplier_id: Optional[int] = Query(None),
    warehouse_id: Optional[int] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),

    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
):
    data = await list_purchase_orders(
        db,
        user,
        search=search,
        status=status,
        priority=priority,
        supplier_id=supplier_id,
        warehouse_id=warehouse_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return success_response("Purchase orders fetched successfully", data)


# =====================================================
# REPORTS
# =====================================================
@router.get("/pending-approvals", response_model=APIResponse[List[PurchaseOrderListItem]])
async def pending_approvals_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PO_APPROVERS)),
):
    return success_response("Pending approvals fetched", await list_pending_approvals(db))


@router.get("/overdue", response_model=APIResponse[List[PurchaseOrderListItem]])
async def overdue_purchase_orders_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    return success_response("Overdue purchase orders fetched", await list_overdue_purchase_orders(db))


@router.get("/statistics", response_model=APIResponse[PurchaseOrderStatistics])
async def purchase_order_statistics_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PO_APPROVERS)),
):
    return success_response("Purchase order statistics fetched", await purchase_order_statistics(db))


# =====================================================
# SINGLE ORDER
# =====================================================
@router.get("/{po_id}", response_model=APIResponse[PurchaseOrderOut])
async def get_purchase_order_api(
    po_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    return success_response("Purchase order fetched successfully", await get_purchase_order(db, po_id, user))


@router.patch("/{po_id}", response_model=APIResponse[PurchaseOrderOut])
async def update_purchase_order_api(
    po_id: int,
    payload: PurchaseOrderUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PO_WRITERS)),
):
    po = await update_purchase_order(db, po_id, payload, user)
    return success_response("Purchase order updated successfully", po)


@router.delete("/{po_id}", response_model=APIResponse[None])
async def delete_purchase_order_api(
    po_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PO_WRITERS)),
):
    await delete_purchase_order(db, po_id, user)
    return success_response("Purchase order deleted successfully")


# =====================================================
# LIFECYCLE
# =====================================================
@router.post("/{po_id}/submit", response_model=APIResponse[PurchaseOrderOut])
async def submit_purchase_order_api(
    po_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PO_WRITERS)),
):
    return success_response("Purchase order submitted for approval", await submit_purchase_order(db, po_id, user))


@router.post("/{po_id}/approve", response_model=APIResponse[PurchaseOrderOut])
async def approve_purchase_order_api(
    po_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PO_APPROVERS)),
):
    return success_response("Purchase order approved", await approve_purchase_order(db, po_id, user))


@router.post("/{po_id}/send", response_model=APIResponse[PurchaseOrderOut])
async def send_purchase_order_api(
    po_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PO_WRITERS)),
):
    return success_response("Purchase order sent to supplier", await send_purchase_order(db, po_id, user))


@router.post("/{po_id}/receive", response_model=APIResponse[PurchaseOrderOut])
async def receive_purchase_order_api(
    po_id: int,
    payload: ReceivePayload,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PO_RECEIVERS)),
):
    po = await receive_purchase_order(db, po_id, payload, user)
    return success_response("Items received successfully", po)


@router.post("/{po_id}/cancel", response_model=APIResponse[PurchaseOrderOut])
async def cancel_purchase_order_api(
    po_id: int,
    payload: CancelPayload,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PO_APPROVERS)),
):
    po = await cancel_purchase_order(db, po_id, payload.reason, user)
    return success_response("Purchase order cancelled", po)


@router.post("/{po_id}/close", response_model=APIResponse[PurchaseOrderOut])
async def close_purchase_order_api(
    po_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PO_APPROVERS)),
):
    return success_response("Purchase order closed", await close_purchase_order(db, po_id, user))


# =====================================================
# ITEMS
# =====================================================
@router.post("/{po_id}/items", response_model=APIResponse[PurchaseOrderOut], status_code=201)
async def add_item_api(
    po_id: int,
    payload: PurchaseOrderItemCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PO_WRITERS)),
):
    return success_response("Item added", await add_purchase_order_item(db, po_id, payload, user))


@router.patch("/{po_id}/items/{item_id}", response_model=APIResponse[PurchaseOrderOut])
async def update_item_api(
    po_id: int,
    item_id: int,
    payload: PurchaseOrderItemUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PO_WRITERS)),
):
    return success_response("Item updated", await update_purchase_order_item(db, po_id, item_id, payload, user))


@router.delete("/{po_id}/items/{item_id}", response_model=APIResponse[PurchaseOrderOut])
async def remove_item_api(
    po_id: int,
    item_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PO_WRITERS)),
):
    return success_response("Item removed", await remove_purchase_order_item(db, po_id, item_id, user))
