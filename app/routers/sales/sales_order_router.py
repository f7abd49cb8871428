from datetime import date
from typing import Optional, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.order_priority import OrderPriority
from app.models.enums.sales_order_status import PaymentStatus, SalesOrderStatus
from app.schemas.purchasing.purchase_order_schemas import CancelPayload
from app.schemas.sales.sales_order_schemas import (
    SalesOrderCreate,
    SalesOrderUpdate,
    SalesOrderItemCreate,
    SalesOrderItemUpdate,
    FulfillPayload,
    ShipPayload,
    PaymentStatusPayload,
    SalesOrderOut,
    SalesOrderListItem,
    SalesOrderListData,
    SalesOrderStatistics,
)
from app.services.sales.sales_order_service import (
    create_sales_order,
    get_sales_order,
    list_sales_orders,
    update_sales_order,
    delete_sales_order,
    submit_sales_order,
    approve_sales_order,
    confirm_sales_order,
    fulfill_sales_order,
    ship_sales_order,
    deliver_sales_order,
    cancel_sales_order,
    update_payment_status,
    add_sales_order_item,
    update_sales_order_item,
    remove_sales_order_item,
    list_pending_approvals,
    list_overdue_sales_orders,
    list_awaiting_shipment,
    list_unfulfilled,
    list_by_customer,
    list_by_payment_status,
    sales_order_statistics,
)
from app.utils.check_roles import require_role
from app.utils.get_user import get_current_user
from app.utils.response import APIResponse, success_response
from app.utils.logger import get_logger

router = APIRouter(prefix="/sales-orders", tags=["Sales Orders"])
logger = get_logger(__name__)

SO_WRITERS = ["admin", "manager", "sales"]
SO_APPROVERS = ["admin", "manager"]
SO_FULFILLERS = ["admin", "manager", "sales", "inventory"]


# =====================================================
# CREATE / LIST
# =====================================================
@router.post("/", response_model=APIResponse[SalesOrderOut], status_code=201)
async def create_sales_order_api(
    payload: SalesOrderCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_WRITERS)),
):
    logger.info(
        "Create sales order",
        extra={"customer_name": payload.customer_name, "items": len(payload.items)},
    )
    so = await create_sales_order(db, payload, user)
    return success_response("Sales order created successfully", so)


@router.get("/", response_model=APIResponse[SalesOrderListData])
async def list_sales_orders_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),

    search: Optional[str] = Query(None, description="Search by SO number, customer, reference or tracking number"),
    status: Optional[SalesOrderStatus] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    priority: Optional[OrderPriority] = Query(None),
    customer_id: Optional[int] = Query(None),
    warehouse_id: Optional[int] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),

    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
):
    data = await list_sales_orders(
        db,
        user,
        search=search,
        status=status,
        payment_status=payment_status,
        priority=priority,
        customer_id=customer_id,
        warehouse_id=warehouse_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return success_response("Sales orders fetched successfully", data)


# =====================================================
# REPORTS
# =====================================================
@router.get("/pending-approvals", response_model=APIResponse[List[SalesOrderListItem]])
async def pending_approvals_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_APPROVERS)),
):
    return success_response("Pending approvals fetched", await list_pending_approvals(db))


@router.get("/overdue", response_model=APIResponse[List[SalesOrderListItem]])
async def overdue_sales_orders_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    return success_response("Overdue sales orders fetched", await list_overdue_sales_orders(db))


@router.get("/unfulfilled", response_model=APIResponse[List[SalesOrderListItem]])
async def unfulfilled_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_FULFILLERS)),
):
    return success_response("Unfulfilled orders fetched", await list_unfulfilled(db))


@router.get("/awaiting-shipment", response_model=APIResponse[List[SalesOrderListItem]])
async def awaiting_shipment_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_FULFILLERS)),
):
    return success_response("Orders awaiting shipment fetched", await list_awaiting_shipment(db))


@router.get("/statistics", response_model=APIResponse[SalesOrderStatistics])
async def sales_order_statistics_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_APPROVERS)),
):
    return success_response("Sales order statistics fetched", await sales_order_statistics(db))


@router.get("/by-customer/{customer_id}", response_model=APIResponse[List[SalesOrderListItem]])
async def sales_orders_by_customer_api(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    return success_response("Customer sales orders fetched", await list_by_customer(db, customer_id))


@router.get("/by-payment-status/{payment_status}", response_model=APIResponse[List[SalesOrderListItem]])
async def sales_orders_by_payment_status_api(
    payment_status: PaymentStatus,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    return success_response("Sales orders fetched", await list_by_payment_status(db, payment_status))


# =====================================================
# SINGLE ORDER
# =====================================================
@router.get("/{so_id}", response_model=APIResponse[SalesOrderOut])
async def get_sales_order_api(
    so_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    return success_response("Sales order fetched successfully", await get_sales_order(db, so_id, user))


@router.patch("/{so_id}", response_model=APIResponse[SalesOrderOut])
async def update_sales_order_api(
    so_id: int,
    payload: SalesOrderUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_WRITERS)),
):
    so = await update_sales_order(db, so_id, payload, user)
    return success_response("Sales order updated successfully", so)


@router.delete("/{so_id}", response_model=APIResponse[None])
async def delete_sales_order_api(
    so_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_WRITERS)),
):
    await delete_sales_order(db, so_id, user)
    return success_response("Sales order deleted successfully")


# =====================================================
# LIFECYCLE
# =====================================================
@router.post("/{so_id}/submit", response_model=APIResponse[SalesOrderOut])
async def submit_sales_order_api(
    so_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_WRITERS)),
):
    return success_response("Sales order submitted for approval", await submit_sales_order(db, so_id, user))


@router.post("/{so_id}/approve", response_model=APIResponse[SalesOrderOut])
async def approve_sales_order_api(
    so_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_APPROVERS)),
):
    return success_response("Sales order approved", await approve_sales_order(db, so_id, user))


@router.post("/{so_id}/confirm", response_model=APIResponse[SalesOrderOut])
async def confirm_sales_order_api(
    so_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_WRITERS)),
):
    return success_response("Sales order confirmed and stock reserved", await confirm_sales_order(db, so_id, user))


@router.post("/{so_id}/fulfill", response_model=APIResponse[SalesOrderOut])
async def fulfill_sales_order_api(
    so_id: int,
    payload: FulfillPayload,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_FULFILLERS)),
):
    so = await fulfill_sales_order(db, so_id, payload, user)
    return success_response("Items fulfilled successfully", so)


@router.post("/{so_id}/ship", response_model=APIResponse[SalesOrderOut])
async def ship_sales_order_api(
    so_id: int,
    payload: ShipPayload,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_FULFILLERS)),
):
    return success_response("Sales order shipped", await ship_sales_order(db, so_id, payload, user))


@router.post("/{so_id}/deliver", response_model=APIResponse[SalesOrderOut])
async def deliver_sales_order_api(
    so_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_FULFILLERS)),
):
    return success_response("Sales order delivered", await deliver_sales_order(db, so_id, user))


@router.post("/{so_id}/cancel", response_model=APIResponse[SalesOrderOut])
async def cancel_sales_order_api(
    so_id: int,
    payload: CancelPayload,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_APPROVERS)),
):
    so = await cancel_sales_order(db, so_id, payload.reason, user)
    return success_response("Sales order cancelled", so)


@router.patch("/{so_id}/payment-status", response_model=APIResponse[SalesOrderOut])
async def update_payment_status_api(
    so_id: int,
    payload: PaymentStatusPayload,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_WRITERS)),
):
    so = await update_payment_status(db, so_id, payload.payment_status, user)
    return success_response("Payment status updated", so)


# =====================================================
# ITEMS
# =====================================================
@router.post("/{so_id}/items", response_model=APIResponse[SalesOrderOut], status_code=201)
async def add_item_api(
    so_id: int,
    payload: SalesOrderItemCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_WRITERS)),
):
    return success_response("Item added", await add_sales_order_item(db, so_id, payload, user))


@router.patch("/{so_id}/items/{item_id}", response_model=APIResponse[SalesOrderOut])
async def update_item_api(
    so_id: int,
    item_id: int,
    payload: SalesOrderItemUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_WRITERS)),
):
    return success_response("Item updated", await update_sales_order_item(db, so_id, item_id, payload, user))


@router.delete("/{so_id}/items/{item_id}", response_model=APIResponse[SalesOrderOut])
async def remove_item_api(
    so_id: int,
    item_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SO_WRITERS)),
):
    return success_response("Item removed", await remove_sales_order_item(db, so_id, item_id, user))
