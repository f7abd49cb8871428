# app/services/sales/sales_order_service.py
"""
Sales order lifecycle:

    draft -> pending_approval -> approved -> confirmed
          -> partially_fulfilled -> fully_fulfilled -> shipped -> delivered

Confirming reserves stock for every line; fulfilling consumes the reservation
and posts stock_out; cancelling hands back whatever is still reserved.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, asc, desc, or_

from app.models.sales.sales_order_models import SalesOrder, SalesOrderItem, SO_INACTIVE_STATUSES
from app.models.enums.order_priority import OrderPriority
from app.models.enums.party import PaymentTerms
from app.models.enums.sales_order_status import PaymentStatus, SalesOrderItemStatus, SalesOrderStatus
from app.models.users.user_models import User
from app.policies import sales_order_policy as policy
from app.schemas.sales.sales_order_schemas import (
    SalesOrderCreate,
    SalesOrderUpdate,
    SalesOrderItemCreate,
    SalesOrderItemUpdate,
    FulfillPayload,
    ShipPayload,
    SalesOrderOut,
    SalesOrderItemOut,
    SalesOrderListItem,
    SalesOrderListData,
    SalesOrderStatistics,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.constants.inventory_movement_type import InventoryMovementType, InventoryReferenceType
from app.services.inventory.inventory_movement_service import apply_inventory_movement
from app.services.inventory.inventory_service import reserve_stock, release_stock
from app.services.masters.customer_service import load_customer
from app.services.masters.product_service import get_active_product
from app.services.masters.warehouse_service import get_active_warehouse
from app.utils.activity_helpers import emit_activity, emit_user_activity
from app.utils.check_roles import authorize
from app.utils.decimal_utils import to_decimal, to_rate
from app.utils.numbering import next_monthly_number
from app.utils.logger import get_logger

logger = get_logger(__name__)

S = SalesOrderStatus
IS = SalesOrderItemStatus

ALLOWED_SORT_FIELDS = {
    "created_at": SalesOrder.created_at,
    "so_number": SalesOrder.so_number,
    "customer_name": SalesOrder.customer_name,
    "total_amount": SalesOrder.total_amount,
    "promised_delivery_date": SalesOrder.promised_delivery_date,
}

MONEY_FIELDS = {"tax_rate", "shipping_cost", "discount_amount"}

# payment terms without a net period fall due on delivery
TERM_DAYS = {
    PaymentTerms.cod: 0,
    PaymentTerms.prepaid: 0,
    PaymentTerms.net_15: 15,
    PaymentTerms.net_30: 30,
    PaymentTerms.net_45: 45,
    PaymentTerms.net_60: 60,
    PaymentTerms.net_90: 90,
}
DEFAULT_TERM_DAYS = 30


def payment_due_date(delivered_at: datetime, terms: PaymentTerms | None) -> datetime:
    if delivered_at.tzinfo is None:
        delivered_at = delivered_at.replace(tzinfo=timezone.utc)
    days = TERM_DAYS.get(terms, DEFAULT_TERM_DAYS) if terms else DEFAULT_TERM_DAYS
    return delivered_at + timedelta(days=days)


# =====================================================
# MAPPERS
# =====================================================
def _map_item(item: SalesOrderItem) -> SalesOrderItemOut:
    return SalesOrderItemOut(
        id=item.id,
        product_id=item.product_id,
        product_name=item.product.name if item.product else None,
        product_sku=item.product.sku if item.product else None,
        quantity_ordered=item.quantity_ordered,
        quantity_allocated=item.quantity_allocated,
        quantity_fulfilled=item.quantity_fulfilled,
        quantity_shipped=item.quantity_shipped,
        quantity_backordered=item.quantity_backordered,
        quantity_remaining=item.quantity_remaining,
        unit_price=item.unit_price,
        discount_percentage=item.discount_percentage,
        line_total=item.line_total,
        discount_amount=item.discount_amount,
        final_line_total=item.final_line_total,
        status=item.status,
        notes=item.notes,
        customer_notes=item.customer_notes,
    )


def _map_so(so: SalesOrder) -> SalesOrderOut:
    return SalesOrderOut(
        id=so.id,
        so_number=so.so_number,
        customer_id=so.customer_id,
        customer_name=so.customer_name,
        customer_email=so.customer_email,
        customer_phone=so.customer_phone,
        customer_address=so.customer_address,
        customer_contact_person=so.customer_contact_person,
        customer_reference=so.customer_reference,
        status=so.status,
        priority=so.priority,
        payment_status=so.payment_status,
        payment_terms=so.payment_terms,
        warehouse_id=so.warehouse_id,
        warehouse_code=so.warehouse.code if so.warehouse else None,
        subtotal=so.subtotal,
        tax_rate=so.tax_rate,
        tax_amount=so.tax_amount,
        shipping_cost=so.shipping_cost,
        discount_amount=so.discount_amount,
        total_amount=so.total_amount,
        currency=so.currency,
        requested_delivery_date=so.requested_delivery_date,
        promised_delivery_date=so.promised_delivery_date,
        approved_at=so.approved_at,
        confirmed_at=so.confirmed_at,
        fulfilled_at=so.fulfilled_at,
        shipped_at=so.shipped_at,
        delivered_at=so.delivered_at,
        cancelled_at=so.cancelled_at,
        shipping_address=so.shipping_address,
        shipping_method=so.shipping_method,
        tracking_number=so.tracking_number,
        carrier=so.carrier,
        notes=so.notes,
        customer_notes=so.customer_notes,
        terms_and_conditions=so.terms_and_conditions,
        cancellation_reason=so.cancellation_reason,
        total_quantity_ordered=so.total_quantity_ordered,
        total_quantity_fulfilled=so.total_quantity_fulfilled,
        fulfillment_progress=so.fulfillment_progress,
        is_overdue=so.is_overdue(),
        created_by=so.created_by_id,
        created_by_name=so.created_by_username,
        approved_by_name=so.approved_by.username if so.approved_by else None,
        fulfilled_by_name=so.fulfilled_by.username if so.fulfilled_by else None,
        shipped_by_name=so.shipped_by.username if so.shipped_by else None,
        created_at=so.created_at,
        updated_at=so.updated_at,
        items=[_map_item(i) for i in so.items],
    )


def _map_list_item(so: SalesOrder) -> SalesOrderListItem:
    return SalesOrderListItem(
        id=so.id,
        so_number=so.so_number,
        customer_id=so.customer_id,
        customer_name=so.customer_name,
        status=so.status,
        payment_status=so.payment_status,
        priority=so.priority,
        warehouse_id=so.warehouse_id,
        items_count=len(so.items),
        total_amount=so.total_amount,
        currency=so.currency,
        delivery_date=so.delivery_date,
        fulfillment_progress=so.fulfillment_progress,
        is_overdue=so.is_overdue(),
        created_at=so.created_at,
        created_by_name=so.created_by_username,
    )


# =====================================================
# INTERNAL HELPERS
# =====================================================
async def _load_so(db: AsyncSession, so_id: int, *, for_update: bool = False) -> SalesOrder:
    stmt = (
        select(SalesOrder)
        .where(SalesOrder.id == so_id, SalesOrder.is_deleted.is_(False))
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()

    so = await db.scalar(stmt)
    if not so:
        raise AppException(404, "Sales order not found", ErrorCode.SALES_ORDER_NOT_FOUND)
    return so


def _invalid_status(action: str, so: SalesOrder) -> AppException:
    return AppException(
        409,
        f"Cannot {action} a sales order in status {so.status.value}",
        ErrorCode.SALES_ORDER_INVALID_STATUS,
        details={"status": so.status.value},
    )


def _find_item(so: SalesOrder, item_id: int) -> SalesOrderItem:
    for item in so.items:
        if item.id == item_id:
            return item
    raise AppException(
        404,
        "Sales order item not found",
        ErrorCode.SALES_ORDER_ITEM_NOT_FOUND,
        details={"item_id": item_id},
    )


async def _build_item(db: AsyncSession, payload: SalesOrderItemCreate) -> SalesOrderItem:
    product = await get_active_product(db, payload.product_id)
    item = SalesOrderItem(
        product_id=product.id,
        product=product,
        quantity_ordered=payload.quantity_ordered,
        quantity_allocated=0,
        quantity_fulfilled=0,
        quantity_shipped=0,
        quantity_backordered=0,
        unit_price=to_decimal(payload.unit_price),
        discount_percentage=to_decimal(payload.discount_percentage),
        status=IS.pending,
        notes=payload.notes,
        customer_notes=payload.customer_notes,
    )
    item.calculate_line_totals()
    return item


def _base_filters() -> list:
    return [SalesOrder.is_deleted.is_(False)]


async def _list(db: AsyncSession, *filters, order_by=None) -> list[SalesOrderListItem]:
    rows = (
        await db.execute(
            select(SalesOrder)
            .where(*_base_filters(), *filters)
            .order_by(order_by if order_by is not None else SalesOrder.created_at.desc())
        )
    ).scalars().all()
    return [_map_list_item(so) for so in rows]


# =====================================================
# CREATE
# =====================================================
async def create_sales_order(db: AsyncSession, payload: SalesOrderCreate, user: User) -> SalesOrderOut:
    authorize(policy.can_create(user))

    await get_active_warehouse(db, payload.warehouse_id)
    if payload.customer_id:
        await load_customer(db, payload.customer_id)

    items = [await _build_item(db, i) for i in payload.items]

    so = SalesOrder(
        **payload.model_dump(exclude={"items"}),
        so_number=await next_monthly_number(db, SalesOrder.so_number, "SO"),
        status=S.draft,
        payment_status=PaymentStatus.pending,
        subtotal=0,
        tax_amount=0,
        total_amount=0,
        is_deleted=False,
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    so.tax_rate = to_rate(payload.tax_rate)
    so.shipping_cost = to_decimal(payload.shipping_cost)
    so.discount_amount = to_decimal(payload.discount_amount)
    so.items = items
    so.recalculate_totals()

    db.add(so)
    await db.flush()

    await emit_user_activity(
        db,
        user,
        ActivityCode.CREATE_SALES_ORDER,
        target_name=so.so_number,
        customer=so.customer_name,
    )

    await db.commit()
    logger.info("Sales order created", extra={"so_id": so.id, "so_number": so.so_number})
    return _map_so(await _load_so(db, so.id))


# =====================================================
# READ
# =====================================================
async def get_sales_order(db: AsyncSession, so_id: int, user: User) -> SalesOrderOut:
    so = await _load_so(db, so_id)
    authorize(policy.can_view(user, so))
    return _map_so(so)


async def list_sales_orders(
    db: AsyncSession,
    user: User,
    *,
    search: str | None,
    status: SalesOrderStatus | None,
    payment_status: PaymentStatus | None,
    priority: OrderPriority | None,
    customer_id: int | None,
    warehouse_id: int | None,
    date_from: date | None,
    date_to: date | None,
    page: int,
    page_size: int,
    sort_by: str,
    sort_order: str,
) -> SalesOrderListData:
    authorize(policy.can_view_any(user))

    filters = _base_filters()
    if search:
        filters.append(
            or_(
                SalesOrder.so_number.ilike(f"%{search}%"),
                SalesOrder.customer_name.ilike(f"%{search}%"),
                SalesOrder.customer_reference.ilike(f"%{search}%"),
                SalesOrder.tracking_number.ilike(f"%{search}%"),
            )
        )
    if status:
        filters.append(SalesOrder.status == status)
    if payment_status:
        filters.append(SalesOrder.payment_status == payment_status)
    if priority:
        filters.append(SalesOrder.priority == priority)
    if customer_id:
        filters.append(SalesOrder.customer_id == customer_id)
    if warehouse_id:
        filters.append(SalesOrder.warehouse_id == warehouse_id)
    if date_from:
        filters.append(func.date(SalesOrder.created_at) >= date_from)
    if date_to:
        filters.append(func.date(SalesOrder.created_at) <= date_to)

    sort_col = ALLOWED_SORT_FIELDS.get(sort_by)
    if sort_col is None:
        raise AppException(400, "Invalid sort field", ErrorCode.VALIDATION_ERROR)
    order_by = desc(sort_col) if sort_order == "desc" else asc(sort_col)

    total = await db.scalar(
        select(func.count()).select_from(select(SalesOrder.id).where(*filters).subquery())
    )

    rows = (
        await db.execute(
            select(SalesOrder)
            .where(*filters)
            .order_by(order_by, SalesOrder.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
    ).scalars().all()

    return SalesOrderListData(total=total or 0, items=[_map_list_item(so) for so in rows])


# =====================================================
# UPDATE / DELETE
# =====================================================
async def update_sales_order(db: AsyncSession, so_id: int, payload: SalesOrderUpdate, user: User) -> SalesOrderOut:
    so = await _load_so(db, so_id, for_update=True)

    if not so.is_editable:
        raise _invalid_status("update", so)
    authorize(policy.can_update(user, so), "You cannot update this sales order")

    updates = payload.model_dump(exclude_unset=True)
    if "warehouse_id" in updates and updates["warehouse_id"] != so.warehouse_id:
        await get_active_warehouse(db, updates["warehouse_id"])

    changes: list[str] = []
    for field, new_value in updates.items():
        if field == "tax_rate" and new_value is not None:
            new_value = to_rate(new_value)
        elif field in MONEY_FIELDS and new_value is not None:
            new_value = to_decimal(new_value)
        old_value = getattr(so, field)
        if old_value != new_value:
            changes.append(f"{field}: {old_value} → {new_value}")
            setattr(so, field, new_value)

    if not changes:
        raise AppException(400, "No changes detected", ErrorCode.NO_CHANGES_DETECTED)

    if MONEY_FIELDS & updates.keys():
        so.recalculate_totals()
    so.updated_by_id = user.id

    await emit_user_activity(
        db,
        user,
        ActivityCode.UPDATE_SALES_ORDER,
        target_name=so.so_number,
        changes=", ".join(changes),
    )

    await db.commit()
    return _map_so(await _load_so(db, so_id))


async def delete_sales_order(db: AsyncSession, so_id: int, user: User) -> None:
    so = await _load_so(db, so_id, for_update=True)

    if so.status != S.draft:
        raise _invalid_status("delete", so)
    authorize(policy.can_delete(user, so), "You cannot delete this sales order")

    so.is_deleted = True
    so.deleted_at = datetime.now(timezone.utc)
    so.updated_by_id = user.id

    await emit_user_activity(db, user, ActivityCode.DELETE_SALES_ORDER, target_name=so.so_number)
    await db.commit()
    logger.info("Sales order deleted", extra={"so_id": so_id})


# =====================================================
# LIFECYCLE
# =====================================================
async def submit_sales_order(db: AsyncSession, so_id: int, user: User) -> SalesOrderOut:
    so = await _load_so(db, so_id, for_update=True)

    if so.status != S.draft:
        raise _invalid_status("submit", so)
    if not so.has_items:
        raise AppException(400, "Sales order has no items", ErrorCode.SALES_ORDER_EMPTY_ITEMS)
    authorize(policy.can_submit(user, so))

    so.status = S.pending_approval
    so.updated_by_id = user.id

    await emit_user_activity(db, user, ActivityCode.SUBMIT_SALES_ORDER, target_name=so.so_number)
    await db.commit()
    return _map_so(await _load_so(db, so_id))


async def approve_sales_order(db: AsyncSession, so_id: int, user: User) -> SalesOrderOut:
    so = await _load_so(db, so_id, for_update=True)

    if not so.can_be_approved():
        if so.status == S.pending_approval:
            raise AppException(400, "Sales order has no items", ErrorCode.SALES_ORDER_EMPTY_ITEMS)
        raise _invalid_status("approve", so)
    authorize(policy.can_approve(user, so))

    so.status = S.approved
    so.approved_by_id = user.id
    so.approved_at = datetime.now(timezone.utc)
    so.updated_by_id = user.id

    await emit_user_activity(db, user, ActivityCode.APPROVE_SALES_ORDER, target_name=so.so_number)
    await db.commit()
    return _map_so(await _load_so(db, so_id))


async def confirm_sales_order(db: AsyncSession, so_id: int, user: User) -> SalesOrderOut:
    """Reserve every line at the order warehouse. One shortfall fails the whole confirm."""
    so = await _load_so(db, so_id, for_update=True)

    if not so.can_be_confirmed():
        if so.status in (S.approved, S.draft):
            raise AppException(400, "Sales order has no items", ErrorCode.SALES_ORDER_EMPTY_ITEMS)
        raise _invalid_status("confirm", so)
    authorize(policy.can_confirm(user, so))

    for item in so.items:
        await reserve_stock(
            db,
            product_id=item.product_id,
            warehouse_id=so.warehouse_id,
            quantity=item.quantity_ordered,
        )
        item.quantity_allocated = item.quantity_ordered
        item.status = IS.allocated

    so.status = S.confirmed
    so.confirmed_at = datetime.now(timezone.utc)
    so.updated_by_id = user.id

    await emit_user_activity(db, user, ActivityCode.CONFIRM_SALES_ORDER, target_name=so.so_number)
    await db.commit()
    logger.info("Sales order confirmed", extra={"so_id": so_id, "lines": len(so.items)})
    return _map_so(await _load_so(db, so_id))


async def fulfill_sales_order(db: AsyncSession, so_id: int, payload: FulfillPayload, user: User) -> SalesOrderOut:
    so = await _load_so(db, so_id, for_update=True)

    if not so.can_be_fulfilled():
        raise _invalid_status("fulfill", so)
    authorize(policy.can_fulfill(user, so))

    now = datetime.now(timezone.utc)
    total = 0

    for line in payload.items:
        item = _find_item(so, line.item_id)
        if not item.can_fulfill_quantity(line.quantity):
            raise AppException(
                400,
                "Fulfilled quantity exceeds the quantity remaining",
                ErrorCode.SALES_ORDER_INVALID_FULFILLMENT,
                details={
                    "item_id": item.id,
                    "quantity_remaining": item.quantity_remaining,
                    "quantity": line.quantity,
                },
            )

        await apply_inventory_movement(
            db,
            product_id=item.product_id,
            warehouse_id=so.warehouse_id,
            quantity_change=-line.quantity,
            movement_type=InventoryMovementType.STOCK_OUT,
            reference_type=InventoryReferenceType.SALES_ORDER,
            reference_id=so.id,
            actor_user=user,
            notes=f"Fulfilled on {so.so_number}",
            consume_reserved=True,
        )
        item.fulfill_quantity(line.quantity)
        total += line.quantity

    so.update_fulfillment_status(now)
    if so.status == S.fully_fulfilled:
        so.fulfilled_by_id = user.id
    so.updated_by_id = user.id

    await emit_user_activity(
        db,
        user,
        ActivityCode.FULFILL_SALES_ORDER,
        target_name=so.so_number,
        quantity=total,
        status=so.status.value,
    )

    await db.commit()
    logger.info(
        "Sales order fulfilled",
        extra={"so_id": so_id, "quantity": total, "status": so.status.value},
    )
    return _map_so(await _load_so(db, so_id))


async def ship_sales_order(db: AsyncSession, so_id: int, payload: ShipPayload, user: User) -> SalesOrderOut:
    so = await _load_so(db, so_id, for_update=True)

    if not so.can_be_shipped():
        raise _invalid_status("ship", so)
    authorize(policy.can_ship(user, so))

    for field, value in payload.model_dump(exclude_none=True).items():
        setattr(so, field, value)

    so.status = S.shipped
    so.shipped_at = datetime.now(timezone.utc)
    so.shipped_by_id = user.id
    so.updated_by_id = user.id

    for item in so.items:
        if item.status == IS.cancelled:
            continue
        item.quantity_shipped = item.quantity_fulfilled
        item.status = IS.shipped

    await emit_user_activity(
        db,
        user,
        ActivityCode.SHIP_SALES_ORDER,
        target_name=so.so_number,
        carrier=so.carrier or "unspecified carrier",
    )
    await db.commit()
    return _map_so(await _load_so(db, so_id))


async def deliver_sales_order(db: AsyncSession, so_id: int, user: User) -> SalesOrderOut:
    so = await _load_so(db, so_id, for_update=True)

    if not so.can_be_delivered():
        raise _invalid_status("deliver", so)
    authorize(policy.can_deliver(user, so))

    so.status = S.delivered
    so.delivered_at = datetime.now(timezone.utc)
    so.updated_by_id = user.id
    for item in so.items:
        if item.status == IS.shipped:
            item.status = IS.delivered

    await emit_user_activity(db, user, ActivityCode.DELIVER_SALES_ORDER, target_name=so.so_number)
    await db.commit()
    return _map_so(await _load_so(db, so_id))


async def cancel_sales_order(db: AsyncSession, so_id: int, reason: str, user: User) -> SalesOrderOut:
    so = await _load_so(db, so_id, for_update=True)

    if not so.can_be_cancelled():
        raise _invalid_status("cancel", so)
    authorize(policy.can_cancel(user, so))

    released = 0
    for item in so.items:
        if item.quantity_allocated > 0:
            await release_stock(
                db,
                product_id=item.product_id,
                warehouse_id=so.warehouse_id,
                quantity=item.quantity_allocated,
            )
            released += item.quantity_allocated
            item.quantity_allocated = 0
        if item.status not in (IS.fully_fulfilled, IS.shipped, IS.delivered):
            item.status = IS.cancelled

    reason = reason.strip()
    so.status = S.cancelled
    so.payment_status = PaymentStatus.cancelled
    so.cancelled_at = datetime.now(timezone.utc)
    so.cancellation_reason = reason
    so.updated_by_id = user.id

    await emit_user_activity(
        db,
        user,
        ActivityCode.CANCEL_SALES_ORDER,
        target_name=so.so_number,
        reason=reason,
    )
    await db.commit()
    logger.info("Sales order cancelled", extra={"so_id": so_id, "released": released})
    return _map_so(await _load_so(db, so_id))


async def update_payment_status(
    db: AsyncSession,
    so_id: int,
    payment_status: PaymentStatus,
    user: User,
) -> SalesOrderOut:
    so = await _load_so(db, so_id, for_update=True)

    if so.status == S.cancelled:
        raise _invalid_status("update payment on", so)
    if so.payment_status == payment_status:
        raise AppException(400, "Payment status unchanged", ErrorCode.NO_CHANGES_DETECTED)

    so.payment_status = payment_status
    so.updated_by_id = user.id

    await emit_user_activity(
        db,
        user,
        ActivityCode.UPDATE_PAYMENT_STATUS,
        target_name=so.so_number,
        status=payment_status.value,
    )
    await db.commit()
    return _map_so(await _load_so(db, so_id))


# =====================================================
# ITEMS
# =====================================================
async def add_sales_order_item(db: AsyncSession, so_id: int, payload: SalesOrderItemCreate, user: User) -> SalesOrderOut:
    so = await _load_so(db, so_id, for_update=True)

    if not so.is_editable:
        raise _invalid_status("add items to", so)
    authorize(policy.can_update(user, so), "You cannot change items on this sales order")

    so.items.append(await _build_item(db, payload))
    so.recalculate_totals()
    so.updated_by_id = user.id

    await emit_user_activity(
        db, user, ActivityCode.UPDATE_SALES_ORDER_ITEMS, action="added", target_name=so.so_number
    )
    await db.commit()
    return _map_so(await _load_so(db, so_id))


async def update_sales_order_item(
    db: AsyncSession,
    so_id: int,
    item_id: int,
    payload: SalesOrderItemUpdate,
    user: User,
) -> SalesOrderOut:
    so = await _load_so(db, so_id, for_update=True)

    if not so.is_editable:
        raise _invalid_status("change items on", so)
    authorize(policy.can_update(user, so), "You cannot change items on this sales order")

    item = _find_item(so, item_id)
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise AppException(400, "No changes detected", ErrorCode.NO_CHANGES_DETECTED)

    for field, value in updates.items():
        if field in ("unit_price", "discount_percentage") and value is not None:
            value = to_decimal(value)
        setattr(item, field, value)

    item.calculate_line_totals()
    so.recalculate_totals()
    so.updated_by_id = user.id

    await emit_user_activity(
        db, user, ActivityCode.UPDATE_SALES_ORDER_ITEMS, action="updated", target_name=so.so_number
    )
    await db.commit()
    return _map_so(await _load_so(db, so_id))


async def remove_sales_order_item(db: AsyncSession, so_id: int, item_id: int, user: User) -> SalesOrderOut:
    so = await _load_so(db, so_id, for_update=True)

    if not so.is_editable:
        raise _invalid_status("remove items from", so)
    authorize(policy.can_update(user, so), "You cannot change items on this sales order")

    so.items.remove(_find_item(so, item_id))
    so.recalculate_totals()
    so.updated_by_id = user.id

    await emit_user_activity(
        db, user, ActivityCode.UPDATE_SALES_ORDER_ITEMS, action="removed", target_name=so.so_number
    )
    await db.commit()
    return _map_so(await _load_so(db, so_id))


# =====================================================
# REPORTS
# =====================================================
def _overdue_filters(today: date) -> list:
    due = func.coalesce(SalesOrder.promised_delivery_date, SalesOrder.requested_delivery_date)
    return [due.is_not(None), due < today, SalesOrder.status.notin_(SO_INACTIVE_STATUSES)]


async def list_pending_approvals(db: AsyncSession) -> list[SalesOrderListItem]:
    return await _list(db, SalesOrder.status == S.pending_approval, order_by=SalesOrder.created_at.asc())


async def list_overdue_sales_orders(db: AsyncSession, today: date | None = None) -> list[SalesOrderListItem]:
    return await _list(db, *_overdue_filters(today or date.today()))


async def list_unfulfilled(db: AsyncSession) -> list[SalesOrderListItem]:
    """Confirmed orders with stock still to pick, soonest promise first."""
    return await _list(
        db,
        SalesOrder.status.in_([S.confirmed, S.partially_fulfilled]),
        order_by=SalesOrder.promised_delivery_date.asc(),
    )


async def list_awaiting_shipment(db: AsyncSession) -> list[SalesOrderListItem]:
    return await _list(db, SalesOrder.status == S.fully_fulfilled, order_by=SalesOrder.fulfilled_at.asc())


async def list_by_customer(db: AsyncSession, customer_id: int) -> list[SalesOrderListItem]:
    await load_customer(db, customer_id)
    return await _list(db, SalesOrder.customer_id == customer_id)


async def list_by_payment_status(db: AsyncSession, payment_status: PaymentStatus) -> list[SalesOrderListItem]:
    return await _list(db, SalesOrder.payment_status == payment_status)


async def sales_order_statistics(db: AsyncSession, today: date | None = None) -> SalesOrderStatistics:
    today = today or date.today()
    base = _base_filters()

    status_rows = (
        await db.execute(
            select(SalesOrder.status, func.count(SalesOrder.id)).where(*base).group_by(SalesOrder.status)
        )
    ).all()
    payment_rows = (
        await db.execute(
            select(SalesOrder.payment_status, func.count(SalesOrder.id))
            .where(*base)
            .group_by(SalesOrder.payment_status)
        )
    ).all()

    by_status = {s.value: c for s, c in status_rows}

    total_value = await db.scalar(
        select(func.coalesce(func.sum(SalesOrder.total_amount), 0)).where(*base, SalesOrder.status != S.cancelled)
    )
    overdue = await db.scalar(
        select(func.count(SalesOrder.id)).where(*base, *_overdue_filters(today))
    )

    return SalesOrderStatistics(
        total_orders=sum(by_status.values()),
        by_status=by_status,
        by_payment_status={p.value: c for p, c in payment_rows},
        total_value=to_decimal(total_value or Decimal("0")),
        pending_approval=by_status.get(S.pending_approval.value, 0),
        overdue=overdue or 0,
        awaiting_shipment=by_status.get(S.fully_fulfilled.value, 0),
    )


# =====================================================
# SCHEDULED: OVERDUE PAYMENTS
# =====================================================
async def flag_overdue_payments(db: AsyncSession, now: datetime | None = None) -> int:
    """Mark delivered orders whose payment window has lapsed. Commits."""
    now = now or datetime.now(timezone.utc)

    candidates = (
        await db.execute(
            select(SalesOrder).where(
                *_base_filters(),
                SalesOrder.status == S.delivered,
                SalesOrder.delivered_at.is_not(None),
                SalesOrder.payment_status.in_([PaymentStatus.pending, PaymentStatus.partial]),
            )
        )
    ).scalars().all()

    flagged = 0
    for so in candidates:
        if payment_due_date(so.delivered_at, so.payment_terms) >= now:
            continue

        so.payment_status = PaymentStatus.overdue
        await emit_activity(
            db,
            user_id=None,
            username="system",
            code=ActivityCode.FLAG_PAYMENT_OVERDUE,
            target_name=so.so_number,
        )
        flagged += 1

    await db.commit()
    return flagged
