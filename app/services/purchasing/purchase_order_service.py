# app/services/purchasing/purchase_order_service.py
"""
Purchase order lifecycle:

    draft -> pending_approval -> approved -> sent_to_supplier
          -> partially_received -> fully_received -> closed

Any state short of fully_received / closed may be cancelled. Receiving posts
stock_in movements to the order's warehouse inside the same transaction.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, asc, desc, or_

from app.models.purchasing.purchase_order_models import (
    PurchaseOrder,
    PurchaseOrderItem,
    PO_TERMINAL_STATUSES,
)
from app.models.enums.order_priority import OrderPriority
from app.models.enums.purchase_order_status import PurchaseOrderItemStatus, PurchaseOrderStatus
from app.models.users.user_models import User
from app.policies import purchase_order_policy as policy
from app.schemas.purchasing.purchase_order_schemas import (
    PurchaseOrderCreate,
    PurchaseOrderUpdate,
    PurchaseOrderItemCreate,
    PurchaseOrderItemUpdate,
    ReceivePayload,
    PurchaseOrderOut,
    PurchaseOrderItemOut,
    PurchaseOrderListItem,
    PurchaseOrderListData,
    PurchaseOrderStatistics,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.constants.inventory_movement_type import InventoryMovementType, InventoryReferenceType
from app.services.inventory.inventory_movement_service import apply_inventory_movement
from app.services.masters.product_service import get_active_product
from app.services.masters.supplier_service import load_supplier
from app.services.masters.warehouse_service import get_active_warehouse
from app.utils.activity_helpers import emit_user_activity
from app.utils.check_roles import authorize
from app.utils.decimal_utils import to_decimal, to_rate
from app.utils.numbering import next_monthly_number
from app.utils.logger import get_logger

logger = get_logger(__name__)

S = PurchaseOrderStatus

ALLOWED_SORT_FIELDS = {
    "created_at": PurchaseOrder.created_at,
    "po_number": PurchaseOrder.po_number,
    "supplier_name": PurchaseOrder.supplier_name,
    "total_amount": PurchaseOrder.total_amount,
    "expected_delivery_date": PurchaseOrder.expected_delivery_date,
}

# header fields frozen once the order has left draft
DRAFT_ONLY_FIELDS = {"warehouse_id", "supplier_name", "supplier_email"}

MONEY_FIELDS = {"tax_rate", "shipping_cost", "discount_amount"}


# =====================================================
# MAPPERS
# =====================================================
def _map_item(item: PurchaseOrderItem) -> PurchaseOrderItemOut:
    return PurchaseOrderItemOut(
        id=item.id,
        product_id=item.product_id,
        product_name=item.product.name if item.product else None,
        product_sku=item.product.sku if item.product else None,
        quantity_ordered=item.quantity_ordered,
        quantity_received=item.quantity_received,
        quantity_rejected=item.quantity_rejected,
        quantity_pending=item.quantity_pending,
        unit_cost=item.unit_cost,
        discount_percentage=item.discount_percentage,
        line_total=item.line_total,
        discount_amount=item.discount_amount,
        final_line_total=item.final_line_total,
        status=item.status,
        rejection_reason=item.rejection_reason,
        notes=item.notes,
        last_received_at=item.last_received_at,
    )


def _map_po(po: PurchaseOrder) -> PurchaseOrderOut:
    return PurchaseOrderOut(
        id=po.id,
        po_number=po.po_number,
        supplier_id=po.supplier_id,
        supplier_name=po.supplier_name,
        supplier_email=po.supplier_email,
        supplier_phone=po.supplier_phone,
        supplier_address=po.supplier_address,
        supplier_contact_person=po.supplier_contact_person,
        supplier_reference=po.supplier_reference,
        status=po.status,
        priority=po.priority,
        warehouse_id=po.warehouse_id,
        warehouse_code=po.warehouse.code if po.warehouse else None,
        subtotal=po.subtotal,
        tax_rate=po.tax_rate,
        tax_amount=po.tax_amount,
        shipping_cost=po.shipping_cost,
        discount_amount=po.discount_amount,
        total_amount=po.total_amount,
        currency=po.currency,
        expected_delivery_date=po.expected_delivery_date,
        approved_at=po.approved_at,
        sent_at=po.sent_at,
        received_at=po.received_at,
        cancelled_at=po.cancelled_at,
        closed_at=po.closed_at,
        notes=po.notes,
        terms_and_conditions=po.terms_and_conditions,
        cancellation_reason=po.cancellation_reason,
        total_quantity_ordered=po.total_quantity_ordered,
        total_quantity_received=po.total_quantity_received,
        receiving_progress=po.receiving_progress,
        is_overdue=po.is_overdue(),
        created_by=po.created_by_id,
        created_by_name=po.created_by_username,
        approved_by=po.approved_by_id,
        approved_by_name=po.approved_by.username if po.approved_by else None,
        received_by=po.received_by_id,
        received_by_name=po.received_by.username if po.received_by else None,
        created_at=po.created_at,
        updated_at=po.updated_at,
        items=[_map_item(i) for i in po.items],
    )


def _map_list_item(po: PurchaseOrder) -> PurchaseOrderListItem:
    return PurchaseOrderListItem(
        id=po.id,
        po_number=po.po_number,
        supplier_name=po.supplier_name,
        status=po.status,
        priority=po.priority,
        warehouse_id=po.warehouse_id,
        items_count=len(po.items),
        total_amount=po.total_amount,
        currency=po.currency,
        expected_delivery_date=po.expected_delivery_date,
        receiving_progress=po.receiving_progress,
        is_overdue=po.is_overdue(),
        created_at=po.created_at,
        created_by_name=po.created_by_username,
    )


# =====================================================
# INTERNAL HELPERS
# =====================================================
async def _load_po(db: AsyncSession, po_id: int, *, for_update: bool = False) -> PurchaseOrder:
    stmt = (
        select(PurchaseOrder)
        .where(PurchaseOrder.id == po_id, PurchaseOrder.is_deleted.is_(False))
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()

    po = await db.scalar(stmt)
    if not po:
        raise AppException(404, "Purchase order not found", ErrorCode.PURCHASE_ORDER_NOT_FOUND)
    return po


def _invalid_status(action: str, po: PurchaseOrder) -> AppException:
    return AppException(
        409,
        f"Cannot {action} a purchase order in status {po.status.value}",
        ErrorCode.PURCHASE_ORDER_INVALID_STATUS,
        details={"status": po.status.value},
    )


def _find_item(po: PurchaseOrder, item_id: int) -> PurchaseOrderItem:
    for item in po.items:
        if item.id == item_id:
            return item
    raise AppException(
        404,
        "Purchase order item not found",
        ErrorCode.PURCHASE_ORDER_ITEM_NOT_FOUND,
        details={"item_id": item_id},
    )


async def _build_item(db: AsyncSession, payload: PurchaseOrderItemCreate) -> PurchaseOrderItem:
    product = await get_active_product(db, payload.product_id)
    item = PurchaseOrderItem(
        product_id=product.id,
        product=product,
        quantity_ordered=payload.quantity_ordered,
        quantity_received=0,
        quantity_rejected=0,
        unit_cost=to_decimal(payload.unit_cost),
        discount_percentage=to_decimal(payload.discount_percentage),
        status=PurchaseOrderItemStatus.pending,
        notes=payload.notes,
    )
    item.calculate_line_totals()
    return item


# =====================================================
# CREATE
# =====================================================
async def create_purchase_order(db: AsyncSession, payload: PurchaseOrderCreate, user: User) -> PurchaseOrderOut:
    authorize(policy.can_create(user))

    warehouse = await get_active_warehouse(db, payload.warehouse_id)
    if payload.supplier_id:
        await load_supplier(db, payload.supplier_id)

    items = [await _build_item(db, i) for i in payload.items]

    header = payload.model_dump(exclude={"items"})
    po = PurchaseOrder(
        **header,
        po_number=await next_monthly_number(db, PurchaseOrder.po_number, "PO"),
        status=S.draft,
        subtotal=0,
        tax_amount=0,
        total_amount=0,
        is_deleted=False,
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    po.tax_rate = to_rate(payload.tax_rate)
    po.shipping_cost = to_decimal(payload.shipping_cost)
    po.discount_amount = to_decimal(payload.discount_amount)
    po.items = items
    po.recalculate_totals()

    db.add(po)
    await db.flush()

    await emit_user_activity(
        db,
        user,
        ActivityCode.CREATE_PURCHASE_ORDER,
        target_name=po.po_number,
        supplier=po.supplier_name,
    )

    await db.commit()
    logger.info(
        "Purchase order created",
        extra={"po_id": po.id, "po_number": po.po_number, "warehouse_id": warehouse.id},
    )
    return _map_po(await _load_po(db, po.id))


# =====================================================
# READ
# =====================================================
async def get_purchase_order(db: AsyncSession, po_id: int, user: User) -> PurchaseOrderOut:
    po = await _load_po(db, po_id)
    authorize(policy.can_view(user, po))
    return _map_po(po)


async def list_purchase_orders(
    db: AsyncSession,
    user: User,
    *,
    search: str | None,
    status: PurchaseOrderStatus | None,
    priority: OrderPriority | None,
    supplier_id: int | None,
    warehouse_id: int | None,
    date_from: date | None,
    date_to: date | None,
    page: int,
    page_size: int,
    sort_by: str,
    sort_order: str,
) -> PurchaseOrderListData:
    authorize(policy.can_view_any(user))

    filters = [PurchaseOrder.is_deleted.is_(False)]
    if search:
        filters.append(
            or_(
                PurchaseOrder.po_number.ilike(f"%{search}%"),
                PurchaseOrder.supplier_name.ilike(f"%{search}%"),
                PurchaseOrder.supplier_reference.ilike(f"%{search}%"),
            )
        )
    if status:
        filters.append(PurchaseOrder.status == status)
    if priority:
        filters.append(PurchaseOrder.priority == priority)
    if supplier_id:
        filters.append(PurchaseOrder.supplier_id == supplier_id)
    if warehouse_id:
        filters.append(PurchaseOrder.warehouse_id == warehouse_id)
    if date_from:
        filters.append(func.date(PurchaseOrder.created_at) >= date_from)
    if date_to:
        filters.append(func.date(PurchaseOrder.created_at) <= date_to)

    sort_col = ALLOWED_SORT_FIELDS.get(sort_by)
    if sort_col is None:
        raise AppException(400, "Invalid sort field", ErrorCode.VALIDATION_ERROR)
    order_by = desc(sort_col) if sort_order == "desc" else asc(sort_col)

    total = await db.scalar(
        select(func.count()).select_from(select(PurchaseOrder.id).where(*filters).subquery())
    )

    rows = (
        await db.execute(
            select(PurchaseOrder)
            .where(*filters)
            .order_by(order_by, PurchaseOrder.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
    ).scalars().all()

    return PurchaseOrderListData(total=total or 0, items=[_map_list_item(p) for p in rows])


# =====================================================
# UPDATE (header only)
# =====================================================
async def update_purchase_order(
    db: AsyncSession,
    po_id: int,
    payload: PurchaseOrderUpdate,
    user: User,
) -> PurchaseOrderOut:
    po = await _load_po(db, po_id, for_update=True)

    if not po.is_editable:
        raise _invalid_status("update", po)
    authorize(policy.can_update(user, po), "You cannot update this purchase order")

    updates = payload.model_dump(exclude_unset=True)
    if po.status != S.draft:
        updates = {k: v for k, v in updates.items() if k not in DRAFT_ONLY_FIELDS}

    if "warehouse_id" in updates and updates["warehouse_id"] != po.warehouse_id:
        await get_active_warehouse(db, updates["warehouse_id"])

    changes: list[str] = []
    for field, new_value in updates.items():
        if field == "tax_rate" and new_value is not None:
            new_value = to_rate(new_value)
        elif field in MONEY_FIELDS and new_value is not None:
            new_value = to_decimal(new_value)
        old_value = getattr(po, field)
        if old_value != new_value:
            changes.append(f"{field}: {old_value} → {new_value}")
            setattr(po, field, new_value)

    if not changes:
        raise AppException(400, "No changes detected", ErrorCode.NO_CHANGES_DETECTED)

    if MONEY_FIELDS & updates.keys():
        po.recalculate_totals()
    po.updated_by_id = user.id

    await emit_user_activity(
        db,
        user,
        ActivityCode.UPDATE_PURCHASE_ORDER,
        target_name=po.po_number,
        changes=", ".join(changes),
    )

    await db.commit()
    return _map_po(await _load_po(db, po_id))


# =====================================================
# DELETE (SOFT)
# =====================================================
async def delete_purchase_order(db: AsyncSession, po_id: int, user: User) -> None:
    po = await _load_po(db, po_id, for_update=True)

    if po.status != S.draft:
        raise _invalid_status("delete", po)
    authorize(policy.can_delete(user, po), "Only the creator can delete a draft purchase order")

    po.is_deleted = True
    po.deleted_at = datetime.now(timezone.utc)
    po.updated_by_id = user.id

    await emit_user_activity(db, user, ActivityCode.DELETE_PURCHASE_ORDER, target_name=po.po_number)
    await db.commit()
    logger.info("Purchase order deleted", extra={"po_id": po_id})


# =====================================================
# LIFECYCLE
# =====================================================
async def submit_purchase_order(db: AsyncSession, po_id: int, user: User) -> PurchaseOrderOut:
    po = await _load_po(db, po_id, for_update=True)

    if po.status != S.draft:
        raise _invalid_status("submit", po)
    if not po.has_items:
        raise AppException(400, "Purchase order has no items", ErrorCode.PURCHASE_ORDER_EMPTY_ITEMS)
    authorize(policy.can_submit(user, po))

    po.status = S.pending_approval
    po.updated_by_id = user.id

    await emit_user_activity(db, user, ActivityCode.SUBMIT_PURCHASE_ORDER, target_name=po.po_number)
    await db.commit()
    return _map_po(await _load_po(db, po_id))


async def approve_purchase_order(db: AsyncSession, po_id: int, user: User) -> PurchaseOrderOut:
    po = await _load_po(db, po_id, for_update=True)

    if not po.can_be_approved():
        if po.status == S.pending_approval:
            raise AppException(400, "Purchase order has no items", ErrorCode.PURCHASE_ORDER_EMPTY_ITEMS)
        raise _invalid_status("approve", po)
    authorize(policy.can_approve(user, po))

    po.status = S.approved
    po.approved_by_id = user.id
    po.approved_at = datetime.now(timezone.utc)
    po.updated_by_id = user.id

    await emit_user_activity(db, user, ActivityCode.APPROVE_PURCHASE_ORDER, target_name=po.po_number)
    await db.commit()
    logger.info("Purchase order approved", extra={"po_id": po_id, "approved_by": user.id})
    return _map_po(await _load_po(db, po_id))


async def send_purchase_order(db: AsyncSession, po_id: int, user: User) -> PurchaseOrderOut:
    po = await _load_po(db, po_id, for_update=True)

    if not po.can_be_sent():
        raise _invalid_status("send", po)
    authorize(policy.can_send(user, po))

    po.status = S.sent_to_supplier
    po.sent_at = datetime.now(timezone.utc)
    po.updated_by_id = user.id

    await emit_user_activity(db, user, ActivityCode.SEND_PURCHASE_ORDER, target_name=po.po_number)
    await db.commit()
    return _map_po(await _load_po(db, po_id))


async def cancel_purchase_order(db: AsyncSession, po_id: int, reason: str, user: User) -> PurchaseOrderOut:
    po = await _load_po(db, po_id, for_update=True)

    if not po.can_be_cancelled():
        raise _invalid_status("cancel", po)
    authorize(policy.can_cancel(user, po))

    reason = reason.strip()
    po.status = S.cancelled
    po.cancelled_at = datetime.now(timezone.utc)
    po.cancellation_reason = reason
    po.updated_by_id = user.id

    for item in po.items:
        if item.status != PurchaseOrderItemStatus.fully_received:
            item.status = PurchaseOrderItemStatus.cancelled

    await emit_user_activity(
        db,
        user,
        ActivityCode.CANCEL_PURCHASE_ORDER,
        target_name=po.po_number,
        reason=reason,
    )
    await db.commit()
    logger.info("Purchase order cancelled", extra={"po_id": po_id, "reason": reason})
    return _map_po(await _load_po(db, po_id))


async def close_purchase_order(db: AsyncSession, po_id: int, user: User) -> PurchaseOrderOut:
    po = await _load_po(db, po_id, for_update=True)

    if not po.can_be_closed():
        raise _invalid_status("close", po)
    authorize(policy.can_close(user, po))

    po.status = S.closed
    po.closed_at = datetime.now(timezone.utc)
    po.updated_by_id = user.id

    await emit_user_activity(db, user, ActivityCode.CLOSE_PURCHASE_ORDER, target_name=po.po_number)
    await db.commit()
    return _map_po(await _load_po(db, po_id))


# =====================================================
# ITEMS
# =====================================================
async def add_purchase_order_item(
    db: AsyncSession,
    po_id: int,
    payload: PurchaseOrderItemCreate,
    user: User,
) -> PurchaseOrderOut:
    po = await _load_po(db, po_id, for_update=True)

    if po.items_locked():
        raise _invalid_status("add items to", po)
    authorize(policy.can_manage_items(user, po), "You cannot change items on this purchase order")

    po.items.append(await _build_item(db, payload))
    po.recalculate_totals()
    po.updated_by_id = user.id

    await emit_user_activity(
        db, user, ActivityCode.UPDATE_PURCHASE_ORDER_ITEMS, action="added", target_name=po.po_number
    )
    await db.commit()
    return _map_po(await _load_po(db, po_id))


async def update_purchase_order_item(
    db: AsyncSession,
    po_id: int,
    item_id: int,
    payload: PurchaseOrderItemUpdate,
    user: User,
) -> PurchaseOrderOut:
    po = await _load_po(db, po_id, for_update=True)

    if po.items_locked():
        raise _invalid_status("change items on", po)
    authorize(policy.can_manage_items(user, po), "You cannot change items on this purchase order")

    item = _find_item(po, item_id)
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise AppException(400, "No changes detected", ErrorCode.NO_CHANGES_DETECTED)

    quantity = updates.get("quantity_ordered")
    if quantity is not None and quantity < item.quantity_received:
        raise AppException(
            400,
            "quantity_ordered cannot be less than the quantity already received",
            ErrorCode.VALIDATION_ERROR,
            details={"quantity_received": item.quantity_received},
        )

    for field, value in updates.items():
        if field in ("unit_cost", "discount_percentage") and value is not None:
            value = to_decimal(value)
        setattr(item, field, value)

    item.calculate_line_totals()
    item.refresh_status()
    po.recalculate_totals()
    po.updated_by_id = user.id

    await emit_user_activity(
        db, user, ActivityCode.UPDATE_PURCHASE_ORDER_ITEMS, action="updated", target_name=po.po_number
    )
    await db.commit()
    return _map_po(await _load_po(db, po_id))


async def remove_purchase_order_item(db: AsyncSession, po_id: int, item_id: int, user: User) -> PurchaseOrderOut:
    po = await _load_po(db, po_id, for_update=True)

    if not po.is_editable:
        raise _invalid_status("remove items from", po)
    authorize(policy.can_manage_items(user, po), "You cannot change items on this purchase order")

    item = _find_item(po, item_id)
    po.items.remove(item)
    po.recalculate_totals()
    po.updated_by_id = user.id

    await emit_user_activity(
        db, user, ActivityCode.UPDATE_PURCHASE_ORDER_ITEMS, action="removed", target_name=po.po_number
    )
    await db.commit()
    return _map_po(await _load_po(db, po_id))


# =====================================================
# RECEIVING
# =====================================================
async def receive_purchase_order(
    db: AsyncSession,
    po_id: int,
    payload: ReceivePayload,
    user: User,
) -> PurchaseOrderOut:
    """Receive goods against one or more items. All lines succeed or none do."""
    po = await _load_po(db, po_id, for_update=True)

    if not po.can_be_received():
        raise _invalid_status("receive", po)
    authorize(policy.can_receive(user, po))

    now = datetime.now(timezone.utc)
    total_received = 0

    for line in payload.items:
        item = _find_item(po, line.item_id)

        if not item.can_receive_quantity(line.quantity_received):
            raise AppException(
                400,
                "Received quantity exceeds the quantity pending",
                ErrorCode.PURCHASE_ORDER_INVALID_RECEIPT,
                details={
                    "item_id": item.id,
                    "quantity_pending": item.quantity_pending,
                    "quantity_received": line.quantity_received,
                    "item_status": item.status.value,
                },
            )

        item.receive_quantity(line.quantity_received, line.notes, now=now)
        if line.quantity_rejected:
            item.reject_quantity(line.quantity_rejected, line.rejection_reason)

        await apply_inventory_movement(
            db,
            product_id=item.product_id,
            warehouse_id=po.warehouse_id,
            quantity_change=line.quantity_received,
            movement_type=InventoryMovementType.STOCK_IN,
            reference_type=InventoryReferenceType.PURCHASE_ORDER,
            reference_id=po.id,
            actor_user=user,
            notes=f"Received on {po.po_number}",
        )
        total_received += line.quantity_received

    if po.received_by_id is None:
        po.received_by_id = user.id

    po.update_receiving_status(now)
    po.updated_by_id = user.id

    await emit_user_activity(
        db,
        user,
        ActivityCode.RECEIVE_PURCHASE_ORDER,
        target_name=po.po_number,
        quantity=total_received,
        status=po.status.value,
    )

    await db.commit()
    logger.info(
        "Purchase order received",
        extra={"po_id": po_id, "quantity": total_received, "status": po.status.value},
    )
    return _map_po(await _load_po(db, po_id))


# =====================================================
# REPORTS
# =====================================================
async def list_pending_approvals(db: AsyncSession) -> list[PurchaseOrderListItem]:
    rows = (
        await db.execute(
            select(PurchaseOrder)
            .where(PurchaseOrder.is_deleted.is_(False), PurchaseOrder.status == S.pending_approval)
            .order_by(PurchaseOrder.created_at.asc())
        )
    ).scalars().all()
    return [_map_list_item(p) for p in rows]


async def list_overdue_purchase_orders(db: AsyncSession, today: date | None = None) -> list[PurchaseOrderListItem]:
    today = today or date.today()
    rows = (
        await db.execute(
            select(PurchaseOrder)
            .where(
                PurchaseOrder.is_deleted.is_(False),
                PurchaseOrder.expected_delivery_date.is_not(None),
                PurchaseOrder.expected_delivery_date < today,
                PurchaseOrder.status.notin_(PO_TERMINAL_STATUSES),
            )
            .order_by(PurchaseOrder.expected_delivery_date.asc())
        )
    ).scalars().all()
    return [_map_list_item(p) for p in rows]


async def purchase_order_statistics(db: AsyncSession, today: date | None = None) -> PurchaseOrderStatistics:
    today = today or date.today()
    base = [PurchaseOrder.is_deleted.is_(False)]

    status_rows = (
        await db.execute(
            select(PurchaseOrder.status, func.count(PurchaseOrder.id))
            .where(*base)
            .group_by(PurchaseOrder.status)
        )
    ).all()
    by_status = {s.value: c for s, c in status_rows}

    total_value = await db.scalar(
        select(func.coalesce(func.sum(PurchaseOrder.total_amount), 0))
        .where(*base, PurchaseOrder.status != S.cancelled)
    )

    overdue = await db.scalar(
        select(func.count(PurchaseOrder.id)).where(
            *base,
            PurchaseOrder.expected_delivery_date < today,
            PurchaseOrder.status.notin_(PO_TERMINAL_STATUSES),
        )
    )

    return PurchaseOrderStatistics(
        total_orders=sum(by_status.values()),
        by_status=by_status,
        total_value=to_decimal(total_value or Decimal("0")),
        pending_approval=by_status.get(S.pending_approval.value, 0),
        overdue=overdue or 0,
    )
