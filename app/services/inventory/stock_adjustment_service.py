from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, case, or_, String, cast

from app.models.inventory.inventory_models import Inventory
from app.models.inventory.stock_adjustment_models import StockAdjustment
from app.models.enums.stock_adjustment import AdjustmentReason, AdjustmentType
from app.models.users.user_models import User
from app.schemas.inventory.stock_adjustment_schemas import (
    StockAdjustmentCreate,
    StockAdjustmentOut,
    StockAdjustmentListData,
    StockAdjustmentAnalytics,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.constants.inventory_movement_type import InventoryMovementType, InventoryReferenceType
from app.services.inventory.inventory_movement_service import apply_inventory_movement
from app.services.inventory.inventory_service import load_inventory
from app.utils.activity_helpers import emit_user_activity
from app.utils.numbering import adjustment_reference
from app.utils.logger import get_logger

logger = get_logger(__name__)

SORT_OPTIONS = {
    "newest": StockAdjustment.adjusted_at.desc(),
    "oldest": StockAdjustment.adjusted_at.asc(),
    "reference": StockAdjustment.reference_number.asc(),
    "quantity_high": StockAdjustment.quantity_adjusted.desc(),
    "quantity_low": StockAdjustment.quantity_adjusted.asc(),
}


def _map_adjustment(a: StockAdjustment) -> StockAdjustmentOut:
    inv = a.inventory
    return StockAdjustmentOut(
        id=a.id,
        reference_number=a.reference_number,
        inventory_id=a.inventory_id,
        product_id=inv.product_id,
        product_name=inv.product.name if inv.product else None,
        warehouse_id=inv.warehouse_id,
        warehouse_code=inv.warehouse.code if inv.warehouse else None,
        adjustment_type=a.adjustment_type,
        quantity_adjusted=a.quantity_adjusted,
        quantity_before=a.quantity_before,
        quantity_after=a.quantity_after,
        reason=a.reason,
        notes=a.notes,
        adjusted_by=a.adjusted_by_id,
        adjusted_by_name=a.adjusted_by.username if a.adjusted_by else None,
        adjusted_at=a.adjusted_at,
        created_at=a.created_at,
    )


async def _load_adjustment(db: AsyncSession, adjustment_id: int) -> StockAdjustment:
    adjustment = await db.scalar(
        select(StockAdjustment)
        .where(StockAdjustment.id == adjustment_id)
        .execution_options(populate_existing=True)
    )
    if not adjustment:
        raise AppException(404, "Stock adjustment not found", ErrorCode.STOCK_ADJUSTMENT_NOT_FOUND)
    return adjustment


# =====================================================
# CREATE
# =====================================================
async def create_stock_adjustment(
    db: AsyncSession,
    payload: StockAdjustmentCreate,
    user: User,
) -> StockAdjustmentOut:
    inventory = await load_inventory(db, payload.inventory_id, for_update=True)

    quantity = payload.quantity
    if payload.adjustment_type == AdjustmentType.decrease:
        available = inventory.quantity_available
        if available <= 0:
            raise AppException(
                409,
                "No available stock to decrease",
                ErrorCode.INSUFFICIENT_STOCK,
            )
        # a decrease never eats into reserved stock
        quantity = min(quantity, available)
        change = -quantity
        movement_type = InventoryMovementType.ADJUSTMENT_OUT
    else:
        change = quantity
        movement_type = InventoryMovementType.ADJUSTMENT_IN

    now = datetime.now(timezone.utc)
    adjustment = StockAdjustment(
        reference_number=adjustment_reference(now),
        inventory_id=inventory.id,
        adjustment_type=payload.adjustment_type,
        quantity_adjusted=quantity,
        quantity_before=inventory.quantity_on_hand,
        quantity_after=inventory.quantity_on_hand + change,
        reason=payload.reason,
        notes=payload.notes,
        adjusted_by_id=user.id,
        adjusted_at=now,
    )
    db.add(adjustment)
    await db.flush()

    await apply_inventory_movement(
        db,
        product_id=inventory.product_id,
        warehouse_id=inventory.warehouse_id,
        quantity_change=change,
        movement_type=movement_type,
        reference_type=InventoryReferenceType.ADJUSTMENT,
        reference_id=adjustment.id,
        actor_user=user,
        notes=payload.notes,
    )

    await emit_user_activity(
        db,
        user,
        ActivityCode.CREATE_STOCK_ADJUSTMENT,
        target_name=adjustment.reference_number,
        adjustment_type=payload.adjustment_type.value,
        quantity=quantity,
        reason=payload.reason.value,
    )

    await db.commit()

    if quantity != payload.quantity:
        logger.warning(
            "Stock decrease floored to available quantity",
            extra={"requested": payload.quantity, "applied": quantity, "inventory_id": inventory.id},
        )

    return _map_adjustment(await _load_adjustment(db, adjustment.id))


# =====================================================
# READ
# =====================================================
async def get_stock_adjustment(db: AsyncSession, adjustment_id: int) -> StockAdjustmentOut:
    return _map_adjustment(await _load_adjustment(db, adjustment_id))


async def list_stock_adjustments(
    db: AsyncSession,
    *,
    search: str | None,
    adjustment_type: AdjustmentType | None,
    reason: AdjustmentReason | None,
    warehouse_id: int | None,
    product_id: int | None,
    date_from: datetime | None,
    date_to: datetime | None,
    sort: str,
    page: int,
    page_size: int,
) -> StockAdjustmentListData:
    order_by = SORT_OPTIONS.get(sort)
    if order_by is None:
        raise AppException(400, "Invalid sort option", ErrorCode.VALIDATION_ERROR)

    filters = []
    if search:
        filters.append(
            or_(
                StockAdjustment.reference_number.ilike(f"%{search}%"),
                cast(StockAdjustment.reason, String).ilike(f"%{search}%"),
                StockAdjustment.notes.ilike(f"%{search}%"),
            )
        )
    if adjustment_type:
        filters.append(StockAdjustment.adjustment_type == adjustment_type)
    if reason:
        filters.append(StockAdjustment.reason == reason)
    if warehouse_id:
        filters.append(Inventory.warehouse_id == warehouse_id)
    if product_id:
        filters.append(Inventory.product_id == product_id)
    if date_from:
        filters.append(StockAdjustment.adjusted_at >= date_from)
    if date_to:
        filters.append(StockAdjustment.adjusted_at <= date_to)

    base = (
        select(StockAdjustment)
        .join(Inventory, Inventory.id == StockAdjustment.inventory_id)
        .where(*filters)
    )

    total = await db.scalar(
        select(func.count()).select_from(
            select(StockAdjustment.id)
            .join(Inventory, Inventory.id == StockAdjustment.inventory_id)
            .where(*filters)
            .subquery()
        )
    )

    rows = (
        await db.execute(
            base.order_by(order_by, StockAdjustment.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
    ).scalars().all()

    return StockAdjustmentListData(total=total or 0, items=[_map_adjustment(a) for a in rows])


async def list_adjustments_for_inventory(db: AsyncSession, inventory_id: int) -> list[StockAdjustmentOut]:
    await load_inventory(db, inventory_id)
    rows = (
        await db.execute(
            select(StockAdjustment)
            .where(StockAdjustment.inventory_id == inventory_id)
            .order_by(StockAdjustment.adjusted_at.desc(), StockAdjustment.id.desc())
        )
    ).scalars().all()
    return [_map_adjustment(a) for a in rows]


# =====================================================
# ANALYTICS
# =====================================================
async def stock_adjustment_analytics(
    db: AsyncSession,
    *,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> StockAdjustmentAnalytics:
    filters = []
    if date_from:
        filters.append(StockAdjustment.adjusted_at >= date_from)
    if date_to:
        filters.append(StockAdjustment.adjusted_at <= date_to)

    is_increase = StockAdjustment.adjustment_type == AdjustmentType.increase
    is_decrease = StockAdjustment.adjustment_type == AdjustmentType.decrease

    total, increases, decreases, qty_in, qty_out = (
        await db.execute(
            select(
                func.count(StockAdjustment.id),
                func.coalesce(func.sum(case((is_increase, 1), else_=0)), 0),
                func.coalesce(func.sum(case((is_decrease, 1), else_=0)), 0),
                func.coalesce(func.sum(case((is_increase, StockAdjustment.quantity_adjusted), else_=0)), 0),
                func.coalesce(func.sum(case((is_decrease, StockAdjustment.quantity_adjusted), else_=0)), 0),
            ).where(*filters)
        )
    ).one()

    reason_rows = (
        await db.execute(
            select(StockAdjustment.reason, func.count(StockAdjustment.id))
            .where(*filters)
            .group_by(StockAdjustment.reason)
        )
    ).all()

    return StockAdjustmentAnalytics(
        total_adjustments=total or 0,
        total_increases=int(increases),
        total_decreases=int(decreases),
        quantity_increased=int(qty_in),
        quantity_decreased=int(qty_out),
        net_quantity=int(qty_in) - int(qty_out),
        by_reason={r.value: c for r, c in reason_rows},
    )
