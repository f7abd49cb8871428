from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.core.config import MOVEMENT_AUTO_APPROVE_LIMIT
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.constants.inventory_movement_type import InventoryMovementType, InventoryReferenceType
from app.models.inventory.stock_movement_models import StockMovement
from app.models.enums.stock_movement_status import StockMovementStatus, StockMovementType
from app.models.users.user_models import User
from app.schemas.inventory.stock_movement_schemas import (
    StockMovementCreate,
    StockMovementOut,
    StockMovementListData,
    StockMovementSearch,
    StockMovementStats,
)
from app.services.inventory.inventory_movement_service import apply_inventory_movement
from app.services.inventory.inventory_service import load_inventory
from app.utils.activity_helpers import emit_user_activity
from app.utils.decimal_utils import to_decimal
from app.utils.numbering import next_daily_number
from app.utils.logger import get_logger

logger = get_logger(__name__)

AUTO_APPROVABLE_TYPES = {
    StockMovementType.adjustment_increase,
    StockMovementType.adjustment_decrease,
}


def _map_movement(m: StockMovement) -> StockMovementOut:
    return StockMovementOut(
        id=m.id,
        reference_number=m.reference_number,
        inventory_id=m.inventory_id,
        product_id=m.product_id,
        product_name=m.product.name if m.product else None,
        warehouse_id=m.warehouse_id,
        warehouse_code=m.warehouse.code if m.warehouse else None,
        movement_type=m.movement_type,
        quantity_moved=m.quantity_moved,
        quantity_before=m.quantity_before,
        quantity_after=m.quantity_after,
        unit_cost=m.unit_cost,
        total_value=m.total_value,
        reason=m.reason,
        notes=m.notes,
        related_document_type=m.related_document_type,
        related_document_id=m.related_document_id,
        status=m.status,
        user_id=m.user_id,
        user_name=m.user.username if m.user else None,
        approved_by_id=m.approved_by_id,
        approved_by_name=m.approved_by.username if m.approved_by else None,
        approved_at=m.approved_at,
        created_at=m.created_at,
    )


async def _load_movement(db: AsyncSession, movement_id: int, *, for_update: bool = False) -> StockMovement:
    stmt = (
        select(StockMovement)
        .where(StockMovement.id == movement_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()

    movement = await db.scalar(stmt)
    if not movement:
        raise AppException(404, "Stock movement not found", ErrorCode.STOCK_MOVEMENT_NOT_FOUND)
    return movement


async def _apply(db: AsyncSession, movement: StockMovement, user: User) -> None:
    """Post an approved movement to inventory and mark it applied."""
    change = movement.quantity_moved
    await apply_inventory_movement(
        db,
        product_id=movement.product_id,
        warehouse_id=movement.warehouse_id,
        quantity_change=change,
        movement_type=InventoryMovementType.ADJUSTMENT_IN if change > 0 else InventoryMovementType.ADJUSTMENT_OUT,
        reference_type=InventoryReferenceType.STOCK_MOVEMENT,
        reference_id=movement.id,
        actor_user=user,
        notes=movement.reason,
    )

    movement.status = StockMovementStatus.applied
    movement.approved_by_id = user.id
    movement.approved_at = datetime.now(timezone.utc)


# =====================================================
# CREATE
# =====================================================
async def create_stock_movement(
    db: AsyncSession,
    payload: StockMovementCreate,
    user: User,
) -> StockMovementOut:
    inventory = await load_inventory(db, payload.inventory_id, for_update=True)

    projected = inventory.quantity_on_hand + payload.quantity_moved
    if projected < 0:
        raise AppException(
            409,
            "Movement would make on-hand quantity negative",
            ErrorCode.INSUFFICIENT_STOCK,
            details={"quantity_on_hand": inventory.quantity_on_hand, "quantity_moved": payload.quantity_moved},
        )

    if payload.unit_cost is not None:
        unit_cost = to_decimal(payload.unit_cost)
    else:
        unit_cost = to_decimal(inventory.product.cost_price or 0)
    total_value = to_decimal(unit_cost * payload.quantity_moved)

    now = datetime.now(timezone.utc)
    movement = StockMovement(
        reference_number=await next_daily_number(db, StockMovement, "SM", separator="", now=now),
        inventory_id=inventory.id,
        product_id=inventory.product_id,
        warehouse_id=inventory.warehouse_id,
        movement_type=payload.movement_type,
        quantity_moved=payload.quantity_moved,
        quantity_before=inventory.quantity_on_hand,
        quantity_after=projected,
        unit_cost=unit_cost,
        total_value=total_value,
        reason=payload.reason,
        notes=payload.notes,
        related_document_type=payload.related_document_type,
        related_document_id=payload.related_document_id,
        status=StockMovementStatus.pending,
        user_id=user.id,
    )
    db.add(movement)
    await db.flush()

    auto_approve = (
        payload.movement_type in AUTO_APPROVABLE_TYPES
        and abs(total_value) < Decimal(MOVEMENT_AUTO_APPROVE_LIMIT)
    )
    if auto_approve:
        await _apply(db, movement, user)

    await emit_user_activity(
        db,
        user,
        ActivityCode.CREATE_STOCK_MOVEMENT,
        target_name=movement.reference_number,
        status=movement.status.value,
    )

    await db.commit()
    logger.info(
        "Stock movement recorded",
        extra={"movement_id": movement.id, "auto_approved": auto_approve},
    )
    return _map_movement(await _load_movement(db, movement.id))


# =====================================================
# APPROVE / REJECT
# =====================================================
async def approve_stock_movement(db: AsyncSession, movement_id: int, user: User) -> StockMovementOut:
    movement = await _load_movement(db, movement_id, for_update=True)

    if movement.status != StockMovementStatus.pending:
        raise AppException(
            409,
            "Only pending movements can be approved",
            ErrorCode.STOCK_MOVEMENT_INVALID_STATUS,
        )

    await _apply(db, movement, user)

    await emit_user_activity(
        db,
        user,
        ActivityCode.APPROVE_STOCK_MOVEMENT,
        target_name=movement.reference_number,
    )

    await db.commit()
    return _map_movement(await _load_movement(db, movement_id))


async def reject_stock_movement(db: AsyncSession, movement_id: int, reason: str, user: User) -> StockMovementOut:
    movement = await _load_movement(db, movement_id, for_update=True)

    if movement.status != StockMovementStatus.pending:
        raise AppException(
            409,
            "Only pending movements can be rejected",
            ErrorCode.STOCK_MOVEMENT_INVALID_STATUS,
        )

    rejection = f"Rejected: {reason.strip()}"
    movement.notes = f"{movement.notes}\n{rejection}" if movement.notes else rejection
    movement.status = StockMovementStatus.rejected

    await emit_user_activity(
        db,
        user,
        ActivityCode.REJECT_STOCK_MOVEMENT,
        target_name=movement.reference_number,
        reason=reason.strip(),
    )

    await db.commit()
    return _map_movement(await _load_movement(db, movement_id))


# =====================================================
# READ / SEARCH
# =====================================================
async def get_stock_movement(db: AsyncSession, movement_id: int) -> StockMovementOut:
    return _map_movement(await _load_movement(db, movement_id))


def _search_filters(criteria: StockMovementSearch) -> list:
    filters = []
    if criteria.movement_types:
        filters.append(StockMovement.movement_type.in_(criteria.movement_types))
    if criteria.status:
        filters.append(StockMovement.status == criteria.status)
    if criteria.product_id:
        filters.append(StockMovement.product_id == criteria.product_id)
    if criteria.warehouse_id:
        filters.append(StockMovement.warehouse_id == criteria.warehouse_id)
    if criteria.user_id:
        filters.append(StockMovement.user_id == criteria.user_id)
    if criteria.date_from:
        filters.append(StockMovement.created_at >= criteria.date_from)
    if criteria.date_to:
        filters.append(StockMovement.created_at <= criteria.date_to)
    if criteria.quantity_min is not None:
        filters.append(StockMovement.quantity_moved >= criteria.quantity_min)
    if criteria.quantity_max is not None:
        filters.append(StockMovement.quantity_moved <= criteria.quantity_max)
    if criteria.value_min is not None:
        filters.append(StockMovement.total_value >= criteria.value_min)
    if criteria.value_max is not None:
        filters.append(StockMovement.total_value <= criteria.value_max)
    return filters


async def search_stock_movements(db: AsyncSession, criteria: StockMovementSearch) -> StockMovementListData:
    filters = _search_filters(criteria)

    total = await db.scalar(select(func.count()).select_from(StockMovement).where(*filters))

    rows = (
        await db.execute(
            select(StockMovement)
            .where(*filters)
            .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
            .offset((criteria.page - 1) * criteria.page_size)
            .limit(criteria.page_size)
        )
    ).scalars().all()

    return StockMovementListData(total=total or 0, items=[_map_movement(m) for m in rows])


async def stock_movement_stats(db: AsyncSession, criteria: StockMovementSearch) -> StockMovementStats:
    filters = _search_filters(criteria)

    rows = (
        await db.execute(
            select(
                StockMovement.movement_type,
                StockMovement.status,
                StockMovement.quantity_moved,
                StockMovement.total_value,
            ).where(*filters)
        )
    ).all()

    type_distribution: dict[str, int] = {}
    status_distribution: dict[str, int] = {}
    value_in = value_out = Decimal("0")
    quantity_in = quantity_out = 0

    for movement_type, status, quantity, value in rows:
        type_distribution[movement_type.value] = type_distribution.get(movement_type.value, 0) + 1
        status_distribution[status.value] = status_distribution.get(status.value, 0) + 1
        value = to_decimal(value)
        if quantity > 0:
            quantity_in += quantity
            value_in += value
        else:
            quantity_out += -quantity
            value_out += -value

    total = len(rows)
    value_net = value_in - value_out
    quantity_net = quantity_in - quantity_out

    return StockMovementStats(
        total_movements=total,
        type_distribution=type_distribution,
        status_distribution=status_distribution,
        value_in=to_decimal(value_in),
        value_out=to_decimal(value_out),
        value_net=to_decimal(value_net),
        value_avg=to_decimal(value_net / total) if total else Decimal("0.00"),
        quantity_in=quantity_in,
        quantity_out=quantity_out,
        quantity_net=quantity_net,
        quantity_avg=round(quantity_net / total, 2) if total else 0.0,
    )
