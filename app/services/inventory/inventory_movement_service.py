from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import noload

from app.models.inventory.inventory_models import Inventory
from app.models.inventory.inventory_movement_models import InventoryMovement
from app.models.users.user_models import User
from app.constants.inventory_movement_type import InventoryMovementType, InventoryReferenceType
from app.constants.activity_codes import ActivityCode
from app.constants.error_codes import ErrorCode
from app.core.exceptions import AppException
from app.schemas.inventory.inventory_movement_schemas import InventoryMovementOut, InventoryMovementListData
from app.utils.activity_helpers import emit_user_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)


ALLOWED_REFERENCE_TYPES = {r.value for r in InventoryReferenceType}

POSITIVE_MOVEMENTS = {
    InventoryMovementType.STOCK_IN,
    InventoryMovementType.TRANSFER_IN,
    InventoryMovementType.ADJUSTMENT_IN,
}

NEGATIVE_MOVEMENTS = {
    InventoryMovementType.STOCK_OUT,
    InventoryMovementType.TRANSFER_OUT,
    InventoryMovementType.ADJUSTMENT_OUT,
}


async def lock_inventory(db: AsyncSession, product_id: int, warehouse_id: int) -> Inventory | None:
    result = await db.execute(
        select(Inventory)
        .options(noload(Inventory.created_by), noload(Inventory.updated_by))
        .where(
            Inventory.product_id == product_id,
            Inventory.warehouse_id == warehouse_id,
        )
        .with_for_update()
    )
    return result.scalar_one_or_none()


async def apply_inventory_movement(
    db: AsyncSession,
    *,
    product_id: int,
    warehouse_id: int,
    quantity_change: int,
    movement_type: InventoryMovementType,
    reference_type: InventoryReferenceType | str,
    reference_id: int,
    actor_user: User,
    notes: str | None = None,
    consume_reserved: bool = False,
) -> InventoryMovement:
    """
    Post one signed quantity change to the (product, warehouse) inventory record
    and write its ledger row. Does not commit.

    With consume_reserved, a negative change is drawn from reserved stock: both
    on_hand and reserved drop and the available check is skipped.
    """
    reference_type = getattr(reference_type, "value", reference_type)

    # ------------------------------------
    # 0. Basic validations
    # ------------------------------------
    if quantity_change == 0:
        raise AppException(400, "Inventory movement quantity cannot be zero", ErrorCode.INVALID_MOVEMENT)

    if reference_type not in ALLOWED_REFERENCE_TYPES:
        raise AppException(400, "Invalid inventory reference type", ErrorCode.INVALID_MOVEMENT)

    if movement_type in POSITIVE_MOVEMENTS and quantity_change < 0:
        raise AppException(
            400, f"{movement_type.value} must have positive quantity", ErrorCode.INVALID_MOVEMENT
        )

    if movement_type in NEGATIVE_MOVEMENTS and quantity_change > 0:
        raise AppException(
            400, f"{movement_type.value} must have negative quantity", ErrorCode.INVALID_MOVEMENT
        )

    try:
        # ------------------------------------
        # 1. Lock inventory record
        # ------------------------------------
        inventory = await lock_inventory(db, product_id, warehouse_id)

        # ------------------------------------
        # 2. Create record if missing
        # ------------------------------------
        if not inventory:
            inventory = Inventory(
                product_id=product_id,
                warehouse_id=warehouse_id,
                quantity_on_hand=0,
                quantity_reserved=0,
                created_by_id=actor_user.id,
            )
            db.add(inventory)
            await db.flush()

        # ------------------------------------
        # 3. Validate non-negative stock
        # ------------------------------------
        before = inventory.quantity_on_hand
        new_on_hand = before + quantity_change
        new_reserved = inventory.quantity_reserved

        if consume_reserved and quantity_change < 0:
            new_reserved = inventory.quantity_reserved + quantity_change
            if new_reserved < 0:
                raise AppException(
                    409,
                    "Cannot consume more than the reserved quantity",
                    ErrorCode.INSUFFICIENT_STOCK,
                )
        elif quantity_change < 0 and inventory.quantity_available + quantity_change < 0:
            raise AppException(409, "Insufficient stock", ErrorCode.INSUFFICIENT_STOCK)

        if new_on_hand < 0:
            raise AppException(409, "Insufficient stock", ErrorCode.INSUFFICIENT_STOCK)

        # ------------------------------------
        # 4. Insert inventory movement (ledger)
        # ------------------------------------
        movement = InventoryMovement(
            inventory_id=inventory.id,
            product_id=product_id,
            warehouse_id=warehouse_id,
            movement_type=movement_type,
            quantity_change=quantity_change,
            quantity_before=before,
            quantity_after=new_on_hand,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
            created_by_id=actor_user.id,
        )
        db.add(movement)

        # ------------------------------------
        # 5. Update record (derived)
        # ------------------------------------
        inventory.quantity_on_hand = new_on_hand
        inventory.quantity_reserved = new_reserved
        inventory.updated_by_id = actor_user.id

        await db.flush()

    except IntegrityError:
        raise AppException(
            409,
            "Concurrent inventory update detected",
            ErrorCode.CONFLICT,
        )

    # ------------------------------------
    # 6. Activity log (NO COMMIT HERE)
    # ------------------------------------
    await emit_user_activity(
        db,
        actor_user,
        ActivityCode.INVENTORY_MOVEMENT,
        movement_type=movement_type.value,
        quantity_change=quantity_change,
        product_id=product_id,
        warehouse_id=warehouse_id,
        reference_type=reference_type,
        reference_id=reference_id,
    )

    logger.info(
        "Inventory movement applied",
        extra={
            "product_id": product_id,
            "warehouse_id": warehouse_id,
            "movement_type": movement_type.value,
            "quantity_change": quantity_change,
            "quantity_after": new_on_hand,
        },
    )

    return movement


# =====================================================
# LEDGER LISTING
# =====================================================
def _map_movement(m: InventoryMovement) -> InventoryMovementOut:
    return InventoryMovementOut(
        id=m.id,
        inventory_id=m.inventory_id,
        product_id=m.product_id,
        product_name=m.product.name if m.product else None,
        warehouse_id=m.warehouse_id,
        warehouse_code=m.warehouse.code if m.warehouse else None,
        movement_type=m.movement_type,
        quantity_change=m.quantity_change,
        quantity_before=m.quantity_before,
        quantity_after=m.quantity_after,
        reference_type=m.reference_type,
        reference_id=m.reference_id,
        notes=m.notes,
        created_by=m.created_by_id,
        created_by_name=m.created_by_username,
        created_at=m.created_at,
    )


async def list_inventory_movements(
    db: AsyncSession,
    *,
    product_id: int | None,
    warehouse_id: int | None,
    movement_type: InventoryMovementType | None,
    reference_type: str | None,
    date_from: datetime | None,
    date_to: datetime | None,
    page: int,
    page_size: int,
) -> InventoryMovementListData:
    filters = []
    if product_id:
        filters.append(InventoryMovement.product_id == product_id)
    if warehouse_id:
        filters.append(InventoryMovement.warehouse_id == warehouse_id)
    if movement_type:
        filters.append(InventoryMovement.movement_type == movement_type)
    if reference_type:
        filters.append(InventoryMovement.reference_type == reference_type)
    if date_from:
        filters.append(InventoryMovement.created_at >= date_from)
    if date_to:
        filters.append(InventoryMovement.created_at <= date_to)

    total = await db.scalar(
        select(func.count()).select_from(
            select(InventoryMovement.id).where(*filters).subquery()
        )
    )

    rows = (
        await db.execute(
            select(InventoryMovement)
            .where(*filters)
            .order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
    ).unique().scalars().all()

    return InventoryMovementListData(
        total=total or 0,
        items=[_map_movement(m) for m in rows],
    )
