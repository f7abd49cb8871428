from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, case

from app.models.inventory.inventory_models import Inventory
from app.models.inventory.inventory_movement_models import InventoryMovement
from app.models.masters.product_models import Product
from app.models.masters.warehouse_models import Warehouse
from app.models.users.user_models import User
from app.schemas.inventory.inventory_schemas import (
    InventoryCreate,
    InventoryUpdate,
    InventoryOut,
    InventoryListData,
    WarehouseStockSummary,
    WarehouseAnalytics,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.constants.inventory_movement_type import InventoryMovementType, InventoryReferenceType
from app.services.inventory.inventory_movement_service import apply_inventory_movement, lock_inventory
from app.services.masters.product_service import get_active_product
from app.services.masters.warehouse_service import get_active_warehouse
from app.utils.activity_helpers import emit_user_activity
from app.utils.decimal_utils import percentage, to_decimal
from app.utils.logger import get_logger

logger = get_logger(__name__)

AVAILABLE = Inventory.quantity_on_hand - Inventory.quantity_reserved


def _label(inv: Inventory) -> str:
    sku = inv.product.sku if inv.product else inv.product_id
    code = inv.warehouse.code if inv.warehouse else inv.warehouse_id
    return f"{sku}@{code}"


def _map_inventory(inv: Inventory) -> InventoryOut:
    return InventoryOut(
        id=inv.id,
        product_id=inv.product_id,
        product_name=inv.product.name,
        product_sku=inv.product.sku,
        warehouse_id=inv.warehouse_id,
        warehouse_code=inv.warehouse.code,
        warehouse_name=inv.warehouse.name,
        quantity_on_hand=inv.quantity_on_hand,
        quantity_reserved=inv.quantity_reserved,
        quantity_available=inv.quantity_available,
        location=inv.location,
        last_counted_at=inv.last_counted_at,
        is_low_stock=inv.is_low_stock,
        is_out_of_stock=inv.is_out_of_stock,
        created_at=inv.created_at,
        updated_at=inv.updated_at,
    )


async def load_inventory(db: AsyncSession, inventory_id: int, *, for_update: bool = False) -> Inventory:
    stmt = (
        select(Inventory)
        .where(Inventory.id == inventory_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()

    inventory = await db.scalar(stmt)
    if not inventory:
        raise AppException(404, "Inventory record not found", ErrorCode.INVENTORY_NOT_FOUND)
    return inventory


# =====================================================
# CREATE
# =====================================================
async def create_inventory(db: AsyncSession, payload: InventoryCreate, user: User) -> InventoryOut:
    product = await get_active_product(db, payload.product_id)
    warehouse = await get_active_warehouse(db, payload.warehouse_id)

    exists = await db.scalar(
        select(Inventory.id).where(
            Inventory.product_id == payload.product_id,
            Inventory.warehouse_id == payload.warehouse_id,
        )
    )
    if exists:
        raise AppException(
            409,
            "Inventory record already exists for this product and warehouse",
            ErrorCode.INVENTORY_EXISTS,
            details={"inventory_id": exists},
        )

    inventory = Inventory(
        product_id=product.id,
        warehouse_id=warehouse.id,
        quantity_on_hand=0,
        quantity_reserved=0,
        location=payload.location,
        last_counted_at=payload.last_counted_at,
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    db.add(inventory)
    await db.flush()

    # opening stock goes through the ledger like every other change
    if payload.quantity_on_hand > 0:
        await apply_inventory_movement(
            db,
            product_id=product.id,
            warehouse_id=warehouse.id,
            quantity_change=payload.quantity_on_hand,
            movement_type=InventoryMovementType.ADJUSTMENT_IN,
            reference_type=InventoryReferenceType.OPENING,
            reference_id=inventory.id,
            actor_user=user,
            notes="Opening balance",
        )

    await emit_user_activity(
        db,
        user,
        ActivityCode.CREATE_INVENTORY,
        target_name=product.sku,
        warehouse=warehouse.code,
    )

    await db.commit()
    return _map_inventory(await load_inventory(db, inventory.id))


# =====================================================
# READ
# =====================================================
async def get_inventory(db: AsyncSession, inventory_id: int) -> InventoryOut:
    return _map_inventory(await load_inventory(db, inventory_id))


async def list_inventory(
    db: AsyncSession,
    *,
    warehouse_id: int | None,
    product_id: int | None,
    low_stock: bool,
    out_of_stock: bool,
    search: str | None,
    page: int,
    page_size: int,
) -> InventoryListData:
    stmt = select(Inventory).join(Product, Product.id == Inventory.product_id)
    filters = [Product.is_deleted.is_(False)]

    if warehouse_id:
        filters.append(Inventory.warehouse_id == warehouse_id)
    if product_id:
        filters.append(Inventory.product_id == product_id)
    if low_stock:
        filters.append(AVAILABLE <= Product.min_stock_level)
    if out_of_stock:
        filters.append(AVAILABLE <= 0)
    if search:
        filters.append(
            Product.name.ilike(f"%{search}%") | Product.sku.ilike(f"%{search}%")
        )

    total = await db.scalar(
        select(func.count()).select_from(
            select(Inventory.id)
            .join(Product, Product.id == Inventory.product_id)
            .where(*filters)
            .subquery()
        )
    )

    rows = (
        await db.execute(
            stmt.where(*filters)
            .order_by(Inventory.warehouse_id, Product.name)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
    ).scalars().all()

    return InventoryListData(total=total or 0, items=[_map_inventory(i) for i in rows])


# =====================================================
# UPDATE (location / count date only)
# =====================================================
async def update_inventory(db: AsyncSession, inventory_id: int, payload: InventoryUpdate, user: User) -> InventoryOut:
    inventory = await load_inventory(db, inventory_id, for_update=True)

    updates = payload.model_dump(exclude_unset=True)
    changes: list[str] = []
    for field, new_value in updates.items():
        old_value = getattr(inventory, field)
        if old_value != new_value:
            changes.append(f"{field}: {old_value} → {new_value}")
            setattr(inventory, field, new_value)

    if not changes:
        raise AppException(400, "No changes detected", ErrorCode.NO_CHANGES_DETECTED)

    inventory.updated_by_id = user.id

    await emit_user_activity(
        db,
        user,
        ActivityCode.UPDATE_INVENTORY,
        target_name=_label(inventory),
        changes=", ".join(changes),
    )

    await db.commit()
    return _map_inventory(await load_inventory(db, inventory_id))


# =====================================================
# DELETE
# =====================================================
async def delete_inventory(db: AsyncSession, inventory_id: int, user: User) -> None:
    inventory = await load_inventory(db, inventory_id, for_update=True)

    if inventory.quantity_reserved > 0:
        raise AppException(
            409,
            "Inventory record has reserved stock",
            ErrorCode.INVENTORY_HAS_RESERVATIONS,
            details={"quantity_reserved": inventory.quantity_reserved},
        )

    label = _label(inventory)
    await db.delete(inventory)

    await emit_user_activity(db, user, ActivityCode.DELETE_INVENTORY, target_name=label)
    await db.commit()


# =====================================================
# RESERVATIONS
# =====================================================
async def reserve_stock(
    db: AsyncSession,
    *,
    product_id: int,
    warehouse_id: int,
    quantity: int,
) -> Inventory:
    """Hold quantity for an order. Does not commit."""
    inventory = await lock_inventory(db, product_id, warehouse_id)

    if not inventory or not inventory.can_reserve(quantity):
        available = inventory.quantity_available if inventory else 0
        raise AppException(
            409,
            "Insufficient stock to reserve",
            ErrorCode.INSUFFICIENT_STOCK,
            details={
                "product_id": product_id,
                "warehouse_id": warehouse_id,
                "requested": quantity,
                "available": available,
            },
        )

    inventory.quantity_reserved += quantity
    return inventory


async def release_stock(
    db: AsyncSession,
    *,
    product_id: int,
    warehouse_id: int,
    quantity: int,
) -> Inventory | None:
    """Give back reserved quantity. Reserved never drops below zero."""
    inventory = await lock_inventory(db, product_id, warehouse_id)
    if not inventory:
        return None

    inventory.quantity_reserved = max(0, inventory.quantity_reserved - quantity)
    return inventory


async def reserve_inventory(db: AsyncSession, inventory_id: int, quantity: int, user: User) -> InventoryOut:
    inventory = await load_inventory(db, inventory_id)
    await reserve_stock(
        db,
        product_id=inventory.product_id,
        warehouse_id=inventory.warehouse_id,
        quantity=quantity,
    )
    inventory.updated_by_id = user.id

    await emit_user_activity(
        db, user, ActivityCode.RESERVE_INVENTORY, target_name=_label(inventory), quantity=quantity
    )
    await db.commit()
    return _map_inventory(await load_inventory(db, inventory_id))


async def release_inventory(db: AsyncSession, inventory_id: int, quantity: int, user: User) -> InventoryOut:
    inventory = await load_inventory(db, inventory_id)
    await release_stock(
        db,
        product_id=inventory.product_id,
        warehouse_id=inventory.warehouse_id,
        quantity=quantity,
    )
    inventory.updated_by_id = user.id

    await emit_user_activity(
        db, user, ActivityCode.RELEASE_INVENTORY, target_name=_label(inventory), quantity=quantity
    )
    await db.commit()
    return _map_inventory(await load_inventory(db, inventory_id))


# =====================================================
# SUMMARY
# =====================================================
async def warehouse_stock_summary(db: AsyncSession, warehouse_id: int) -> WarehouseStockSummary:
    warehouse = await db.scalar(
        select(Warehouse).where(Warehouse.id == warehouse_id, Warehouse.is_deleted.is_(False))
    )
    if not warehouse:
        raise AppException(404, "Warehouse not found", ErrorCode.WAREHOUSE_NOT_FOUND)

    row = (
        await db.execute(
            select(
                func.count(Inventory.id),
                func.coalesce(func.sum(Inventory.quantity_on_hand), 0),
                func.coalesce(func.sum(Inventory.quantity_reserved), 0),
                func.coalesce(
                    func.sum(case((AVAILABLE <= Product.min_stock_level, 1), else_=0)), 0
                ),
            )
            .join(Product, Product.id == Inventory.product_id)
            .where(Inventory.warehouse_id == warehouse_id)
        )
    ).one()

    count, on_hand, reserved, low = row
    return WarehouseStockSummary(
        warehouse_id=warehouse.id,
        warehouse_code=warehouse.code,
        warehouse_name=warehouse.name,
        product_count=count or 0,
        total_on_hand=int(on_hand),
        total_reserved=int(reserved),
        total_available=int(on_hand) - int(reserved),
        low_stock_count=int(low),
    )


async def warehouse_analytics(db: AsyncSession, warehouse_id: int, now: datetime | None = None) -> WarehouseAnalytics:
    """Stock summary plus value, capacity use and 30 day ledger flow."""
    summary = await warehouse_stock_summary(db, warehouse_id)
    since = (now or datetime.now(timezone.utc)) - timedelta(days=30)

    out_of_stock, value, on_hand_capped, capacity = (
        await db.execute(
            select(
                func.coalesce(func.sum(case((AVAILABLE <= 0, 1), else_=0)), 0),
                func.coalesce(
                    func.sum(Inventory.quantity_on_hand * func.coalesce(Product.cost_price, 0)), 0
                ),
                func.coalesce(
                    func.sum(
                        case((Product.max_stock_level.is_not(None), Inventory.quantity_on_hand), else_=0)
                    ),
                    0,
                ),
                func.coalesce(func.sum(Product.max_stock_level), 0),
            )
            .join(Product, Product.id == Inventory.product_id)
            .where(Inventory.warehouse_id == warehouse_id)
        )
    ).one()

    inbound, outbound = (
        await db.execute(
            select(
                func.coalesce(
                    func.sum(case((InventoryMovement.quantity_change > 0, InventoryMovement.quantity_change), else_=0)),
                    0,
                ),
                func.coalesce(
                    func.sum(case((InventoryMovement.quantity_change < 0, -InventoryMovement.quantity_change), else_=0)),
                    0,
                ),
            ).where(
                InventoryMovement.warehouse_id == warehouse_id,
                InventoryMovement.created_at >= since,
            )
        )
    ).one()

    return WarehouseAnalytics(
        **summary.model_dump(),
        out_of_stock_count=int(out_of_stock),
        stock_value=to_decimal(value),
        # only products with a max level define capacity
        capacity_utilization=percentage(on_hand_capped, capacity),
        inbound_last_30_days=int(inbound),
        outbound_last_30_days=int(outbound),
    )


async def find_low_stock(db: AsyncSession) -> list[Inventory]:
    rows = await db.execute(
        select(Inventory)
        .join(Product, Product.id == Inventory.product_id)
        .where(
            Product.is_deleted.is_(False),
            Product.is_active.is_(True),
            Product.track_quantity.is_(True),
            AVAILABLE <= Product.min_stock_level,
        )
    )
    return list(rows.scalars().all())
