# app/services/masters/warehouse_service.py

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, asc, desc, or_
from sqlalchemy.exc import IntegrityError

from app.models.masters.warehouse_models import Warehouse
from app.models.inventory.inventory_models import Inventory
from app.schemas.masters.warehouse_schemas import (
    WarehouseCreate,
    WarehouseUpdate,
    WarehouseOut,
    WarehouseListData,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_user_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)

ALLOWED_SORT_FIELDS = {
    "name": Warehouse.name,
    "code": Warehouse.code,
    "city": Warehouse.city,
    "created_at": Warehouse.created_at,
}


def _map_warehouse(w: Warehouse) -> WarehouseOut:
    return WarehouseOut(
        id=w.id,
        name=w.name,
        code=w.code,
        address=w.address,
        city=w.city,
        state=w.state,
        postal_code=w.postal_code,
        country=w.country,
        full_address=w.full_address,
        phone=w.phone,
        email=w.email,
        is_active=w.is_active,
        version=w.version,
        created_by=w.created_by_id,
        updated_by=w.updated_by_id,
        created_by_name=w.created_by_username,
        updated_by_name=w.updated_by_username,
        created_at=w.created_at,
        updated_at=w.updated_at,
    )


async def _load_warehouse(db: AsyncSession, warehouse_id: int) -> Warehouse:
    warehouse = await db.scalar(
        select(Warehouse)
        .where(Warehouse.id == warehouse_id, Warehouse.is_deleted.is_(False))
        .execution_options(populate_existing=True)
    )
    if not warehouse:
        raise AppException(404, "Warehouse not found", ErrorCode.WAREHOUSE_NOT_FOUND)
    return warehouse


async def _code_taken(db: AsyncSession, code: str, exclude_id: int | None = None) -> bool:
    stmt = select(Warehouse.id).where(Warehouse.code == code)
    if exclude_id:
        stmt = stmt.where(Warehouse.id != exclude_id)
    return bool(await db.scalar(stmt))


# ---------------- CREATE ----------------
async def create_warehouse(db: AsyncSession, payload: WarehouseCreate, user) -> WarehouseOut:
    data = payload.model_dump()
    data["code"] = data["code"].strip().upper()

    if await _code_taken(db, data["code"]):
        raise AppException(409, "Warehouse code already exists", ErrorCode.WAREHOUSE_CODE_EXISTS)

    warehouse = Warehouse(
        **data,
        is_active=True,
        is_deleted=False,
        version=1,
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    db.add(warehouse)

    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise AppException(409, "Warehouse code already exists", ErrorCode.WAREHOUSE_CODE_EXISTS)

    await emit_user_activity(
        db,
        user,
        ActivityCode.CREATE_WAREHOUSE,
        target_name=warehouse.name,
        warehouse_code=warehouse.code,
    )

    await db.commit()
    logger.info("Warehouse created", extra={"warehouse_id": warehouse.id, "code": warehouse.code})
    return _map_warehouse(await _load_warehouse(db, warehouse.id))


# ---------------- LIST ----------------
async def list_warehouses(
    db: AsyncSession,
    *,
    search: str | None,
    is_active: bool | None,
    page: int,
    page_size: int,
    sort_by: str,
    order: str,
) -> WarehouseListData:
    filters = [Warehouse.is_deleted.is_(False)]

    if search:
        filters.append(
            or_(
                Warehouse.name.ilike(f"%{search}%"),
                Warehouse.code.ilike(f"%{search}%"),
                Warehouse.city.ilike(f"%{search}%"),
            )
        )

    if is_active is not None:
        filters.append(Warehouse.is_active.is_(is_active))

    sort_col = ALLOWED_SORT_FIELDS.get(sort_by)
    if sort_col is None:
        raise AppException(400, "Invalid sort field", ErrorCode.VALIDATION_ERROR)

    order_by = desc(sort_col) if order == "desc" else asc(sort_col)

    total = await db.scalar(
        select(func.count()).select_from(select(Warehouse.id).where(*filters).subquery())
    )

    rows = (
        await db.execute(
            select(Warehouse)
            .where(*filters)
            .order_by(order_by)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
    ).scalars().all()

    return WarehouseListData(total=total or 0, items=[_map_warehouse(w) for w in rows])


# ---------------- GET ----------------
async def get_warehouse(db: AsyncSession, warehouse_id: int) -> WarehouseOut:
    return _map_warehouse(await _load_warehouse(db, warehouse_id))


# ---------------- UPDATE ----------------
async def update_warehouse(db: AsyncSession, warehouse_id: int, payload: WarehouseUpdate, user) -> WarehouseOut:
    current = await _load_warehouse(db, warehouse_id)

    updates = payload.model_dump(exclude_unset=True, exclude={"version"})
    if not updates:
        raise AppException(400, "No changes detected", ErrorCode.NO_CHANGES_DETECTED)

    if "code" in updates and updates["code"]:
        updates["code"] = updates["code"].strip().upper()
        if updates["code"] != current.code and await _code_taken(db, updates["code"], warehouse_id):
            raise AppException(409, "Warehouse code already exists", ErrorCode.WAREHOUSE_CODE_EXISTS)

    changes: list[str] = []
    for field, new_value in updates.items():
        old_value = getattr(current, field)
        if old_value != new_value:
            changes.append(f"{field}: {old_value} → {new_value}")

    if not changes:
        raise AppException(400, "No actual changes detected", ErrorCode.NO_CHANGES_DETECTED)

    stmt = (
        update(Warehouse)
        .where(
            Warehouse.id == warehouse_id,
            Warehouse.version == payload.version,
            Warehouse.is_deleted.is_(False),
        )
        .values(**updates, version=Warehouse.version + 1, updated_by_id=user.id)
        .returning(Warehouse.id)
    )

    if not (await db.execute(stmt)).scalar_one_or_none():
        raise AppException(409, "Warehouse was modified by another process", ErrorCode.VERSION_CONFLICT)

    await emit_user_activity(
        db,
        user,
        ActivityCode.UPDATE_WAREHOUSE,
        target_name=current.name,
        changes=", ".join(changes),
    )

    await db.commit()
    return _map_warehouse(await _load_warehouse(db, warehouse_id))


# ---------------- ACTIVATION ----------------
async def _set_active(db: AsyncSession, warehouse_id: int, version: int | None, active: bool, user) -> WarehouseOut:
    conditions = [
        Warehouse.id == warehouse_id,
        Warehouse.is_deleted.is_(False),
        Warehouse.is_active.is_(not active),
    ]
    if version is not None:
        conditions.append(Warehouse.version == version)

    result = await db.execute(
        update(Warehouse)
        .where(*conditions)
        .values(is_active=active, version=Warehouse.version + 1, updated_by_id=user.id)
        .returning(Warehouse.id, Warehouse.name)
    )
    row = result.first()

    if not row:
        raise AppException(
            409,
            "Warehouse was modified or already in the requested state",
            ErrorCode.VERSION_CONFLICT,
        )

    await emit_user_activity(
        db,
        user,
        ActivityCode.REACTIVATE_WAREHOUSE if active else ActivityCode.DEACTIVATE_WAREHOUSE,
        target_name=row.name,
    )

    await db.commit()
    return _map_warehouse(await _load_warehouse(db, warehouse_id))


async def deactivate_warehouse(db: AsyncSession, warehouse_id: int, version: int, user) -> WarehouseOut:
    return await _set_active(db, warehouse_id, version, False, user)


async def reactivate_warehouse(db: AsyncSession, warehouse_id: int, user) -> WarehouseOut:
    return await _set_active(db, warehouse_id, None, True, user)


# ---------------- DELETE (SOFT) ----------------
async def delete_warehouse(db: AsyncSession, warehouse_id: int, user) -> None:
    warehouse = await _load_warehouse(db, warehouse_id)

    stocked = await db.scalar(
        select(func.count())
        .select_from(Inventory)
        .where(
            Inventory.warehouse_id == warehouse_id,
            Inventory.quantity_on_hand > 0,
        )
    )
    if stocked:
        raise AppException(
            409,
            "Warehouse still holds stock",
            ErrorCode.WAREHOUSE_HAS_STOCK,
            details={"stocked_records": stocked},
        )

    warehouse.is_deleted = True
    warehouse.is_active = False
    warehouse.deleted_at = datetime.now(timezone.utc)
    warehouse.version += 1
    warehouse.updated_by_id = user.id

    await emit_user_activity(db, user, ActivityCode.DELETE_WAREHOUSE, target_name=warehouse.name)

    await db.commit()
    logger.info("Warehouse deleted", extra={"warehouse_id": warehouse_id})


async def get_active_warehouse(db: AsyncSession, warehouse_id: int) -> Warehouse:
    """Warehouse that can take part in stock operations."""
    warehouse = await db.scalar(
        select(Warehouse).where(Warehouse.id == warehouse_id, Warehouse.is_deleted.is_(False))
    )
    if not warehouse:
        raise AppException(404, "Warehouse not found", ErrorCode.WAREHOUSE_NOT_FOUND)
    if not warehouse.is_active:
        raise AppException(400, "Warehouse is inactive", ErrorCode.WAREHOUSE_INACTIVE)
    return warehouse
