# app/services/masters/product_service.py

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, asc, desc, or_
from sqlalchemy.exc import IntegrityError

from app.models.masters.product_models import Product
from app.models.inventory.inventory_models import Inventory
from app.schemas.masters.product_schemas import (
    ProductCreate,
    ProductUpdate,
    ProductOut,
    ProductListData,
    ProductReorderItem,
    ProductAvailability,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_user_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)

ALLOWED_SORT_FIELDS = {
    "name": Product.name,
    "sku": Product.sku,
    "price": Product.price,
    "category": Product.category,
    "created_at": Product.created_at,
}


def _stock_subquery():
    return (
        select(
            Inventory.product_id.label("product_id"),
            func.coalesce(
                func.sum(Inventory.quantity_on_hand - Inventory.quantity_reserved), 0
            ).label("total_stock"),
        )
        .group_by(Inventory.product_id)
        .subquery()
    )


def _map_product(product: Product, total_stock: int) -> ProductOut:
    return ProductOut(
        id=product.id,
        sku=product.sku,
        barcode=product.barcode,
        name=product.name,
        category=product.category,
        brand=product.brand,
        description=product.description,
        price=product.price,
        cost_price=product.cost_price,
        min_stock_level=product.min_stock_level,
        max_stock_level=product.max_stock_level,
        track_quantity=product.track_quantity,
        total_stock=int(total_stock or 0),

        is_active=product.is_active,
        version=product.version,

        created_by=product.created_by_id,
        updated_by=product.updated_by_id,
        created_by_name=product.created_by_username,
        updated_by_name=product.updated_by_username,

        created_at=product.created_at,
        updated_at=product.updated_at,
    )


async def get_total_stock(db: AsyncSession, product_id: int) -> int:
    total = await db.scalar(
        select(
            func.coalesce(func.sum(Inventory.quantity_on_hand - Inventory.quantity_reserved), 0)
        ).where(Inventory.product_id == product_id)
    )
    return int(total or 0)


async def _load_product(db: AsyncSession, product_id: int) -> Product:
    product = await db.scalar(
        select(Product)
        .where(Product.id == product_id, Product.is_deleted.is_(False))
        .execution_options(populate_existing=True)
    )
    if not product:
        raise AppException(404, "Product not found", ErrorCode.PRODUCT_NOT_FOUND)
    return product


async def _product_out(db: AsyncSession, product_id: int) -> ProductOut:
    product = await _load_product(db, product_id)
    return _map_product(product, await get_total_stock(db, product_id))


async def _check_unique(db: AsyncSession, *, sku: str | None, barcode: str | None, exclude_id: int | None = None):
    if sku:
        stmt = select(Product.id).where(Product.sku == sku)
        if exclude_id:
            stmt = stmt.where(Product.id != exclude_id)
        if await db.scalar(stmt):
            raise AppException(409, "SKU already exists", ErrorCode.PRODUCT_SKU_EXISTS)

    if barcode:
        stmt = select(Product.id).where(Product.barcode == barcode)
        if exclude_id:
            stmt = stmt.where(Product.id != exclude_id)
        if await db.scalar(stmt):
            raise AppException(409, "Barcode already exists", ErrorCode.PRODUCT_BARCODE_EXISTS)


# ---------------- CREATE ----------------
async def create_product(db: AsyncSession, payload: ProductCreate, user) -> ProductOut:
    await _check_unique(db, sku=payload.sku, barcode=payload.barcode)

    product = Product(
        **payload.model_dump(),
        is_active=True,
        is_deleted=False,
        version=1,
        created_by_id=user.id,
        updated_by_id=user.id,
    )

    db.add(product)

    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        # race on the unique columns
        raise AppException(409, "SKU or barcode already exists", ErrorCode.PRODUCT_SKU_EXISTS)

    await emit_user_activity(
        db,
        user,
        ActivityCode.CREATE_PRODUCT,
        target_name=payload.name,
        sku=payload.sku,
    )

    await db.commit()
    logger.info("Product created", extra={"product_id": product.id, "sku": product.sku})
    return await _product_out(db, product.id)


# ---------------- LIST ----------------
async def list_products(
    *,
    db: AsyncSession,
    search: str | None,
    category: str | None,
    is_active: bool | None,
    low_stock_only: bool,
    page: int,
    page_size: int,
    sort_by: str,
    order: str,
) -> ProductListData:
    # =========================
    # BASE FILTERS
    # =========================
    stock = _stock_subquery()
    total_stock = func.coalesce(stock.c.total_stock, 0)

    filters = [Product.is_deleted.is_(False)]

    if search:
        filters.append(
            or_(
                Product.name.ilike(f"%{search}%"),
                Product.sku.ilike(f"%{search}%"),
                Product.barcode.ilike(f"%{search}%"),
                Product.brand.ilike(f"%{search}%"),
            )
        )

    if category:
        filters.append(Product.category == category)

    if is_active is not None:
        filters.append(Product.is_active.is_(is_active))

    if low_stock_only:
        filters.append(total_stock <= Product.min_stock_level)

    # =========================
    # SORTING
    # =========================
    sort_col = ALLOWED_SORT_FIELDS.get(sort_by)
    if sort_col is None:
        raise AppException(400, "Invalid sort field", ErrorCode.VALIDATION_ERROR)

    order_by = desc(sort_col) if order == "desc" else asc(sort_col)

    base = (
        select(Product, total_stock.label("total_stock"))
        .outerjoin(stock, stock.c.product_id == Product.id)
        .where(*filters)
    )

    total = await db.scalar(select(func.count()).select_from(base.subquery()))

    rows = (
        await db.execute(
            base.order_by(order_by).offset((page - 1) * page_size).limit(page_size)
        )
    ).all()

    return ProductListData(
        total=total or 0,
        items=[_map_product(p, qty) for p, qty in rows],
    )


# ---------------- GET ----------------
async def get_product(db: AsyncSession, product_id: int) -> ProductOut:
    return await _product_out(db, product_id)


# ---------------- UPDATE ----------------
async def update_product(
    db: AsyncSession,
    product_id: int,
    payload: ProductUpdate,
    user,
) -> ProductOut:
    current = await _load_product(db, product_id)

    updates = payload.model_dump(exclude_unset=True, exclude={"version"})
    if not updates:
        raise AppException(400, "No changes detected", ErrorCode.NO_CHANGES_DETECTED)

    # -------------------------------------------------
    # UNIQUENESS / STOCK LEVEL CHECKS
    # -------------------------------------------------
    await _check_unique(
        db,
        sku=updates.get("sku") if updates.get("sku") != current.sku else None,
        barcode=updates.get("barcode") if updates.get("barcode") != current.barcode else None,
        exclude_id=product_id,
    )

    min_level = updates.get("min_stock_level", current.min_stock_level)
    max_level = updates.get("max_stock_level", current.max_stock_level)
    if max_level is not None and min_level is not None and max_level < min_level:
        raise AppException(
            400,
            "max_stock_level must be greater than or equal to min_stock_level",
            ErrorCode.VALIDATION_ERROR,
        )

    # -------------------------------------------------
    # CHANGE TRACKING
    # -------------------------------------------------
    changes: list[str] = []
    for field, new_value in updates.items():
        old_value = getattr(current, field)
        if old_value != new_value:
            changes.append(f"{field}: {old_value} → {new_value}")

    if not changes:
        raise AppException(400, "No actual changes detected", ErrorCode.NO_CHANGES_DETECTED)

    # -------------------------------------------------
    # OPTIMISTIC UPDATE
    # -------------------------------------------------
    stmt = (
        update(Product)
        .where(
            Product.id == product_id,
            Product.version == payload.version,
            Product.is_deleted.is_(False),
        )
        .values(
            **updates,
            version=Product.version + 1,
            updated_by_id=user.id,
        )
        .returning(Product.id)
    )

    if not (await db.execute(stmt)).scalar_one_or_none():
        raise AppException(
            409,
            "Product was modified by another process",
            ErrorCode.VERSION_CONFLICT,
        )

    await emit_user_activity(
        db,
        user,
        ActivityCode.UPDATE_PRODUCT,
        target_name=current.name,
        changes=", ".join(changes),
    )

    await db.commit()
    return await _product_out(db, product_id)


# ---------------- DEACTIVATE / REACTIVATE ----------------
async def deactivate_product(db: AsyncSession, product_id: int, version: int, user) -> ProductOut:
    result = await db.execute(
        update(Product)
        .where(
            Product.id == product_id,
            Product.version == version,
            Product.is_active.is_(True),
            Product.is_deleted.is_(False),
        )
        .values(
            is_active=False,
            version=Product.version + 1,
            updated_by_id=user.id,
        )
        .returning(Product.name)
    )
    name = result.scalar_one_or_none()

    if not name:
        raise AppException(
            409,
            "Product was modified or already deactivated",
            ErrorCode.VERSION_CONFLICT,
        )

    await emit_user_activity(db, user, ActivityCode.DEACTIVATE_PRODUCT, target_name=name)

    await db.commit()
    return await _product_out(db, product_id)


async def reactivate_product(db: AsyncSession, product_id: int, user) -> ProductOut:
    result = await db.execute(
        update(Product)
        .where(
            Product.id == product_id,
            Product.is_active.is_(False),
            Product.is_deleted.is_(False),
        )
        .values(
            is_active=True,
            version=Product.version + 1,
            updated_by_id=user.id,
        )
        .returning(Product.name)
    )
    name = result.scalar_one_or_none()

    if not name:
        raise AppException(
            409,
            "Product was modified or not deactivated",
            ErrorCode.VERSION_CONFLICT,
        )

    await emit_user_activity(db, user, ActivityCode.REACTIVATE_PRODUCT, target_name=name)

    await db.commit()
    return await _product_out(db, product_id)


# ---------------- DELETE (SOFT) ----------------
async def delete_product(db: AsyncSession, product_id: int, user) -> None:
    product = await _load_product(db, product_id)

    held = await db.scalar(
        select(func.count())
        .select_from(Inventory)
        .where(
            Inventory.product_id == product_id,
            or_(Inventory.quantity_on_hand > 0, Inventory.quantity_reserved > 0),
        )
    )
    if held:
        raise AppException(
            409,
            "Product still has stock on hand or reserved",
            ErrorCode.PRODUCT_HAS_STOCK,
        )

    product.is_deleted = True
    product.is_active = False
    product.deleted_at = datetime.now(timezone.utc)
    product.version += 1
    product.updated_by_id = user.id

    await emit_user_activity(db, user, ActivityCode.DELETE_PRODUCT, target_name=product.name)

    await db.commit()
    logger.info("Product deleted", extra={"product_id": product_id})


async def get_active_product(db: AsyncSession, product_id: int) -> Product:
    product = await db.scalar(
        select(Product).where(Product.id == product_id, Product.is_deleted.is_(False))
    )
    if not product:
        raise AppException(404, "Product not found", ErrorCode.PRODUCT_NOT_FOUND)
    if not product.is_active:
        raise AppException(400, "Product is inactive", ErrorCode.PRODUCT_INACTIVE)
    return product


# ---------------- REORDER / AVAILABILITY ----------------
async def list_products_needing_reorder(db: AsyncSession) -> list[ProductReorderItem]:
    """Tracked active products whose available stock is at or below the minimum."""
    stock = _stock_subquery()
    available = func.coalesce(stock.c.total_stock, 0)

    rows = (
        await db.execute(
            select(Product, available.label("available"))
            .outerjoin(stock, stock.c.product_id == Product.id)
            .where(
                Product.is_deleted.is_(False),
                Product.is_active.is_(True),
                Product.track_quantity.is_(True),
                available <= Product.min_stock_level,
            )
            .order_by(available.asc(), Product.name.asc())
        )
    ).all()

    items = []
    for product, qty in rows:
        qty = int(qty or 0)
        target = product.max_stock_level if product.max_stock_level is not None else product.min_stock_level
        items.append(
            ProductReorderItem(
                id=product.id,
                sku=product.sku,
                name=product.name,
                category=product.category,
                total_available=qty,
                min_stock_level=product.min_stock_level,
                max_stock_level=product.max_stock_level,
                suggested_quantity=max(target - qty, 0),
            )
        )
    return items


async def check_product_availability(
    db: AsyncSession,
    product_id: int,
    quantity: int,
    warehouse_id: int | None = None,
) -> ProductAvailability:
    product = await _load_product(db, product_id)

    if not product.track_quantity:
        return ProductAvailability(
            product_id=product.id,
            warehouse_id=warehouse_id,
            requested_quantity=quantity,
            available_quantity=0,
            is_available=True,
            shortage=0,
            message="Product does not require quantity tracking",
        )

    stmt = select(
        func.coalesce(func.sum(Inventory.quantity_on_hand - Inventory.quantity_reserved), 0)
    ).where(Inventory.product_id == product_id)
    if warehouse_id is not None:
        stmt = stmt.where(Inventory.warehouse_id == warehouse_id)

    available = int(await db.scalar(stmt) or 0)
    shortage = max(quantity - available, 0)

    return ProductAvailability(
        product_id=product.id,
        warehouse_id=warehouse_id,
        requested_quantity=quantity,
        available_quantity=available,
        is_available=shortage == 0,
        shortage=shortage,
        message=(
            "Product is available"
            if shortage == 0
            else f"Insufficient stock. Available: {available}, Requested: {quantity}"
        ),
    )


async def list_product_attribute_values(db: AsyncSession, attribute: str) -> list[str]:
    """Distinct category or brand values in use, for pickers."""
    column = {"category": Product.category, "brand": Product.brand}[attribute]
    rows = (
        await db.execute(
            select(column)
            .where(Product.is_deleted.is_(False), column.is_not(None), column != "")
            .distinct()
            .order_by(column.asc())
        )
    ).scalars().all()
    return list(rows)
