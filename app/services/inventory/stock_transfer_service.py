from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, case
import hashlib
import json
from datetime import datetime, timedelta, timezone

from app.core.config import TRANSFER_OVERDUE_DAYS
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.constants.inventory_movement_type import InventoryMovementType, InventoryReferenceType

from app.models.inventory.stock_transfer_models import StockTransfer
from app.models.inventory.inventory_models import Inventory
from app.models.masters.product_models import Product
from app.models.masters.warehouse_models import Warehouse
from app.models.users.user_models import User
from app.models.enums.stock_transfer_status import TransferStatus

from app.services.inventory.inventory_movement_service import apply_inventory_movement
from app.utils.activity_helpers import emit_user_activity
from app.utils.numbering import next_daily_number
from app.utils.logger import get_logger

from app.schemas.inventory.stock_transfer_schemas import (
    StockTransferCreateSchema,
    StockTransferTableSchema,
    StockTransferListData,
    BulkOperationResult,
    StockTransferAnalytics,
    TransferAvailability,
)

logger = get_logger(__name__)


def generate_transfer_signature(
    *,
    product_id: int,
    quantity: int,
    from_warehouse_id: int,
    to_warehouse_id: int,
) -> str:
    payload = json.dumps(
        {
            "product_id": product_id,
            "quantity": int(quantity),
            "from": from_warehouse_id,
            "to": to_warehouse_id,
        },
        separators=(",", ":"),
        sort_keys=True,
    )
    return hashlib.sha256(payload.encode()).hexdigest()


def _map_transfer(t: StockTransfer) -> StockTransferTableSchema:
    return StockTransferTableSchema(
        id=t.id,
        reference_number=t.reference_number,
        product_id=t.product_id,
        product_name=t.product.name if t.product else None,
        quantity=t.quantity,
        from_warehouse_id=t.from_warehouse_id,
        from_warehouse_code=t.from_warehouse.code if t.from_warehouse else None,
        to_warehouse_id=t.to_warehouse_id,
        to_warehouse_code=t.to_warehouse.code if t.to_warehouse else None,
        status=t.status,
        notes=t.notes,
        cancellation_reason=t.cancellation_reason,
        requested_by_id=t.requested_by_id,
        requested_by=t.requested_by.username if t.requested_by else None,
        approved_by_id=t.approved_by_id,
        approved_by=t.approved_by.username if t.approved_by else None,
        completed_by_id=t.completed_by_id,
        completed_by=t.completed_by.username if t.completed_by else None,
        approved_at=t.approved_at,
        shipped_at=t.shipped_at,
        completed_at=t.completed_at,
        cancelled_at=t.cancelled_at,
        created_at=t.created_at,
        updated_at=t.updated_at,
    )


async def _load_transfer(db: AsyncSession, transfer_id: int, *, for_update: bool = False) -> StockTransfer:
    stmt = (
        select(StockTransfer)
        .where(StockTransfer.id == transfer_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()

    transfer = await db.scalar(stmt)
    if not transfer:
        raise AppException(404, "Stock transfer not found", ErrorCode.STOCK_TRANSFER_NOT_FOUND)
    return transfer


async def _source_available(db: AsyncSession, product_id: int, warehouse_id: int) -> int:
    available = await db.scalar(
        select(Inventory.quantity_on_hand - Inventory.quantity_reserved).where(
            Inventory.product_id == product_id,
            Inventory.warehouse_id == warehouse_id,
        )
    )
    return int(available or 0)


def _start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


# =====================================================
# CREATE
# =====================================================
async def create_stock_transfer(
    db: AsyncSession,
    payload: StockTransferCreateSchema,
    user: User,
) -> StockTransferTableSchema:
    if payload.from_warehouse_id == payload.to_warehouse_id:
        raise AppException(
            400,
            "Source and destination warehouses must differ",
            ErrorCode.STOCK_TRANSFER_INVALID_LOCATION,
        )

    product_exists = await db.scalar(
        select(Product.id).where(
            Product.id == payload.product_id,
            Product.is_active.is_(True),
            Product.is_deleted.is_(False),
        )
    )

    if not product_exists:
        raise AppException(
            400,
            "Invalid or inactive product",
            ErrorCode.STOCK_TRANSFER_INVALID_PRODUCT,
        )

    count = await db.scalar(
        select(func.count())
        .select_from(Warehouse)
        .where(
            Warehouse.id.in_([payload.from_warehouse_id, payload.to_warehouse_id]),
            Warehouse.is_active.is_(True),
            Warehouse.is_deleted.is_(False),
        )
    )

    if count != 2:
        raise AppException(
            400,
            "Invalid or inactive warehouse",
            ErrorCode.STOCK_TRANSFER_INVALID_LOCATION,
        )

    available = await _source_available(db, payload.product_id, payload.from_warehouse_id)
    if available < payload.quantity:
        raise AppException(
            409,
            "Insufficient stock at source warehouse",
            ErrorCode.STOCK_TRANSFER_INSUFFICIENT_STOCK,
            details={"available": available, "requested": payload.quantity},
        )

    signature = generate_transfer_signature(
        product_id=payload.product_id,
        quantity=payload.quantity,
        from_warehouse_id=payload.from_warehouse_id,
        to_warehouse_id=payload.to_warehouse_id,
    )

    now = datetime.now(timezone.utc)
    exists = await db.scalar(
        select(StockTransfer.id).where(
            StockTransfer.item_signature == signature,
            StockTransfer.status == TransferStatus.pending,
            StockTransfer.created_at >= _start_of_day(now),
        )
    )

    if exists:
        raise AppException(
            409,
            "Duplicate pending stock transfer exists",
            ErrorCode.STOCK_TRANSFER_DUPLICATE,
            details={"transfer_id": exists},
        )

    transfer = StockTransfer(
        reference_number=await next_daily_number(db, StockTransfer, "ST", now=now),
        product_id=payload.product_id,
        quantity=payload.quantity,
        from_warehouse_id=payload.from_warehouse_id,
        to_warehouse_id=payload.to_warehouse_id,
        status=TransferStatus.pending,
        notes=payload.notes,
        requested_by_id=user.id,
        item_signature=signature,
    )

    db.add(transfer)
    await db.flush()

    await emit_user_activity(
        db,
        user,
        ActivityCode.CREATE_STOCK_TRANSFER,
        target_name=transfer.reference_number,
    )

    await db.commit()
    logger.info("Stock transfer created", extra={"transfer_id": transfer.id})

    return _map_transfer(await _load_transfer(db, transfer.id))


# =====================================================
# LIFECYCLE
# =====================================================
async def _approve(db: AsyncSession, transfer_id: int, user: User) -> StockTransfer:
    transfer = await _load_transfer(db, transfer_id, for_update=True)

    if not transfer.can_be_approved():
        raise AppException(
            409,
            "Only pending transfers can be approved",
            ErrorCode.STOCK_TRANSFER_INVALID_STATUS,
        )

    available = await _source_available(db, transfer.product_id, transfer.from_warehouse_id)
    if available < transfer.quantity:
        raise AppException(
            409,
            "Insufficient stock at source warehouse",
            ErrorCode.STOCK_TRANSFER_INSUFFICIENT_STOCK,
            details={"available": available, "requested": transfer.quantity},
        )

    transfer.status = TransferStatus.approved
    transfer.approved_by_id = user.id
    transfer.approved_at = datetime.now(timezone.utc)

    await emit_user_activity(
        db,
        user,
        ActivityCode.APPROVE_STOCK_TRANSFER,
        target_name=transfer.reference_number,
    )
    return transfer


async def approve_stock_transfer(db: AsyncSession, transfer_id: int, user: User) -> StockTransferTableSchema:
    await _approve(db, transfer_id, user)
    await db.commit()
    return _map_transfer(await _load_transfer(db, transfer_id))


async def ship_stock_transfer(db: AsyncSession, transfer_id: int, user: User) -> StockTransferTableSchema:
    transfer = await _load_transfer(db, transfer_id, for_update=True)

    if not transfer.can_be_shipped():
        raise AppException(
            409,
            "Only approved transfers can be shipped",
            ErrorCode.STOCK_TRANSFER_INVALID_STATUS,
        )

    await apply_inventory_movement(
        db,
        product_id=transfer.product_id,
        warehouse_id=transfer.from_warehouse_id,
        quantity_change=-transfer.quantity,
        movement_type=InventoryMovementType.TRANSFER_OUT,
        reference_type=InventoryReferenceType.TRANSFER,
        reference_id=transfer.id,
        actor_user=user,
    )

    transfer.status = TransferStatus.in_transit
    transfer.shipped_at = datetime.now(timezone.utc)

    await emit_user_activity(
        db,
        user,
        ActivityCode.SHIP_STOCK_TRANSFER,
        target_name=transfer.reference_number,
    )

    await db.commit()
    return _map_transfer(await _load_transfer(db, transfer_id))


async def complete_stock_transfer(db: AsyncSession, transfer_id: int, user: User) -> StockTransferTableSchema:
    transfer = await _load_transfer(db, transfer_id, for_update=True)

    if not transfer.can_be_completed():
        raise AppException(
            409,
            "Only in-transit transfers can be completed",
            ErrorCode.STOCK_TRANSFER_INVALID_STATUS,
        )

    await apply_inventory_movement(
        db,
        product_id=transfer.product_id,
        warehouse_id=transfer.to_warehouse_id,
        quantity_change=transfer.quantity,
        movement_type=InventoryMovementType.TRANSFER_IN,
        reference_type=InventoryReferenceType.TRANSFER,
        reference_id=transfer.id,
        actor_user=user,
    )

    transfer.status = TransferStatus.completed
    transfer.completed_by_id = user.id
    transfer.completed_at = datetime.now(timezone.utc)

    await emit_user_activity(
        db,
        user,
        ActivityCode.COMPLETE_STOCK_TRANSFER,
        target_name=transfer.reference_number,
    )

    await db.commit()
    return _map_transfer(await _load_transfer(db, transfer_id))


async def _cancel(db: AsyncSession, transfer_id: int, reason: str, user: User) -> StockTransfer:
    if not reason or not reason.strip():
        raise AppException(400, "Cancellation reason is required", ErrorCode.VALIDATION_ERROR)

    transfer = await _load_transfer(db, transfer_id, for_update=True)

    if not transfer.can_be_cancelled():
        raise AppException(
            409,
            "Only pending or approved transfers can be cancelled",
            ErrorCode.STOCK_TRANSFER_INVALID_STATUS,
        )

    transfer.status = TransferStatus.cancelled
    transfer.cancellation_reason = reason.strip()
    transfer.cancelled_at = datetime.now(timezone.utc)

    await emit_user_activity(
        db,
        user,
        ActivityCode.CANCEL_STOCK_TRANSFER,
        target_name=transfer.reference_number,
        reason=transfer.cancellation_reason,
    )
    return transfer


async def cancel_stock_transfer(
    db: AsyncSession,
    transfer_id: int,
    reason: str,
    user: User,
) -> StockTransferTableSchema:
    await _cancel(db, transfer_id, reason, user)
    await db.commit()
    return _map_transfer(await _load_transfer(db, transfer_id))


# =====================================================
# BULK
# =====================================================
async def _bulk(db: AsyncSession, transfer_ids: list[int], action, user: User) -> BulkOperationResult:
    """Run action per transfer, each in its own transaction."""
    processed, errors = 0, []

    for transfer_id in transfer_ids:
        try:
            await action(transfer_id)
            await db.commit()
            processed += 1
        except AppException as exc:
            await db.rollback()
            # rollback expires the acting user loaded by this session
            await db.refresh(user)
            errors.append(f"Transfer {transfer_id}: {exc.message}")

    return BulkOperationResult(processed=processed, failed=len(errors), errors=errors)


async def bulk_approve_transfers(db: AsyncSession, transfer_ids: list[int], user: User) -> BulkOperationResult:
    result = await _bulk(db, transfer_ids, lambda tid: _approve(db, tid, user), user)
    logger.info("Bulk transfer approval", extra={"processed": result.processed, "failed": result.failed})
    return result


async def bulk_cancel_transfers(
    db: AsyncSession,
    transfer_ids: list[int],
    reason: str,
    user: User,
) -> BulkOperationResult:
    result = await _bulk(db, transfer_ids, lambda tid: _cancel(db, tid, reason, user), user)
    logger.info("Bulk transfer cancellation", extra={"processed": result.processed, "failed": result.failed})
    return result


# =====================================================
# READ
# =====================================================
async def get_stock_transfer(db: AsyncSession, transfer_id: int) -> StockTransferTableSchema:
    return _map_transfer(await _load_transfer(db, transfer_id))


async def list_stock_transfers(
    db: AsyncSession,
    *,
    status: TransferStatus | None,
    product_id: int | None,
    warehouse_id: int | None,
    search: str | None,
    page: int,
    page_size: int,
) -> StockTransferListData:
    filters = []
    if status:
        filters.append(StockTransfer.status == status)
    if product_id:
        filters.append(StockTransfer.product_id == product_id)
    if warehouse_id:
        filters.append(
            (StockTransfer.from_warehouse_id == warehouse_id)
            | (StockTransfer.to_warehouse_id == warehouse_id)
        )
    if search:
        filters.append(StockTransfer.reference_number.ilike(f"%{search}%"))

    total = await db.scalar(
        select(func.count()).select_from(StockTransfer).where(*filters)
    )

    rows = (
        await db.execute(
            select(StockTransfer)
            .where(*filters)
            .order_by(StockTransfer.created_at.desc(), StockTransfer.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
    ).scalars().all()

    return StockTransferListData(total=total or 0, items=[_map_transfer(t) for t in rows])


async def list_overdue_transfers(db: AsyncSession, now: datetime | None = None) -> list[StockTransferTableSchema]:
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=TRANSFER_OVERDUE_DAYS)

    rows = (
        await db.execute(
            select(StockTransfer)
            .where(
                StockTransfer.status == TransferStatus.in_transit,
                StockTransfer.shipped_at < cutoff,
            )
            .order_by(StockTransfer.shipped_at.asc())
        )
    ).scalars().all()

    return [_map_transfer(t) for t in rows]


async def stock_transfer_analytics(db: AsyncSession, now: datetime | None = None) -> StockTransferAnalytics:
    now = now or datetime.now(timezone.utc)
    month_start = _start_of_day(now).replace(day=1)

    def _count(status: TransferStatus):
        return func.coalesce(func.sum(case((StockTransfer.status == status, 1), else_=0)), 0)

    row = (
        await db.execute(
            select(
                func.count(StockTransfer.id),
                _count(TransferStatus.pending),
                _count(TransferStatus.approved),
                _count(TransferStatus.in_transit),
                _count(TransferStatus.completed),
                _count(TransferStatus.cancelled),
                func.coalesce(func.sum(case((StockTransfer.created_at >= month_start, 1), else_=0)), 0),
                func.coalesce(
                    func.sum(
                        case((StockTransfer.status == TransferStatus.completed, StockTransfer.quantity), else_=0)
                    ),
                    0,
                ),
            )
        )
    ).one()

    total, pending, approved, in_transit, completed, cancelled, this_month, qty = row
    return StockTransferAnalytics(
        total=total or 0,
        pending=int(pending),
        approved=int(approved),
        in_transit=int(in_transit),
        completed=int(completed),
        cancelled=int(cancelled),
        this_month=int(this_month),
        total_quantity_transferred=int(qty),
    )


async def check_transfer_availability(
    db: AsyncSession, product_id: int, warehouse_id: int, quantity: int = 1
) -> TransferAvailability:
    """Source-side stock check run before a transfer is raised."""
    inv = await db.scalar(
        select(Inventory).where(
            Inventory.product_id == product_id,
            Inventory.warehouse_id == warehouse_id,
        )
    )
    if not inv:
        return TransferAvailability(
            product_id=product_id,
            warehouse_id=warehouse_id,
            has_inventory=False,
            quantity_on_hand=0,
            quantity_reserved=0,
            available_quantity=0,
            requested_quantity=quantity,
            is_sufficient=False,
            message="No inventory record for this product in the source warehouse",
        )

    available = inv.quantity_on_hand - inv.quantity_reserved
    sufficient = available >= quantity
    return TransferAvailability(
        product_id=product_id,
        warehouse_id=warehouse_id,
        has_inventory=True,
        quantity_on_hand=inv.quantity_on_hand,
        quantity_reserved=inv.quantity_reserved,
        available_quantity=available,
        requested_quantity=quantity,
        is_sufficient=sufficient,
        message="Sufficient stock" if sufficient else f"Insufficient stock. Available: {available}, Requested: {quantity}",
    )
