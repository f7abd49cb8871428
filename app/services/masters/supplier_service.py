# app/services/masters/supplier_service.py

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, or_, desc
from sqlalchemy.exc import IntegrityError

from app.models.masters.supplier_models import Supplier
from app.models.purchasing.purchase_order_models import PurchaseOrder, PO_TERMINAL_STATUSES
from app.models.masters.contact_log_models import ContactLog
from app.models.enums.contact_log import ContactableType
from app.models.enums.party import SupplierStatus, SupplierType
from app.models.enums.purchase_order_status import PurchaseOrderStatus
from app.schemas.masters.supplier_schemas import (
    SupplierCreate,
    SupplierUpdate,
    SupplierOut,
    SupplierListData,
    SupplierMetrics,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_user_activity
from app.utils.decimal_utils import percentage, to_decimal
from app.utils.numbering import unique_party_code
from app.utils.logger import get_logger

logger = get_logger(__name__)


# =====================================================
# MAPPER
# =====================================================
def _map_supplier(s: Supplier) -> SupplierOut:
    return SupplierOut(
        id=s.id,
        supplier_code=s.supplier_code,
        company_name=s.company_name,
        trade_name=s.trade_name,
        supplier_type=s.supplier_type,
        status=s.status,
        contact_person=s.contact_person,
        email=s.email,
        phone=s.phone,
        website=s.website,
        address_line_1=s.address_line_1,
        address_line_2=s.address_line_2,
        city=s.city,
        state_province=s.state_province,
        postal_code=s.postal_code,
        country=s.country,
        tax_id=s.tax_id,
        payment_terms=s.payment_terms,
        currency=s.currency,
        credit_limit=s.credit_limit,
        overall_rating=s.overall_rating,
        tags=s.tags,
        notes=s.notes,
        last_contact_date=s.last_contact_date,
        version=s.version,
        created_by=s.created_by_id,
        updated_by=s.updated_by_id,
        created_by_name=s.created_by_username,
        updated_by_name=s.updated_by_username,
        created_at=s.created_at,
        updated_at=s.updated_at,
    )


async def load_supplier(db: AsyncSession, supplier_id: int) -> Supplier:
    supplier = await db.scalar(
        select(Supplier)
        .where(Supplier.id == supplier_id, Supplier.is_deleted.is_(False))
        .execution_options(populate_existing=True)
    )
    if not supplier:
        raise AppException(404, "Supplier not found", ErrorCode.SUPPLIER_NOT_FOUND)
    return supplier


async def _email_taken(db: AsyncSession, email: str, exclude_id: int | None = None) -> bool:
    stmt = select(Supplier.id).where(func.lower(Supplier.email) == email.lower())
    if exclude_id:
        stmt = stmt.where(Supplier.id != exclude_id)
    return bool(await db.scalar(stmt))


# =====================================================
# CREATE
# =====================================================
async def create_supplier(db: AsyncSession, payload: SupplierCreate, user) -> SupplierOut:
    if payload.email and await _email_taken(db, payload.email):
        raise AppException(409, "Supplier email already exists", ErrorCode.SUPPLIER_EMAIL_EXISTS)

    supplier = Supplier(
        **payload.model_dump(),
        supplier_code=await unique_party_code(db, Supplier.supplier_code, "SUP"),
        is_deleted=False,
        version=1,
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    db.add(supplier)

    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise AppException(409, "Supplier already exists", ErrorCode.SUPPLIER_EMAIL_EXISTS)

    await emit_user_activity(
        db,
        user,
        ActivityCode.CREATE_SUPPLIER,
        target_name=supplier.company_name,
    )

    await db.commit()
    logger.info(
        "Supplier created",
        extra={"supplier_id": supplier.id, "supplier_code": supplier.supplier_code},
    )
    return _map_supplier(await load_supplier(db, supplier.id))


# =====================================================
# READ
# =====================================================
async def get_supplier(db: AsyncSession, supplier_id: int) -> SupplierOut:
    return _map_supplier(await load_supplier(db, supplier_id))


async def list_suppliers(
    db: AsyncSession,
    *,
    search: str | None,
    status: SupplierStatus | None,
    supplier_type: SupplierType | None,
    country: str | None,
    page: int,
    page_size: int,
) -> SupplierListData:
    filters = [Supplier.is_deleted.is_(False)]

    if search:
        filters.append(
            or_(
                Supplier.company_name.ilike(f"%{search}%"),
                Supplier.trade_name.ilike(f"%{search}%"),
                Supplier.supplier_code.ilike(f"%{search}%"),
                Supplier.email.ilike(f"%{search}%"),
                Supplier.contact_person.ilike(f"%{search}%"),
            )
        )
    if status:
        filters.append(Supplier.status == status)
    if supplier_type:
        filters.append(Supplier.supplier_type == supplier_type)
    if country:
        filters.append(Supplier.country.ilike(country))

    total = await db.scalar(
        select(func.count()).select_from(select(Supplier.id).where(*filters).subquery())
    )

    rows = (
        await db.execute(
            select(Supplier)
            .where(*filters)
            .order_by(desc(Supplier.created_at), Supplier.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
    ).scalars().all()

    return SupplierListData(total=total or 0, items=[_map_supplier(s) for s in rows])


# =====================================================
# UPDATE
# =====================================================
async def update_supplier(db: AsyncSession, supplier_id: int, payload: SupplierUpdate, user) -> SupplierOut:
    current = await load_supplier(db, supplier_id)

    updates = payload.model_dump(exclude_unset=True, exclude={"version"})
    if not updates:
        raise AppException(400, "No changes detected", ErrorCode.NO_CHANGES_DETECTED)

    new_email = updates.get("email")
    if new_email and new_email != current.email and await _email_taken(db, new_email, supplier_id):
        raise AppException(409, "Supplier email already exists", ErrorCode.SUPPLIER_EMAIL_EXISTS)

    changes: list[str] = []
    for field, new_value in updates.items():
        old_value = getattr(current, field)
        if old_value != new_value:
            changes.append(f"{field}: {old_value} → {new_value}")

    if not changes:
        raise AppException(400, "No actual changes detected", ErrorCode.NO_CHANGES_DETECTED)

    result = await db.execute(
        update(Supplier)
        .where(
            Supplier.id == supplier_id,
            Supplier.version == payload.version,
            Supplier.is_deleted.is_(False),
        )
        .values(
            **updates,
            version=Supplier.version + 1,
            updated_by_id=user.id,
        )
        .returning(Supplier.id)
    )
    if not result.scalar_one_or_none():
        raise AppException(
            409,
            "Supplier was modified by another process",
            ErrorCode.SUPPLIER_VERSION_CONFLICT,
        )

    await emit_user_activity(
        db,
        user,
        ActivityCode.UPDATE_SUPPLIER,
        target_name=current.company_name,
        changes=", ".join(changes),
    )

    await db.commit()
    return _map_supplier(await load_supplier(db, supplier_id))


async def change_supplier_status(
    db: AsyncSession,
    supplier_id: int,
    status: SupplierStatus,
    version: int,
    user,
) -> SupplierOut:
    current = await load_supplier(db, supplier_id)
    if current.status == status:
        raise AppException(400, f"Supplier is already {status.value}", ErrorCode.NO_CHANGES_DETECTED)

    result = await db.execute(
        update(Supplier)
        .where(
            Supplier.id == supplier_id,
            Supplier.version == version,
            Supplier.is_deleted.is_(False),
        )
        .values(status=status, version=Supplier.version + 1, updated_by_id=user.id)
        .returning(Supplier.id)
    )
    if not result.scalar_one_or_none():
        raise AppException(
            409,
            "Supplier was modified by another process",
            ErrorCode.SUPPLIER_VERSION_CONFLICT,
        )

    await emit_user_activity(
        db,
        user,
        ActivityCode.CHANGE_SUPPLIER_STATUS,
        target_name=current.company_name,
        status=status.value,
    )

    await db.commit()
    logger.info("Supplier status changed", extra={"supplier_id": supplier_id, "status": status.value})
    return _map_supplier(await load_supplier(db, supplier_id))


# =====================================================
# DELETE (SOFT)
# =====================================================
async def delete_supplier(db: AsyncSession, supplier_id: int, user) -> None:
    supplier = await load_supplier(db, supplier_id)

    active_orders = await db.scalar(
        select(func.count())
        .select_from(PurchaseOrder)
        .where(
            PurchaseOrder.supplier_id == supplier_id,
            PurchaseOrder.is_deleted.is_(False),
            PurchaseOrder.status.notin_(PO_TERMINAL_STATUSES),
        )
    )
    if active_orders:
        raise AppException(
            409,
            "Supplier has active purchase orders",
            ErrorCode.SUPPLIER_HAS_ACTIVE_ORDERS,
            details={"active_orders": active_orders},
        )

    supplier.is_deleted = True
    supplier.deleted_at = datetime.now(timezone.utc)
    supplier.version += 1
    supplier.updated_by_id = user.id

    await emit_user_activity(db, user, ActivityCode.DELETE_SUPPLIER, target_name=supplier.company_name)

    await db.commit()
    logger.info("Supplier deleted", extra={"supplier_id": supplier_id})


# =====================================================
# METRICS
# =====================================================
async def supplier_metrics(db: AsyncSession, supplier_id: int) -> SupplierMetrics:
    """Order volume, value and delivery punctuality from the supplier's purchase orders."""
    supplier = await load_supplier(db, supplier_id)

    orders = (
        await db.execute(
            select(
                PurchaseOrder.status,
                PurchaseOrder.total_amount,
                PurchaseOrder.expected_delivery_date,
                PurchaseOrder.received_at,
                PurchaseOrder.created_at,
            ).where(
                PurchaseOrder.supplier_id == supplier_id,
                PurchaseOrder.is_deleted.is_(False),
            )
        )
    ).all()

    billable = [o for o in orders if o.status != PurchaseOrderStatus.cancelled]
    total_value = sum((to_decimal(o.total_amount) for o in billable), to_decimal(0))

    # punctuality only counts receipts against a promised date
    tracked = [o for o in orders if o.received_at is not None and o.expected_delivery_date is not None]
    on_time = sum(1 for o in tracked if o.received_at.date() <= o.expected_delivery_date)

    contact_logs = await db.scalar(
        select(func.count())
        .select_from(ContactLog)
        .where(
            ContactLog.contactable_type == ContactableType.supplier,
            ContactLog.contactable_id == supplier_id,
        )
    )

    return SupplierMetrics(
        supplier_id=supplier.id,
        total_orders=len(orders),
        open_orders=sum(1 for o in orders if o.status not in PO_TERMINAL_STATUSES),
        total_order_value=total_value,
        average_order_value=to_decimal(total_value / len(billable)) if billable else to_decimal(0),
        on_time_delivery_percentage=percentage(on_time, len(tracked)),
        overall_rating=supplier.overall_rating or 0,
        contact_logs_count=contact_logs or 0,
        last_order_date=max((o.created_at for o in orders), default=None),
    )
