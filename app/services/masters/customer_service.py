# app/services/masters/customer_service.py

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, desc, or_

from app.models.masters.customer_models import Customer
from app.models.sales.sales_order_models import SalesOrder, SO_INACTIVE_STATUSES
from app.models.masters.contact_log_models import ContactLog
from app.models.enums.contact_log import ContactableType
from app.models.enums.party import CustomerPriority, CustomerStatus, CustomerType
from app.models.enums.sales_order_status import PaymentStatus, SalesOrderStatus
from app.schemas.masters.customer_schemas import (
    CustomerCreate,
    CustomerUpdate,
    CustomerOut,
    CustomerListData,
    CustomerMetrics,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_user_activity
from app.utils.decimal_utils import percentage, to_decimal
from app.utils.numbering import unique_party_code
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _map_customer(customer: Customer) -> CustomerOut:
    return CustomerOut(
        id=customer.id,
        customer_code=customer.customer_code,
        customer_type=customer.customer_type,
        company_name=customer.company_name,
        first_name=customer.first_name,
        last_name=customer.last_name,
        display_name=customer.display_name,
        status=customer.status,
        email=customer.email,
        phone=customer.phone,
        billing_address_line_1=customer.billing_address_line_1,
        billing_address_line_2=customer.billing_address_line_2,
        billing_city=customer.billing_city,
        billing_state_province=customer.billing_state_province,
        billing_postal_code=customer.billing_postal_code,
        billing_country=customer.billing_country,
        payment_terms=customer.payment_terms,
        credit_limit=customer.credit_limit,
        current_balance=customer.current_balance,
        available_credit=customer.available_credit,
        credit_status=customer.credit_status,
        customer_priority=customer.customer_priority,
        price_tier=customer.price_tier,
        tags=customer.tags,
        notes=customer.notes,
        last_contact_date=customer.last_contact_date,
        version=customer.version,

        created_by=customer.created_by_id,
        updated_by=customer.updated_by_id,
        created_by_name=customer.created_by_username,
        updated_by_name=customer.updated_by_username,

        created_at=customer.created_at,
        updated_at=customer.updated_at,
    )


async def load_customer(db: AsyncSession, customer_id: int) -> Customer:
    customer = await db.scalar(
        select(Customer)
        .where(Customer.id == customer_id, Customer.is_deleted.is_(False))
        .execution_options(populate_existing=True)
    )
    if not customer:
        raise AppException(404, "Customer not found", ErrorCode.CUSTOMER_NOT_FOUND)
    return customer


# =====================================================
# CREATE
# =====================================================
async def create_customer(db: AsyncSession, payload: CustomerCreate, user) -> CustomerOut:
    customer = Customer(
        **payload.model_dump(),
        customer_code=await unique_party_code(db, Customer.customer_code, "CUS"),
        current_balance=0,
        is_deleted=False,
        version=1,
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    db.add(customer)
    await db.flush()

    await emit_user_activity(
        db,
        user,
        ActivityCode.CREATE_CUSTOMER,
        target_name=customer.display_name,
    )

    await db.commit()
    logger.info(
        "Customer created",
        extra={"customer_id": customer.id, "customer_code": customer.customer_code},
    )
    return _map_customer(await load_customer(db, customer.id))


# =====================================================
# READ
# =====================================================
async def get_customer(db: AsyncSession, customer_id: int) -> CustomerOut:
    return _map_customer(await load_customer(db, customer_id))


async def list_customers(
    db: AsyncSession,
    *,
    search: str | None,
    status: CustomerStatus | None,
    customer_type: CustomerType | None,
    priority: CustomerPriority | None,
    page: int,
    page_size: int,
) -> CustomerListData:
    filters = [Customer.is_deleted.is_(False)]

    if search:
        filters.append(
            or_(
                Customer.company_name.ilike(f"%{search}%"),
                Customer.first_name.ilike(f"%{search}%"),
                Customer.last_name.ilike(f"%{search}%"),
                Customer.customer_code.ilike(f"%{search}%"),
                Customer.email.ilike(f"%{search}%"),
                Customer.phone.ilike(f"%{search}%"),
            )
        )
    if status:
        filters.append(Customer.status == status)
    if customer_type:
        filters.append(Customer.customer_type == customer_type)
    if priority:
        filters.append(Customer.customer_priority == priority)

    total = await db.scalar(
        select(func.count()).select_from(select(Customer.id).where(*filters).subquery())
    )

    rows = (
        await db.execute(
            select(Customer)
            .where(*filters)
            .order_by(desc(Customer.created_at), Customer.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
    ).scalars().all()

    return CustomerListData(total=total or 0, items=[_map_customer(c) for c in rows])


# =====================================================
# UPDATE
# =====================================================
async def update_customer(db: AsyncSession, customer_id: int, payload: CustomerUpdate, user) -> CustomerOut:
    current = await load_customer(db, customer_id)

    updates = payload.model_dump(exclude_unset=True, exclude={"version"})
    if not updates:
        raise AppException(400, "No changes detected", ErrorCode.NO_CHANGES_DETECTED)

    company = updates.get("company_name", current.company_name)
    first = updates.get("first_name", current.first_name)
    last = updates.get("last_name", current.last_name)
    if not company and not (first or last):
        raise AppException(
            400,
            "company_name or first_name/last_name is required",
            ErrorCode.VALIDATION_ERROR,
        )

    changes: list[str] = []
    for field, new_value in updates.items():
        old_value = getattr(current, field)
        if old_value != new_value:
            changes.append(f"{field}: {old_value} → {new_value}")

    if not changes:
        raise AppException(400, "No actual changes detected", ErrorCode.NO_CHANGES_DETECTED)

    result = await db.execute(
        update(Customer)
        .where(
            Customer.id == customer_id,
            Customer.version == payload.version,
            Customer.is_deleted.is_(False),
        )
        .values(
            **updates,
            version=Customer.version + 1,
            updated_by_id=user.id,
        )
        .returning(Customer.id)
    )
    if not result.scalar_one_or_none():
        raise AppException(
            409,
            "Customer was modified by another process",
            ErrorCode.CUSTOMER_VERSION_CONFLICT,
        )

    await emit_user_activity(
        db,
        user,
        ActivityCode.UPDATE_CUSTOMER,
        target_name=current.display_name,
        changes=", ".join(changes),
    )

    await db.commit()
    return _map_customer(await load_customer(db, customer_id))


async def change_customer_status(
    db: AsyncSession,
    customer_id: int,
    status: CustomerStatus,
    version: int,
    user,
) -> CustomerOut:
    current = await load_customer(db, customer_id)
    if current.status == status:
        raise AppException(400, f"Customer is already {status.value}", ErrorCode.NO_CHANGES_DETECTED)

    result = await db.execute(
        update(Customer)
        .where(
            Customer.id == customer_id,
            Customer.version == version,
            Customer.is_deleted.is_(False),
        )
        .values(status=status, version=Customer.version + 1, updated_by_id=user.id)
        .returning(Customer.id)
    )
    if not result.scalar_one_or_none():
        raise AppException(
            409,
            "Customer was modified by another process",
            ErrorCode.CUSTOMER_VERSION_CONFLICT,
        )

    await emit_user_activity(
        db,
        user,
        ActivityCode.CHANGE_CUSTOMER_STATUS,
        target_name=current.display_name,
        status=status.value,
    )

    await db.commit()
    return _map_customer(await load_customer(db, customer_id))


# =====================================================
# DELETE (SOFT)
# =====================================================
async def delete_customer(db: AsyncSession, customer_id: int, user) -> None:
    customer = await load_customer(db, customer_id)

    active_orders = await db.scalar(
        select(func.count())
        .select_from(SalesOrder)
        .where(
            SalesOrder.customer_id == customer_id,
            SalesOrder.is_deleted.is_(False),
            SalesOrder.status.notin_(SO_INACTIVE_STATUSES),
        )
    )
    if active_orders:
        raise AppException(
            409,
            "Customer has active sales orders",
            ErrorCode.CUSTOMER_HAS_ACTIVE_ORDERS,
            details={"active_orders": active_orders},
        )

    if customer.current_balance and customer.current_balance > 0:
        raise AppException(
            409,
            "Customer has an outstanding balance",
            ErrorCode.CUSTOMER_HAS_BALANCE,
            details={"current_balance": str(customer.current_balance)},
        )

    customer.is_deleted = True
    customer.deleted_at = datetime.now(timezone.utc)
    customer.version += 1
    customer.updated_by_id = user.id

    await emit_user_activity(db, user, ActivityCode.DELETE_CUSTOMER, target_name=customer.display_name)

    await db.commit()
    logger.info("Customer deleted", extra={"customer_id": customer_id})


# =====================================================
# METRICS
# =====================================================
async def customer_metrics(db: AsyncSession, customer_id: int) -> CustomerMetrics:
    customer = await load_customer(db, customer_id)

    orders = (
        await db.execute(
            select(
                SalesOrder.status,
                SalesOrder.total_amount,
                SalesOrder.payment_status,
                SalesOrder.created_at,
            ).where(
                SalesOrder.customer_id == customer_id,
                SalesOrder.is_deleted.is_(False),
            )
        )
    ).all()

    billable = [o for o in orders if o.status != SalesOrderStatus.cancelled]
    lifetime_value = sum((to_decimal(o.total_amount) for o in billable), to_decimal(0))

    contact_logs = await db.scalar(
        select(func.count())
        .select_from(ContactLog)
        .where(
            ContactLog.contactable_type == ContactableType.customer,
            ContactLog.contactable_id == customer_id,
        )
    )

    return CustomerMetrics(
        customer_id=customer.id,
        total_orders=len(orders),
        open_orders=sum(1 for o in orders if o.status not in SO_INACTIVE_STATUSES),
        lifetime_value=lifetime_value,
        average_order_value=to_decimal(lifetime_value / len(billable)) if billable else to_decimal(0),
        overdue_payments=sum(1 for o in orders if o.payment_status == PaymentStatus.overdue),
        credit_utilization=percentage(customer.current_balance, customer.credit_limit),
        contact_logs_count=contact_logs or 0,
        last_order_date=max((o.created_at for o in orders), default=None),
    )
