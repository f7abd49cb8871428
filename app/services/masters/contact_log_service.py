# app/services/masters/contact_log_service.py
"""Contact history with suppliers and customers.

A log points at its target through ``contactable_type`` + ``contactable_id``.
The target must exist and not be soft-deleted; recording a contact stamps the
target's ``last_contact_date``.
"""

from collections import Counter
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.models.masters.contact_log_models import ContactLog
from app.models.masters.customer_models import Customer
from app.models.masters.supplier_models import Supplier
from app.models.enums.contact_log import ContactableType, ContactType
from app.models.enums.order_priority import OrderPriority
from app.models.users.user_models import User
from app.policies import contact_log_policy as policy
from app.schemas.masters.contact_log_schemas import (
    ContactLogCreate,
    ContactLogUpdate,
    ContactLogOut,
    ContactLogListData,
    ContactMetrics,
    ContactEntitySummary,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_user_activity
from app.utils.check_roles import authorize
from app.utils.logger import get_logger

logger = get_logger(__name__)

CONTACTABLE_MODELS = {
    ContactableType.supplier: Supplier,
    ContactableType.customer: Customer,
}


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _map_log(log: ContactLog, now: datetime | None = None) -> ContactLogOut:
    return ContactLogOut(
        id=log.id,
        contactable_type=log.contactable_type,
        contactable_id=log.contactable_id,
        contact_type=log.contact_type,
        direction=log.direction,
        subject=log.subject,
        description=log.description,
        outcome=log.outcome,
        contact_person_id=log.contact_person_id,
        contact_person_name=log.contact_person.username if log.contact_person else None,
        external_contact_person=log.external_contact_person,
        external_contact_email=log.external_contact_email,
        external_contact_phone=log.external_contact_phone,
        contact_date=log.contact_date,
        duration_minutes=log.duration_minutes,
        formatted_duration=log.formatted_duration,
        follow_up_date=log.follow_up_date,
        is_follow_up_due=log.is_follow_up_due(now),
        attachments=log.attachments,
        priority=log.priority,
        tags=log.tags,
        created_at=log.created_at,
        updated_at=log.updated_at,
    )


async def _load_log(db: AsyncSession, log_id: int) -> ContactLog:
    log = await db.scalar(
        select(ContactLog)
        .where(ContactLog.id == log_id)
        .execution_options(populate_existing=True)
    )
    if not log:
        raise AppException(404, "Contact log not found", ErrorCode.CONTACT_LOG_NOT_FOUND)
    return log


async def _load_contactable(db: AsyncSession, contactable_type: ContactableType, contactable_id: int):
    model = CONTACTABLE_MODELS[contactable_type]
    target = await db.scalar(
        select(model).where(model.id == contactable_id, model.is_deleted.is_(False))
    )
    if not target:
        raise AppException(
            404,
            f"{contactable_type.value.capitalize()} not found",
            ErrorCode.CONTACTABLE_NOT_FOUND,
            details={"contactable_type": contactable_type.value, "contactable_id": contactable_id},
        )
    return target


def _target_name(target) -> str:
    if isinstance(target, Supplier):
        return target.company_name
    return target.display_name


def _check_dates(contact_date: datetime, follow_up_date: datetime | None) -> None:
    contact_date = _aware(contact_date)
    if contact_date > datetime.now(timezone.utc):
        raise AppException(400, "contact_date cannot be in the future", ErrorCode.VALIDATION_ERROR)

    follow_up_date = _aware(follow_up_date)
    if follow_up_date is not None and follow_up_date <= contact_date:
        raise AppException(400, "follow_up_date must be after contact_date", ErrorCode.VALIDATION_ERROR)


# =====================================================
# CREATE
# =====================================================
async def create_contact_log(db: AsyncSession, payload: ContactLogCreate, user: User) -> ContactLogOut:
    authorize(policy.can_create(user))

    target = await _load_contactable(db, payload.contactable_type, payload.contactable_id)
    _check_dates(payload.contact_date, payload.follow_up_date)

    log = ContactLog(**payload.model_dump(), contact_person_id=user.id)
    db.add(log)

    target.last_contact_date = payload.contact_date
    await db.flush()

    await emit_user_activity(
        db,
        user,
        ActivityCode.CREATE_CONTACT_LOG,
        contact_type=payload.contact_type.value,
        target_name=_target_name(target),
        subject=payload.subject,
    )

    await db.commit()
    logger.info(
        "Contact logged",
        extra={
            "contact_log_id": log.id,
            "contactable_type": payload.contactable_type.value,
            "contactable_id": payload.contactable_id,
        },
    )
    return _map_log(await _load_log(db, log.id))


# =====================================================
# READ
# =====================================================
async def get_contact_log(db: AsyncSession, log_id: int, user: User) -> ContactLogOut:
    log = await _load_log(db, log_id)
    authorize(policy.can_view(user, log))
    return _map_log(log)


async def list_contact_logs(
    db: AsyncSession,
    user: User,
    *,
    contact_type: ContactType | None,
    priority: OrderPriority | None,
    contactable_type: ContactableType | None,
    contactable_id: int | None,
    date_from: datetime | None,
    date_to: datetime | None,
    page: int,
    page_size: int,
) -> ContactLogListData:
    authorize(policy.can_view_any(user))

    filters = []
    if contact_type:
        filters.append(ContactLog.contact_type == contact_type)
    if priority:
        filters.append(ContactLog.priority == priority)
    if contactable_type:
        filters.append(ContactLog.contactable_type == contactable_type)
    if contactable_id:
        filters.append(ContactLog.contactable_id == contactable_id)
    if date_from:
        filters.append(ContactLog.contact_date >= date_from)
    if date_to:
        filters.append(ContactLog.contact_date <= date_to)

    total = await db.scalar(select(func.count()).select_from(ContactLog).where(*filters))

    rows = (
        await db.execute(
            select(ContactLog)
            .where(*filters)
            .order_by(ContactLog.contact_date.desc(), ContactLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
    ).scalars().all()

    now = datetime.now(timezone.utc)
    return ContactLogListData(total=total or 0, items=[_map_log(r, now) for r in rows])


# =====================================================
# UPDATE / DELETE
# =====================================================
async def update_contact_log(db: AsyncSession, log_id: int, payload: ContactLogUpdate, user: User) -> ContactLogOut:
    log = await _load_log(db, log_id)
    authorize(policy.can_update(user, log), "Only the author or an admin can edit this contact log")

    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise AppException(400, "No changes detected", ErrorCode.NO_CHANGES_DETECTED)

    _check_dates(
        updates.get("contact_date", log.contact_date),
        updates.get("follow_up_date", log.follow_up_date),
    )

    changes: list[str] = []
    for field, new_value in updates.items():
        old_value = getattr(log, field)
        if old_value != new_value:
            changes.append(field)
            setattr(log, field, new_value)

    if not changes:
        raise AppException(400, "No actual changes detected", ErrorCode.NO_CHANGES_DETECTED)

    await emit_user_activity(
        db,
        user,
        ActivityCode.UPDATE_CONTACT_LOG,
        target_id=log.id,
        changes=", ".join(changes),
    )

    await db.commit()
    return _map_log(await _load_log(db, log_id))


async def delete_contact_log(db: AsyncSession, log_id: int, user: User) -> None:
    log = await _load_log(db, log_id)
    authorize(policy.can_delete(user, log), "Only the author or an admin can delete this contact log")

    await db.delete(log)
    await emit_user_activity(db, user, ActivityCode.DELETE_CONTACT_LOG, target_id=log_id)
    await db.commit()


# =====================================================
# FOLLOW-UPS
# =====================================================
async def list_follow_ups_due(db: AsyncSession, user: User) -> list[ContactLogOut]:
    authorize(policy.can_view_any(user))

    now = datetime.now(timezone.utc)
    rows = (
        await db.execute(
            select(ContactLog)
            .where(ContactLog.follow_up_date.is_not(None), ContactLog.follow_up_date <= now)
            .order_by(ContactLog.follow_up_date.asc())
        )
    ).scalars().all()

    return [_map_log(r, now) for r in rows]


async def complete_follow_up(db: AsyncSession, log_id: int, user: User) -> ContactLogOut:
    log = await _load_log(db, log_id)
    authorize(policy.can_update(user, log))

    if log.follow_up_date is None:
        raise AppException(400, "Contact log has no pending follow-up", ErrorCode.VALIDATION_ERROR)

    log.follow_up_date = None
    await emit_user_activity(db, user, ActivityCode.COMPLETE_FOLLOW_UP, target_id=log.id)

    await db.commit()
    return _map_log(await _load_log(db, log_id))


# =====================================================
# METRICS
# =====================================================
async def contact_metrics(
    db: AsyncSession,
    *,
    contactable_type: ContactableType | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> ContactMetrics:
    filters = []
    if contactable_type:
        filters.append(ContactLog.contactable_type == contactable_type)
    if date_from:
        filters.append(ContactLog.contact_date >= date_from)
    if date_to:
        filters.append(ContactLog.contact_date <= date_to)

    rows = (
        await db.execute(
            select(
                ContactLog.contact_type,
                ContactLog.direction,
                ContactLog.outcome,
                ContactLog.priority,
                ContactLog.duration_minutes,
                ContactLog.follow_up_date,
            ).where(*filters)
        )
    ).all()

    now = datetime.now(timezone.utc)
    by_type: Counter = Counter()
    by_direction: Counter = Counter()
    by_outcome: Counter = Counter()
    by_priority: Counter = Counter()
    durations: list[int] = []
    follow_ups_due = 0

    for contact_type, direction, outcome, priority, duration, follow_up in rows:
        by_type[contact_type.value] += 1
        by_direction[direction.value] += 1
        if outcome:
            by_outcome[outcome.value] += 1
        by_priority[priority.value] += 1
        if duration:
            durations.append(duration)
        if follow_up and _aware(follow_up) <= now:
            follow_ups_due += 1

    total_duration = sum(durations)
    return ContactMetrics(
        total_contacts=len(rows),
        by_type=dict(by_type),
        by_direction=dict(by_direction),
        by_outcome=dict(by_outcome),
        by_priority=dict(by_priority),
        follow_ups_due=follow_ups_due,
        average_duration_minutes=round(total_duration / len(durations), 2) if durations else 0.0,
        total_duration_minutes=total_duration,
    )


async def contact_entity_summary(
    db: AsyncSession,
    contactable_type: ContactableType,
    contactable_id: int,
) -> ContactEntitySummary:
    await _load_contactable(db, contactable_type, contactable_id)

    rows = (
        await db.execute(
            select(ContactLog.contact_type, ContactLog.contact_date, ContactLog.duration_minutes, ContactLog.follow_up_date)
            .where(
                ContactLog.contactable_type == contactable_type,
                ContactLog.contactable_id == contactable_id,
            )
        )
    ).all()

    types = Counter(r.contact_type for r in rows)
    most_common = types.most_common(1)

    return ContactEntitySummary(
        contactable_type=contactable_type,
        contactable_id=contactable_id,
        total_contacts=len(rows),
        last_contact_date=max((r.contact_date for r in rows), default=None),
        pending_follow_ups=sum(1 for r in rows if r.follow_up_date is not None),
        most_common_type=most_common[0][0] if most_common else None,
        total_duration_minutes=sum(r.duration_minutes or 0 for r in rows),
    )
