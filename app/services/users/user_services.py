from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func

from app.models.users.user_models import User
from app.schemas.users.user_schemas import (
    UserCreateSchema,
    UserUpdateSchema,
    UserListFilters,
    UserListItemSchema,
    UserDetailSchema,
    UserListResponseSchema,
)
from app.core.security import hash_password
from app.utils.activity_helpers import emit_user_activity
from app.constants.activity_codes import ActivityCode
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.utils.logger import get_logger

logger = get_logger(__name__)

ALLOWED_SORT_FIELDS = {
    "created_at": User.created_at,
    "username": User.username,
}


# =========================
# CREATE USER
# =========================
async def create_user(db: AsyncSession, payload: UserCreateSchema, admin: User) -> UserDetailSchema:
    username = payload.email.lower()

    exists = await db.scalar(select(User.id).where(User.username == username))
    if exists:
        raise AppException(409, "User already exists", ErrorCode.USER_ALREADY_EXISTS)

    user = User(
        username=username,
        full_name=payload.full_name,
        password_hash=hash_password(payload.password),
        role=payload.role,
        is_active=True,
        token_version=0,
        version=1,
        created_by_admin_id=admin.id,
    )

    db.add(user)
    await db.flush()

    await emit_user_activity(
        db,
        admin,
        ActivityCode.CREATE_USER,
        target_email=user.username,
        target_role=user.role.capitalize(),
    )

    await db.commit()
    await db.refresh(user)

    logger.info("User created", extra={"user_id": user.id, "role": user.role})
    return UserDetailSchema.model_validate(user)


# =========================
# LIST USERS
# =========================
async def list_users(db: AsyncSession, filters: UserListFilters) -> UserListResponseSchema:
    base_stmt = select(User)

    if filters.search:
        base_stmt = base_stmt.where(
            User.username.ilike(f"%{filters.search}%") | User.full_name.ilike(f"%{filters.search}%")
        )
    if filters.role:
        base_stmt = base_stmt.where(User.role == filters.role.lower())
    if filters.is_active is not None:
        base_stmt = base_stmt.where(User.is_active == filters.is_active)
    if filters.created_by:
        base_stmt = base_stmt.where(User.created_by_admin_id == filters.created_by)

    total = await db.scalar(
        select(func.count()).select_from(base_stmt.subquery())
    )

    sort_col = ALLOWED_SORT_FIELDS.get(filters.sort_by)
    if sort_col is None:
        raise AppException(400, "Invalid sort field", ErrorCode.VALIDATION_ERROR)
    sort_col = sort_col.desc() if filters.sort_order == "desc" else sort_col.asc()

    result = await db.execute(
        base_stmt
        .order_by(sort_col, User.id)
        .limit(filters.page_size)
        .offset((filters.page - 1) * filters.page_size)
    )

    return UserListResponseSchema(
        total=total or 0,
        items=[UserListItemSchema.model_validate(u) for u in result.scalars().all()],
    )


# =========================
# GET USER BY ID
# =========================
async def get_user_by_id(db: AsyncSession, user_id: int) -> UserDetailSchema:
    user = await db.get(User, user_id)
    if not user:
        raise AppException(404, "User not found", ErrorCode.USER_NOT_FOUND)
    return UserDetailSchema.model_validate(user)


# =========================
# UPDATE USER
# =========================
async def update_user(
    db: AsyncSession,
    user_id: int,
    payload: UserUpdateSchema,
    admin: User,
) -> UserDetailSchema:
    user = await db.get(User, user_id)
    if not user:
        raise AppException(404, "User not found", ErrorCode.USER_NOT_FOUND)

    values: dict = {}

    if payload.full_name is not None and payload.full_name != user.full_name:
        values["full_name"] = payload.full_name
    if payload.password:
        values["password_hash"] = hash_password(payload.password)
    if payload.role and payload.role != user.role:
        values["role"] = payload.role

    if not values:
        raise AppException(400, "No changes provided", ErrorCode.NO_CHANGES_DETECTED)

    # a role or password change ends every open session of the user
    if "password_hash" in values or "role" in values:
        values["token_version"] = User.token_version + 1

    result = await db.execute(
        update(User)
        .where(User.id == user_id, User.version == payload.version)
        .values(**values, version=User.version + 1)
        .returning(User.id)
    )
    if result.scalar_one_or_none() is None:
        raise AppException(
            409,
            "User was modified by another process",
            ErrorCode.USER_VERSION_CONFLICT,
        )

    updated = await db.scalar(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )

    if "password_hash" in values:
        await emit_user_activity(
            db,
            admin,
            ActivityCode.UPDATE_USER_PASSWORD,
            target_email=updated.username,
        )

    if "role" in values:
        await emit_user_activity(
            db,
            admin,
            ActivityCode.UPDATE_USER_ROLE,
            target_email=updated.username,
            target_role=updated.role.capitalize(),
        )

    await db.commit()
    logger.info("User updated", extra={"user_id": user_id, "fields": sorted(values)})
    return UserDetailSchema.model_validate(updated)


# =========================
# ACTIVATE / DEACTIVATE
# =========================
async def _set_active(db: AsyncSession, user_id: int, version: int, active: bool, admin: User) -> UserDetailSchema:
    logger.info(
        "Changing user active flag",
        extra={
            "target_user_id": user_id,
            "requested_version": version,
            "active": active,
            "actor_id": admin.id,
        },
    )

    if not await db.get(User, user_id):
        raise AppException(404, "User not found", ErrorCode.USER_NOT_FOUND)

    result = await db.execute(
        update(User)
        .where(
            User.id == user_id,
            User.version == version,
            User.is_active.is_(not active),
        )
        .values(is_active=active, version=User.version + 1)
        .returning(User.id)
    )

    if result.scalar_one_or_none() is None:
        logger.warning(
            "User state already set or version conflict",
            extra={"target_user_id": user_id},
        )
        raise AppException(
            409,
            "User already active" if active else "User already inactive",
            ErrorCode.CONFLICT,
        )

    user = await db.scalar(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )

    await emit_user_activity(
        db,
        admin,
        ActivityCode.REACTIVATE_USER if active else ActivityCode.DEACTIVATE_USER,
        target_email=user.username,
    )

    await db.commit()
    return UserDetailSchema.model_validate(user)


async def deactivate_user(db: AsyncSession, user_id: int, version: int, admin: User) -> UserDetailSchema:
    if user_id == admin.id:
        raise AppException(400, "You cannot deactivate your own account", ErrorCode.VALIDATION_ERROR)
    return await _set_active(db, user_id, version, False, admin)


async def reactivate_user(db: AsyncSession, user_id: int, version: int, admin: User) -> UserDetailSchema:
    return await _set_active(db, user_id, version, True, admin)
