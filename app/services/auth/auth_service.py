from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import status

from app.models.users.user_models import User, RefreshToken
from app.schemas.auth.auth_schemas import LoginData, TokenPair, LoginUser, TokenResponse
from app.core.security import verify_password, create_access_token, create_refresh_token_value
from app.core.config import ACCESS_TOKEN_EXPIRE_MINUTES, REFRESH_TOKEN_EXPIRE_DAYS
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.utils.activity_helpers import emit_user_activity
from app.constants.activity_codes import ActivityCode
from app.utils.logger import get_logger

logger = get_logger("auth.service")


def _issue_access_token(user: User) -> str:
    return create_access_token(
        subject=user.username,
        token_version=user.token_version,
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def _new_refresh_token(user: User) -> RefreshToken:
    return RefreshToken(
        user_id=user.id,
        token=create_refresh_token_value(),
        expires_at=datetime.now(timezone.utc) + timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
    )


# =====================================================
# LOGIN
# =====================================================
async def login_user(db: AsyncSession, email: str, password: str) -> LoginData:
    logger.info("Authenticating user", extra={"email": email})

    result = await db.execute(
        select(User).where(User.username == email.lower())
    )
    user = result.scalars().first()

    if not user or not verify_password(password, user.password_hash):
        logger.warning("Invalid credentials", extra={"email": email})
        raise AppException(
            status.HTTP_401_UNAUTHORIZED,
            "Invalid credentials",
            ErrorCode.INVALID_CREDENTIALS,
        )

    if not user.is_active:
        logger.warning("Inactive user login blocked", extra={"email": email})
        raise AppException(
            status.HTTP_403_FORBIDDEN,
            "User account is inactive",
            ErrorCode.PERMISSION_DENIED,
        )

    user.last_login = datetime.now(timezone.utc)

    refresh = _new_refresh_token(user)
    db.add(refresh)

    await emit_user_activity(db, user, ActivityCode.LOGIN)
    await db.commit()

    logger.info("Login successful", extra={"user_id": user.id})

    return LoginData(
        auth=TokenPair(
            access_token=_issue_access_token(user),
            refresh_token=refresh.token,
        ),
        user=LoginUser(
            id=user.id,
            username=user.username,
            full_name=user.full_name,
            role=user.role,
        ),
    )


# =====================================================
# REFRESH
# =====================================================
async def refresh_tokens(db: AsyncSession, refresh_token_value: str) -> TokenResponse:
    logger.info("Refreshing token")

    result = await db.execute(
        select(RefreshToken).where(
            RefreshToken.token == refresh_token_value,
            RefreshToken.revoked.is_(False),
            RefreshToken.expires_at > datetime.now(timezone.utc),
        )
    )
    token = result.scalars().first()

    if not token:
        logger.warning("Invalid refresh token")
        raise AppException(
            status.HTTP_401_UNAUTHORIZED,
            "Invalid or expired refresh token",
            ErrorCode.UNAUTHORIZED,
        )

    user = await db.get(User, token.user_id)
    if not user or not user.is_active:
        logger.warning("Refresh blocked for inactive user", extra={"user_id": token.user_id})
        raise AppException(
            status.HTTP_401_UNAUTHORIZED,
            "User invalid or inactive",
            ErrorCode.UNAUTHORIZED,
        )

    # rotation: the presented token is single use
    token.revoked = True
    refresh = _new_refresh_token(user)
    db.add(refresh)

    await db.commit()

    logger.info("Token refreshed", extra={"user_id": user.id})

    return TokenResponse(
        access_token=_issue_access_token(user),
        refresh_token=refresh.token,
        role=user.role,
    )


# =====================================================
# LOGOUT
# =====================================================
async def logout_user(db: AsyncSession, user: User) -> None:
    logger.info("Logging out user", extra={"user_id": user.id})

    user.token_version += 1

    await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user.id)
        .values(revoked=True)
    )

    await emit_user_activity(db, user, ActivityCode.LOGOUT)
    await db.commit()

    logger.info("Logout successful", extra={"user_id": user.id})
