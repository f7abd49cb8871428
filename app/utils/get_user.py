from fastapi import Depends, Header, status, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.constants.error_codes import ErrorCode
from app.core.db import get_db
from app.core.exceptions import AppException
from app.core.security import decode_access_token
from app.models.users.user_models import User
from app.utils.logger import get_logger

logger = get_logger("auth.guard")


async def get_current_user(
    request: Request,
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    if not authorization or not authorization.startswith("Bearer "):
        logger.warning("Missing bearer token")
        raise AppException(
            status.HTTP_401_UNAUTHORIZED,
            "Invalid authorization header",
            ErrorCode.UNAUTHORIZED,
        )

    token = authorization.split("Bearer ")[1].strip()
    payload = decode_access_token(token)

    username = payload.get("sub")
    token_version = payload.get("token_version")

    result = await db.execute(
        select(User).where(User.username == username)
    )
    user = result.scalars().first()

    if not user:
        logger.warning("Token user not found", extra={"username": username})
        raise AppException(status.HTTP_401_UNAUTHORIZED, "User not found", ErrorCode.UNAUTHORIZED)

    if not user.is_active:
        logger.warning("Inactive user access blocked", extra={"user_id": user.id})
        raise AppException(
            status.HTTP_403_FORBIDDEN,
            "User account is inactive",
            ErrorCode.PERMISSION_DENIED,
        )

    if user.token_version != token_version:
        logger.warning("Token version mismatch", extra={"user_id": user.id})
        raise AppException(status.HTTP_401_UNAUTHORIZED, "Session expired", ErrorCode.UNAUTHORIZED)

    request.state.user = user
    request.state.actor = f"{user.username}:{user.role}"
    return user
