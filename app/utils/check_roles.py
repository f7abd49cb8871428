from fastapi import Depends, status

from app.constants.error_codes import ErrorCode
from app.core.exceptions import AppException
from app.utils.get_user import get_current_user
from app.models.users.user_models import User


def require_role(roles: list[str]):
    async def role_checker(user: User = Depends(get_current_user)):
        if user.role.lower() not in [r.lower() for r in roles]:
            raise AppException(
                status.HTTP_403_FORBIDDEN,
                "Permission denied",
                ErrorCode.PERMISSION_DENIED,
            )
        return user
    return role_checker


def authorize(allowed: bool, message: str = "You are not allowed to perform this action"):
    """Raise 403 when a policy predicate denies the action."""
    if not allowed:
        raise AppException(
            status.HTTP_403_FORBIDDEN,
            message,
            ErrorCode.PERMISSION_DENIED,
        )
