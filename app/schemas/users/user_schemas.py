from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime
from fastapi import Query

from app.models.users.user_models import USER_ROLES


def _check_role(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip().lower()
    if value not in USER_ROLES:
        raise ValueError(f"role must be one of {', '.join(USER_ROLES)}")
    return value


# =========================
# CREATE / UPDATE
# =========================
class UserCreateSchema(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    role: str
    full_name: Optional[str] = Field(default=None, max_length=255)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        return _check_role(v)


class UserUpdateSchema(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, min_length=8)
    role: Optional[str] = None
    version: int

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        return _check_role(v)


class VersionOnlySchema(BaseModel):
    version: int


# =========================
# LIST FILTERS
# =========================
class UserListFilters(BaseModel):
    search: Optional[str] = Query(None)
    role: Optional[str] = Query(None)
    is_active: Optional[bool] = Query(None)
    created_by: Optional[int] = Query(None)

    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)
    sort_by: str = Query("created_at")
    sort_order: str = Query("desc", pattern="^(asc|desc)$")


# =========================
# RESPONSE SCHEMAS
# =========================
class UserListItemSchema(BaseModel):
    id: int
    username: str
    full_name: Optional[str]
    role: str
    is_active: bool
    last_login: Optional[datetime]
    version: int

    class Config:
        from_attributes = True


class UserDetailSchema(BaseModel):
    id: int
    username: str
    full_name: Optional[str]
    role: str
    is_active: bool
    last_login: Optional[datetime]
    created_at: datetime
    updated_at: Optional[datetime]
    created_by_admin_id: Optional[int]
    version: int

    class Config:
        from_attributes = True


class UserListResponseSchema(BaseModel):
    total: int
    items: List[UserListItemSchema]
