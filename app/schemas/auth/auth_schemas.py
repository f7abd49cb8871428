from pydantic import BaseModel, EmailStr
from typing import Optional, Literal


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: Literal["bearer"] = "bearer"


class LoginUser(BaseModel):
    id: int
    username: str
    full_name: Optional[str]
    role: str


class LoginData(BaseModel):
    auth: TokenPair
    user: LoginUser


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str]
    token_type: Literal["bearer"] = "bearer"
    role: str
