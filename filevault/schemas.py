from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

USERNAME_PATTERN = r'^[A-Za-z0-9_.-]+$'


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str
    is_admin: bool = Field(alias='isAdmin')


class RegisterRequest(BaseModel):
    username: str = Field(min_length=2, max_length=32, pattern=USERNAME_PATTERN)
    password: str = Field(min_length=8, max_length=128)

    @field_validator('username')
    @classmethod
    def _not_dot_segment(cls, value: str) -> str:
        if value in {'.', '..'}:
            raise ValueError('username cannot be a dot segment')
        return value


class UserCreate(RegisterRequest):
    model_config = ConfigDict(populate_by_name=True)

    is_admin: bool = Field(default=False, alias='isAdmin')


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    username: str
    is_admin: bool = Field(alias='isAdmin')


class PasswordChangeRequest(BaseModel):
    password: str = Field(min_length=8, max_length=128)


class RoleUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_admin: bool = Field(alias='isAdmin')


class ApiResponse(BaseModel):
    ok: bool
    message: str
    data: Optional[Any] = None
