"""Pydantic schemas for authentication endpoints."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..constants import UserRole

_SELF_SERVICE_ROLES = {role.value for role in UserRole} - {UserRole.ADMIN.value}


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=32)
    password: str = Field(..., min_length=6, max_length=128)
    email: EmailStr | None = None
    full_name: str | None = Field(default=None, max_length=150)
    phone: str | None = Field(default=None, max_length=32)
    role: str = UserRole.CLIENT.value

    @field_validator("role")
    @classmethod
    def _role_is_assignable(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in _SELF_SERVICE_ROLES:
            raise ValueError(f"role must be one of: {', '.join(sorted(_SELF_SERVICE_ROLES))}")
        return normalized


class LoginRequest(BaseModel):
    username: str
    password: str


class AuthResponse(BaseModel):
    access_token: str
    user_id: UUID
    token_type: str = "bearer"
    role: str | None = None


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: EmailStr | None = None
    full_name: str | None = None
    phone: str | None = None
    role: str
    created_at: datetime | None = None
    last_active_at: datetime | None = None


__all__ = ["AuthResponse", "LoginRequest", "ProfileResponse", "RegisterRequest"]
