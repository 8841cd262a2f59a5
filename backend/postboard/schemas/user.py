"""
Postboard Backend - User & Auth Schemas
=======================================

What:  Input DTOs for registration/login and the public user projection.

Security Note:
    UserResponse lists its fields explicitly. The password hash (and anything
    session-related) is not a field, so no endpoint can serialize it.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class UserCreate(BaseModel):
    """Registration payload (POST /api/register, POST /api/users, CLI)."""
    name: str = Field(min_length=1, max_length=255)
    age: int = Field(ge=1)
    birth_date: date
    phone: str = Field(min_length=1, max_length=50)
    email: EmailStr = Field(max_length=255)
    password: str = Field(min_length=8, max_length=255)

    @field_validator("name", "phone")
    @classmethod
    def not_blank(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class LoginRequest(BaseModel):
    """Credentials for POST /api/login."""
    email: EmailStr = Field(max_length=255)
    password: str = Field(min_length=1, max_length=255)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class UserResponse(BaseModel):
    """Public projection of a user."""
    id: int
    name: str
    age: int
    birth_date: date
    phone: str
    email: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserEnvelope(BaseModel):
    """Body of login and /me responses: {"user": {...}}."""
    user: UserResponse


class UserCreatedResponse(BaseModel):
    """Body of a successful registration (HTTP 201)."""
    message: str = "User created successfully!"
    data: UserResponse
