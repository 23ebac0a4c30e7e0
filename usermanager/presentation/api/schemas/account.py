"""Pydantic schemas for account API endpoints."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, EmailStr

from ....domain.models import Role, User


class UserResponse(BaseModel):
    """Response schema for user data."""

    id: int
    email: str
    full_name: str
    email_confirmed: bool
    is_approved: bool
    roles: List[str]
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        ordered = [role.value for role in Role if role in user.roles]
        return cls(
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            email_confirmed=user.email_confirmed,
            is_approved=user.is_approved,
            roles=ordered,
            created_at=user.created_at,
        )


class RegisterRequest(BaseModel):
    """Request schema for user registration."""

    email: EmailStr
    full_name: str
    password: str


class RegisterResponse(BaseModel):
    """Response schema for user registration."""

    user: UserResponse
    notification_sent: bool
    message: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResponse


class TokenRequest(BaseModel):
    token: str


class EmailRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str


class MessageResponse(BaseModel):
    message: str
