"""User account data models."""

from enum import Enum
from typing import Any

from pydantic import EmailStr, Field

from models.base import ApiModel


class UserRole(str, Enum):
    """Account roles."""

    RESIDENT = "resident"
    COMMUNITY_LEADER = "community-leader"
    ADMIN = "admin"


# Roles allowed to review reports
STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.COMMUNITY_LEADER})


class User(ApiModel):
    """Stored user account."""

    id: str = Field(..., description="Unique user identifier")
    email: str = Field(..., description="Login email, stored lower-case")
    full_name: str
    role: UserRole = UserRole.RESIDENT
    phone: str | None = None
    address: str | None = None
    password_hash: str = Field(..., description="passlib hash, never sent to clients")
    is_active: bool = True
    created_at: str
    last_login: str | None = None

    def to_public(self) -> dict[str, Any]:
        """Serialize without credentials."""
        data = self.to_api()
        data.pop("passwordHash", None)
        return data


class RegisterRequest(ApiModel):
    """Request body for account registration."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str = Field(..., min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=30)
    address: str | None = Field(None, max_length=500)


class LoginRequest(ApiModel):
    """Request body for password login."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(ApiModel):
    """Request body for token refresh."""

    refresh_token: str = Field(..., min_length=1)
