"""User schemas (DTOs)."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.shared.validators.password import validate_password_strength

from .models import UserRole


# Request schemas
class UserCreateRequest(BaseModel):
    """Create a user (admin only)."""

    name: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128, description="Password must be at least 8 characters")
    role: UserRole = UserRole.USER

    @field_validator("password")
    @classmethod
    def password_strength(cls, value):
        """Validate password strength using shared validator."""
        return validate_password_strength(value)


class UserUpdateRequest(BaseModel):
    """User update request. Only the name can change."""

    name: str | None = Field(None, min_length=1, max_length=150)
    email: EmailStr | None = None


class AdminResetPasswordRequest(BaseModel):
    """Reset another user's password (admin only)."""

    new_password: str = Field(..., min_length=8, max_length=128)

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, value):
        """Validate password strength using shared validator."""
        return validate_password_strength(value)


# Response schemas
class UserResponse(BaseModel):
    """User response."""

    id: int
    name: str
    email: EmailStr
    role: UserRole
    is_active: bool
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    """User list response."""

    users: list[UserResponse]
    total: int
    page: int
    page_size: int
