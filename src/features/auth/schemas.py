"""Authentication schemas (DTOs)."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.features.user.models import UserRole
from src.shared.validators.password import validate_password_strength


# Request schemas
class LoginRequest(BaseModel):
    """Login request.

    Password strength is not checked here: it is enforced when a password is
    set, and login must not reveal the policy.
    """

    email: EmailStr = Field(..., description="Email address (validated via email-validator)")
    password: str = Field(..., min_length=1, max_length=128)


class RegisterRequest(BaseModel):
    """Self-service registration request."""

    name: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128, description="Password must be at least 8 characters")

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        """Validate password strength using shared validator."""
        return validate_password_strength(value)


class RefreshTokenRequest(BaseModel):
    """Refresh or logout request."""

    refresh_token: str = Field(..., max_length=512)


class ChangePasswordRequest(BaseModel):
    """Change own password."""

    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=128, description="Password must be at least 8 characters")

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        """Validate password strength using shared validator."""
        return validate_password_strength(value)


# Response schemas
class TokenResponse(BaseModel):
    """JWT token response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class LoginResponse(TokenResponse):
    """Login / registration response: the account plus a fresh token pair."""

    id: int
    name: str
    email: EmailStr
    role: UserRole
    created_at: datetime
