"""User domain models."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import Boolean, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TimestampMixin, UTCDateTime
from src.features.auth.passwords import password_service


class UserRole(StrEnum):
    """User roles for RBAC.

    USER: Regular account. Manages its own profile and password.
    ADMIN: Can create, inspect and update other accounts and reset their passwords.
    """

    USER = "USER"
    ADMIN = "ADMIN"


class User(Base, TimestampMixin):
    """User model for authentication and authorization."""

    __tablename__ = "users"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Identity
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str] = mapped_column(String(180), nullable=False, unique=True, index=True)

    # Authentication
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    # Authorization
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False, length=20),
        nullable=False,
        default=UserRole.USER,
        server_default=UserRole.USER.value,
    )

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Audit
    last_login_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    def verify_password(self, plain_password: str) -> bool:
        """Verify a password against the stored Argon2 hash."""
        return password_service.matches(plain_password, self.hashed_password)

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using Argon2.

        Salt is automatically generated and embedded in the returned hash.
        """
        return password_service.hash(password)
