"""User service layer."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.features.auth.refresh_tokens import RefreshTokenService
from src.shared.pagination.pagination import PaginationParams

from .exceptions import EmailAlreadyExists, EmailChangeNotAllowed, EmptyUpdate, UserNotFound
from .models import User, UserRole
from .schemas import UserCreateRequest, UserUpdateRequest

logger = logging.getLogger(__name__)


class UserService:
    """Service for user operations."""

    @staticmethod
    async def create_user(session: AsyncSession, data: UserCreateRequest) -> User:
        """Create a new user.

        Args:
            session: Database session
            data: User creation data

        Returns:
            Created User object

        Raises:
            EmailAlreadyExists: If email already exists

        """
        email = data.email.lower()
        stmt = select(User).where(User.email == email)
        result = await session.execute(stmt)
        if result.scalar_one_or_none():
            raise EmailAlreadyExists()

        user = User(
            name=data.name,
            email=email,
            hashed_password=User.hash_password(data.password),
            role=data.role,
            is_active=True,
        )
        session.add(user)
        await session.flush()
        await session.refresh(user)

        logger.info(f"New user created: user_id={user.id} role={user.role.value}")
        return user

    @staticmethod
    async def ensure_initial_admin(session: AsyncSession, data: UserCreateRequest) -> User | None:
        """Create the first ADMIN account if no user exists yet.

        Idempotent: once any account exists this is a no-op, so it is safe to
        run on every startup.

        Returns:
            The created admin, or None if users already exist

        """
        total = (await session.execute(select(func.count()).select_from(User))).scalar_one()
        if total > 0:
            logger.info("Users already exist, skipping initial admin")
            return None

        admin = await UserService.create_user(session, data.model_copy(update={"role": UserRole.ADMIN}))
        logger.info(f"Initial admin created: user_id={admin.id}")
        return admin

    @staticmethod
    async def get_user(session: AsyncSession, user_id: int) -> User:
        """Get user by ID.

        Raises:
            UserNotFound: If no user has this id

        """
        user = await session.get(User, user_id)
        if user is None:
            raise UserNotFound()
        return user

    @staticmethod
    async def get_users(session: AsyncSession, pagination: PaginationParams) -> tuple[list[User], int]:
        """Get paginated users list.

        Args:
            session: Database session
            pagination: PaginationParams with page and page_size

        Returns:
            Tuple of (users, total_count)

        """
        count_stmt = select(func.count()).select_from(User)
        total_result = await session.execute(count_stmt)
        total = total_result.scalar_one()

        stmt = select(User).order_by(User.id)
        if pagination.is_paginated:
            stmt = stmt.offset(pagination.skip).limit(pagination.limit)

        result = await session.execute(stmt)
        users = list(result.scalars().all())

        return users, total

    @staticmethod
    async def update_user(session: AsyncSession, user_id: int, data: UserUpdateRequest) -> User:
        """Update a user's name.

        Raises:
            EmptyUpdate: If the request has no fields
            EmailChangeNotAllowed: If the request tries to change the email
            UserNotFound: If no user has this id

        """
        if data.name is None and data.email is None:
            raise EmptyUpdate()
        if data.email is not None:
            raise EmailChangeNotAllowed()

        user = await UserService.get_user(session, user_id)
        user.name = data.name
        logger.info(f"User updated: user_id={user.id}")
        return user

    @staticmethod
    async def reset_password(session: AsyncSession, user_id: int, new_password: str) -> None:
        """Set a new password without knowing the current one, ending every session of the user.

        Raises:
            UserNotFound: If no user has this id

        """
        user = await UserService.get_user(session, user_id)
        user.hashed_password = User.hash_password(new_password)
        revoked = await RefreshTokenService.revoke_all_for_user(session, user.id)
        logger.info(f"Password reset for user_id={user.id}; revoked {revoked} refresh token(s)")
