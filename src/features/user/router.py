"""User management router (admin API endpoints)."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.dependencies import get_db_session
from src.features.auth.dependencies import require_role
from src.features.auth.middleware import AuthenticatedIdentity
from src.shared.pagination.pagination import PaginationParams

from .models import UserRole
from .schemas import (
    AdminResetPasswordRequest,
    UserCreateRequest,
    UserListResponse,
    UserResponse,
    UserUpdateRequest,
)
from .service import UserService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["Users (Admin)"])

require_admin = require_role(UserRole.ADMIN)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreateRequest,
    admin: AuthenticatedIdentity = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a user (admin only)."""
    user = await UserService.create_user(session, data)
    await session.commit()
    logger.info(f"User {user.id} created by admin {admin.user_id}")
    return UserResponse.model_validate(user)


@router.get("", response_model=UserListResponse, dependencies=[Depends(require_admin)])
async def list_users(
    pagination: PaginationParams = Depends(),
    session: AsyncSession = Depends(get_db_session),
):
    """List all users (admin only).

    - `page`: Page number (1-indexed, default: 1)
    - `page_size`: Items per page (default: 50, max: 1000)
    """
    users, total = await UserService.get_users(session, pagination)
    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        total=total,
        page=pagination.page or 1,
        page_size=pagination.page_size or 50,
    )


@router.get("/{user_id}", response_model=UserResponse, dependencies=[Depends(require_admin)])
async def get_user(user_id: int, session: AsyncSession = Depends(get_db_session)):
    """Get user by ID (admin only)."""
    user = await UserService.get_user(session, user_id)
    return UserResponse.model_validate(user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdateRequest,
    admin: AuthenticatedIdentity = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Update a user's name (admin only). Email addresses cannot be changed."""
    user = await UserService.update_user(session, user_id, data)
    await session.commit()
    logger.info(f"User {user.id} updated by admin {admin.user_id}")
    return UserResponse.model_validate(user)


@router.put("/{user_id}/password", status_code=status.HTTP_204_NO_CONTENT)
async def reset_password(
    user_id: int,
    data: AdminResetPasswordRequest,
    admin: AuthenticatedIdentity = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Reset a user's password (admin only). Every refresh token of that user is revoked."""
    await UserService.reset_password(session, user_id, data.new_password)
    await session.commit()
    logger.info(f"Password of user {user_id} reset by admin {admin.user_id}")
