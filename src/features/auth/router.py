"""Authentication router (login, token refresh, logout and self-service endpoints)."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import settings
from src.database.dependencies import get_db_session
from src.features.user.models import User
from src.features.user.schemas import UserResponse

from .dependencies import get_codec, get_current_identity, get_current_user, rate_limit
from .jwt_utils import AccessTokenCodec
from .middleware import AuthenticatedIdentity
from .schemas import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
)
from .service import AuthService

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _client_info(request: Request) -> tuple[str | None, str | None]:
    ip_address = request.client.host if request.client else None
    return ip_address, request.headers.get("user-agent")


@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    codec: AccessTokenCodec = Depends(get_codec),
):
    """Register a new account and log it in.

    New accounts get the USER role. Returns the account with a token pair.
    """
    ip_address, user_agent = _client_info(request)
    response = await AuthService.register(session, codec, data, ip_address, user_agent)
    await session.commit()
    return response


@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(rate_limit("login", lambda: settings.rate_limit_login_per_minute))],
)
async def login(
    data: LoginRequest,
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    codec: AccessTokenCodec = Depends(get_codec),
):
    """Login with email and password.

    Returns the account with access_token and refresh_token.
    """
    ip_address, user_agent = _client_info(request)
    response = await AuthService.login(session, codec, data.email, data.password, ip_address, user_agent)
    await session.commit()
    return response


@router.post(
    "/refresh",
    response_model=TokenResponse,
    dependencies=[Depends(rate_limit("refresh", lambda: settings.rate_limit_refresh_per_minute))],
)
async def refresh_token(
    data: RefreshTokenRequest,
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    codec: AccessTokenCodec = Depends(get_codec),
):
    """Exchange a refresh token for a new access_token and refresh_token.

    The presented refresh token is consumed and cannot be used again.
    """
    ip_address, user_agent = _client_info(request)
    tokens = await AuthService.refresh(session, codec, data.refresh_token, ip_address, user_agent)
    await session.commit()
    return tokens


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(data: RefreshTokenRequest, session: AsyncSession = Depends(get_db_session)):
    """Revoke a refresh token.

    Always succeeds, whether or not the token was known.
    """
    await AuthService.logout(session, data.refresh_token)
    await session.commit()


@router.get("/me", response_model=UserResponse)
async def me(
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db_session),
):
    """Get current user information."""
    user = await AuthService.me(session, identity.user_id)
    return UserResponse.model_validate(user)


@router.put("/me/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Change current user's password. Every refresh token of the account is revoked."""
    await AuthService.change_password(session, current_user, data.current_password, data.new_password)
    await session.commit()
