"""Authentication service layer."""

import logging
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.features.user.exceptions import EmailAlreadyExists, IncorrectPassword, UserNotFound
from src.features.user.models import User, UserRole

from .exceptions import InvalidCredentialsException, InvalidRefreshTokenException
from .jwt_utils import AccessTokenCodec
from .passwords import password_service
from .refresh_tokens import RefreshTokenService, RotationOutcome
from .schemas import LoginResponse, RegisterRequest, TokenResponse

logger = logging.getLogger(__name__)


class AuthService:
    """Login, token refresh, logout and self-service account operations."""

    @staticmethod
    async def authenticate_user(session: AsyncSession, email: str, password: str) -> User | None:
        """Authenticate a user by email and password.

        Args:
            session: Database session
            email: Email address
            password: Plain text password

        Returns:
            User object if authentication successful, None otherwise

        """
        stmt = select(User).where(User.email == email.lower())
        result = await session.execute(stmt)
        user = result.scalar_one_or_none()

        if user is None:
            password_service.dummy_verify(password)
            return None

        if not user.verify_password(password):
            return None

        if not user.is_active:
            logger.warning(f"Login attempt for inactive account user_id={user.id}")
            return None

        user.last_login_at = datetime.now(UTC)
        return user

    @staticmethod
    async def issue_tokens(
        session: AsyncSession,
        codec: AccessTokenCodec,
        user: User,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginResponse:
        """Mint an access token and a refresh token for ``user``."""
        refresh_token = await RefreshTokenService.issue(session, user, ip_address, user_agent)
        access_token = codec.generate(user.id, user.email, user.role)

        return LoginResponse(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            created_at=user.created_at,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=codec.expires_in,
        )

    @staticmethod
    async def login(
        session: AsyncSession,
        codec: AccessTokenCodec,
        email: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginResponse:
        """Verify credentials and issue a token pair.

        Raises:
            InvalidCredentialsException: If the email is unknown or the password is wrong

        """
        user = await AuthService.authenticate_user(session, email, password)
        if user is None:
            logger.warning("Failed login attempt")
            raise InvalidCredentialsException()

        response = await AuthService.issue_tokens(session, codec, user, ip_address, user_agent)
        logger.info(f"User logged in: user_id={user.id}")
        return response

    @staticmethod
    async def refresh(
        session: AsyncSession,
        codec: AccessTokenCodec,
        refresh_token: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> TokenResponse:
        """Rotate a refresh token and mint a new access token.

        Every failure (unknown, expired or replayed token) is reported the same way.

        Raises:
            InvalidRefreshTokenException: If the token cannot be rotated

        """
        result = await RefreshTokenService.rotate(session, refresh_token, ip_address, user_agent)

        if result.outcome is not RotationOutcome.ROTATED:
            logger.info(f"Refresh rejected: {result.outcome.value}")
            raise InvalidRefreshTokenException()

        user = result.user
        assert user is not None and result.refresh_token is not None
        return TokenResponse(
            access_token=codec.generate(user.id, user.email, user.role),
            refresh_token=result.refresh_token,
            expires_in=codec.expires_in,
        )

    @staticmethod
    async def logout(session: AsyncSession, refresh_token: str) -> None:
        """Revoke a refresh token. Idempotent, silent for unknown tokens."""
        if await RefreshTokenService.revoke(session, refresh_token):
            logger.info("Refresh token revoked on logout")

    @staticmethod
    async def register(
        session: AsyncSession,
        codec: AccessTokenCodec,
        data: RegisterRequest,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginResponse:
        """Create a USER account and log it in.

        Raises:
            EmailAlreadyExists: If the email is already registered

        """
        email = data.email.lower()
        stmt = select(User).where(User.email == email)
        result = await session.execute(stmt)
        if result.scalar_one_or_none() is not None:
            raise EmailAlreadyExists()

        user = User(
            name=data.name,
            email=email,
            hashed_password=User.hash_password(data.password),
            role=UserRole.USER,
            is_active=True,
        )
        session.add(user)
        await session.flush()
        await session.refresh(user)

        logger.info(f"New user registered: user_id={user.id}")
        return await AuthService.issue_tokens(session, codec, user, ip_address, user_agent)

    @staticmethod
    async def me(session: AsyncSession, user_id: int) -> User:
        """Get the profile of the authenticated user.

        Raises:
            UserNotFound: If the account no longer exists

        """
        user = await session.get(User, user_id)
        if user is None:
            raise UserNotFound()
        return user

    @staticmethod
    async def change_password(session: AsyncSession, user: User, current_password: str, new_password: str) -> None:
        """Change own password and end every other session.

        Raises:
            IncorrectPassword: If current password is incorrect

        """
        if not user.verify_password(current_password):
            raise IncorrectPassword()

        user.hashed_password = User.hash_password(new_password)
        revoked = await RefreshTokenService.revoke_all_for_user(session, user.id)
        logger.info(f"Password changed for user_id={user.id}; revoked {revoked} refresh token(s)")
