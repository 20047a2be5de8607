"""Authentication dependencies for FastAPI."""

from collections.abc import Callable

from fastapi import Depends, Request
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.dependencies import get_db_session
from src.features.user.models import User, UserRole

from .exceptions import InsufficientRoleException, NotAuthenticatedException, RateLimitExceededException
from .jwt_utils import AccessTokenCodec
from .middleware import AuthenticatedIdentity
from .rate_limit import RateLimiter


async def get_optional_identity(request: Request) -> AuthenticatedIdentity | None:
    """Identity established by the authentication gate, if any."""
    return getattr(request.state, "identity", None)


async def get_current_identity(
    identity: AuthenticatedIdentity | None = Depends(get_optional_identity),
) -> AuthenticatedIdentity:
    """Require an authenticated identity.

    Raises:
        NotAuthenticatedException: If the request carries no valid access token

    """
    if identity is None:
        raise NotAuthenticatedException()
    return identity


async def get_current_user(
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db_session),
) -> User:
    """Load the user behind the current access token.

    Raises:
        NotAuthenticatedException: If the user no longer exists or is inactive

    """
    user = await session.get(User, identity.user_id)
    if user is None or not user.is_active:
        raise NotAuthenticatedException()
    return user


def require_role(*required_roles: UserRole):
    """Dependency factory to require specific roles.

    Usage:
        Depends(require_role(UserRole.ADMIN))

    The role is read from the access token, so no database access is needed.
    """

    async def role_checker(identity: AuthenticatedIdentity = Depends(get_current_identity)) -> AuthenticatedIdentity:
        if identity.role not in required_roles:
            raise InsufficientRoleException([r.value for r in required_roles])
        return identity

    return role_checker


def get_rate_limiter(request: Request) -> RateLimiter:
    """Rate limiter owned by the application instance."""
    return request.app.state.rate_limiter


def rate_limit(operation: str, limit_getter: Callable[[], int]):
    """Dependency factory throttling ``operation`` per client address.

    Usage:
        Depends(rate_limit("login", lambda: settings.rate_limit_login_per_minute))

    Buckets are keyed ``"<operation>:<client address>"``.
    """

    async def limiter_checker(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
        key = f"{operation}:{get_remote_address(request)}"
        if not limiter.allow(key, limit_getter()):
            raise RateLimitExceededException(retry_after=limiter.retry_after(key))

    return limiter_checker


def get_codec(request: Request) -> AccessTokenCodec:
    """Access token codec owned by the application instance."""
    return request.app.state.access_token_codec
