"""Authentication exceptions."""

from fastapi import HTTPException, status


class AuthenticationException(HTTPException):
    """Base authentication exception."""

    def __init__(self, detail: str = "Authentication failed"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidCredentialsException(AuthenticationException):
    """Raised when email or password is incorrect.

    The message never says which of the two was wrong.
    """

    def __init__(self):
        super().__init__(detail="Invalid email or password")


class NotAuthenticatedException(AuthenticationException):
    """Raised when a protected route is reached without a valid access token."""

    def __init__(self):
        super().__init__(detail="Not authenticated")


class InvalidRefreshTokenException(HTTPException):
    """Raised when a refresh token cannot be rotated.

    Covers unknown, malformed, expired and replayed tokens alike so callers
    cannot tell them apart.
    """

    def __init__(self):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid refresh token")


class RateLimitExceededException(HTTPException):
    """Raised when a client exhausts its request budget for an operation."""

    def __init__(self, retry_after: int = 60):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests",
            headers={"Retry-After": str(retry_after)},
        )


class InsufficientRoleException(HTTPException):
    """Raised when user lacks required role."""

    def __init__(self, required_roles: list[str]):
        roles_str = ", ".join(required_roles)
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"User does not have required role(s): {roles_str}",
        )
