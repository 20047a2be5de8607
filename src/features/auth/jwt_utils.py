"""JWT utilities for authentication."""

from datetime import UTC, datetime, timedelta
from typing import Literal

import jwt
from jwt.exceptions import InvalidTokenError
from pydantic import BaseModel, ValidationError

from src.config.settings import settings
from src.features.user.models import UserRole


class AccessTokenClaims(BaseModel):
    """Typed claim set carried by every access token."""

    sub: str
    uid: int
    role: UserRole
    iat: datetime
    exp: datetime
    type: Literal["access"] = "access"


class AccessTokenCodec:
    """Creates and verifies short-lived HMAC-signed access tokens.

    Signature and expiry are checked together: a tampered, stale or
    malformed token is reported the same way as a missing one.
    """

    def __init__(self, secret_key: str, expire_seconds: int, algorithm: str = "HS256"):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expire_seconds = expire_seconds

    @property
    def expires_in(self) -> int:
        """Access token lifetime in seconds."""
        return self._expire_seconds

    def generate(self, user_id: int, subject: str, role: UserRole) -> str:
        """Create a signed access token.

        Args:
            user_id: Numeric user id (``uid`` claim)
            subject: User-facing identifier, the email (``sub`` claim)
            role: User role (``role`` claim)

        Returns:
            Encoded JWT token string

        """
        now = datetime.now(UTC)
        claims = AccessTokenClaims(
            sub=subject,
            uid=user_id,
            role=role,
            iat=now,
            exp=now + timedelta(seconds=self._expire_seconds),
        )
        payload = claims.model_dump(mode="json")
        # PyJWT validates exp/iat only when they are numeric dates
        payload["iat"] = int(claims.iat.timestamp())
        payload["exp"] = int(claims.exp.timestamp())
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def decode(self, token: str) -> AccessTokenClaims | None:
        """Verify a token and return its claims, or None if it is not acceptable."""
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
            return AccessTokenClaims.model_validate(payload)
        except (InvalidTokenError, ValidationError, ValueError, TypeError):
            return None

    def is_valid(self, token: str) -> bool:
        return self.decode(token) is not None

    def extract_subject(self, token: str) -> str | None:
        claims = self.decode(token)
        return claims.sub if claims else None

    def extract_role(self, token: str) -> UserRole | None:
        claims = self.decode(token)
        return claims.role if claims else None

    def extract_user_id(self, token: str) -> int | None:
        claims = self.decode(token)
        return claims.uid if claims else None


def get_access_token_codec() -> AccessTokenCodec:
    """Build the codec from application settings."""
    return AccessTokenCodec(
        secret_key=settings.secret_key,
        expire_seconds=settings.access_token_expire_seconds,
        algorithm=settings.jwt_algorithm,
    )
