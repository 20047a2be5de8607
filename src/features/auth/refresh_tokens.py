"""Refresh token lifecycle: issue, rotate, revoke and reuse detection."""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import settings
from src.features.user.models import User

from .models import RefreshToken

logger = logging.getLogger(__name__)

TOKEN_BYTES = 48


class RotationOutcome(StrEnum):
    """Result of presenting a refresh token for rotation."""

    ROTATED = "rotated"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    REUSE_DETECTED = "reuse_detected"


@dataclass(frozen=True)
class RotationResult:
    """Tagged rotation result. ``user`` and ``refresh_token`` are set only when ROTATED."""

    outcome: RotationOutcome
    user: User | None = None
    refresh_token: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is RotationOutcome.ROTATED


class RefreshTokenService:
    """Single-use refresh tokens with reuse detection.

    Token states: ACTIVE -> ROTATED or REVOKED (both stored as ``revoked=True``
    and terminal). EXPIRED is computed from ``expires_at`` and never stored.
    Only the SHA-256 digest of a token is persisted.
    """

    @staticmethod
    def hash_token(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    @staticmethod
    def generate_token() -> str:
        """48 random bytes, URL-safe base64 without padding."""
        return secrets.token_urlsafe(TOKEN_BYTES)

    @staticmethod
    async def issue(
        session: AsyncSession, user: User, ip_address: str | None = None, user_agent: str | None = None
    ) -> str:
        """Create a refresh token for ``user`` and return its plaintext.

        The plaintext is returned exactly once and cannot be recovered later.
        """
        if user.id is None:
            await session.flush()

        token = RefreshTokenService.generate_token()
        session.add(
            RefreshToken(
                token_hash=RefreshTokenService.hash_token(token),
                user_id=user.id,
                expires_at=datetime.now(UTC) + timedelta(days=settings.refresh_token_expire_days),
                revoked=False,
                ip_address=ip_address,
                user_agent=user_agent,
            )
        )
        await session.flush()
        return token

    @staticmethod
    async def _find(session: AsyncSession, token: str) -> RefreshToken | None:
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.token_hash == RefreshTokenService.hash_token(token))
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def _claim(session: AsyncSession, stored: RefreshToken, now: datetime) -> bool:
        """Flip ``revoked`` false -> true. Returns False if another request got there first."""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.id == stored.id, RefreshToken.revoked.is_(False))
            .values(revoked=True, revoked_at=now)
            .execution_options(synchronize_session="evaluate")
        )
        result = await session.execute(stmt)
        return result.rowcount == 1

    @staticmethod
    async def rotate(
        session: AsyncSession, presented: str, ip_address: str | None = None, user_agent: str | None = None
    ) -> RotationResult:
        """Exchange a live refresh token for a new one.

        A token rotates successfully at most once. Presenting an already
        revoked token is treated as a reuse attack: every token of its owner
        is revoked and committed before the failure is returned, so the
        teardown survives the caller rolling back its own work.
        """
        if not presented:
            return RotationResult(RotationOutcome.NOT_FOUND)

        stored = await RefreshTokenService._find(session, presented)
        if stored is None:
            return RotationResult(RotationOutcome.NOT_FOUND)

        if stored.revoked:
            return await RefreshTokenService._contain_reuse(session, stored.user_id)

        now = datetime.now(UTC)
        if stored.is_expired(now):
            logger.info(f"Expired refresh token presented for user_id={stored.user_id}")
            return RotationResult(RotationOutcome.EXPIRED)

        user = await session.get(User, stored.user_id)
        if user is None or not user.is_active:
            return RotationResult(RotationOutcome.NOT_FOUND)

        if not await RefreshTokenService._claim(session, stored, now):
            # A concurrent rotation of the same token committed first
            return await RefreshTokenService._contain_reuse(session, stored.user_id)

        new_token = await RefreshTokenService.issue(session, user, ip_address, user_agent)
        logger.info(f"Refresh token rotated for user_id={user.id}")
        return RotationResult(RotationOutcome.ROTATED, user=user, refresh_token=new_token)

    @staticmethod
    async def _contain_reuse(session: AsyncSession, user_id: int) -> RotationResult:
        revoked = await RefreshTokenService.revoke_all_for_user(session, user_id)
        await session.commit()
        logger.warning(f"Refresh token reuse detected for user_id={user_id}; revoked {revoked} token(s)")
        return RotationResult(RotationOutcome.REUSE_DETECTED)

    @staticmethod
    async def revoke(session: AsyncSession, presented: str) -> bool:
        """Revoke a live token (logout).

        Unknown, malformed or already revoked tokens are ignored.

        Returns:
            True if a token was revoked by this call

        """
        if not presented:
            return False

        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.token_hash == RefreshTokenService.hash_token(presented),
                RefreshToken.revoked.is_(False),
            )
            .values(revoked=True, revoked_at=datetime.now(UTC))
            .execution_options(synchronize_session="evaluate")
        )
        result = await session.execute(stmt)
        return result.rowcount > 0

    @staticmethod
    async def revoke_all_for_user(session: AsyncSession, user_id: int) -> int:
        """Revoke every live token owned by ``user_id``. Returns how many were revoked."""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
            .values(revoked=True, revoked_at=datetime.now(UTC))
            .execution_options(synchronize_session="evaluate")
        )
        result = await session.execute(stmt)
        return result.rowcount
