"""Request authentication gate.

Establishes a request-scoped identity from a bearer access token. The gate
never rejects a request: routes that need an identity enforce it through the
dependencies in ``dependencies.py``.
"""

from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from src.features.user.models import UserRole

from .jwt_utils import AccessTokenCodec

BEARER_SCHEME = "bearer"


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """Identity derived from a verified access token, valid for one request."""

    user_id: int
    subject: str
    role: UserRole


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the credential of a ``Bearer <token>`` header, or None if malformed."""
    if not authorization:
        return None
    scheme, _, credential = authorization.partition(" ")
    credential = credential.strip()
    if scheme.lower() != BEARER_SCHEME or not credential or " " in credential:
        return None
    return credential


def resolve_identity(codec: AccessTokenCodec, authorization: str | None) -> AuthenticatedIdentity | None:
    """Turn an Authorization header into an identity.

    Any missing or malformed header, bad signature, expired token or absent
    claim yields None. There is no partial authentication.
    """
    token = extract_bearer_token(authorization)
    if token is None:
        return None

    claims = codec.decode(token)
    if claims is None or not claims.sub:
        return None

    return AuthenticatedIdentity(user_id=claims.uid, subject=claims.sub, role=claims.role)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Attach ``request.state.identity`` when the request carries a valid access token.

    An identity already present on the request is left untouched.
    """

    def __init__(self, app: ASGIApp, codec: AccessTokenCodec):
        super().__init__(app)
        self.codec = codec

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if getattr(request.state, "identity", None) is None:
            request.state.identity = resolve_identity(self.codec, request.headers.get("Authorization"))

        response: Response = await call_next(request)
        return response
