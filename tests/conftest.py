"""Test configuration and fixtures.

Each test gets its own in-memory SQLite database:
1. The schema is created from the ORM metadata at the start of the test
2. The app's session dependency is overridden with the test session
3. A fresh rate limiter is installed so request budgets never leak between tests
"""

from collections.abc import AsyncGenerator
from pathlib import Path

from dotenv import load_dotenv

# Load test environment variables before the settings module is imported
test_env_path = Path(__file__).parent.parent / ".env.test"
load_dotenv(test_env_path, override=True)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from src.database.base import Base  # noqa: E402
from src.database.dependencies import get_db_session  # noqa: E402
from src.features.auth.jwt_utils import AccessTokenCodec  # noqa: E402
from src.features.auth.rate_limit import RateLimiter  # noqa: E402
from src.features.user.models import User, UserRole  # noqa: E402
from src.main import app  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite://"


# Database Setup - Function Scope (fresh schema per test)


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory database shared by every connection of this test."""
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Session used both by the test body and by the app under test."""
    async_session = AsyncSession(bind=db_engine, expire_on_commit=False)
    try:
        yield async_session
    finally:
        await async_session.close()


# FastAPI Client & Dependency Overrides


@pytest_asyncio.fixture(autouse=True)
async def override_get_db_session(session: AsyncSession):
    """Override the database session dependency with the test session.

    Endpoints commit explicitly, so the test body sees their writes.
    """

    async def _get_test_session():
        yield session

    app.dependency_overrides[get_db_session] = _get_test_session
    yield
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def rate_limiter() -> RateLimiter:
    """Install a fresh rate limiter on the app for every test."""
    limiter = RateLimiter()
    app.state.rate_limiter = limiter
    return limiter


@pytest.fixture
def codec() -> AccessTokenCodec:
    """The access token codec the app verifies tokens with."""
    return app.state.access_token_codec


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient]:
    """Create an unauthenticated async HTTP test client.

    Use auth_client or admin_client for authenticated requests.
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Test User Factories


@pytest_asyncio.fixture
async def make_user(session: AsyncSession):
    """Factory fixture to create test users with custom fields.

    Usage:
        user = await make_user()                          # defaults
        admin = await make_user(role=UserRole.ADMIN)      # admin
        inactive = await make_user(is_active=False)       # deactivated account
    """
    counter = 0

    async def _factory(
        email=None,
        name="Test User",
        password="Password123",
        role=UserRole.USER,
        is_active=True,
        **kwargs,
    ) -> User:
        nonlocal counter
        counter += 1

        if email is None:
            email = f"testuser{counter}@example.com"

        user = User(
            email=email,
            name=name,
            hashed_password=User.hash_password(password),
            role=role,
            is_active=is_active,
            **kwargs,
        )

        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user

    yield _factory


@pytest.fixture
def auth_headers(codec: AccessTokenCodec):
    """Build an Authorization header carrying a real access token for a user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {codec.generate(user.id, user.email, user.role)}"}

    return _headers


@pytest_asyncio.fixture
async def auth_client(client: AsyncClient, make_user, auth_headers):
    """Authenticated client with a regular user.

    Sends a genuine access token, so requests go through the authentication gate.

    Returns:
        tuple: (client, user) - both the HTTP client and the authenticated user

    """
    user = await make_user()
    client.headers.update(auth_headers(user))
    yield client, user


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient, make_user, auth_headers):
    """Authenticated client with an admin user.

    Returns:
        tuple: (client, user) - both the HTTP client and the admin user

    """
    user = await make_user(role=UserRole.ADMIN)
    client.headers.update(auth_headers(user))
    yield client, user
