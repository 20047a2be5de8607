import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI

from src.config.logging_config import configure_logging
from src.config.settings import settings
from src.database import client as db_client
from src.features.auth.jwt_utils import get_access_token_codec
from src.features.auth.middleware import AuthenticationMiddleware
from src.features.auth.rate_limit import RateLimiter
from src.features.auth.router import router as auth_router
from src.features.user.models import UserRole
from src.features.user.router import router as user_router
from src.features.user.schemas import UserCreateRequest
from src.features.user.service import UserService

configure_logging(settings.log_level, settings.log_format)
logger = logging.getLogger(__name__)


async def seed_initial_admin() -> None:
    """Create the configured admin account while the users table is empty."""
    data = UserCreateRequest(
        name=settings.initial_admin_name,
        email=settings.initial_admin_email,
        password=settings.initial_admin_password,
        role=UserRole.ADMIN,
    )
    async with db_client.get_session() as session:
        await UserService.ensure_initial_admin(session, data)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Handle startup and shutdown events."""
    # Startup
    await db_client.init_db()
    if settings.seeds_initial_admin:
        await seed_initial_admin()
    yield
    # Shutdown
    await db_client.close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Components shared by every request
access_token_codec = get_access_token_codec()
app.state.access_token_codec = access_token_codec
app.state.rate_limiter = RateLimiter()

# Populates request.state.identity from the bearer access token
app.add_middleware(AuthenticationMiddleware, codec=access_token_codec)

# Router Registration
routers: list[APIRouter] = [
    auth_router,
    user_router,
]

for router in routers:
    app.include_router(router, prefix=settings.api_prefix)

logger.info(f"{settings.app_name} {settings.app_version} configured for {settings.environment}")


@app.get("/")
async def root():
    return {"message": settings.app_name, "status": "running"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
