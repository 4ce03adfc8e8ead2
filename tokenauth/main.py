"""FastAPI application initialization."""

from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Load environment variables before anything else
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tokenauth.api.auth import router as auth_router
from tokenauth.api.errors import register_exception_handlers
from tokenauth.api.middleware import CorrelationIdMiddleware
from tokenauth.api.routes import router
from tokenauth.config import get_settings
from tokenauth.services.logging_service import configure_logging, get_logger
from tokenauth.services.purge_service import RefreshTokenPurger
from tokenauth.services.seed_service import SeedService
from tokenauth.services.token_service import get_token_service
from tokenauth.storage import get_store


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    settings = get_settings()
    configure_logging(settings.log_level)
    logger = get_logger("main")

    # Signing key is loaded once here; a bad algorithm or secret fails startup
    get_token_service()

    store = get_store()
    await store.initialize()
    logger.info("store_initialized", backend=settings.storage_backend)

    await SeedService(store, settings).run()

    purger = RefreshTokenPurger()
    purger.start()

    logger.info(
        "application_started",
        storage_backend=settings.storage_backend,
        access_ttl_minutes=settings.access_token_expire_minutes,
        refresh_ttl_days=settings.refresh_token_expire_days,
        rotation_enabled=settings.refresh_token_rotation,
    )

    yield

    # Shutdown
    await purger.stop()
    await store.close()
    logger.info("application_shutdown")


app = FastAPI(
    title="Token Auth Service",
    description="JWT access tokens with persistent, revocable refresh tokens",
    version="0.1.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

# CORS middleware for browser clients
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(CorrelationIdMiddleware)

app.include_router(auth_router)
app.include_router(router)
