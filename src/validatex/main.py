"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from validatex.analytics.router import router as analytics_router
from validatex.analytics.router import spending_router
from validatex.config import get_settings
from validatex.dashboard.router import router as dashboard_router
from validatex.database import close_db, get_session_factory, init_db
from validatex.health.router import router as health_router
from validatex.middleware import setup_middleware
from validatex.posts.router import router as posts_router
from validatex.posts.seed import seed_categories
from validatex.redis_client import close_redis, init_redis
from validatex.validations.router import router as validations_router
from validatex.wallet.router import router as wallet_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    try:
        async with get_session_factory()() as db:
            await seed_categories(db)
    except SQLAlchemyError:
        logger.warning("category_seed_skipped", reason="tables may not exist yet", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="ValidateX Ledger API",
        description="Reward and spend ledger, wallet and cashout service for ValidateX",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(wallet_router)
    app.include_router(posts_router)
    app.include_router(validations_router)
    app.include_router(analytics_router)
    app.include_router(spending_router)
    app.include_router(dashboard_router)

    return app


app = create_app()
