"""FastAPI application factory."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from homelearn.admin.router import router as admin_router
from homelearn.admin.seed import ensure_bootstrap_admin
from homelearn.auth.router import router as auth_router
from homelearn.config import get_settings
from homelearn.courses.router import router as courses_router
from homelearn.database import close_db, get_session, init_db
from homelearn.health.router import router as health_router
from homelearn.middleware import setup_middleware
from homelearn.redis_client import close_redis, get_redis, init_redis
from homelearn.social.router import router as social_router
from homelearn.users.router import router as users_router
from homelearn.ws.bridge import PubSubBridge
from homelearn.ws.router import router as ws_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)

    # Bootstrap admin (idempotent)
    sessions = get_session()
    try:
        await ensure_bootstrap_admin(await anext(sessions), settings)
    except Exception:
        logger.warning("bootstrap_admin_failed", exc_info=True)
    finally:
        await sessions.aclose()

    # Start the Redis pub/sub -> WebSocket bridge
    bridge: PubSubBridge | None = None
    bridge_task: asyncio.Task | None = None
    if settings.notifier_backend == "redis":
        bridge = PubSubBridge(get_redis())
        bridge_task = asyncio.create_task(bridge.start())

    yield

    # Shutdown bridge
    if bridge is not None and bridge_task is not None:
        await bridge.stop()
        bridge_task.cancel()
        try:
            await bridge_task
        except asyncio.CancelledError:
            pass

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Homelearn API",
        description="Backend API for Homelearn, a course-learning platform",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(courses_router)
    app.include_router(social_router)
    app.include_router(admin_router)
    app.include_router(ws_router)
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")

    return app


app = create_app()
