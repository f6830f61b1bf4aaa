"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from kanvaro.core.config import settings
from kanvaro.core.exceptions import KanvaroError
from kanvaro.core.middleware import setup_middleware
from kanvaro.core.rate_limiter import limiter
from kanvaro.services.notification_broadcaster import NotificationBroadcaster

from kanvaro.api.auth import router as auth_router
from kanvaro.api.notifications import router as notifications_router
from kanvaro.api.timer import router as timer_router
from kanvaro.api.cron import router as cron_router
from kanvaro.api.roles import router as roles_router
from kanvaro.api.projects import router as projects_router
from kanvaro.api.organization import router as organization_router
from kanvaro.api.profile import router as profile_router
from kanvaro.api.admin import router as admin_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)-7s %(name)s | %(message)s",
)
logger = logging.getLogger("kanvaro")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the SSE registry for the lifetime of the process."""
    logger.info("🚀 Starting Kanvaro API")
    app.state.broadcaster = NotificationBroadcaster()
    logger.info("✅ Notification broadcaster ready")

    yield

    app.state.broadcaster.close()
    logger.info("🔻 Shutting down Kanvaro API")


app = FastAPI(
    title="Kanvaro API",
    description="Self-hosted project management backend",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url=None,
)

setup_middleware(app)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(KanvaroError)
async def kanvaro_exception_handler(request: Request, exc: KanvaroError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


API_ROUTERS = (
    auth_router, notifications_router, timer_router, cron_router, roles_router,
    projects_router, organization_router, profile_router, admin_router,
)
for api_router in API_ROUTERS:
    app.include_router(api_router, prefix="/api")


@app.get("/", include_in_schema=False)
async def root():
    return {"service": settings.APP_NAME, "api": "/api", "openapi": app.openapi_url}


@app.get("/api/health")
async def health(request: Request):
    """Liveness plus the number of open notification streams."""
    broadcaster = request.app.state.broadcaster
    return {"status": "ok", "sse_connections": broadcaster.total_connections()}
