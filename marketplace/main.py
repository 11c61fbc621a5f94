"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from marketplace.core.config import settings
from marketplace.core.middleware import setup_middleware
from marketplace.core.exceptions import MarketplaceError, AuthenticationError

from marketplace.api.auth import router as auth_router
from marketplace.api.roles import router as roles_router
from marketplace.api.modules import router as modules_router
from marketplace.api.permissions import router as permissions_router
from marketplace.api.principals import routers as principal_routers
from marketplace.api.admin import router as admin_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("marketplace")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s (module cache TTL %ss)", settings.APP_NAME, settings.MODULE_CACHE_TTL_SECONDS)
    yield
    logger.info("Shutting down %s", settings.APP_NAME)


app = FastAPI(
    title="Marketplace API",
    description="Role and permission gated marketplace backend",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware
setup_middleware(app)


# Single translation point for every domain error raised by gates and services
@app.exception_handler(MarketplaceError)
async def marketplace_exception_handler(request: Request, exc: MarketplaceError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )

# Register routers
app.include_router(auth_router, prefix="/api")
app.include_router(roles_router, prefix="/api")
app.include_router(modules_router, prefix="/api")
app.include_router(permissions_router, prefix="/api")
for principal_router in principal_routers:
    app.include_router(principal_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health():
    """Quick health check endpoint."""
    return {"status": "ok"}
