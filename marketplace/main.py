"""
FastAPI application entry point
Main application factory and configuration
Reference: https://fastapi.tiangolo.com/tutorial/bigger-applications/
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from marketplace.api.v1.api import api_router
from marketplace.api.v1.routes.profile import form_router as profile_form_router
from marketplace.core.config import settings
from marketplace.core.database import engine
from marketplace.core.route_guard import RouteGuardMiddleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events
    Validates database connection on startup
    Reference: https://fastapi.tiangolo.com/advanced/events/
    """
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("✓ Database connection successful")
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"✗ Database connection failed: {e}")
        logger.error(
            "Please check:\n"
            "1. DATABASE_URL is set correctly\n"
            "2. The database accepts connections from this host\n"
            "3. Credentials are correct"
        )
        # Don't raise - let the app start so health checks can report it

    yield

    await engine.dispose()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Profiles, artisan shops, product listings and reviews for a handcrafted goods marketplace",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Added last so it runs first, ahead of every route
app.add_middleware(RouteGuardMiddleware)

app.include_router(api_router)
app.include_router(profile_form_router)


@app.get("/")
async def root():
    """
    Root endpoint
    Provides basic information about the API
    """
    return {
        "message": f"Welcome to {settings.PROJECT_NAME}",
        "version": settings.VERSION,
        "docs": "/docs",
    }
