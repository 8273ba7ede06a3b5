"""
Focus Watch - FastAPI Application Entry Point
Real-time attention scoring for video viewers
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.database import init_db
from app.utils.logger import setup_logging

# Setup logging
setup_logging(settings.log_level)
logger = logging.getLogger("focuswatch.main")

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle manager"""
    logger.info("=" * 60)
    logger.info("  Focus Watch - Starting")
    logger.info("=" * 60)

    init_db()
    logger.info("Database initialized")

    logger.info(f"Environment: {settings.FOCUSWATCH_ENV}")
    logger.info(f"Default mode: {settings.DEFAULT_MODE} (profile: {settings.DEFAULT_PROFILE})")
    logger.info(f"CORS Origins: {settings.cors_origins_list}")
    logger.info("Focus Watch is ready!")
    logger.info("=" * 60)

    yield

    logger.info("Focus Watch shutting down...")


# Create FastAPI app
app = FastAPI(
    title="Focus Watch",
    description="Focus detection and scoring for online lessons",
    version=VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
from app.routers import focus  # noqa: E402

app.include_router(focus.router)


# Health check endpoint
@app.get("/health")
def health_check():
    from app.services.websocket_manager import ws_manager
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": VERSION,
        "connections": ws_manager.total_connections,
    }


@app.get("/api/info")
def api_info():
    return {
        "name": f"{settings.APP_NAME} API",
        "version": VERSION,
        "description": "Focus detection and scoring engine",
        "endpoints": {
            "modes": "/api/focus/modes",
            "sessions": "/api/focus/sessions",
            "websocket_focus": "/ws/focus",
            "websocket_events": "/ws/focus/events",
            "health": "/health",
        }
    }
