"""Main FastAPI application"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api import auth, integrations, system
from .config import settings
from .database import engine, init_db
from .services.scheduler_service import scheduler_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    await init_db()
    await scheduler_service.initialize(settings)
    try:
        yield
    except asyncio.CancelledError:
        pass  # Suppress CancelledError during shutdown
    finally:
        # Shutdown - cleanup runs in finally block
        await scheduler_service.stop()
        await engine.dispose()


app = FastAPI(
    title="Episode Tracker",
    description="TV show tracking with Plex watch history sync",
    version=__version__,
    lifespan=lifespan,
)

# If ALLOWED_ORIGINS is not set, default to ["*"] for maximum compatibility
allowed_origins = ["*"]
allow_credentials = False  # Credentials cannot be used with "*"

if settings.ALLOWED_ORIGINS:
    allowed_origins = settings.ALLOWED_ORIGINS.split(",")
    allow_credentials = True

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(integrations.router)
app.include_router(system.router)


@app.get("/api")
async def api_root():
    """API root"""
    return {
        "name": "Episode Tracker API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }
