"""Preservation Core - FastAPI Backend.

Disconnect classification service: decides whether a player who disconnects
from a match should be charged with a loss.
"""

import os
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .api import api_router

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown."""
    logger.info(f"Starting {settings.app_name} API...")

    # Database backs the audit trail only (optional - skip if unavailable)
    try:
        from .database import async_engine, init_db
        from sqlalchemy import text
        if async_engine is None:
            raise RuntimeError("no database engine configured")
        async with async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        await init_db()
        logger.info("Database connection successful")
        app.state.db_available = True
    except Exception as e:
        logger.warning(f"Database unavailable, running without audit trail: {e}")
        app.state.db_available = False

    yield

    logger.info(f"Shutting down {settings.app_name} API...")
    if getattr(app.state, "db_available", False):
        from .database import async_engine
        await async_engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="""
    Preservation Core API - disconnect classification for multiplayer matches.

    Features:
    - Intentional vs. unintentional disconnect classification
    - Loss verdict that protects players from network failures
    - Optional game-agnostic context signals (competitive advantage, fairness confidence)
    - Audit trail of past verdicts
    """,
    version="1.0.0",
    lifespan=lifespan,
)

cors_origins = [
    "http://localhost:3000",
    "http://localhost:3001",
    "http://127.0.0.1:3000",
]

frontend_url = settings.frontend_url or os.environ.get("FRONTEND_URL")
if frontend_url:
    cors_origins.append(frontend_url)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client input errors (400), not 422."""
    details = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        details.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    return JSONResponse(
        status_code=400,
        content={"detail": {"error": "Invalid request body", "details": details}},
    )


app.include_router(api_router, prefix=f"/api/{settings.api_version}")


@app.get("/")
async def root():
    """Root endpoint - API info."""
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "database": {"connected": bool(getattr(app.state, "db_available", False))},
    }


# For running with uvicorn directly
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "preservation_core.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", 8000)),
        reload=True,
    )
