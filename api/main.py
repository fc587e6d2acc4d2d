"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, imports, verification
from core.config import settings
from core.logging import setup_logging
import logging
from api.middleware import RequestContextMiddleware
from importer.scheduler import SyncScheduler

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Gomafia Sync API",
    description="Import, status and verification service for gomafia.pro data",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

scheduler = SyncScheduler()


# Include routers
app.include_router(health.router)
app.include_router(imports.router)
app.include_router(verification.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting Gomafia Sync API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    if settings.SCHEDULER_ENABLED:
        scheduler.start()
    else:
        logger.info("Scheduler disabled")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Gomafia Sync API")
    scheduler.stop()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Gomafia Sync API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "imports": "/imports",
            "status": "/imports/status",
            "verification": "/verification/latest"
        }
    }
