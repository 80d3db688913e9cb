import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from rentauto.core.config import settings
from rentauto.core.database import async_session_maker
from rentauto.core.error_handlers import register_exception_handlers
from rentauto.core.logging_config import setup_logging
from rentauto.middleware.logging import LoggingMiddleware
from rentauto.api.v1.api import api_router
from rentauto.utils.dates import utc_now

setup_logging()
logger = logging.getLogger(__name__)

# Create FastAPI app
app_config = {
    "title": settings.APP_NAME,
    "description": "Vehicle rental management: fleet, customers, rentals, maintenance and reports",
    "version": settings.APP_VERSION,
    "debug": settings.DEBUG,
}

app = FastAPI(**app_config)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=settings.ALLOWED_METHODS,
    allow_headers=settings.ALLOWED_HEADERS
)
app.add_middleware(LoggingMiddleware)

register_exception_handlers(app)

# Include routers
app.include_router(api_router, prefix="/api/v1")

@app.get("/")
async def root():
    return {
        "success": True,
        "message": f"Welcome to {settings.APP_NAME}",
        "data": {"version": settings.APP_VERSION, "docs": "/docs"},
    }

@app.get("/health")
async def health_check():
    database = "connected"
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check database error: {str(e)}")
        database = "disconnected"

    return {
        "success": True,
        "message": "Service is running",
        "data": {
            "status": "healthy" if database == "connected" else "degraded",
            "timestamp": utc_now().isoformat() + "Z",
            "environment": settings.ENVIRONMENT,
            "database": database,
        },
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})")
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
