"""Health check endpoint."""
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from backend.database import engine
from backend.utils import lock_client
from backend.config import get_settings
from backend.version import APP_VERSION
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    # Check database
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "error", "detail": "Database connection failed"},
        )

    return {
        "status": "ok",
        "database": db_status,
        "locks": lock_client.backend,
        "version": APP_VERSION,
        "environment": get_settings().environment,
    }
