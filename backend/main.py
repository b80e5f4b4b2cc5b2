"""FastAPI application entry point."""
import os

# CRITICAL: Force UTC timezone BEFORE any other imports that use time/datetime
# This must be set before any modules cache timezone information
os.environ['TZ'] = 'UTC'

import asyncio
import time
import sys

# Reload time module to pick up TZ change
if hasattr(time, "tzset"):
    time.tzset()

# Ensure console streams can emit Unicode (emoji) on Windows
for stream in (sys.stdout, sys.stderr):
    if hasattr(stream, "reconfigure"):
        stream.reconfigure(encoding="utf-8", errors="backslashreplace")

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from contextlib import asynccontextmanager

from backend.config import get_settings
from backend.version import APP_VERSION
from backend.routers import quiz, health
from backend.utils import lock_client

# Create logs directory if it doesn't exist
logs_dir = Path("logs")
logs_dir.mkdir(exist_ok=True)

# Set up log file paths
log_file = logs_dir / "quizarena.log"
sql_log_file = logs_dir / "quizarena_sql.log"
api_log_file = logs_dir / "quizarena_api.log"

# Create rotating file handler for general logs (1MB max size, keep 5 backup files)
rotating_handler = RotatingFileHandler(
    log_file,
    maxBytes=1024 * 1024,
    backupCount=5,
    encoding='utf-8',
)  # 1 MB
rotating_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

# Create rotating file handler for SQL logs (1MB max size, keep 5 backup files)
sql_rotating_handler = RotatingFileHandler(
    sql_log_file,
    maxBytes=1024 * 1024,
    backupCount=5,
    encoding='utf-8',
)  # 1 MB
sql_rotating_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

# Create rotating file handler for API request logs (2MB max size, keep 15 backup files)
api_rotating_handler = RotatingFileHandler(api_log_file, maxBytes=2 * 1024 * 1024, backupCount=15, encoding='utf-8')
api_rotating_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))

# Configure logging with both console and rotating file handlers
# Force=True ensures we override any existing configuration (e.g., from uvicorn)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        rotating_handler,
    ],
    force=True,
)

logger = logging.getLogger(__name__)

# Dedicated API request logger
api_logger = logging.getLogger("quizarena.api")
api_logger.handlers.clear()
api_logger.addHandler(api_rotating_handler)
api_logger.setLevel(logging.INFO)
api_logger.propagate = False

# Configure Uvicorn's access logger to also write to our rotating log file
uvicorn_access_logger = logging.getLogger("uvicorn.access")
uvicorn_access_logger.setLevel(logging.INFO)
if rotating_handler not in uvicorn_access_logger.handlers:
    uvicorn_access_logger.addHandler(rotating_handler)

# SQLAlchemy engine logs go to a separate SQL log file
sqlalchemy_logger = logging.getLogger("sqlalchemy.engine.Engine")
sqlalchemy_logger.handlers.clear()
sqlalchemy_logger.addHandler(sql_rotating_handler)
sqlalchemy_logger.setLevel(logging.INFO)
sqlalchemy_logger.propagate = False


class SQLTransactionFilter(logging.Filter):
    def filter(self, record):
        # Only filter INFO level messages
        if record.levelno == logging.INFO and hasattr(record, 'getMessage'):
            message = record.getMessage()

            # Filter out ROLLBACK, BEGIN, and "generated in" messages completely
            if any(keyword in message for keyword in ['ROLLBACK', 'BEGIN', 'COMMIT', 'generated in']):
                return False

            # Collapse multi-line statements onto one line
            if any(kw in message for kw in ['SELECT', 'UPDATE', 'DELETE', 'INSERT']):
                record.msg = ' '.join(message.split())
                record.args = ()

        return True


sqlalchemy_logger.addFilter(SQLTransactionFilter())

settings = get_settings()


async def settlement_maintenance_cycle():
    """
    Background task that resumes settlements interrupted after their results were committed.
    """
    from backend.tasks.settlement_maintenance import schedule_periodic_maintenance

    # Initial startup delay to let other services initialize
    startup_delay = 30
    logger.info(f"Settlement maintenance cycle starting in {startup_delay}s")
    await asyncio.sleep(startup_delay)

    await schedule_periodic_maintenance(settings.pending_settlement_sweep_minutes)


@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    """Manage application startup and shutdown tasks."""
    logger.info("=" * 60)
    logger.info("QuizArena API Starting")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Database: {settings.database_url.split('@')[-1] if '@' in settings.database_url else 'SQLite'}")
    logger.info(f"Redis: {'Enabled' if settings.redis_url else 'In-Memory Fallback'}")
    logger.info("=" * 60)

    maintenance_task = None
    try:
        maintenance_task = asyncio.create_task(settlement_maintenance_cycle())
        logger.info(
            f"Settlement maintenance task started (runs every {settings.pending_settlement_sweep_minutes} minutes)"
        )
    except Exception as e:
        logger.error(f"Failed to start settlement maintenance cycle: {e}")

    try:
        yield
    finally:
        logger.info("Shutting down background tasks...")
        if maintenance_task:
            maintenance_task.cancel()
            try:
                await asyncio.wait_for(maintenance_task, timeout=2.0)
            except asyncio.CancelledError:
                logger.info("Settlement maintenance task cancelled")
            except asyncio.TimeoutError:
                logger.warning("Settlement maintenance task did not cancel within timeout, forcing shutdown")
            except Exception as e:
                logger.error(f"Error cancelling settlement maintenance task: {e}")

        try:
            await lock_client.aclose()
        except Exception as e:
            logger.error(f"Error closing lock client: {e}")

        logger.info("QuizArena API Shutting Down... Goodbye!")


# Create FastAPI app
app = FastAPI(
    title="QuizArena API",
    description="Wagered skill quiz games: solo challenge, duel and league",
    version=APP_VERSION,
    lifespan=lifespan,
)


# Custom exception handler for validation errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors with user-friendly messages."""
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")

    errors = []
    for error in exc.errors():
        loc = error.get("loc", [])
        msg = error.get("msg", "Validation error")
        error_type = error.get("type", "unknown")

        field_path = " -> ".join(str(x) for x in loc[1:]) if len(loc) > 1 else "unknown field"
        errors.append({
            "field": field_path,
            "message": msg,
            "type": error_type
        })

    return JSONResponse(
        status_code=422,
        content={
            "detail": "Request validation failed",
            "errors": errors
        }
    )


# API Request Logging Middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Request logging middleware. Logs to the dedicated API log file with timing,
    status code and client information.
    """
    start_time = time.time()

    client_ip = request.client.host if request.client else "unknown"
    user_agent = request.headers.get("user-agent", "unknown")
    method = request.method
    path = request.url.path
    query_params = str(request.query_params) if request.query_params else ""

    request_id = f"{method}:{path}:{int(start_time * 1000) % 100000}"  # Simple request ID

    api_logger.info(f">> {request_id} | START | {method} {path} | IP: {client_ip} | UA: {user_agent[:50]}...")
    if query_params:
        api_logger.info(f">> {request_id} | QUERY | {query_params}")

    try:
        response = await call_next(request)
        process_time = time.time() - start_time

        api_logger.info(
            f"<< {request_id} | COMPLETE | {method} {path} | "
            f"Status: {response.status_code} | "
            f"Time: {process_time:.3f}s | "
            f"IP: {client_ip}"
        )
        if response.status_code >= 400:
            content_type = response.headers.get("content-type", "unknown")
            api_logger.warning(
                f"<< {request_id} | ERROR_RESPONSE | "
                f"Content-Type: {content_type}"
            )

        return response

    except Exception as e:
        process_time = time.time() - start_time
        api_logger.error(
            f"<< {request_id} | EXCEPTION | {method} {path} | "
            f"Error: {str(e)[:100]} | "
            f"Time: {process_time:.3f}s | "
            f"IP: {client_ip}"
        )
        raise


allowed_origins = os.getenv("ALLOWED_ORIGINS", "").split(",")
if not allowed_origins or allowed_origins == [""]:
    # Default origins for development + production fallback
    allowed_origins = [
        settings.frontend_url,
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Register routers
app.include_router(quiz.router, prefix="/quiz", tags=["quiz"])
app.include_router(health.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "QuizArena API",
        "version": APP_VERSION,
        "environment": settings.environment,
        "docs": "/docs",
    }
