"""Background task that finishes interrupted settlements."""
import asyncio
import logging

from backend.config import get_settings
from backend.database import AsyncSessionLocal
from backend.services.settlement_service import SettlementCoordinator

logger = logging.getLogger(__name__)
settings = get_settings()

# Track if maintenance task is running to prevent concurrent executions
_maintenance_task_running = False


async def run_settlement_maintenance(session_factory=AsyncSessionLocal) -> int:
    """Resume every game left with settlement_status PENDING.

    Runs safely with task deduplication to prevent concurrent executions.

    Returns:
        Number of games settled by this run
    """
    global _maintenance_task_running

    # Prevent concurrent executions
    if _maintenance_task_running:
        logger.debug("Settlement maintenance already running, skipping")
        return 0

    _maintenance_task_running = True
    try:
        async with session_factory() as db:
            resumed = await SettlementCoordinator(db).resume_pending_settlements()
            if resumed:
                logger.info(f"Settlement maintenance completed: {resumed} pending settlement(s) resumed")
            return resumed

    except Exception as e:
        logger.error(f"Error during settlement maintenance: {e}", exc_info=True)
        return 0
    finally:
        _maintenance_task_running = False


async def schedule_periodic_maintenance(interval_minutes: int | None = None) -> None:
    """Run settlement maintenance periodically until cancelled.

    Args:
        interval_minutes: Minutes between runs (defaults to the configured sweep interval)
    """
    interval_minutes = interval_minutes or settings.pending_settlement_sweep_minutes
    logger.info(f"Starting settlement maintenance scheduler (interval: {interval_minutes}m)")

    while True:
        try:
            await run_settlement_maintenance()
            await asyncio.sleep(interval_minutes * 60)
        except asyncio.CancelledError:
            logger.info("Settlement maintenance scheduler cancelled")
            break
        except Exception as e:
            logger.error(f"Unexpected error in maintenance scheduler: {e}", exc_info=True)
            # Continue despite errors, try again after a brief pause
            await asyncio.sleep(60)
